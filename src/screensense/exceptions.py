"""
ScreenSense Exception Hierarchy

Two families of failures are modelled here:

1. Automation-precondition errors (no browser context, no active page, unknown
   tab, invalid input action). These are always raised to the caller so that a
   session's state machine stays deterministic.
2. Vision-backend errors. ``VisionProcessorError`` is raised inside a screen
   processor and caught there; it never reaches the caller of ``process``.

Errors raised by Playwright itself are not wrapped and propagate unchanged.
"""

import time
from typing import Any, Dict, List, Optional


class ScreenSenseError(Exception):
    """
    Base exception class for all ScreenSense errors.

    Attributes:
        error_code: Unique error code for programmatic handling
        timestamp: When the error occurred
        context: Additional context information
        user_message: User-friendly error message
        developer_message: Detailed technical error message
        suggestion: Suggested fix or next steps (if applicable)
    """

    def __init__(
        self,
        message: str,
        error_code: str = "SCREENSENSE_ERROR",
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.timestamp = time.time()
        self.context = context or {}
        self.user_message = user_message or message
        self.developer_message = message
        self.suggestion = suggestion

    @property
    def message(self) -> str:
        return self.developer_message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.developer_message,
            "user_message": self.user_message,
            "timestamp": self.timestamp,
            "context": self.context,
            "suggestion": self.suggestion,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.developer_message}"


# =============================================================================
# BROWSER ERRORS
# =============================================================================

class BrowserError(ScreenSenseError):
    """Base class for browser-related errors."""

    def __init__(self, message: str, **kwargs):
        error_code = kwargs.pop("error_code", "BROWSER_ERROR")
        super().__init__(message, error_code=error_code, **kwargs)


class BrowserNotInitializedError(BrowserError):
    """
    Raised when an operation needs a browser context but the session has not
    been started (or has already been closed).
    """

    def __init__(self, operation: Optional[str] = None, message: Optional[str] = None, **kwargs):
        self.operation = operation

        context = kwargs.pop("context", {})
        if operation:
            context["attempted_operation"] = operation

        if message is None:
            message = (
                f"No browser context available for operation: {operation}"
                if operation
                else "No browser context available"
            )

        kwargs.setdefault("error_code", "BROWSER_NOT_INITIALIZED_ERROR")
        kwargs.setdefault("user_message", "The browser session needs to be started before use.")
        kwargs.setdefault("suggestion", "Call `await screen.start()` before issuing browser operations.")
        super().__init__(message, context=context, **kwargs)


class NoActivePageError(BrowserNotInitializedError):
    """Raised when an input or screenshot operation runs without a current tab."""

    def __init__(self, operation: Optional[str] = None, **kwargs):
        message = f"No active page for {operation}" if operation else "No active page"
        super().__init__(
            operation,
            message=message,
            error_code="NO_ACTIVE_PAGE_ERROR",
            user_message="There is no active tab to act on.",
            suggestion="Start the session or open/switch to a tab first.",
            **kwargs,
        )


class TabNotFoundError(BrowserError):
    """Raised when a tab id does not refer to a switchable or closable tab."""

    def __init__(self, tab_id: int, available_ids: Optional[List[int]] = None, **kwargs):
        self.tab_id = tab_id
        self.available_ids = list(available_ids or [])

        context = kwargs.pop("context", {})
        context["tab_id"] = tab_id
        context["available_ids"] = self.available_ids

        super().__init__(
            f"Tab with ID {tab_id} not found",
            error_code="TAB_NOT_FOUND_ERROR",
            context=context,
            user_message="The requested tab does not exist.",
            suggestion="Use list_tabs() to see the ids of open tabs.",
            **kwargs,
        )


# =============================================================================
# ACTION ERRORS
# =============================================================================

class ActionValidationError(ScreenSenseError):
    """
    Raised when an input action is called with invalid arguments.

    Examples:
    - Drag path with fewer than two points
    - Unknown mouse button or click type
    - Starting a session that is already running
    """

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        invalid_params: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        self.action = action
        self.invalid_params = invalid_params

        context = kwargs.pop("context", {})
        if action:
            context["action"] = action
        if invalid_params:
            context["invalid_params"] = invalid_params

        super().__init__(
            message,
            error_code="ACTION_VALIDATION_ERROR",
            context=context,
            user_message="The action arguments are invalid.",
            suggestion="Check the arguments passed to the action.",
            **kwargs
        )


# =============================================================================
# VISION ERRORS
# =============================================================================

class VisionProcessorError(ScreenSenseError):
    """
    Raised inside a screen processor when the vision backend fails (HTTP error
    status, unexpected payload). Screen processors catch it and degrade to an
    empty result.
    """

    def __init__(
        self,
        message: str,
        processor: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.processor = processor
        self.status_code = status_code

        context = kwargs.pop("context", {})
        if processor:
            context["processor"] = processor
        if status_code is not None:
            context["status_code"] = status_code

        super().__init__(
            message,
            error_code="VISION_PROCESSOR_ERROR",
            context=context,
            user_message="The vision backend could not process the screenshot.",
            **kwargs
        )
