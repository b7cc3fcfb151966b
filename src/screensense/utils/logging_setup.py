import logging

# Placeholder used when a record is not tied to a tab
NO_TAB = "-"


class TabLogFilter(logging.Filter):
    """
    A logging filter that ensures 'tab_id' and a normalized 'name'
    are present on log records for consistent formatting.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        # Records from Playwright, aiohttp etc. carry no tab_id
        current_tab_id = getattr(record, "tab_id", None)
        record.tab_id = NO_TAB if current_tab_id is None else str(current_tab_id)

        current_logger_name = getattr(record, "name", None)
        if not current_logger_name or current_logger_name == "root":
            record.name = "DefaultLogger"
        else:
            record.name = str(current_logger_name)

        return True


def init_logging(level: int = logging.INFO, clear_existing_handlers: bool = True) -> None:
    """
    Sets up a standardized console logging configuration for ScreenSense sessions.

    Library modules only create loggers; call this from an application entry
    point to get formatted output.

    Args:
        level: The desired logging level for the root logger.
        clear_existing_handlers: If True, removes any handlers already attached to the
                                 root logger (prevents duplicate output when
                                 re-running setup code in notebooks).
    """
    root_logger = logging.getLogger()

    if clear_existing_handlers:
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(name)s] [tab:%(tab_id)s] %(message)s"
    )
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(TabLogFilter())

    root_logger.addHandler(stream_handler)
    root_logger.setLevel(level)

    logging.getLogger(__name__).info(
        f"ScreenSense logging setup complete. Root logger level set to {logging.getLevelName(level)}."
    )
