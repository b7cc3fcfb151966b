"""In-memory bookkeeping of a session's tabs."""

from typing import TYPE_CHECKING, List, Optional

from screensense.exceptions import TabNotFoundError
from screensense.types import Tab

if TYPE_CHECKING:  # pragma: no cover
    from playwright.async_api import Page


class TabRegistry:
    """
    Tracks one current tab plus an insertion-ordered list of other tabs.

    Ids come from a monotonic counter that is never reset, so an id is never
    handed out twice, even after ``clear()``. The registry performs no I/O and
    no locking; callers serialize mutations.
    """

    def __init__(self) -> None:
        self.current: Optional[Tab] = None
        self.others: List[Tab] = []
        self._id_counter = 0

    def next_id(self) -> int:
        tab_id = self._id_counter
        self._id_counter += 1
        return tab_id

    def _demote_current(self) -> None:
        if self.current is not None:
            self.others.append(self.current)
            self.current = None

    def _index_of(self, tab_id: int) -> int:
        for index, tab in enumerate(self.others):
            if tab.id == tab_id:
                return index
        return -1

    def add(self, page: "Page", title: str = "") -> Tab:
        """Register ``page`` as a new tab and make it current."""
        tab = Tab(id=self.next_id(), page=page, title=title)
        self._demote_current()
        self.current = tab
        return tab

    def switch(self, tab_id: int) -> Tab:
        """
        Promote the tab ``tab_id`` from the others list to current.

        Raises:
            TabNotFoundError: If no tab in the others list has that id. State is
                left untouched.
        """
        index = self._index_of(tab_id)
        if index == -1:
            raise TabNotFoundError(tab_id, available_ids=[tab.id for tab in self.others])

        tab = self.others.pop(index)
        self._demote_current()
        self.current = tab
        return tab

    def remove(self, tab_id: int) -> Tab:
        """
        Drop a tab from the registry.

        Removing the current tab promotes the most recently demoted tab (the
        last entry of ``others``), if there is one.

        Raises:
            TabNotFoundError: If no tab has that id.
        """
        if self.current is not None and self.current.id == tab_id:
            removed = self.current
            self.current = self.others.pop() if self.others else None
            return removed

        index = self._index_of(tab_id)
        if index == -1:
            raise TabNotFoundError(tab_id, available_ids=[tab.id for tab in self.list()])
        return self.others.pop(index)

    def get(self, tab_id: int) -> Optional[Tab]:
        for tab in self.list():
            if tab.id == tab_id:
                return tab
        return None

    def list(self) -> List[Tab]:
        """Current tab first (if any), then the others in insertion order."""
        tabs = list(self.others)
        if self.current is not None:
            tabs.insert(0, self.current)
        return tabs

    def clear(self) -> None:
        self.current = None
        self.others = []

    def __len__(self) -> int:
        return len(self.others) + (1 if self.current is not None else 0)

    def __contains__(self, tab_id: object) -> bool:
        return any(tab.id == tab_id for tab in self.list())
