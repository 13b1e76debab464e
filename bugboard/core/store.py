"""
Entity Store
============

The client-side observable cache of backend state.

``EntityStore`` owns two ``ObservableList`` collections, issues and users.
Both preserve insertion order and keep unique membership by server id once
an id is assigned. Listeners registered on a collection are notified with a
single ``ChangeEvent`` per logical update, so a bulk replace never shows an
intermediate empty list.

Threading:
    The store is single-writer. It remembers the thread that created it (the
    UI thread) and refuses mutations from any other thread. Background tasks
    hand their results to the UI dispatcher instead of touching the store.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from .models import Issue, IssueState, IssueType, Priority, User

T = TypeVar("T")

Listener = Callable[["ChangeEvent"], None]


@dataclass(frozen=True)
class ChangeEvent:
    """
    Describes one logical change of an ObservableList.

    Attributes:
        kind: ``"replace"`` (whole content swapped), ``"append"`` or ``"update"``
        items: The items added/updated by this change
        size: Collection length after the change
    """
    kind: str
    items: tuple
    size: int


class ObservableList(Generic[T]):
    """
    Insertion-ordered list with change listeners.

    Items with a non-None ``id`` are unique: appending an item whose id is
    already present updates the existing slot instead of adding a duplicate.
    """

    def __init__(self, name: str, owner: Optional[threading.Thread] = None):
        self.name = name
        self.logger = logging.getLogger(__name__)
        self._items: List[T] = []
        self._listeners: List[Listener] = []
        self._owner = owner or threading.current_thread()

    # -- read access ---------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __getitem__(self, index):
        return self._items[index]

    def __contains__(self, item) -> bool:
        return item in self._items

    def snapshot(self) -> List[T]:
        return list(self._items)

    def find(self, predicate: Callable[[T], bool]) -> Optional[T]:
        return next((item for item in self._items if predicate(item)), None)

    def filtered(self, predicate: Optional[Callable[[T], bool]]) -> List[T]:
        """Return a detached list of the items matching ``predicate`` (all when None)."""
        if predicate is None:
            return list(self._items)
        return [item for item in self._items if predicate(item)]

    # -- listeners -----------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.logger.error(
                    f"Listener on '{self.name}' failed: {type(e).__name__}: {e}",
                    exc_info=True
                )

    # -- mutation (owner thread only) ----------------------------------------

    def _check_owner(self) -> None:
        if threading.current_thread() is not self._owner:
            raise RuntimeError(
                f"'{self.name}' can only be mutated from thread '{self._owner.name}', "
                f"not '{threading.current_thread().name}'"
            )

    @staticmethod
    def _identity(item) -> Optional[int]:
        return getattr(item, "id", None)

    def _index_of_id(self, item_id: int) -> int:
        for index, existing in enumerate(self._items):
            if self._identity(existing) == item_id:
                return index
        return -1

    def replace_all(self, items: Iterable[T]) -> None:
        """Swap the whole content in one step; duplicates by id keep the last copy."""
        self._check_owner()
        result: List[T] = []
        positions = {}
        for item in items:
            item_id = self._identity(item)
            if item_id is not None and item_id in positions:
                result[positions[item_id]] = item
                continue
            if item_id is not None:
                positions[item_id] = len(result)
            result.append(item)

        self._items = result
        self.logger.debug(f"'{self.name}' replaced with {len(result)} items")
        self._notify(ChangeEvent("replace", tuple(result), len(result)))

    def append(self, item: T) -> None:
        self._check_owner()
        item_id = self._identity(item)
        index = self._index_of_id(item_id) if item_id is not None else -1
        if index >= 0:
            self._items[index] = item
            self._notify(ChangeEvent("update", (item,), len(self._items)))
            return
        self._items.append(item)
        self._notify(ChangeEvent("append", (item,), len(self._items)))

    def clear(self) -> None:
        self.replace_all([])


class EntityStore:
    """
    Cached view of backend state shown by the UI.

    Attributes:
        issues: ObservableList of Issue
        users: ObservableList of User
    """

    def __init__(self):
        self.issues: ObservableList[Issue] = ObservableList("issues")
        self.users: ObservableList[User] = ObservableList("users")

    def clear(self) -> None:
        self.issues.clear()
        self.users.clear()

    # ------------------------------------------------------------------------
    # FILTERED VIEWS
    # ------------------------------------------------------------------------

    def issues_by_type(self, issue_type: Optional[IssueType]) -> List[Issue]:
        if issue_type is None:
            return self.issues.snapshot()
        return self.issues.filtered(lambda i: i.type is issue_type)

    def issues_by_priority(self, priority: Optional[Priority]) -> List[Issue]:
        if priority is None:
            return self.issues.snapshot()
        return self.issues.filtered(lambda i: i.priority is priority)

    def issues_by_state(self, state: Optional[IssueState]) -> List[Issue]:
        if state is None:
            return self.issues.snapshot()
        return self.issues.filtered(lambda i: i.state is state)

    def search_issues(
        self,
        text: str = "",
        issue_type: Optional[IssueType] = None,
        state: Optional[IssueState] = None
    ) -> List[Issue]:
        """Combined filter used by the issue list: text on title/description, then type and state."""
        return self.issues.filtered(
            lambda i: i.matches_text(text)
            and (issue_type is None or i.type is issue_type)
            and (state is None or i.state is state)
        )

    def find_user(self, username: str) -> Optional[User]:
        key = (username or "").strip().casefold()
        return self.users.find(lambda u: u.key == key)
