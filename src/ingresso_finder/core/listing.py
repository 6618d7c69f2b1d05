"""Filterable, paginated list state shared by every selection screen.

A :class:`ListModel` owns the items, the incremental filter text, the
cursor and the page geometry.  It never renders anything; the CLI
renderer reads :meth:`ListModel.page` and :attr:`ListModel.index`.

Filtering
---------
Case-insensitive.  Items whose filter text contains the query as a
substring come first, then items matching it as a subsequence (fuzzy),
each group in original order.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Generic, Protocol, TypeVar

ITEM_ROWS = 3
"""Screen rows per item: title, description, spacer."""

LIST_CHROME_ROWS = 3
"""Rows taken by the list title, filter line and page indicator."""


class ListItem(Protocol):
    @property
    def title(self) -> str: ...  # pragma: no cover

    @property
    def description(self) -> str: ...  # pragma: no cover

    @property
    def filter_value(self) -> str: ...  # pragma: no cover


ItemT = TypeVar("ItemT", bound=ListItem)


def _is_subsequence(needle: str, haystack: str) -> bool:
    chars = iter(haystack)
    return all(ch in chars for ch in needle)


def filter_items(items: Sequence[ItemT], query: str) -> list[ItemT]:
    """Rank *items* against *query*; an empty query keeps everything."""
    term = query.lower()
    if not term:
        return list(items)
    substring: list[ItemT] = []
    fuzzy: list[ItemT] = []
    for item in items:
        target = item.filter_value.lower()
        if term in target:
            substring.append(item)
        elif _is_subsequence(term, target):
            fuzzy.append(item)
    return substring + fuzzy


class ListModel(Generic[ItemT]):
    """Cursor, filter and pagination over a sequence of list items."""

    def __init__(
        self,
        title: str,
        items: Sequence[ItemT] = (),
        *,
        page_size: int = 10,
        filtering_enabled: bool = True,
    ) -> None:
        self.title = title
        self.filtering_enabled = filtering_enabled
        self._items: list[ItemT] = list(items)
        self._filter = ""
        self._visible: list[ItemT] = list(self._items)
        self._index = 0
        self._page_size = max(1, page_size)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[ItemT]:
        return list(self._items)

    @property
    def visible_items(self) -> list[ItemT]:
        return list(self._visible)

    def set_items(self, items: Sequence[ItemT]) -> None:
        """Replace the items, re-applying the filter and clamping the cursor."""
        self._items = list(items)
        self._apply_filter()

    # ------------------------------------------------------------------
    # Filter
    # ------------------------------------------------------------------

    @property
    def filter_text(self) -> str:
        return self._filter

    @property
    def is_filtered(self) -> bool:
        return bool(self._filter)

    def append_filter(self, text: str) -> None:
        if not text:
            return
        self._filter += text
        self._index = 0
        self._apply_filter()

    def pop_filter(self) -> bool:
        """Drop the last character; returns ``False`` when already empty."""
        if not self._filter:
            return False
        self._filter = self._filter[:-1]
        self._index = 0
        self._apply_filter()
        return True

    def reset_filter(self) -> None:
        self._filter = ""
        self._apply_filter()

    def _apply_filter(self) -> None:
        self._visible = filter_items(self._items, self._filter)
        self._clamp()

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    @property
    def index(self) -> int:
        return self._index

    @property
    def selected(self) -> ItemT | None:
        if not self._visible:
            return None
        return self._visible[self._index]

    def select(self, index: int) -> None:
        self._index = index
        self._clamp()

    def cursor_up(self) -> None:
        self.select(self._index - 1)

    def cursor_down(self) -> None:
        self.select(self._index + 1)

    def page_up(self) -> None:
        self.select(self._index - self._page_size)

    def page_down(self) -> None:
        self.select(self._index + self._page_size)

    def _clamp(self) -> None:
        if not self._visible:
            self._index = 0
            return
        self._index = min(max(self._index, 0), len(self._visible) - 1)

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    @property
    def page_size(self) -> int:
        return self._page_size

    def set_height(self, height: int) -> None:
        """Fit the page to *height* terminal rows."""
        self._page_size = max(1, (height - LIST_CHROME_ROWS) // ITEM_ROWS)

    @property
    def page_number(self) -> int:
        return self._index // self._page_size

    @property
    def page_count(self) -> int:
        return max(1, -(-len(self._visible) // self._page_size))

    def page_bounds(self) -> tuple[int, int]:
        """``(start, end)`` slice of :attr:`visible_items` on the current page."""
        start = self.page_number * self._page_size
        end = min(start + self._page_size, len(self._visible))
        return start, end

    def page(self) -> list[ItemT]:
        start, end = self.page_bounds()
        return self._visible[start:end]
