"""Widgets that hold several values: list boxes, scroll bars and panels."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from mayanet.widgets import (
    BLACK,
    CHAR_HEIGHT,
    DARK_GREY,
    LIGHT_GREY,
    WHITE,
    Widget,
    WidgetType,
    _outline,
)
from mayanet.window import Window

ITEM_HEIGHT = CHAR_HEIGHT + 2
NO_SELECTION = -1


@dataclass
class ListItem:
    """One entry of a list box."""

    text: str
    data: Any = None


class Orientation(IntEnum):
    HORIZONTAL = 0
    VERTICAL = 1


class ListBox(Widget):
    """A scrollable list of text items with one selection."""

    def __init__(self, x: int, y: int, width: int, height: int) -> None:
        super().__init__(WidgetType.LISTBOX, x, y, width, height)
        self.items: list[ListItem] = []
        self.selected_index = NO_SELECTION
        self.scroll_pos = 0
        self.color = BLACK
        self.on_select: Callable[[int, Any], object] | None = None

    @property
    def visible_items(self) -> int:
        return self.height // ITEM_HEIGHT

    @property
    def item_count(self) -> int:
        return len(self.items)

    def add_item(self, text: str, data: Any = None) -> int:
        """Append an item; return its index."""
        self.items.append(ListItem(text, data))
        return len(self.items) - 1

    def remove_item(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            raise IndexError(f"item {index} does not exist")
        del self.items[index]
        if self.selected_index == index:
            self.selected_index = NO_SELECTION
        elif self.selected_index > index:
            self.selected_index -= 1
        self._clamp_scroll()

    def clear(self) -> None:
        self.items.clear()
        self.selected_index = NO_SELECTION
        self.scroll_pos = 0

    def select(self, index: int) -> None:
        """Select an item, or clear the selection with -1."""
        if index == NO_SELECTION:
            self.selected_index = NO_SELECTION
            return
        if not 0 <= index < len(self.items):
            raise IndexError(f"item {index} does not exist")
        self.selected_index = index
        rows = max(self.visible_items, 1)
        if index < self.scroll_pos:
            self.scroll_pos = index
        elif index >= self.scroll_pos + rows:
            self.scroll_pos = index - rows + 1
        if self.on_select is not None:
            self.on_select(index, self.items[index].data)

    def selected_data(self) -> Any:
        """The data of the selected item, or None without a selection."""
        if self.selected_index == NO_SELECTION:
            return None
        return self.items[self.selected_index].data

    def _clamp_scroll(self) -> None:
        highest = max(len(self.items) - max(self.visible_items, 1), 0)
        self.scroll_pos = min(max(self.scroll_pos, 0), highest)

    def handle_click(self, x: int, y: int) -> bool:
        if not self.visible or not self.enabled or not self.contains(x, y):
            return False
        index = self.scroll_pos + (y - self.y) // ITEM_HEIGHT
        if 0 <= index < len(self.items):
            self.select(index)
        if self.on_click is not None:
            self.on_click(self)
        return True

    def _paint(self, window: Window, x: int, y: int) -> None:
        window.draw_rect(x, y, self.width, self.height, WHITE)
        visible = self.items[self.scroll_pos : self.scroll_pos + self.visible_items]
        for row, _item in enumerate(visible):
            if self.scroll_pos + row != self.selected_index:
                continue
            top = y + row * ITEM_HEIGHT
            height = min(ITEM_HEIGHT, y + self.height - top)
            window.draw_rect(x + 1, top, max(self.width - 2, 0), height, DARK_GREY)
        _outline(window, x, y, self.width, self.height, self.color)


class ScrollBar(Widget):
    """A bar that holds a value between a minimum and a maximum."""

    def __init__(
        self, x: int, y: int, width: int, height: int, orientation: int
    ) -> None:
        super().__init__(WidgetType.SCROLLBAR, x, y, width, height)
        self.orientation = Orientation(orientation)
        self.min_value = 0
        self.max_value = 100
        self.current_value = 0
        self.page_size = 10
        self.color = LIGHT_GREY
        self.on_scroll: Callable[[int], object] | None = None

    @property
    def value(self) -> int:
        return self.current_value

    def set_range(self, min_value: int, max_value: int) -> None:
        if min_value > max_value:
            raise ValueError(f"minimum {min_value} exceeds maximum {max_value}")
        self.min_value = min_value
        self.max_value = max_value
        self.set_value(self.current_value)

    def set_value(self, value: int) -> None:
        """Set the value, clamped to the range; report a change to on_scroll."""
        value = min(max(value, self.min_value), self.max_value)
        if value == self.current_value:
            return
        self.current_value = value
        if self.on_scroll is not None:
            self.on_scroll(value)

    def set_page_size(self, page_size: int) -> None:
        if page_size < 0:
            raise ValueError(f"page size {page_size} is negative")
        self.page_size = page_size

    def _axis(self) -> tuple[int, int]:
        if self.orientation is Orientation.VERTICAL:
            return self.y, self.height
        return self.x, self.width

    def handle_click(self, x: int, y: int) -> bool:
        if not self.visible or not self.enabled or not self.contains(x, y):
            return False
        start, length = self._axis()
        position = (y if self.orientation is Orientation.VERTICAL else x) - start
        if position < length // 2:
            self.set_value(self.current_value - self.page_size)
        else:
            self.set_value(self.current_value + self.page_size)
        if self.on_click is not None:
            self.on_click(self)
        return True

    def _thumb(self) -> tuple[int, int]:
        """Offset and length of the thumb along the bar."""
        _start, length = self._axis()
        span = self.max_value - self.min_value
        size = max(length // 4, 1) if length else 0
        if span == 0 or length <= size:
            return 0, size
        offset = (self.current_value - self.min_value) * (length - size) // span
        return offset, size

    def _paint(self, window: Window, x: int, y: int) -> None:
        window.draw_rect(x, y, self.width, self.height, self.color)
        offset, size = self._thumb()
        if self.orientation is Orientation.VERTICAL:
            window.draw_rect(x, y + offset, self.width, size, DARK_GREY)
        else:
            window.draw_rect(x + offset, y, size, self.height, DARK_GREY)
        _outline(window, x, y, self.width, self.height, BLACK)


class Panel(Widget):
    """A filled rectangle that holds other widgets."""

    def __init__(self, x: int, y: int, width: int, height: int) -> None:
        super().__init__(WidgetType.PANEL, x, y, width, height)
        self.background_color = LIGHT_GREY
        self.border_color = BLACK
        self.has_border = False

    def set_border(self, has_border: bool, border_color: int) -> None:
        if not 0 <= border_color <= 0xFF:
            raise ValueError(f"color {border_color} is not a palette index")
        self.has_border = bool(has_border)
        self.border_color = border_color

    def _paint(self, window: Window, x: int, y: int) -> None:
        window.draw_rect(x, y, self.width, self.height, self.background_color)
        if self.has_border:
            _outline(window, x, y, self.width, self.height, self.border_color)