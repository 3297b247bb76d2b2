"""A tree of widgets that draw into a window and react to clicks and keys."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from enum import Enum, IntEnum, auto

from mayanet.window import Window

BLACK = 0
DARK_GREY = 8
LIGHT_GREY = 7
WHITE = 15

CHAR_WIDTH = 8
CHAR_HEIGHT = 8
BOX_SIZE = 10
DEFAULT_MAX_LENGTH = 256

_ids = itertools.count(1)


class WidgetType(Enum):
    BUTTON = auto()
    LABEL = auto()
    TEXTBOX = auto()
    CHECKBOX = auto()
    RADIOBUTTON = auto()
    LISTBOX = auto()
    SCROLLBAR = auto()
    PANEL = auto()


class Alignment(IntEnum):
    LEFT = 0
    CENTER = 1
    RIGHT = 2


def _outline(window: Window, x: int, y: int, width: int, height: int, color: int) -> None:
    if width <= 0 or height <= 0:
        return
    window.draw_rect(x, y, width, 1, color)
    window.draw_rect(x, y + height - 1, width, 1, color)
    window.draw_rect(x, y, 1, height, color)
    window.draw_rect(x + width - 1, y, 1, height, color)


class Widget:
    """Base of all widgets; positions are relative to the parent widget."""

    def __init__(self, kind: WidgetType, x: int, y: int, width: int, height: int) -> None:
        if width < 0 or height < 0:
            raise ValueError(f"widget size {width}x{height} is negative")
        self.kind = kind
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.visible = True
        self.enabled = True
        self.id = next(_ids)
        self.text = ""
        self.parent: Widget | None = None
        self.children: list[Widget] = []
        self.on_click: Callable[[Widget], object] | None = None
        self.on_focus: Callable[[Widget], object] | None = None
        self.on_blur: Callable[[Widget], object] | None = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id}, x={self.x}, y={self.y}, "
            f"width={self.width}, height={self.height})"
        )

    @property
    def absolute_position(self) -> tuple[int, int]:
        """Position relative to the top-left corner of the window."""
        x, y = self.x, self.y
        node = self.parent
        while node is not None:
            x += node.x
            y += node.y
            node = node.parent
        return x, y

    def add_child(self, child: Widget) -> None:
        node: Widget | None = self
        while node is not None:
            if node is child:
                raise ValueError("a widget cannot contain itself or an ancestor")
            node = node.parent
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)

    def remove_child(self, child: Widget) -> None:
        if child.parent is not self:
            raise ValueError(f"{child!r} is not a child of {self!r}")
        self.children.remove(child)
        child.parent = None

    def move(self, x: int, y: int) -> None:
        self.x = x
        self.y = y

    def resize(self, width: int, height: int) -> None:
        if width < 0 or height < 0:
            raise ValueError(f"widget size {width}x{height} is negative")
        self.width = width
        self.height = height

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def contains(self, x: int, y: int) -> bool:
        """True if the point, in the parent's coordinates, lies on this widget."""
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height

    def find_at(self, x: int, y: int) -> Widget | None:
        """Return the deepest visible widget under the point, in parent coordinates."""
        if not self.visible or not self.contains(x, y):
            return None
        local_x, local_y = x - self.x, y - self.y
        for child in reversed(self.children):
            found = child.find_at(local_x, local_y)
            if found is not None:
                return found
        return self

    def handle_click(self, x: int, y: int) -> bool:
        """Handle a click at a point in the parent's coordinates."""
        if not self.visible or not self.enabled or not self.contains(x, y):
            return False
        local_x, local_y = x - self.x, y - self.y
        for child in reversed(self.children):
            if child.handle_click(local_x, local_y):
                return True
        self._clicked()
        if self.on_click is not None:
            self.on_click(self)
        return True

    def _clicked(self) -> None:
        pass

    def handle_key(self, key: str) -> bool:
        """Offer a key to the children; return True if one used it."""
        if not self.visible or not self.enabled:
            return False
        return any(child.handle_key(key) for child in self.children)

    def draw(self, window: Window) -> None:
        """Paint this widget and its children into window."""
        if not self.visible:
            return
        x, y = self.absolute_position
        self._paint(window, x, y)
        for child in self.children:
            child.draw(window)

    def _paint(self, window: Window, x: int, y: int) -> None:
        pass


class Button(Widget):
    """A push button with an optional action."""

    def __init__(self, x: int, y: int, width: int, height: int, text: str) -> None:
        super().__init__(WidgetType.BUTTON, x, y, width, height)
        self.text = text
        self.color = LIGHT_GREY
        self.pressed = False
        self.action: Callable[[], object] | None = None

    def _clicked(self) -> None:
        if self.action is not None:
            self.action()

    def _paint(self, window: Window, x: int, y: int) -> None:
        window.draw_rect(x, y, self.width, self.height, DARK_GREY if self.pressed else self.color)
        _outline(window, x, y, self.width, self.height, BLACK)


class Label(Widget):
    """A line of static text."""

    def __init__(self, x: int, y: int, text: str) -> None:
        super().__init__(WidgetType.LABEL, x, y, len(text) * CHAR_WIDTH, CHAR_HEIGHT)
        self.text = text
        self.color = BLACK
        self.alignment = Alignment.LEFT


class TextBox(Widget):
    """A single-line editable text field."""

    def __init__(self, x: int, y: int, width: int, height: int) -> None:
        self.max_length = DEFAULT_MAX_LENGTH
        self.cursor_pos = 0
        self._buffer = ""
        super().__init__(WidgetType.TEXTBOX, x, y, width, height)
        self.color = BLACK
        self.focused = False

    @property
    def text(self) -> str:
        return self._buffer

    @text.setter
    def text(self, value: str) -> None:
        self._buffer = value[: self.max_length]
        self.cursor_pos = len(self._buffer)

    def set_max_length(self, max_length: int) -> None:
        if max_length < 0:
            raise ValueError(f"maximum length {max_length} is negative")
        self.max_length = max_length
        self.text = self._buffer

    def clear(self) -> None:
        self.text = ""

    def _clicked(self) -> None:
        if not self.focused:
            self.focused = True
            if self.on_focus is not None:
                self.on_focus(self)

    def blur(self) -> None:
        if self.focused:
            self.focused = False
            if self.on_blur is not None:
                self.on_blur(self)

    def handle_key(self, key: str) -> bool:
        if not self.visible or not self.enabled or len(key) != 1:
            return False
        if key in ("\b", "\x7f"):
            if self.cursor_pos == 0:
                return False
            pos = self.cursor_pos
            self._buffer = self._buffer[: pos - 1] + self._buffer[pos:]
            self.cursor_pos = pos - 1
            return True
        if not key.isprintable() or len(self._buffer) >= self.max_length:
            return False
        pos = self.cursor_pos
        self._buffer = self._buffer[:pos] + key + self._buffer[pos:]
        self.cursor_pos = pos + 1
        return True

    def _paint(self, window: Window, x: int, y: int) -> None:
        window.draw_rect(x, y, self.width, self.height, WHITE)
        _outline(window, x, y, self.width, self.height, self.color)
        cursor_x = x + 2 + self.cursor_pos * CHAR_WIDTH
        if self.focused and cursor_x < x + self.width - 1 and self.height > 4:
            window.draw_rect(cursor_x, y + 2, 1, self.height - 4, self.color)


class CheckBox(Widget):
    """A box that toggles between checked and unchecked."""

    def __init__(self, x: int, y: int, text: str) -> None:
        super().__init__(
            WidgetType.CHECKBOX, x, y, BOX_SIZE + 4 + len(text) * CHAR_WIDTH, BOX_SIZE
        )
        self.text = text
        self.checked = False
        self.color = BLACK
        self.on_change: Callable[[bool], object] | None = None

    def _clicked(self) -> None:
        self.checked = not self.checked
        if self.on_change is not None:
            self.on_change(self.checked)

    def _paint(self, window: Window, x: int, y: int) -> None:
        window.draw_rect(x, y, BOX_SIZE, BOX_SIZE, WHITE)
        _outline(window, x, y, BOX_SIZE, BOX_SIZE, self.color)
        if self.checked:
            window.draw_rect(x + 2, y + 2, BOX_SIZE - 4, BOX_SIZE - 4, self.color)


class RadioButton(CheckBox):
    """A choice that unchecks the other members of its group when picked."""

    def __init__(self, x: int, y: int, text: str, group_id: int) -> None:
        super().__init__(x, y, text)
        self.kind = WidgetType.RADIOBUTTON
        self.group_id = group_id

    def _group(self) -> list[RadioButton]:
        if self.parent is None:
            return []
        return [
            widget
            for widget in self.parent.children
            if isinstance(widget, RadioButton)
            and widget is not self
            and widget.group_id == self.group_id
        ]

    def _clicked(self) -> None:
        if self.checked:
            return
        for other in self._group():
            if other.checked:
                other.checked = False
                if other.on_change is not None:
                    other.on_change(False)
        self.checked = True
        if self.on_change is not None:
            self.on_change(True)