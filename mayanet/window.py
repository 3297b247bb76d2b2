"""Off-screen windows with an 8-bit palette pixel buffer."""

from __future__ import annotations

import itertools

_ids = itertools.count(1)


def _check_size(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"window size {width}x{height} must be positive")


def _check_color(color: int) -> None:
    if not 0 <= color <= 0xFF:
        raise ValueError(f"color {color} is not a palette index")


class Window:
    """A rectangle of palette-indexed pixels with a title and a position."""

    def __init__(self, x: int, y: int, width: int, height: int, title: str = "") -> None:
        _check_size(width, height)
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.title = title
        self.buffer = bytearray(width * height)
        self.visible = False
        self.id = next(_ids)

    def __repr__(self) -> str:
        return (
            f"Window(id={self.id}, title={self.title!r}, "
            f"x={self.x}, y={self.y}, width={self.width}, height={self.height})"
        )

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def move(self, x: int, y: int) -> None:
        self.x = x
        self.y = y

    def resize(self, width: int, height: int) -> None:
        """Change the size, keeping the pixels of the overlapping area."""
        _check_size(width, height)
        buffer = bytearray(width * height)
        keep = min(width, self.width)
        for row in range(min(height, self.height)):
            old = row * self.width
            buffer[row * width : row * width + keep] = self.buffer[old : old + keep]
        self.buffer = buffer
        self.width = width
        self.height = height

    def _inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def draw_pixel(self, x: int, y: int, color: int) -> bool:
        """Set one pixel; pixels outside the window are clipped away."""
        _check_color(color)
        if not self._inside(x, y):
            return False
        self.buffer[y * self.width + x] = color
        return True

    def pixel(self, x: int, y: int) -> int:
        """Return the color of one pixel."""
        if not self._inside(x, y):
            raise IndexError(f"pixel ({x}, {y}) is outside the window")
        return self.buffer[y * self.width + x]

    def draw_rect(self, x: int, y: int, width: int, height: int, color: int) -> None:
        """Fill a rectangle, clipped to the window."""
        _check_color(color)
        if width < 0 or height < 0:
            raise ValueError(f"rectangle size {width}x{height} is negative")
        left, right = max(x, 0), min(x + width, self.width)
        top, bottom = max(y, 0), min(y + height, self.height)
        if left >= right or top >= bottom:
            return
        span = bytes([color]) * (right - left)
        for row in range(top, bottom):
            start = row * self.width + left
            self.buffer[start : start + len(span)] = span

    def clear(self, color: int) -> None:
        """Fill the whole window with one color."""
        _check_color(color)
        self.buffer[:] = bytes([color]) * len(self.buffer)