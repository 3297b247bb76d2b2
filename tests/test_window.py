import pytest

from mayanet.window import Window


def test_new_window_is_hidden_and_black():
    window = Window(10, 20, 4, 3, "demo")
    assert window.visible is False
    assert window.title == "demo"
    assert len(window.buffer) == 12
    assert all(value == 0 for value in window.buffer)


def test_ids_are_unique():
    first = Window(0, 0, 1, 1, "a")
    second = Window(0, 0, 1, 1, "b")
    assert first.id != second.id
    assert second.id > first.id


def test_show_hide_and_move():
    window = Window(0, 0, 2, 2, "w")
    window.show()
    assert window.visible is True
    window.hide()
    assert window.visible is False
    window.move(7, 9)
    assert (window.x, window.y) == (7, 9)


@pytest.mark.parametrize("size", [(0, 5), (5, 0), (-1, 3)])
def test_invalid_size_raises(size):
    with pytest.raises(ValueError):
        Window(0, 0, *size, "bad")


def test_draw_pixel_and_read_back():
    window = Window(0, 0, 5, 5, "w")
    assert window.draw_pixel(2, 3, 14) is True
    assert window.pixel(2, 3) == 14
    assert window.pixel(3, 2) == 0


def test_draw_pixel_outside_is_clipped():
    window = Window(0, 0, 3, 3, "w")
    assert window.draw_pixel(3, 0, 1) is False
    assert window.draw_pixel(-1, 1, 1) is False
    assert all(value == 0 for value in window.buffer)


def test_pixel_outside_raises():
    window = Window(0, 0, 3, 3, "w")
    with pytest.raises(IndexError):
        window.pixel(3, 3)


def test_bad_color_raises():
    window = Window(0, 0, 3, 3, "w")
    with pytest.raises(ValueError):
        window.draw_pixel(0, 0, 256)
    with pytest.raises(ValueError):
        window.clear(-1)


def test_draw_rect_fills_only_its_area():
    window = Window(0, 0, 6, 6, "w")
    window.draw_rect(1, 2, 3, 2, 9)
    filled = {(x, y) for y in range(6) for x in range(6) if window.pixel(x, y) == 9}
    assert filled == {(x, y) for x in range(1, 4) for y in range(2, 4)}


def test_draw_rect_is_clipped():
    window = Window(0, 0, 4, 4, "w")
    window.draw_rect(-2, -2, 4, 4, 5)
    assert window.pixel(0, 0) == 5
    assert window.pixel(1, 1) == 5
    assert window.pixel(2, 2) == 0


def test_draw_rect_negative_size_raises():
    window = Window(0, 0, 4, 4, "w")
    with pytest.raises(ValueError):
        window.draw_rect(0, 0, -1, 2, 1)


def test_clear_sets_every_pixel():
    window = Window(0, 0, 3, 2, "w")
    window.draw_pixel(0, 0, 4)
    window.clear(15)
    assert set(window.buffer) == {15}


def test_resize_keeps_overlap():
    window = Window(0, 0, 4, 4, "w")
    window.draw_pixel(1, 1, 7)
    window.draw_pixel(3, 3, 8)
    window.resize(2, 5)
    assert (window.width, window.height) == (2, 5)
    assert len(window.buffer) == 10
    assert window.pixel(1, 1) == 7
    assert window.pixel(1, 4) == 0
    with pytest.raises(IndexError):
        window.pixel(3, 3)


def test_resize_invalid_raises():
    window = Window(0, 0, 4, 4, "w")
    with pytest.raises(ValueError):
        window.resize(0, 4)
    assert window.width == 4