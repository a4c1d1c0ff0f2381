"""Tests for the Display module."""

from chip8.display import Display, DisplayMode


GLYPH_ZERO = bytes([0xF0, 0x90, 0x90, 0x90, 0xF0])


class TestDisplay:
    """Display surface tests."""

    def test_default_mode(self):
        """Display starts in small mode, cleared."""
        display = Display()
        assert display.mode is DisplayMode.SMALL
        assert (display.width, display.height) == (64, 32)
        assert not any(display.snapshot().pixels)

    def test_draw_sets_pixels(self):
        """Set sprite bits light pixels, most significant bit leftmost."""
        display = Display()
        assert display.draw_sprite(0, 0, bytes([0x81])) is False
        assert display.pixel(0, 0)
        assert not display.pixel(1, 0)
        assert display.pixel(7, 0)

    def test_double_draw_restores_and_collides(self):
        """Drawing the same sprite twice clears it and reports collision."""
        display = Display()
        display.draw_sprite(10, 5, bytes([0x80]))
        before = display.snapshot()
        assert display.draw_sprite(3, 4, GLYPH_ZERO) is False
        assert display.draw_sprite(3, 4, GLYPH_ZERO) is True
        assert display.snapshot() == before

    def test_horizontal_wrap(self):
        """Columns past the right edge wrap to the left."""
        display = Display()
        display.draw_sprite(62, 0, bytes([0xF0]))
        assert display.pixel(62, 0)
        assert display.pixel(63, 0)
        assert display.pixel(0, 0)
        assert display.pixel(1, 0)
        assert not display.pixel(2, 0)

    def test_vertical_wrap(self):
        """Rows past the bottom edge wrap to the top."""
        display = Display()
        display.draw_sprite(0, 31, bytes([0x80, 0x80]))
        assert display.pixel(0, 31)
        assert display.pixel(0, 0)

    def test_coordinates_beyond_surface_wrap(self):
        """Start coordinates larger than the surface wrap too."""
        display = Display()
        display.draw_sprite(64 + 2, 32 + 1, bytes([0x80]))
        assert display.pixel(2, 1)

    def test_clear(self):
        """Clear unlights everything."""
        display = Display()
        display.draw_sprite(0, 0, GLYPH_ZERO)
        display.clear()
        assert not any(display.snapshot().pixels)

    def test_set_mode_resizes_clears_and_notifies(self):
        """Switching mode reallocates the surface and calls listeners."""
        display = Display()
        events = []
        display.add_listener(lambda w, h: events.append((w, h)))
        display.draw_sprite(0, 0, GLYPH_ZERO)
        assert display.set_mode(DisplayMode.BIG) is True
        snap = display.snapshot()
        assert (snap.width, snap.height) == (128, 64)
        assert len(snap.pixels) == 128 * 64
        assert not any(snap.pixels)
        assert events == [(128, 64)]

    def test_set_same_mode_is_noop(self):
        """Requesting the current mode leaves pixels and listeners alone."""
        display = Display()
        events = []
        display.add_listener(lambda w, h: events.append((w, h)))
        display.draw_sprite(0, 0, bytes([0x80]))
        assert display.set_mode(DisplayMode.SMALL) is False
        assert display.pixel(0, 0)
        assert events == []

    def test_select_mode_always_clears(self):
        """Mode selection clears even without a geometry change."""
        display = Display()
        display.draw_sprite(0, 0, bytes([0x80]))
        display.select_mode(DisplayMode.SMALL)
        assert not display.pixel(0, 0)

    def test_big_mode_wraps_at_new_size(self):
        """Wraparound follows the active geometry."""
        display = Display()
        display.set_mode(DisplayMode.BIG)
        display.draw_sprite(127, 63, bytes([0xC0, 0xC0]))
        assert display.pixel(127, 63)
        assert display.pixel(0, 63)
        assert display.pixel(127, 0)
        assert display.pixel(0, 0)

    def test_reset(self):
        """Reset returns to a clear small surface."""
        display = Display()
        display.set_mode(DisplayMode.BIG)
        display.draw_sprite(0, 0, bytes([0x80]))
        display.reset()
        assert display.mode is DisplayMode.SMALL
        assert not any(display.snapshot().pixels)

    def test_remove_listener(self):
        """Removed listeners are not called."""
        display = Display()
        events = []
        listener = lambda w, h: events.append((w, h))
        display.add_listener(listener)
        display.remove_listener(listener)
        display.set_mode(DisplayMode.BIG)
        assert events == []


class TestDisplaySnapshot:
    """Snapshot and locked view tests."""

    def test_snapshot_is_a_copy(self):
        """Later draws don't change an earlier snapshot."""
        display = Display()
        snap = display.snapshot()
        display.draw_sprite(0, 0, bytes([0x80]))
        assert not snap.pixel(0, 0)
        assert display.snapshot().pixel(0, 0)

    def test_rows(self):
        """Rows render as 0/1 strings."""
        display = Display()
        display.draw_sprite(0, 0, bytes([0xA0]))
        rows = display.snapshot().rows()
        assert len(rows) == 32
        assert rows[0].startswith("1010")
        assert len(rows[0]) == 64
        assert rows[1] == "0" * 64

    def test_locked_view(self):
        """The locked view reflects the current surface."""
        display = Display()
        display.draw_sprite(1, 1, bytes([0x80]))
        with display.locked() as view:
            assert view.pixel(1, 1)
            assert view.width == 64
