"""Monochrome framebuffer for the CHIP-8 interpreter."""

import enum
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator


logger = logging.getLogger(__name__)

GeometryListener = Callable[[int, int], None]


class DisplayMode(enum.Enum):
    SMALL = (64, 32)
    BIG = (128, 64)

    @property
    def width(self) -> int:
        return self.value[0]

    @property
    def height(self) -> int:
        return self.value[1]


@dataclass(frozen=True)
class DisplaySnapshot:
    """Immutable copy of the pixel grid, one byte (0 or 1) per pixel."""
    width: int
    height: int
    pixels: bytes

    def pixel(self, x: int, y: int) -> bool:
        return bool(self.pixels[y * self.width + x])

    def rows(self) -> list[str]:
        """Rows as strings of '0' and '1'."""
        return [
            "".join("1" if p else "0" for p in self.pixels[y * self.width:(y + 1) * self.width])
            for y in range(self.height)
        ]


class Display:
    """Bit-per-pixel surface with XOR sprite drawing.

    Every read and mutation happens under one lock, so a presentation
    reader never sees a half-drawn sprite or a surface mid-resize.
    """

    def __init__(self, mode: DisplayMode = DisplayMode.SMALL):
        self._lock = threading.RLock()
        self._listeners: list[GeometryListener] = []
        self._mode = mode
        self._pixels = bytearray(mode.width * mode.height)

    @property
    def mode(self) -> DisplayMode:
        return self._mode

    @property
    def width(self) -> int:
        return self._mode.width

    @property
    def height(self) -> int:
        return self._mode.height

    def add_listener(self, listener: GeometryListener) -> None:
        """Register a callback receiving (width, height) after a resize."""
        self._listeners.append(listener)

    def remove_listener(self, listener: GeometryListener) -> None:
        self._listeners.remove(listener)

    def set_mode(self, mode: DisplayMode) -> bool:
        """Switch resolution, clearing the surface.

        Returns True if the geometry changed. Listeners are called outside
        the lock.
        """
        with self._lock:
            if mode is self._mode:
                return False
            self._mode = mode
            self._pixels = bytearray(mode.width * mode.height)
        logger.debug("Display mode changed to %s", mode.name)
        for listener in list(self._listeners):
            listener(mode.width, mode.height)
        return True

    def clear(self) -> None:
        with self._lock:
            self._pixels = bytearray(len(self._pixels))

    def draw_sprite(self, x: int, y: int, sprite: bytes) -> bool:
        """XOR a sprite onto the surface with wraparound on both axes.

        Each byte of sprite is one row, most significant bit leftmost.
        Returns True if any lit pixel was turned off.
        """
        collided = False
        with self._lock:
            width, height = self._mode.width, self._mode.height
            pixels = self._pixels
            for row, bits in enumerate(sprite):
                base = ((y + row) % height) * width
                for col in range(8):
                    if not (bits >> (7 - col)) & 1:
                        continue
                    offset = base + (x + col) % width
                    if pixels[offset]:
                        collided = True
                    pixels[offset] ^= 1
        return collided

    def pixel(self, x: int, y: int) -> bool:
        with self._lock:
            return bool(self._pixels[y * self._mode.width + x])

    def snapshot(self) -> DisplaySnapshot:
        """Copy the current grid for rendering."""
        with self._lock:
            return DisplaySnapshot(self._mode.width, self._mode.height, bytes(self._pixels))

    @contextmanager
    def locked(self) -> Iterator[DisplaySnapshot]:
        """Hold the surface lock while the caller renders.

        The engine blocks on its next display operation until the block
        exits.
        """
        with self._lock:
            yield DisplaySnapshot(self._mode.width, self._mode.height, bytes(self._pixels))

    def select_mode(self, mode: DisplayMode) -> None:
        """Switch to mode and clear, even when the mode is unchanged."""
        if not self.set_mode(mode):
            self.clear()

    def reset(self) -> None:
        self.select_mode(DisplayMode.SMALL)
