"""Sixteen-key input latch for the CHIP-8 interpreter."""

import threading
import time
from typing import Optional


KEY_COUNT = 16


class Keypad:
    """Pressed state of keys 0x0-0xF.

    The host writes, the engine reads. Each access goes through a lock so
    the engine never sees a partially updated array.
    """

    def __init__(self):
        self._keys = [False] * KEY_COUNT
        self._lock = threading.Lock()

    @staticmethod
    def _check_key(key: int) -> None:
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"Key out of range: {key}")

    def set_key(self, key: int, pressed: bool) -> None:
        """Record a key press or release."""
        self._check_key(key)
        with self._lock:
            self._keys[key] = bool(pressed)

    def is_pressed(self, key: int) -> bool:
        """Check a key; values above 0xF use their low nibble."""
        with self._lock:
            return self._keys[key & 0xF]

    def first_pressed(self) -> Optional[int]:
        """Lowest-numbered pressed key, or None."""
        with self._lock:
            for key, pressed in enumerate(self._keys):
                if pressed:
                    return key
        return None

    def wait_for_key(
        self,
        cancel: Optional[threading.Event] = None,
        poll_interval: float = 0.001,
    ) -> Optional[int]:
        """Block until a key is pressed and return the lowest pressed key.

        Returns None as soon as cancel is set.
        """
        while True:
            key = self.first_pressed()
            if key is not None:
                return key
            if cancel is None:
                time.sleep(poll_interval)
            elif cancel.wait(poll_interval):
                return None

    def snapshot(self) -> list[bool]:
        with self._lock:
            return list(self._keys)

    def reset(self) -> None:
        with self._lock:
            self._keys = [False] * KEY_COUNT
