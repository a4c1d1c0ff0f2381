"""Wall-clock driven delay/sound timers for the CHIP-8 interpreter."""

import logging
from typing import Callable, Optional

from .cpu import CPU


logger = logging.getLogger(__name__)

TICK_MS = 16


class TimerDriver:
    """Counts the delay and sound timers down from elapsed host time.

    Elapsed milliseconds accumulate; every whole TICK_MS decrements both
    timers once and the remainder carries to the next call.
    """

    def __init__(self, cpu: CPU, beep: Optional[Callable[[], None]] = None, tick_ms: int = TICK_MS):
        self.cpu = cpu
        self.beep = beep
        self.tick_ms = tick_ms
        self.accumulated_ms = 0

    def update(self, elapsed_ms: int) -> int:
        """Advance by elapsed_ms. Returns the number of ticks applied."""
        if elapsed_ms < 0:
            raise ValueError(f"Elapsed time cannot be negative: {elapsed_ms}")
        self.accumulated_ms += elapsed_ms
        if self.accumulated_ms < self.tick_ms:
            return 0
        ticks = self.accumulated_ms // self.tick_ms
        self.accumulated_ms -= ticks * self.tick_ms
        if self.cpu.count_down(ticks):
            logger.debug("Beep")
            if self.beep is not None:
                self.beep()
        return ticks

    def reset(self) -> None:
        self.accumulated_ms = 0


class SpeedMeter:
    """Instructions executed per second, refreshed once per elapsed second."""

    def __init__(self):
        self.elapsed_ms = 0
        self.last_count = 0
        self.per_second = 0

    def update(self, elapsed_ms: int, instruction_count: int) -> None:
        self.elapsed_ms += elapsed_ms
        if self.elapsed_ms >= 1000:
            executed = instruction_count - self.last_count
            self.per_second = int(executed * 1000 / self.elapsed_ms)
            self.last_count = instruction_count
            self.elapsed_ms = 0

    def reset(self, instruction_count: int = 0) -> None:
        self.elapsed_ms = 0
        self.last_count = instruction_count
        self.per_second = 0
