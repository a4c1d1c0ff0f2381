"""CPU register file for the CHIP-8 interpreter."""

import threading

from .errors import StackOverflow, StackUnderflow
from .memory import PROGRAM_BASE


REGISTER_COUNT = 16
STACK_DEPTH = 16
FLAG = 0xF


class CPU:
    """General registers, address register, PC, call stack and timers.

    The engine thread owns everything here. The two timers are also
    written by the host's time step, so they are only touched under
    ``_timer_lock``.
    """

    def __init__(self):
        self.v: list[int] = [0] * REGISTER_COUNT
        self.i: int = 0
        self.pc: int = PROGRAM_BASE
        self.stack: list[int] = [0] * STACK_DEPTH
        self.sp: int = 0
        self._delay_timer = 0
        self._sound_timer = 0
        self._timer_lock = threading.Lock()

    def set_v(self, index: int, value: int) -> None:
        """Set Vx, wrapping to a byte."""
        self.v[index] = value & 0xFF

    def set_flag(self, value: int) -> None:
        self.v[FLAG] = value & 0xFF

    def set_i(self, value: int) -> None:
        """Set the address register, wrapping to 16 bits."""
        self.i = value & 0xFFFF

    def push(self, addr: int) -> None:
        """Push a return address onto the call stack."""
        if self.sp >= STACK_DEPTH:
            raise StackOverflow(f"Call stack overflow at depth {self.sp}", addr=self.pc)
        self.stack[self.sp] = addr
        self.sp += 1

    def pop(self) -> int:
        """Pop a return address from the call stack."""
        if self.sp <= 0:
            raise StackUnderflow("Return with empty call stack", addr=self.pc)
        self.sp -= 1
        return self.stack[self.sp]

    @property
    def delay_timer(self) -> int:
        with self._timer_lock:
            return self._delay_timer

    @delay_timer.setter
    def delay_timer(self, value: int) -> None:
        with self._timer_lock:
            self._delay_timer = value & 0xFF

    @property
    def sound_timer(self) -> int:
        with self._timer_lock:
            return self._sound_timer

    @sound_timer.setter
    def sound_timer(self, value: int) -> None:
        with self._timer_lock:
            self._sound_timer = value & 0xFF

    def count_down(self, ticks: int) -> bool:
        """Decrement both timers by ticks, flooring at zero.

        Returns True if the sound timer went from nonzero to zero.
        """
        with self._timer_lock:
            self._delay_timer = max(0, self._delay_timer - ticks)
            was_sounding = self._sound_timer > 0
            self._sound_timer = max(0, self._sound_timer - ticks)
            return was_sounding and self._sound_timer == 0

    def get_state(self) -> dict:
        """Get current register state as dictionary."""
        with self._timer_lock:
            delay, sound = self._delay_timer, self._sound_timer
        return {
            "v": list(self.v),
            "i": self.i,
            "pc": self.pc,
            "sp": self.sp,
            "stack": self.stack[:self.sp],
            "delay_timer": delay,
            "sound_timer": sound,
        }

    def reset(self) -> None:
        """Reset CPU to its post-load state."""
        self.v = [0] * REGISTER_COUNT
        self.i = 0
        self.pc = PROGRAM_BASE
        self.stack = [0] * STACK_DEPTH
        self.sp = 0
        with self._timer_lock:
            self._delay_timer = 0
            self._sound_timer = 0
