"""Execution engine and headless runner for the CHIP-8 interpreter."""

import enum
import logging
import random
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from .cpu import CPU
from .decoder import Opcode, decode
from .display import Display
from .errors import (
    Chip8Error,
    Chip8RuntimeError,
    EngineTimeout,
    ErrorInfo,
    NotLoaded,
)
from .instructions import Diagnostic, Machine, execute_instruction
from .keypad import Keypad
from .memory import Memory
from .timers import SpeedMeter, TimerDriver


logger = logging.getLogger(__name__)


class ExecutionState(enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class MachineOptions:
    """Options for the execution engine."""
    debug_mode: bool = False
    debug_delay: float = 0.1
    key_poll_interval: float = 0.001
    stop_timeout: float = 1.0
    seed: Optional[int] = None
    reverse_subn: bool = False
    max_diagnostics: int = 256


class Interpreter:
    """Owns the machine state and the background execution thread.

    The engine thread fetches and executes continuously until stopped.
    The host calls ``update`` with elapsed time, ``set_key`` for input
    and ``display.snapshot`` for rendering from its own thread.
    """

    def __init__(
        self,
        options: Optional[MachineOptions] = None,
        beep: Optional[Callable[[], None]] = None,
    ):
        if options is None:
            options = MachineOptions()
        self.options = options
        self.debug_mode = options.debug_mode

        self.cpu = CPU()
        self.memory = Memory()
        self.display = Display()
        self.keypad = Keypad()
        self.timers = TimerDriver(self.cpu, beep=beep)
        self.speed = SpeedMeter()

        self.diagnostics: deque[Diagnostic] = deque(maxlen=options.max_diagnostics)
        self.last_error: Optional[ErrorInfo] = None
        self.instruction_count = 0

        self._cancel = threading.Event()
        self._state = ExecutionState.STOPPED
        self._state_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._loaded = False
        self._has_run = False

        self._machine = Machine(
            cpu=self.cpu,
            memory=self.memory,
            display=self.display,
            keypad=self.keypad,
            rng=random.Random(options.seed),
            cancel=self._cancel,
            key_poll_interval=options.key_poll_interval,
            reverse_subn=options.reverse_subn,
            on_diagnostic=self.diagnostics.append,
        )

    # ------------------------------------------------------------------ #
    # Program image
    # ------------------------------------------------------------------ #

    def load(self, program: bytes) -> None:
        """Stop any running program and load a new one.

        Raises ProgramTooLarge without changing the current image.
        """
        self.stop(wait=True)
        self.memory.load(program)
        self._loaded = True
        self._has_run = False
        self._reset_state()
        logger.info("Loaded %d byte program", len(self.memory.program))

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _reset_state(self) -> None:
        self.memory.reload()
        self.cpu.reset()
        self.display.reset()
        self.keypad.reset()
        self.timers.reset()
        self.speed.reset()
        self.diagnostics.clear()
        self.last_error = None
        self.instruction_count = 0

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def step(self) -> Opcode:
        """Fetch, decode and execute one instruction.

        Raises Chip8RuntimeError on fatal conditions, annotated with the
        address and word of the failing instruction.
        """
        cpu = self.cpu
        op: Optional[Opcode] = None
        try:
            op = decode(cpu.pc, self.memory.fetch(cpu.pc))
            cpu.pc = (cpu.pc + 2) & 0xFFFF
            new_pc = execute_instruction(op, self._machine)
            if new_pc is not None:
                cpu.pc = new_pc
        except Chip8RuntimeError as e:
            if op is not None:
                e.addr = op.addr
                e.opcode = op.word
            raise
        self.instruction_count += 1
        return op

    @property
    def state(self) -> ExecutionState:
        with self._state_lock:
            return self._state

    @property
    def running(self) -> bool:
        return self.state is ExecutionState.RUNNING

    def start(self) -> bool:
        """Start the execution thread. Returns False if already active."""
        if not self._loaded:
            raise NotLoaded("No program loaded")
        with self._state_lock:
            if self._state is not ExecutionState.STOPPED:
                return False
            if self._thread is not None and self._thread.is_alive():
                return False
            self._cancel.clear()
            self._state = ExecutionState.RUNNING
            self._has_run = True
            self._thread = threading.Thread(
                target=self._run_loop, name="Chip8Engine", daemon=True
            )
            self._thread.start()
        logger.info("Engine started")
        return True

    def stop(self, wait: bool = False) -> None:
        """Request the execution thread to stop.

        The request is observed at the next fetch and by a pending key
        wait. With wait=True, blocks until the thread has exited or
        raises EngineTimeout after options.stop_timeout seconds.
        """
        self._cancel.set()
        with self._state_lock:
            if self._state is ExecutionState.RUNNING:
                self._state = ExecutionState.STOPPING
        if wait and not self.join(self.options.stop_timeout):
            raise EngineTimeout(
                f"Engine did not stop within {self.options.stop_timeout}s",
                addr=self.cpu.pc,
            )

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the execution thread to exit. Returns True if it has."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def restart(self) -> bool:
        """Stop, reinitialise everything but the program, and start again.

        Does nothing and returns False if the engine has never run.
        """
        if not self._has_run:
            return False
        self.stop(wait=True)
        self._reset_state()
        logger.info("Engine restarting")
        return self.start()

    def _run_loop(self) -> None:
        """Background loop; runs until stopped or a fatal error."""
        try:
            while not self._cancel.is_set():
                if self.debug_mode and self._cancel.wait(self.options.debug_delay):
                    break
                self.step()
        except Chip8Error as e:
            self.last_error = e.to_error_info()
            logger.error(
                "Engine halted: %s (opcode %s at 0x%03X)",
                e.message,
                f"0x{e.opcode:04X}" if e.opcode is not None else "-",
                e.addr,
            )
        finally:
            with self._state_lock:
                self._state = ExecutionState.STOPPED
            logger.info("Engine stopped after %d instructions", self.instruction_count)

    # ------------------------------------------------------------------ #
    # Host collaborators
    # ------------------------------------------------------------------ #

    def update(self, elapsed_ms: int) -> None:
        """Host time step: drives the timers and the speed meter."""
        self.timers.update(elapsed_ms)
        self.speed.update(elapsed_ms, self.instruction_count)

    def set_key(self, key: int, pressed: bool) -> None:
        self.keypad.set_key(key, pressed)

    @property
    def instructions_per_second(self) -> int:
        return self.speed.per_second

    def get_state(self) -> dict:
        """Snapshot of registers, lifecycle and diagnostics."""
        state = self.cpu.get_state()
        state.update({
            "state": self.state.value,
            "loaded": self._loaded,
            "debug_mode": self.debug_mode,
            "instruction_count": self.instruction_count,
            "instructions_per_second": self.speed.per_second,
            "display": {
                "mode": self.display.mode.name.lower(),
                "width": self.display.width,
                "height": self.display.height,
            },
            "diagnostics": [d.to_dict() for d in list(self.diagnostics)],
            "error": self.last_error.to_dict() if self.last_error else None,
        })
        return state


@dataclass
class RunResult:
    """Result of a headless run."""
    status: str  # "ok" | "error"
    steps_executed: int
    halted: bool
    final_state: dict
    diagnostics: list[dict] = field(default_factory=list)
    error: Optional[ErrorInfo] = None
    interpreter: Optional[Interpreter] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict:
        result = {
            "status": self.status,
            "steps_executed": self.steps_executed,
            "halted": self.halted,
            "final_state": self.final_state,
            "diagnostics": self.diagnostics,
        }
        if self.error:
            result["error"] = self.error.to_dict()
        return result


def run_program(
    program: bytes,
    options: Optional[MachineOptions] = None,
    max_steps: int = 10000,
    keys: Iterable[int] = (),
) -> RunResult:
    """Run a program synchronously on the calling thread.

    Execution ends after max_steps, on a fatal error, or when the
    program parks on itself (a jump to its own address, or a key wait
    with no key held).

    Args:
        program: Program bytes placed at the load base
        options: Engine options
        max_steps: Maximum instructions to execute
        keys: Keys held down for the whole run

    Returns:
        RunResult; its interpreter field gives access to memory and display
    """
    interp = Interpreter(options)
    try:
        interp.load(program)
    except Chip8Error as e:
        return RunResult(
            status="error",
            steps_executed=0,
            halted=True,
            final_state=interp.get_state(),
            error=e.to_error_info(),
            interpreter=interp,
        )

    for key in keys:
        interp.set_key(key, True)
    # No other thread can press a key, so a key wait must not block
    interp._cancel.set()

    error_info: Optional[ErrorInfo] = None
    halted = False
    steps = 0
    try:
        while steps < max_steps:
            op = interp.step()
            steps += 1
            if interp.cpu.pc == op.addr:
                halted = True
                break
    except Chip8Error as e:
        error_info = e.to_error_info()
        halted = True

    return RunResult(
        status="ok" if error_info is None else "error",
        steps_executed=steps,
        halted=halted,
        final_state=interp.get_state(),
        diagnostics=[d.to_dict() for d in interp.diagnostics],
        error=error_info,
        interpreter=interp,
    )
