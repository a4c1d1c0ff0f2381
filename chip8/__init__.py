"""CHIP-8 Interpreter Core Package."""

from .interpreter import Interpreter, MachineOptions, ExecutionState, RunResult, run_program
from .display import Display, DisplayMode, DisplaySnapshot
from .errors import (
    Chip8Error,
    LoadError,
    ProgramTooLarge,
    Chip8RuntimeError,
    StackOverflow,
    StackUnderflow,
    EngineTimeout,
)

__all__ = [
    "Interpreter",
    "MachineOptions",
    "ExecutionState",
    "RunResult",
    "run_program",
    "Display",
    "DisplayMode",
    "DisplaySnapshot",
    "Chip8Error",
    "LoadError",
    "ProgramTooLarge",
    "Chip8RuntimeError",
    "StackOverflow",
    "StackUnderflow",
    "EngineTimeout",
]
