"""Custom exceptions for the CHIP-8 interpreter."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorInfo:
    """Structured error information for API responses."""
    type: str
    message: str
    addr: int
    opcode: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "message": self.message,
            "addr": self.addr,
            "opcode": self.opcode,
        }


class Chip8Error(Exception):
    """Base exception for all interpreter errors."""

    def __init__(
        self,
        message: str,
        addr: int = 0,
        opcode: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.addr = addr
        self.opcode = opcode

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            type=self.__class__.__name__,
            message=self.message,
            addr=self.addr,
            opcode=self.opcode,
        )


class LoadError(Chip8Error):
    """Error while placing a program into memory."""
    pass


class ProgramTooLarge(LoadError):
    """Program does not fit between the load base and the end of memory."""
    pass


class NotLoaded(Chip8Error):
    """Operation needs a loaded program."""
    pass


class Chip8RuntimeError(Chip8Error):
    """Fatal error during execution."""
    pass


class MemoryAccessError(Chip8RuntimeError):
    """Memory address out of bounds or write to read-only memory."""
    pass


class StackOverflow(Chip8RuntimeError):
    """Subroutine call with a full call stack."""
    pass


class StackUnderflow(Chip8RuntimeError):
    """Return with an empty call stack."""
    pass


class EngineTimeout(Chip8Error):
    """Execution thread did not stop in time."""
    pass
