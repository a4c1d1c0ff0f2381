"""Memory model for the CHIP-8 interpreter."""

from .errors import MemoryAccessError, ProgramTooLarge


MEMORY_SIZE = 0x1000
PROGRAM_BASE = 0x200
GLYPH_SIZE = 5

# Hexadecimal digit sprites 0-F, 4 pixels wide and 5 rows tall
GLYPHS = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])

MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_BASE


def glyph_address(digit: int) -> int:
    """Address of the built-in sprite for a hex digit (low nibble only)."""
    return (digit & 0xF) * GLYPH_SIZE


class Memory:
    """4KB byte-addressable memory with a read-only glyph region."""

    def __init__(self, size: int = MEMORY_SIZE):
        self.size = size
        self._data = bytearray(size)
        self._program = b""
        self._data[0:len(GLYPHS)] = GLYPHS

    def load(self, program: bytes) -> None:
        """Place the glyph table and a program image into fresh memory.

        Raises ProgramTooLarge before touching memory if the program does
        not fit after PROGRAM_BASE.
        """
        program = bytes(program)
        available = self.size - PROGRAM_BASE
        if len(program) > available:
            raise ProgramTooLarge(
                f"Program is {len(program)} bytes, only {available} available",
                addr=PROGRAM_BASE,
            )
        data = bytearray(self.size)
        data[0:len(GLYPHS)] = GLYPHS
        data[PROGRAM_BASE:PROGRAM_BASE + len(program)] = program
        self._data = data
        self._program = program

    def reload(self) -> None:
        """Restore the image of the last loaded program."""
        self.load(self._program)

    @property
    def program(self) -> bytes:
        return self._program

    def _check_bounds(self, addr: int) -> None:
        """Check if address is within valid range."""
        if addr < 0 or addr >= self.size:
            raise MemoryAccessError(f"Memory address out of range: {addr:#05x}", addr=addr)

    def read(self, addr: int) -> int:
        """Read byte from memory address."""
        self._check_bounds(addr)
        return self._data[addr]

    def read_block(self, addr: int, count: int) -> bytes:
        """Read count consecutive bytes starting at addr."""
        if count:
            self._check_bounds(addr)
            self._check_bounds(addr + count - 1)
        return bytes(self._data[addr:addr + count])

    def write(self, addr: int, value: int) -> None:
        """Write a byte, refusing the glyph region."""
        self._check_bounds(addr)
        if addr < len(GLYPHS):
            raise MemoryAccessError(f"Write to read-only glyph table: {addr:#05x}", addr=addr)
        self._data[addr] = value & 0xFF

    def fetch(self, pc: int) -> int:
        """Read the big-endian instruction word at pc."""
        if pc < PROGRAM_BASE or pc + 1 >= self.size:
            raise MemoryAccessError(f"Program counter out of range: {pc:#05x}", addr=pc)
        return (self._data[pc] << 8) | self._data[pc + 1]

    def snapshot(self) -> bytes:
        """Return a copy of the entire memory."""
        return bytes(self._data)
