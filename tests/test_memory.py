"""Tests for the Memory module."""

import pytest
from chip8.memory import Memory, GLYPHS, PROGRAM_BASE, MEMORY_SIZE, glyph_address
from chip8.errors import MemoryAccessError, ProgramTooLarge


class TestMemory:
    """Memory module tests."""

    def test_default_initialization(self):
        """Fresh memory holds the glyph table and zeros."""
        mem = Memory()
        assert mem.snapshot()[:80] == GLYPHS
        assert mem.read(80) == 0
        assert mem.read(MEMORY_SIZE - 1) == 0

    def test_load_places_program_at_base(self):
        """Program bytes start at the load base."""
        mem = Memory()
        mem.load(b"\x12\x34\x56")
        assert mem.read(PROGRAM_BASE) == 0x12
        assert mem.read(PROGRAM_BASE + 2) == 0x56
        assert mem.read(PROGRAM_BASE + 3) == 0
        assert mem.read(PROGRAM_BASE - 1) == 0
        assert mem.snapshot()[:len(GLYPHS)] == GLYPHS

    def test_load_exact_fit(self):
        """A program filling all memory after the base is accepted."""
        mem = Memory()
        mem.load(bytes([0xAA]) * (MEMORY_SIZE - PROGRAM_BASE))
        assert mem.read(MEMORY_SIZE - 1) == 0xAA

    def test_load_too_large(self):
        """Oversized programs are rejected without touching memory."""
        mem = Memory()
        mem.load(b"\x60\x01")
        with pytest.raises(ProgramTooLarge):
            mem.load(bytes(MEMORY_SIZE - PROGRAM_BASE + 1))
        assert mem.read(PROGRAM_BASE) == 0x60
        assert mem.program == b"\x60\x01"

    def test_reload_restores_program(self):
        """Reload discards stores made since load."""
        mem = Memory()
        mem.load(b"\x60\x01")
        mem.write(PROGRAM_BASE, 0xFF)
        mem.write(0x300, 7)
        mem.reload()
        assert mem.read(PROGRAM_BASE) == 0x60
        assert mem.read(0x300) == 0

    def test_write_and_read(self):
        """Can write and read back values."""
        mem = Memory()
        mem.write(0x300, 42)
        assert mem.read(0x300) == 42

    def test_write_wraps_to_byte(self):
        """Stored values are truncated to 8 bits."""
        mem = Memory()
        mem.write(0x300, 0x1FF)
        assert mem.read(0x300) == 0xFF

    def test_glyph_table_is_read_only(self):
        """Writes into the glyph table raise."""
        mem = Memory()
        with pytest.raises(MemoryAccessError):
            mem.write(0, 1)
        with pytest.raises(MemoryAccessError):
            mem.write(len(GLYPHS) - 1, 1)
        mem.write(len(GLYPHS), 1)

    def test_bounds_check(self):
        """Out of range access raises error."""
        mem = Memory()
        with pytest.raises(MemoryAccessError):
            mem.read(MEMORY_SIZE)
        with pytest.raises(MemoryAccessError):
            mem.read(-1)
        with pytest.raises(MemoryAccessError):
            mem.write(MEMORY_SIZE, 0)
        with pytest.raises(MemoryAccessError):
            mem.read_block(MEMORY_SIZE - 2, 3)

    def test_read_block(self):
        """Block reads return consecutive bytes."""
        mem = Memory()
        mem.load(b"\x01\x02\x03")
        assert mem.read_block(PROGRAM_BASE, 3) == b"\x01\x02\x03"
        assert mem.read_block(PROGRAM_BASE, 0) == b""

    def test_fetch_big_endian(self):
        """Instruction words are big-endian."""
        mem = Memory()
        mem.load(b"\xA2\x34")
        assert mem.fetch(PROGRAM_BASE) == 0xA234

    def test_fetch_below_base(self):
        """The program counter may not address the reserved low region."""
        mem = Memory()
        with pytest.raises(MemoryAccessError):
            mem.fetch(PROGRAM_BASE - 2)
        with pytest.raises(MemoryAccessError):
            mem.fetch(MEMORY_SIZE - 1)

    def test_glyph_address(self):
        """Glyphs are five bytes apart and use the low nibble."""
        assert glyph_address(0) == 0
        assert glyph_address(0xA) == 50
        assert glyph_address(0x1F) == 75
