"""Instruction word decoding for the CHIP-8 interpreter."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Opcode:
    """A 16-bit instruction split into its nibble fields."""
    addr: int  # address the word was fetched from
    word: int

    @property
    def family(self) -> int:
        return self.word >> 12

    @property
    def x(self) -> int:
        return (self.word >> 8) & 0xF

    @property
    def y(self) -> int:
        return (self.word >> 4) & 0xF

    @property
    def n(self) -> int:
        return self.word & 0xF

    @property
    def kk(self) -> int:
        return self.word & 0xFF

    @property
    def nnn(self) -> int:
        return self.word & 0xFFF


def decode(addr: int, word: int) -> Opcode:
    """Wrap a fetched word."""
    return Opcode(addr=addr, word=word & 0xFFFF)
