"""Instruction execution for the CHIP-8 interpreter."""

import logging
import random
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from .cpu import CPU
from .decoder import Opcode
from .display import Display, DisplayMode
from .keypad import Keypad
from .memory import Memory, glyph_address


logger = logging.getLogger(__name__)

UNKNOWN = "unknown"
UNSUPPORTED = "unsupported"


@dataclass
class Diagnostic:
    """A non-fatal report about an instruction that was not executed."""
    kind: str  # UNKNOWN | UNSUPPORTED
    addr: int
    opcode: int

    def to_dict(self) -> dict:
        return {"kind": self.kind, "addr": self.addr, "opcode": f"{self.opcode:04X}"}


@dataclass
class Machine:
    """Everything an instruction may read or mutate."""
    cpu: CPU
    memory: Memory
    display: Display
    keypad: Keypad
    rng: random.Random = field(default_factory=random.Random)
    cancel: threading.Event = field(default_factory=threading.Event)
    key_poll_interval: float = 0.001
    reverse_subn: bool = False
    on_diagnostic: Optional[Callable[[Diagnostic], None]] = None
    subn_warned: bool = False

    def report(self, kind: str, op: Opcode) -> None:
        diagnostic = Diagnostic(kind=kind, addr=op.addr, opcode=op.word)
        if kind == UNKNOWN:
            logger.warning("Unknown opcode: 0x%04X at 0x%03X", op.word, op.addr)
        else:
            logger.info("Unsupported opcode: 0x%04X at 0x%03X", op.word, op.addr)
        if self.on_diagnostic is not None:
            self.on_diagnostic(diagnostic)


# Instruction executor type; returns the new PC, or None to keep the advanced PC
InstructionExecutor = Callable[[Opcode, Machine], Optional[int]]


def unknown(op: Opcode, m: Machine) -> Optional[int]:
    m.report(UNKNOWN, op)
    return None


def unsupported(op: Opcode, m: Machine) -> Optional[int]:
    m.report(UNSUPPORTED, op)
    return None


def _skip_if(condition: bool, cpu: CPU) -> Optional[int]:
    if condition:
        return cpu.pc + 2
    return None


# -- 0nnn: screen and subroutine control --------------------------------------

def execute_cls(op: Opcode, m: Machine) -> Optional[int]:
    """00E0: clear the display"""
    m.display.clear()
    logger.debug("Cleared screen")
    return None


def execute_ret(op: Opcode, m: Machine) -> Optional[int]:
    """00EE: PC := pop()"""
    return m.cpu.pop()


def execute_low(op: Opcode, m: Machine) -> Optional[int]:
    """00FE: switch to 64x32"""
    m.display.select_mode(DisplayMode.SMALL)
    return None


def execute_high(op: Opcode, m: Machine) -> Optional[int]:
    """00FF: switch to 128x64"""
    m.display.select_mode(DisplayMode.BIG)
    return None


def execute_system(op: Opcode, m: Machine) -> Optional[int]:
    """0nnn family; only 00xx forms exist."""
    if op.x != 0:
        return unknown(op, m)
    if op.y == 0xC:
        # 00Cn scroll down n lines is not implemented
        return unsupported(op, m)
    executor = SYSTEM_EXECUTORS.get(op.kk, unknown)
    return executor(op, m)


# -- flow control ---------------------------------------------------------------

def execute_jp(op: Opcode, m: Machine) -> Optional[int]:
    """1nnn: PC := nnn"""
    logger.debug("Jump to 0x%03X", op.nnn)
    return op.nnn


def execute_call(op: Opcode, m: Machine) -> Optional[int]:
    """2nnn: push(PC); PC := nnn"""
    m.cpu.push(m.cpu.pc)
    return op.nnn


def execute_se_imm(op: Opcode, m: Machine) -> Optional[int]:
    """3xkk: skip if Vx == kk"""
    return _skip_if(m.cpu.v[op.x] == op.kk, m.cpu)


def execute_sne_imm(op: Opcode, m: Machine) -> Optional[int]:
    """4xkk: skip if Vx != kk"""
    return _skip_if(m.cpu.v[op.x] != op.kk, m.cpu)


def execute_se_reg(op: Opcode, m: Machine) -> Optional[int]:
    """5xy0: skip if Vx == Vy"""
    if op.n != 0:
        return unknown(op, m)
    return _skip_if(m.cpu.v[op.x] == m.cpu.v[op.y], m.cpu)


def execute_sne_reg(op: Opcode, m: Machine) -> Optional[int]:
    """9xy0: skip if Vx != Vy"""
    if op.n != 0:
        return unknown(op, m)
    return _skip_if(m.cpu.v[op.x] != m.cpu.v[op.y], m.cpu)


# -- register immediates ------------------------------------------------------

def execute_ld_imm(op: Opcode, m: Machine) -> Optional[int]:
    """6xkk: Vx := kk"""
    m.cpu.set_v(op.x, op.kk)
    return None


def execute_add_imm(op: Opcode, m: Machine) -> Optional[int]:
    """7xkk: Vx := Vx + kk, VF untouched"""
    m.cpu.set_v(op.x, m.cpu.v[op.x] + op.kk)
    return None


# -- 8xyn: register ALU -----------------------------------------------------------

def execute_ld_reg(op: Opcode, m: Machine) -> Optional[int]:
    """8xy0: Vx := Vy"""
    m.cpu.set_v(op.x, m.cpu.v[op.y])
    return None


def execute_or(op: Opcode, m: Machine) -> Optional[int]:
    """8xy1: Vx := Vx OR Vy"""
    m.cpu.set_v(op.x, m.cpu.v[op.x] | m.cpu.v[op.y])
    return None


def execute_and(op: Opcode, m: Machine) -> Optional[int]:
    """8xy2: Vx := Vx AND Vy"""
    m.cpu.set_v(op.x, m.cpu.v[op.x] & m.cpu.v[op.y])
    return None


def execute_xor(op: Opcode, m: Machine) -> Optional[int]:
    """8xy3: Vx := Vx XOR Vy"""
    m.cpu.set_v(op.x, m.cpu.v[op.x] ^ m.cpu.v[op.y])
    return None


def execute_add_reg(op: Opcode, m: Machine) -> Optional[int]:
    """8xy4: VF := carry; Vx := Vx + Vy"""
    cpu = m.cpu
    total = cpu.v[op.x] + cpu.v[op.y]
    cpu.set_flag(1 if total > 0xFF else 0)
    cpu.set_v(op.x, total)
    return None


def execute_sub(op: Opcode, m: Machine) -> Optional[int]:
    """8xy5: VF := Vx > Vy; Vx := Vx - Vy"""
    cpu = m.cpu
    vx, vy = cpu.v[op.x], cpu.v[op.y]
    cpu.set_flag(1 if vx > vy else 0)
    cpu.set_v(op.x, vx - vy)
    return None


def execute_shr(op: Opcode, m: Machine) -> Optional[int]:
    """8xy6: VF := Vx bit 0; Vx := Vx >> 1"""
    cpu = m.cpu
    vx = cpu.v[op.x]
    cpu.set_flag(vx & 1)
    cpu.set_v(op.x, vx >> 1)
    return None


def execute_subn(op: Opcode, m: Machine) -> Optional[int]:
    """8xy7: subtract-reverse.

    By default Vx := Vx - Vy with VF := Vx < Vy, which is what existing
    programs for this interpreter were written against. With
    ``reverse_subn`` the reference form Vx := Vy - Vx, VF := Vy > Vx is
    used instead.
    """
    cpu = m.cpu
    vx, vy = cpu.v[op.x], cpu.v[op.y]
    if m.reverse_subn:
        cpu.set_flag(1 if vy > vx else 0)
        cpu.set_v(op.x, vy - vx)
        return None
    if not m.subn_warned:
        logger.warning(
            "SUBN at 0x%03X uses Vx - Vy operand order; set reverse_subn for Vy - Vx",
            op.addr,
        )
        m.subn_warned = True
    cpu.set_flag(1 if vx < vy else 0)
    cpu.set_v(op.x, vx - vy)
    return None


def execute_shl(op: Opcode, m: Machine) -> Optional[int]:
    """8xyE: VF := Vx bit 7; Vx := Vx << 1"""
    cpu = m.cpu
    vx = cpu.v[op.x]
    cpu.set_flag((vx >> 7) & 1)
    cpu.set_v(op.x, vx << 1)
    return None


def execute_alu(op: Opcode, m: Machine) -> Optional[int]:
    executor = ALU_EXECUTORS.get(op.n, unknown)
    return executor(op, m)


# -- address register, random, draw -------------------------------------------

def execute_ld_i(op: Opcode, m: Machine) -> Optional[int]:
    """Annn: I := nnn"""
    m.cpu.set_i(op.nnn)
    return None


def execute_rnd(op: Opcode, m: Machine) -> Optional[int]:
    """Cxkk: Vx := random byte AND kk"""
    m.cpu.set_v(op.x, m.rng.randint(0, 0xFF) & op.kk)
    return None


def execute_drw(op: Opcode, m: Machine) -> Optional[int]:
    """Dxyn: XOR n sprite rows from MEM[I] at (Vx, Vy); VF := collision"""
    cpu = m.cpu
    sprite = m.memory.read_block(cpu.i, op.n)
    x, y = cpu.v[op.x], cpu.v[op.y]
    collided = m.display.draw_sprite(x, y, sprite)
    cpu.set_flag(1 if collided else 0)
    logger.debug("Drawing %d rows at %d:%d", op.n, x, y)
    return None


# -- Exkk: key tests ------------------------------------------------------------

def execute_skp(op: Opcode, m: Machine) -> Optional[int]:
    """Ex9E: skip if key Vx is pressed"""
    return _skip_if(m.keypad.is_pressed(m.cpu.v[op.x]), m.cpu)


def execute_sknp(op: Opcode, m: Machine) -> Optional[int]:
    """ExA1: skip if key Vx is not pressed"""
    return _skip_if(not m.keypad.is_pressed(m.cpu.v[op.x]), m.cpu)


def execute_keys(op: Opcode, m: Machine) -> Optional[int]:
    executor = KEY_EXECUTORS.get(op.kk, unknown)
    return executor(op, m)


# -- Fxkk: timers, memory transfers -------------------------------------------

def execute_ld_vx_dt(op: Opcode, m: Machine) -> Optional[int]:
    """Fx07: Vx := DT"""
    m.cpu.set_v(op.x, m.cpu.delay_timer)
    return None


def execute_ld_vx_key(op: Opcode, m: Machine) -> Optional[int]:
    """Fx0A: Vx := next pressed key (blocking)"""
    logger.debug("Waiting for key input")
    key = m.keypad.wait_for_key(m.cancel, m.key_poll_interval)
    if key is None:
        # Cancelled; execute this instruction again when resumed
        return op.addr
    m.cpu.set_v(op.x, key)
    return None


def execute_ld_dt_vx(op: Opcode, m: Machine) -> Optional[int]:
    """Fx15: DT := Vx"""
    m.cpu.delay_timer = m.cpu.v[op.x]
    return None


def execute_ld_st_vx(op: Opcode, m: Machine) -> Optional[int]:
    """Fx18: ST := Vx"""
    m.cpu.sound_timer = m.cpu.v[op.x]
    return None


def execute_add_i(op: Opcode, m: Machine) -> Optional[int]:
    """Fx1E: I := I + Vx, VF untouched"""
    m.cpu.set_i(m.cpu.i + m.cpu.v[op.x])
    return None


def execute_ld_f(op: Opcode, m: Machine) -> Optional[int]:
    """Fx29: I := glyph address of Vx low nibble (Fx30 shares it)"""
    m.cpu.set_i(glyph_address(m.cpu.v[op.x]))
    return None


def execute_ld_b(op: Opcode, m: Machine) -> Optional[int]:
    """Fx33: MEM[I..I+2] := decimal digits of Vx"""
    cpu = m.cpu
    value = cpu.v[op.x]
    m.memory.write(cpu.i, value // 100)
    m.memory.write(cpu.i + 1, (value // 10) % 10)
    m.memory.write(cpu.i + 2, value % 10)
    return None


def execute_store(op: Opcode, m: Machine) -> Optional[int]:
    """Fx55: MEM[I..I+x] := V0..Vx"""
    cpu = m.cpu
    for index in range(op.x + 1):
        m.memory.write(cpu.i + index, cpu.v[index])
    return None


def execute_load(op: Opcode, m: Machine) -> Optional[int]:
    """Fx65: V0..Vx := MEM[I..I+x]"""
    cpu = m.cpu
    values = m.memory.read_block(cpu.i, op.x + 1)
    for index, value in enumerate(values):
        cpu.set_v(index, value)
    return None


def execute_misc(op: Opcode, m: Machine) -> Optional[int]:
    executor = MISC_EXECUTORS.get(op.kk, unknown)
    return executor(op, m)


# Instruction dispatch tables
SYSTEM_EXECUTORS: dict[int, InstructionExecutor] = {
    0xE0: execute_cls,
    0xEE: execute_ret,
    0xFB: unsupported,  # scroll right 4 pixels
    0xFC: unsupported,  # scroll left 4 pixels
    0xFE: execute_low,
    0xFF: execute_high,
}

ALU_EXECUTORS: dict[int, InstructionExecutor] = {
    0x0: execute_ld_reg,
    0x1: execute_or,
    0x2: execute_and,
    0x3: execute_xor,
    0x4: execute_add_reg,
    0x5: execute_sub,
    0x6: execute_shr,
    0x7: execute_subn,
    0xE: execute_shl,
}

KEY_EXECUTORS: dict[int, InstructionExecutor] = {
    0x9E: execute_skp,
    0xA1: execute_sknp,
}

MISC_EXECUTORS: dict[int, InstructionExecutor] = {
    0x07: execute_ld_vx_dt,
    0x0A: execute_ld_vx_key,
    0x15: execute_ld_dt_vx,
    0x18: execute_ld_st_vx,
    0x1E: execute_add_i,
    0x29: execute_ld_f,
    0x30: execute_ld_f,
    0x33: execute_ld_b,
    0x55: execute_store,
    0x65: execute_load,
}

INSTRUCTION_EXECUTORS: dict[int, InstructionExecutor] = {
    0x0: execute_system,
    0x1: execute_jp,
    0x2: execute_call,
    0x3: execute_se_imm,
    0x4: execute_sne_imm,
    0x5: execute_se_reg,
    0x6: execute_ld_imm,
    0x7: execute_add_imm,
    0x8: execute_alu,
    0x9: execute_sne_reg,
    0xA: execute_ld_i,
    0xB: unknown,
    0xC: execute_rnd,
    0xD: execute_drw,
    0xE: execute_keys,
    0xF: execute_misc,
}


def execute_instruction(op: Opcode, m: Machine) -> Optional[int]:
    """Execute a single instruction.

    Returns:
        New PC value if the instruction redirects control flow, None otherwise
    """
    return INSTRUCTION_EXECUTORS[op.family](op, m)
