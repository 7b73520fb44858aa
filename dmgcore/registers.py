"""The CPU register file."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag


class Flags(IntFlag):
    """Bits of the F register."""

    ZERO = 0b1000_0000
    ADD_SUBTRACT = 0b0100_0000
    HALF_CARRY = 0b0010_0000
    CARRY = 0b0001_0000


_FLAG_MASK = 0xF0


class Reg8(Enum):
    A = "a"
    B = "b"
    C = "c"
    D = "d"
    E = "e"
    H = "h"
    L = "l"


class Reg16(Enum):
    AF = "af"
    BC = "bc"
    DE = "de"
    HL = "hl"
    SP = "sp"


_PAIRS = {
    Reg16.BC: ("b", "c"),
    Reg16.DE: ("d", "e"),
    Reg16.HL: ("h", "l"),
}


@dataclass
class RegisterFile:
    """All CPU registers; 8-bit registers hold 0..255, pc and sp 0..65535."""

    pc: int = 0
    sp: int = 0
    a: int = 0
    f: Flags = field(default_factory=lambda: Flags(0))
    b: int = 0
    c: int = 0
    d: int = 0
    e: int = 0
    h: int = 0
    l: int = 0  # noqa: E741

    def read16(self, reg: Reg16) -> int:
        if reg is Reg16.AF:
            return (self.a << 8) | int(self.f)
        if reg is Reg16.SP:
            return self.sp
        hi, lo = _PAIRS[reg]
        return (getattr(self, hi) << 8) | getattr(self, lo)

    def write16(self, reg: Reg16, value: int) -> None:
        value &= 0xFFFF
        if reg is Reg16.AF:
            self.a = value >> 8
            self.f = Flags(value & _FLAG_MASK)
        elif reg is Reg16.SP:
            self.sp = value
        else:
            hi, lo = _PAIRS[reg]
            setattr(self, hi, value >> 8)
            setattr(self, lo, value & 0xFF)

    def _flag(self, flag: Flags) -> bool:
        return bool(int(self.f) & int(flag))

    def _set_flag(self, flag: Flags, on: bool) -> None:
        bits = int(self.f)
        bits = bits | int(flag) if on else bits & ~int(flag)
        self.f = Flags(bits & _FLAG_MASK)

    @property
    def zf(self) -> bool:
        return self._flag(Flags.ZERO)

    @zf.setter
    def zf(self, on: bool) -> None:
        self._set_flag(Flags.ZERO, on)

    @property
    def nf(self) -> bool:
        return self._flag(Flags.ADD_SUBTRACT)

    @nf.setter
    def nf(self, on: bool) -> None:
        self._set_flag(Flags.ADD_SUBTRACT, on)

    @property
    def hf(self) -> bool:
        return self._flag(Flags.HALF_CARRY)

    @hf.setter
    def hf(self, on: bool) -> None:
        self._set_flag(Flags.HALF_CARRY, on)

    @property
    def cf(self) -> bool:
        return self._flag(Flags.CARRY)

    @cf.setter
    def cf(self, on: bool) -> None:
        self._set_flag(Flags.CARRY, on)

    def __str__(self) -> str:
        return (
            f"PC:{self.pc:04x} SP:{self.sp:04x} "
            f"A:{self.a:02x} F:{int(self.f):04b} B:{self.b:02x} C:{self.c:02x} "
            f"D:{self.d:02x} E:{self.e:02x} H:{self.h:02x} L:{self.l:02x}"
        )