"""Emulation events and time measured in machine cycles."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag


class EmuEvents(IntFlag):
    """Events that an emulation step can report."""

    DEBUG_OP = 0b0000_0001
    VSYNC = 0b0000_0010
    BOOTROM_DISABLED = 0b0000_0100


@dataclass(frozen=True, order=True)
class EmuTime:
    """A point in emulated time, counted in machine cycles."""

    machine_cycles: int = 0

    @classmethod
    def zero(cls) -> EmuTime:
        return cls(0)

    @classmethod
    def from_machine_cycles(cls, machine_cycles: int) -> EmuTime:
        return cls(machine_cycles)

    def __add__(self, other: object) -> EmuTime:
        if not isinstance(other, EmuTime):
            return NotImplemented
        return EmuTime(self.machine_cycles + other.machine_cycles)

    def __sub__(self, other: object) -> EmuTime:
        if not isinstance(other, EmuTime):
            return NotImplemented
        cycles = self.machine_cycles - other.machine_cycles
        if cycles < 0:
            raise ValueError("EmuTime subtraction would underflow")
        return EmuTime(cycles)

    def __str__(self) -> str:
        return f"{self.machine_cycles} machine cycles"