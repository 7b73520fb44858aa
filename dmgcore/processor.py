"""CPU core state, memory bus interface and interrupt handling."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, IntFlag

from dmgcore.registers import Reg8, Reg16, RegisterFile


class InterruptLine(IntFlag):
    """Interrupt request lines."""

    VBLANK = 1 << 0
    STAT = 1 << 1
    TIMER = 1 << 2
    SERIAL = 1 << 3
    JOYPAD = 1 << 4


_VECTORS = {
    InterruptLine.VBLANK: 0x0040,
    InterruptLine.STAT: 0x0048,
    InterruptLine.TIMER: 0x0050,
    InterruptLine.SERIAL: 0x0058,
    InterruptLine.JOYPAD: 0x0060,
}


class CpuContext(ABC):
    """The hardware the CPU talks to; every access takes one machine cycle."""

    @abstractmethod
    def read_cycle(self, addr: int) -> int:
        """Read a byte from the bus."""

    def read_cycle_high(self, addr: int) -> int:
        return self.read_cycle(0xFF00 | (addr & 0xFF))

    @abstractmethod
    def write_cycle(self, addr: int, data: int) -> None:
        """Write a byte to the bus."""

    def write_cycle_high(self, addr: int, data: int) -> None:
        self.write_cycle(0xFF00 | (addr & 0xFF), data)

    @abstractmethod
    def tick_cycle(self) -> None:
        """Spend one machine cycle without a bus access."""

    @abstractmethod
    def get_mid_interrupt(self) -> InterruptLine:
        """Pending interrupts as seen in the middle of a cycle."""

    @abstractmethod
    def get_end_interrupt(self) -> InterruptLine:
        """Pending interrupts as seen at the end of a cycle."""

    @abstractmethod
    def ack_interrupt(self, mask: InterruptLine) -> None:
        """Clear the acknowledged interrupt request."""

    @abstractmethod
    def debug_opcode_callback(self) -> None:
        """Called when the debug breakpoint opcode runs."""


class Step(Enum):
    RUNNING = "running"
    HALT = "halt"
    INTERRUPT_DISPATCH = "interrupt_dispatch"


class Addr(Enum):
    """Memory addressing modes for 8-bit operands."""

    BC = "bc"
    DE = "de"
    HL = "hl"
    HLD = "hld"
    HLI = "hli"
    DIRECT = "direct"
    ZERO_PAGE = "zero_page"
    ZERO_PAGE_C = "zero_page_c"


class Cond(Enum):
    NZ = "nz"
    Z = "z"
    NC = "nc"
    C = "c"


@dataclass(frozen=True)
class Immediate8:
    """An 8-bit operand read from the instruction stream."""


IMMEDIATE8 = Immediate8()

_ADDR_REGS = {Addr.BC: Reg16.BC, Addr.DE: Reg16.DE, Addr.HL: Reg16.HL}


class CpuCore(ABC):
    """Registers, bus helpers and the step loop shared by the CPU."""

    def __init__(self) -> None:
        self.regs = RegisterFile()
        self.ime = False
        self.opcode = 0x00

    def __str__(self) -> str:
        return str(self.regs)

    @abstractmethod
    def decode_exec_fetch(self, ctx: CpuContext) -> Step:
        """Execute the current opcode and fetch the next one."""

    # --- bus helpers

    def _prefetch_next(self, ctx: CpuContext, addr: int) -> Step:
        self.opcode = ctx.read_cycle(addr)
        if self.ime and ctx.get_mid_interrupt():
            return Step.INTERRUPT_DISPATCH
        self.regs.pc = (addr + 1) & 0xFFFF
        return Step.RUNNING

    def _fetch_imm8(self, ctx: CpuContext) -> int:
        addr = self.regs.pc
        self.regs.pc = (addr + 1) & 0xFFFF
        return ctx.read_cycle(addr)

    def _fetch_imm16(self, ctx: CpuContext) -> int:
        lo = self._fetch_imm8(ctx)
        hi = self._fetch_imm8(ctx)
        return (hi << 8) | lo

    def _pop_u16(self, ctx: CpuContext) -> int:
        lo = ctx.read_cycle(self.regs.sp)
        self.regs.sp = (self.regs.sp + 1) & 0xFFFF
        hi = ctx.read_cycle(self.regs.sp)
        self.regs.sp = (self.regs.sp + 1) & 0xFFFF
        return (hi << 8) | lo

    def _push_u16(self, ctx: CpuContext, value: int) -> None:
        ctx.tick_cycle()
        self.regs.sp = (self.regs.sp - 1) & 0xFFFF
        ctx.write_cycle(self.regs.sp, (value >> 8) & 0xFF)
        self.regs.sp = (self.regs.sp - 1) & 0xFFFF
        ctx.write_cycle(self.regs.sp, value & 0xFF)

    def check_cond(self, cond: Cond) -> bool:
        if cond is Cond.NZ:
            return not self.regs.zf
        if cond is Cond.Z:
            return self.regs.zf
        if cond is Cond.NC:
            return not self.regs.cf
        return self.regs.cf

    # --- operands

    def _memory_address(self, addr: Addr, ctx: CpuContext) -> int:
        if addr is Addr.DIRECT:
            return self._fetch_imm16(ctx)
        if addr is Addr.HLD or addr is Addr.HLI:
            hl = self.regs.read16(Reg16.HL)
            delta = -1 if addr is Addr.HLD else 1
            self.regs.write16(Reg16.HL, hl + delta)
            return hl
        return self.regs.read16(_ADDR_REGS[addr])

    def read(self, src: Reg8 | Immediate8 | Addr, ctx: CpuContext) -> int:
        """Read an 8-bit operand."""
        if isinstance(src, Reg8):
            return getattr(self.regs, src.value)
        if isinstance(src, Immediate8):
            return self._fetch_imm8(ctx)
        if isinstance(src, Addr):
            if src is Addr.ZERO_PAGE:
                return ctx.read_cycle_high(self._fetch_imm8(ctx))
            if src is Addr.ZERO_PAGE_C:
                return ctx.read_cycle_high(self.regs.c)
            return ctx.read_cycle(self._memory_address(src, ctx))
        raise TypeError(f"Cannot read from {src!r}")

    def write(self, dst: Reg8 | Addr, ctx: CpuContext, data: int) -> None:
        """Write an 8-bit operand."""
        data &= 0xFF
        if isinstance(dst, Reg8):
            setattr(self.regs, dst.value, data)
        elif isinstance(dst, Addr):
            if dst is Addr.ZERO_PAGE:
                ctx.write_cycle_high(self._fetch_imm8(ctx), data)
            elif dst is Addr.ZERO_PAGE_C:
                ctx.write_cycle_high(self.regs.c, data)
            else:
                ctx.write_cycle(self._memory_address(dst, ctx), data)
        else:
            raise TypeError(f"Cannot write to {dst!r}")

    # --- step loop

    def execute_step(self, ctx: CpuContext, step: Step) -> Step:
        if step is Step.RUNNING:
            return self.decode_exec_fetch(ctx)
        if step is Step.INTERRUPT_DISPATCH:
            self.ime = False
            ctx.tick_cycle()
            self._push_u16(ctx, self.regs.pc)
            pending = int(ctx.get_mid_interrupt())
            interrupt = InterruptLine(pending & -pending)
            ctx.ack_interrupt(interrupt)
            self.regs.pc = _VECTORS.get(interrupt, 0x0000)
            self.opcode = self._fetch_imm8(ctx)
            return Step.RUNNING
        if ctx.get_end_interrupt():
            return self._prefetch_next(ctx, self.regs.pc)
        ctx.tick_cycle()
        return Step.HALT

    # --- ALU helpers

    def _alu_sub(self, value: int, use_carry: bool) -> int:
        a = self.regs.a
        cy = 1 if use_carry and self.regs.cf else 0
        result = (a - value - cy) & 0xFF
        self.regs.zf = result == 0
        self.regs.nf = True
        self.regs.hf = ((a & 0xF) - (value & 0xF) - cy) & 0x10 != 0
        self.regs.cf = a < value + cy
        return result

    def _set_rotate_flags(self, new_value: int, set_zero: bool, carry: bool) -> None:
        self.regs.zf = set_zero and new_value == 0
        self.regs.nf = False
        self.regs.hf = False
        self.regs.cf = carry

    def _alu_rl(self, value: int, set_zero: bool) -> int:
        ci = 1 if self.regs.cf else 0
        new_value = ((value << 1) | ci) & 0xFF
        self._set_rotate_flags(new_value, set_zero, bool(value & 0x80))
        return new_value

    def _alu_rlc(self, value: int, set_zero: bool) -> int:
        new_value = ((value << 1) | (value >> 7)) & 0xFF
        self._set_rotate_flags(new_value, set_zero, bool(value & 0x80))
        return new_value

    def _alu_rr(self, value: int, set_zero: bool) -> int:
        ci = 1 if self.regs.cf else 0
        new_value = (value >> 1) | (ci << 7)
        self._set_rotate_flags(new_value, set_zero, bool(value & 0x01))
        return new_value

    def _alu_rrc(self, value: int, set_zero: bool) -> int:
        new_value = (value >> 1) | ((value & 0x01) << 7)
        self._set_rotate_flags(new_value, set_zero, bool(value & 0x01))
        return new_value

    # --- control flow helpers

    def _ctrl_jp(self, ctx: CpuContext, addr: int) -> None:
        self.regs.pc = addr & 0xFFFF
        ctx.tick_cycle()

    def _ctrl_jr(self, ctx: CpuContext, offset: int) -> None:
        self.regs.pc = (self.regs.pc + offset) & 0xFFFF
        ctx.tick_cycle()

    def _ctrl_call(self, ctx: CpuContext, addr: int) -> None:
        self._push_u16(ctx, self.regs.pc)
        self.regs.pc = addr & 0xFFFF

    def _ctrl_ret(self, ctx: CpuContext) -> None:
        self.regs.pc = self._pop_u16(ctx)
        ctx.tick_cycle()