"""Execution of the individual CPU instructions."""

from __future__ import annotations

from abc import abstractmethod

from dmgcore.processor import Cond, CpuContext, CpuCore, Immediate8, Addr, Step
from dmgcore.registers import Reg8, Reg16

Operand = Reg8 | Addr | Immediate8
Location = Reg8 | Addr


def _signed8(value: int) -> int:
    return value - 0x100 if value & 0x80 else value


def _carry_at(bit: int, a: int, b: int) -> bool:
    """Tell whether adding a and b carries out of the given bit."""
    mask = (1 << (bit + 1)) - 1
    return (a & mask) + (b & mask) > mask


class InstructionSet(CpuCore):
    """CPU core extended with the behaviour of every instruction.

    Each instruction runs, then fetches the next opcode and returns the
    resulting step.
    """

    @abstractmethod
    def cb_decode_exec_fetch(self, ctx: CpuContext) -> Step:
        """Execute the current CB-prefixed opcode and fetch the next one."""

    def _next(self, ctx: CpuContext) -> Step:
        return self._prefetch_next(ctx, self.regs.pc)

    # --- 8-bit loads

    def load(self, ctx: CpuContext, out8: Location, in8: Operand) -> Step:
        """LD d, s"""
        value = self.read(in8, ctx)
        self.write(out8, ctx, value)
        return self._next(ctx)

    def ld_b_b(self, ctx: CpuContext) -> Step:
        """LD B, B, used as a debug breakpoint."""
        ctx.debug_opcode_callback()
        return self._next(ctx)

    # --- 8-bit arithmetic

    def add(self, ctx: CpuContext, in8: Operand) -> Step:
        """ADD s"""
        value = self.read(in8, ctx)
        a = self.regs.a
        total = a + value
        result = total & 0xFF
        self.regs.zf = result == 0
        self.regs.nf = False
        self.regs.hf = (a & 0x0F) + (value & 0x0F) > 0x0F
        self.regs.cf = total > 0xFF
        self.regs.a = result
        return self._next(ctx)

    def adc(self, ctx: CpuContext, in8: Operand) -> Step:
        """ADC s"""
        value = self.read(in8, ctx)
        a = self.regs.a
        cy = 1 if self.regs.cf else 0
        result = (a + value + cy) & 0xFF
        self.regs.zf = result == 0
        self.regs.nf = False
        self.regs.hf = (a & 0xF) + (value & 0xF) + cy > 0xF
        self.regs.cf = a + value + cy > 0xFF
        self.regs.a = result
        return self._next(ctx)

    def sub(self, ctx: CpuContext, in8: Operand) -> Step:
        """SUB s"""
        value = self.read(in8, ctx)
        self.regs.a = self._alu_sub(value, False)
        return self._next(ctx)

    def sbc(self, ctx: CpuContext, in8: Operand) -> Step:
        """SBC s"""
        value = self.read(in8, ctx)
        self.regs.a = self._alu_sub(value, True)
        return self._next(ctx)

    def cp(self, ctx: CpuContext, in8: Operand) -> Step:
        """CP s"""
        value = self.read(in8, ctx)
        self._alu_sub(value, False)
        return self._next(ctx)

    def _set_logic_flags(self, half_carry: bool) -> None:
        self.regs.zf = self.regs.a == 0
        self.regs.nf = False
        self.regs.hf = half_carry
        self.regs.cf = False

    def and_(self, ctx: CpuContext, in8: Operand) -> Step:
        """AND s"""
        self.regs.a &= self.read(in8, ctx)
        self._set_logic_flags(True)
        return self._next(ctx)

    def or_(self, ctx: CpuContext, in8: Operand) -> Step:
        """OR s"""
        self.regs.a |= self.read(in8, ctx)
        self._set_logic_flags(False)
        return self._next(ctx)

    def xor(self, ctx: CpuContext, in8: Operand) -> Step:
        """XOR s"""
        self.regs.a ^= self.read(in8, ctx)
        self._set_logic_flags(False)
        return self._next(ctx)

    def inc(self, ctx: CpuContext, io: Location) -> Step:
        """INC s"""
        value = self.read(io, ctx)
        new_value = (value + 1) & 0xFF
        self.regs.zf = new_value == 0
        self.regs.nf = False
        self.regs.hf = value & 0xF == 0xF
        self.write(io, ctx, new_value)
        return self._next(ctx)

    def dec(self, ctx: CpuContext, io: Location) -> Step:
        """DEC s"""
        value = self.read(io, ctx)
        new_value = (value - 1) & 0xFF
        self.regs.zf = new_value == 0
        self.regs.nf = True
        self.regs.hf = value & 0xF == 0
        self.write(io, ctx, new_value)
        return self._next(ctx)

    # --- rotates and shifts

    def rlca(self, ctx: CpuContext) -> Step:
        """RLCA"""
        self.regs.a = self._alu_rlc(self.regs.a, False)
        return self._next(ctx)

    def rla(self, ctx: CpuContext) -> Step:
        """RLA"""
        self.regs.a = self._alu_rl(self.regs.a, False)
        return self._next(ctx)

    def rrca(self, ctx: CpuContext) -> Step:
        """RRCA"""
        self.regs.a = self._alu_rrc(self.regs.a, False)
        return self._next(ctx)

    def rra(self, ctx: CpuContext) -> Step:
        """RRA"""
        self.regs.a = self._alu_rr(self.regs.a, False)
        return self._next(ctx)

    def rlc(self, ctx: CpuContext, io: Location) -> Step:
        """RLC s"""
        value = self.read(io, ctx)
        self.write(io, ctx, self._alu_rlc(value, True))
        return self._next(ctx)

    def rl(self, ctx: CpuContext, io: Location) -> Step:
        """RL s"""
        value = self.read(io, ctx)
        self.write(io, ctx, self._alu_rl(value, True))
        return self._next(ctx)

    def rrc(self, ctx: CpuContext, io: Location) -> Step:
        """RRC s"""
        value = self.read(io, ctx)
        self.write(io, ctx, self._alu_rrc(value, True))
        return self._next(ctx)

    def rr(self, ctx: CpuContext, io: Location) -> Step:
        """RR s"""
        value = self.read(io, ctx)
        self.write(io, ctx, self._alu_rr(value, True))
        return self._next(ctx)

    def _shift(self, ctx: CpuContext, io: Location, new_value: int, carry: bool) -> Step:
        self.regs.zf = new_value == 0
        self.regs.nf = False
        self.regs.hf = False
        self.regs.cf = carry
        self.write(io, ctx, new_value)
        return self._next(ctx)

    def sla(self, ctx: CpuContext, io: Location) -> Step:
        """SLA s"""
        value = self.read(io, ctx)
        return self._shift(ctx, io, (value << 1) & 0xFF, bool(value & 0x80))

    def sra(self, ctx: CpuContext, io: Location) -> Step:
        """SRA s"""
        value = self.read(io, ctx)
        return self._shift(ctx, io, (value >> 1) | (value & 0x80), bool(value & 0x01))

    def srl(self, ctx: CpuContext, io: Location) -> Step:
        """SRL s"""
        value = self.read(io, ctx)
        return self._shift(ctx, io, value >> 1, bool(value & 0x01))

    def swap(self, ctx: CpuContext, io: Location) -> Step:
        """SWAP s"""
        value = self.read(io, ctx)
        new_value = ((value >> 4) | (value << 4)) & 0xFF
        self.regs.zf = value == 0
        self.regs.nf = False
        self.regs.hf = False
        self.regs.cf = False
        self.write(io, ctx, new_value)
        return self._next(ctx)

    # --- bit operations

    def bit(self, ctx: CpuContext, bit: int, in8: Operand) -> Step:
        """BIT b, s"""
        value = self.read(in8, ctx) & (1 << bit)
        self.regs.zf = value == 0
        self.regs.nf = False
        self.regs.hf = True
        return self._next(ctx)

    def set(self, ctx: CpuContext, bit: int, io: Location) -> Step:
        """SET b, s"""
        value = self.read(io, ctx) | (1 << bit)
        self.write(io, ctx, value)
        return self._next(ctx)

    def res(self, ctx: CpuContext, bit: int, io: Location) -> Step:
        """RES b, s"""
        value = self.read(io, ctx) & ~(1 << bit) & 0xFF
        self.write(io, ctx, value)
        return self._next(ctx)

    # --- control

    def jp(self, ctx: CpuContext) -> Step:
        """JP nn"""
        addr = self._fetch_imm16(ctx)
        self._ctrl_jp(ctx, addr)
        return self._next(ctx)

    def jp_hl(self, ctx: CpuContext) -> Step:
        """JP HL"""
        return self._prefetch_next(ctx, self.regs.read16(Reg16.HL))

    def jr(self, ctx: CpuContext) -> Step:
        """JR e"""
        offset = _signed8(self._fetch_imm8(ctx))
        self._ctrl_jr(ctx, offset)
        return self._next(ctx)

    def call(self, ctx: CpuContext) -> Step:
        """CALL nn"""
        addr = self._fetch_imm16(ctx)
        self._ctrl_call(ctx, addr)
        return self._next(ctx)

    def ret(self, ctx: CpuContext) -> Step:
        """RET"""
        self._ctrl_ret(ctx)
        return self._next(ctx)

    def reti(self, ctx: CpuContext) -> Step:
        """RETI"""
        self.ime = True
        self._ctrl_ret(ctx)
        return self._next(ctx)

    def jp_cc(self, ctx: CpuContext, cond: Cond) -> Step:
        """JP cc, nn"""
        addr = self._fetch_imm16(ctx)
        if self.check_cond(cond):
            self._ctrl_jp(ctx, addr)
        return self._next(ctx)

    def jr_cc(self, ctx: CpuContext, cond: Cond) -> Step:
        """JR cc, e"""
        offset = _signed8(self._fetch_imm8(ctx))
        if self.check_cond(cond):
            self._ctrl_jr(ctx, offset)
        return self._next(ctx)

    def call_cc(self, ctx: CpuContext, cond: Cond) -> Step:
        """CALL cc, nn"""
        addr = self._fetch_imm16(ctx)
        if self.check_cond(cond):
            self._ctrl_call(ctx, addr)
        return self._next(ctx)

    def ret_cc(self, ctx: CpuContext, cond: Cond) -> Step:
        """RET cc"""
        ctx.tick_cycle()
        if self.check_cond(cond):
            self._ctrl_ret(ctx)
        return self._next(ctx)

    def rst(self, ctx: CpuContext, addr: int) -> Step:
        """RST n"""
        self._push_u16(ctx, self.regs.pc)
        return self._prefetch_next(ctx, addr & 0xFF)

    # --- miscellaneous

    def halt(self, ctx: CpuContext) -> Step:
        """HALT"""
        self.opcode = ctx.read_cycle(self.regs.pc)
        if ctx.get_mid_interrupt():
            if self.ime:
                return Step.INTERRUPT_DISPATCH
            return self.decode_exec_fetch(ctx)
        ctx.tick_cycle()
        return Step.HALT

    def stop(self, ctx: CpuContext) -> Step:
        """STOP, which is not supported."""
        raise RuntimeError("STOP")

    def di(self, ctx: CpuContext) -> Step:
        """DI"""
        self.ime = False
        self.opcode = self._fetch_imm8(ctx)
        return Step.RUNNING

    def ei(self, ctx: CpuContext) -> Step:
        """EI; interrupts are enabled only after the next opcode fetch."""
        step = self._next(ctx)
        self.ime = True
        return step

    def ccf(self, ctx: CpuContext) -> Step:
        """CCF"""
        self.regs.nf = False
        self.regs.hf = False
        self.regs.cf = not self.regs.cf
        return self._next(ctx)

    def scf(self, ctx: CpuContext) -> Step:
        """SCF"""
        self.regs.nf = False
        self.regs.hf = False
        self.regs.cf = True
        return self._next(ctx)

    def nop(self, ctx: CpuContext) -> Step:
        """NOP"""
        return self._next(ctx)

    def daa(self, ctx: CpuContext) -> Step:
        """DAA: adjust A to packed BCD after an addition or subtraction."""
        carry = False
        a = self.regs.a
        if not self.regs.nf:
            if self.regs.cf or a > 0x99:
                a = (a + 0x60) & 0xFF
                carry = True
            if self.regs.hf or a & 0x0F > 0x09:
                a = (a + 0x06) & 0xFF
        elif self.regs.cf:
            carry = True
            a = (a + (0x9A if self.regs.hf else 0xA0)) & 0xFF
        elif self.regs.hf:
            a = (a + 0xFA) & 0xFF
        self.regs.a = a
        self.regs.zf = a == 0
        self.regs.hf = False
        self.regs.cf = carry
        return self._next(ctx)

    def cpl(self, ctx: CpuContext) -> Step:
        """CPL"""
        self.regs.a = ~self.regs.a & 0xFF
        self.regs.nf = True
        self.regs.hf = True
        return self._next(ctx)

    # --- 16-bit loads

    def load16_imm(self, ctx: CpuContext, reg: Reg16) -> Step:
        """LD dd, nn"""
        self.regs.write16(reg, self._fetch_imm16(ctx))
        return self._next(ctx)

    def load16_nn_sp(self, ctx: CpuContext) -> Step:
        """LD (nn), SP"""
        value = self.regs.sp
        addr = self._fetch_imm16(ctx)
        ctx.write_cycle(addr, value & 0xFF)
        ctx.write_cycle((addr + 1) & 0xFFFF, value >> 8)
        return self._next(ctx)

    def load16_sp_hl(self, ctx: CpuContext) -> Step:
        """LD SP, HL"""
        self.regs.sp = self.regs.read16(Reg16.HL)
        ctx.tick_cycle()
        return self._next(ctx)

    def load16_hl_sp_e(self, ctx: CpuContext) -> Step:
        """LD HL, SP+e"""
        offset = _signed8(self._fetch_imm8(ctx)) & 0xFFFF
        sp = self.regs.sp
        self.regs.write16(Reg16.HL, sp + offset)
        self.regs.zf = False
        self.regs.nf = False
        self.regs.hf = _carry_at(3, sp, offset)
        self.regs.cf = _carry_at(7, sp, offset)
        ctx.tick_cycle()
        return self._next(ctx)

    def push16(self, ctx: CpuContext, reg: Reg16) -> Step:
        """PUSH rr"""
        self._push_u16(ctx, self.regs.read16(reg))
        return self._next(ctx)

    def pop16(self, ctx: CpuContext, reg: Reg16) -> Step:
        """POP rr; POP AF sets every flag."""
        self.regs.write16(reg, self._pop_u16(ctx))
        return self._next(ctx)

    # --- 16-bit arithmetic

    def add16(self, ctx: CpuContext, reg: Reg16) -> Step:
        """ADD HL, ss"""
        hl = self.regs.read16(Reg16.HL)
        value = self.regs.read16(reg)
        self.regs.nf = False
        self.regs.hf = _carry_at(11, hl, value)
        self.regs.cf = hl > 0xFFFF - value
        self.regs.write16(Reg16.HL, hl + value)
        ctx.tick_cycle()
        return self._next(ctx)

    def add16_sp_e(self, ctx: CpuContext) -> Step:
        """ADD SP, e"""
        offset = _signed8(self._fetch_imm8(ctx)) & 0xFFFF
        sp = self.regs.sp
        self.regs.sp = (sp + offset) & 0xFFFF
        self.regs.zf = False
        self.regs.nf = False
        self.regs.hf = _carry_at(3, sp, offset)
        self.regs.cf = _carry_at(7, sp, offset)
        ctx.tick_cycle()
        ctx.tick_cycle()
        return self._next(ctx)

    def inc16(self, ctx: CpuContext, reg: Reg16) -> Step:
        """INC rr"""
        self.regs.write16(reg, self.regs.read16(reg) + 1)
        ctx.tick_cycle()
        return self._next(ctx)

    def dec16(self, ctx: CpuContext, reg: Reg16) -> Step:
        """DEC rr"""
        self.regs.write16(reg, self.regs.read16(reg) - 1)
        ctx.tick_cycle()
        return self._next(ctx)

    # --- undefined and prefix

    def undefined(self, ctx: CpuContext) -> Step:
        raise RuntimeError(f"Undefined opcode {self.opcode}")

    def cb_prefix(self, ctx: CpuContext) -> Step:
        self.opcode = self._fetch_imm8(ctx)
        return self.cb_decode_exec_fetch(ctx)