"""Opcode decoding for the complete CPU."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from dmgcore.instructions import InstructionSet
from dmgcore.processor import IMMEDIATE8, Addr, Cond, CpuContext, Step
from dmgcore.registers import Reg8, Reg16

_Entry = tuple[Callable[..., Step], tuple[Any, ...]]

# Operand order used by the regular parts of the opcode map.
_OPERANDS = (Reg8.B, Reg8.C, Reg8.D, Reg8.E, Reg8.H, Reg8.L, Addr.HL, Reg8.A)
_CONDS = (Cond.NZ, Cond.Z, Cond.NC, Cond.C)
_UNDEFINED = (0xD3, 0xDB, 0xDD, 0xE3, 0xE4, 0xEB, 0xEC, 0xED, 0xF4, 0xFC, 0xFD)


def _build_main_table() -> tuple[_Entry, ...]:
    isa = InstructionSet
    ops: dict[int, _Entry] = {}

    # 8-bit loads between registers and (HL)
    for i, dst in enumerate(_OPERANDS):
        for j, src in enumerate(_OPERANDS):
            ops[0x40 | (i << 3) | j] = (isa.load, (dst, src))
    ops[0x40] = (isa.ld_b_b, ())
    ops[0x76] = (isa.halt, ())

    # INC, DEC and immediate loads
    for i, operand in enumerate(_OPERANDS):
        ops[0x04 | (i << 3)] = (isa.inc, (operand,))
        ops[0x05 | (i << 3)] = (isa.dec, (operand,))
        ops[0x06 | (i << 3)] = (isa.load, (operand, IMMEDIATE8))

    # 8-bit arithmetic and logic
    alu = (isa.add, isa.adc, isa.sub, isa.sbc, isa.and_, isa.xor, isa.or_, isa.cp)
    for k, method in enumerate(alu):
        for j, src in enumerate(_OPERANDS):
            ops[0x80 | (k << 3) | j] = (method, (src,))
        ops[0xC6 | (k << 3)] = (method, (IMMEDIATE8,))

    # Indirect loads
    for code, dst, src in (
        (0x0A, Reg8.A, Addr.BC),
        (0x02, Addr.BC, Reg8.A),
        (0x1A, Reg8.A, Addr.DE),
        (0x12, Addr.DE, Reg8.A),
        (0xFA, Reg8.A, Addr.DIRECT),
        (0xEA, Addr.DIRECT, Reg8.A),
        (0x3A, Reg8.A, Addr.HLD),
        (0x32, Addr.HLD, Reg8.A),
        (0x2A, Reg8.A, Addr.HLI),
        (0x22, Addr.HLI, Reg8.A),
        (0xF2, Reg8.A, Addr.ZERO_PAGE_C),
        (0xE2, Addr.ZERO_PAGE_C, Reg8.A),
        (0xF0, Reg8.A, Addr.ZERO_PAGE),
        (0xE0, Addr.ZERO_PAGE, Reg8.A),
    ):
        ops[code] = (isa.load, (dst, src))

    # Control flow
    for k, cond in enumerate(_CONDS):
        ops[0xC2 | (k << 3)] = (isa.jp_cc, (cond,))
        ops[0x20 | (k << 3)] = (isa.jr_cc, (cond,))
        ops[0xC4 | (k << 3)] = (isa.call_cc, (cond,))
        ops[0xC0 | (k << 3)] = (isa.ret_cc, (cond,))
    for target in range(0x00, 0x40, 0x08):
        ops[0xC7 | target] = (isa.rst, (target,))

    # 16-bit operations
    for k, reg in enumerate((Reg16.BC, Reg16.DE, Reg16.HL, Reg16.SP)):
        ops[0x01 | (k << 4)] = (isa.load16_imm, (reg,))
        ops[0x03 | (k << 4)] = (isa.inc16, (reg,))
        ops[0x09 | (k << 4)] = (isa.add16, (reg,))
        ops[0x0B | (k << 4)] = (isa.dec16, (reg,))
    for k, reg in enumerate((Reg16.BC, Reg16.DE, Reg16.HL, Reg16.AF)):
        ops[0xC1 | (k << 4)] = (isa.pop16, (reg,))
        ops[0xC5 | (k << 4)] = (isa.push16, (reg,))

    for code, method in (
        (0x07, isa.rlca),
        (0x17, isa.rla),
        (0x0F, isa.rrca),
        (0x1F, isa.rra),
        (0xC3, isa.jp),
        (0xE9, isa.jp_hl),
        (0x18, isa.jr),
        (0xCD, isa.call),
        (0xC9, isa.ret),
        (0xD9, isa.reti),
        (0x10, isa.stop),
        (0xF3, isa.di),
        (0xFB, isa.ei),
        (0x3F, isa.ccf),
        (0x37, isa.scf),
        (0x00, isa.nop),
        (0x27, isa.daa),
        (0x2F, isa.cpl),
        (0x08, isa.load16_nn_sp),
        (0xF9, isa.load16_sp_hl),
        (0xF8, isa.load16_hl_sp_e),
        (0xE8, isa.add16_sp_e),
        (0xCB, isa.cb_prefix),
    ):
        ops[code] = (method, ())
    for code in _UNDEFINED:
        ops[code] = (isa.undefined, ())

    return tuple(ops[code] for code in range(0x100))


def _build_cb_table() -> tuple[_Entry, ...]:
    isa = InstructionSet
    ops: dict[int, _Entry] = {}
    shifts = (isa.rlc, isa.rrc, isa.rl, isa.rr, isa.sla, isa.sra, isa.swap, isa.srl)
    for k, method in enumerate(shifts):
        for j, operand in enumerate(_OPERANDS):
            ops[(k << 3) | j] = (method, (operand,))
    for base, method in ((0x40, isa.bit), (0x80, isa.res), (0xC0, isa.set)):
        for bit in range(8):
            for j, operand in enumerate(_OPERANDS):
                ops[base | (bit << 3) | j] = (method, (bit, operand))
    return tuple(ops[code] for code in range(0x100))


_OPCODES = _build_main_table()
_CB_OPCODES = _build_cb_table()


class Cpu(InstructionSet):
    """The complete CPU: registers, instructions and opcode decoding."""

    def decode_exec_fetch(self, ctx: CpuContext) -> Step:
        method, args = _OPCODES[self.opcode]
        return method(self, ctx, *args)

    def cb_decode_exec_fetch(self, ctx: CpuContext) -> Step:
        method, args = _CB_OPCODES[self.opcode]
        return method(self, ctx, *args)