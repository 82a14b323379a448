# Copyright (c) 2025 Daniel Roethlisberger
#
# Permission is hereby granted, free of charge, to any person obtaining a copy of
# this software and associated documentation files (the "Software"), to deal in
# the Software without restriction, including without limitation the rights to
# use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies
# of the Software, and to permit persons to whom the Software is furnished to do
# so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.


import logging

from .bpf import *
from .bpfinsn import (
    ALUOp,
    ALUOpConstant,
    ALUOpX,
    Extension,
    Jump,
    JumpIf,
    JumpTest,
    LoadAbsolute,
    LoadConstant,
    LoadExtension,
    LoadIndirect,
    LoadIPv4HeaderLen,
    LoadScratch,
    NegateA,
    RawInstruction,
    Register,
    RetA,
    RetConstant,
    StoreScratch,
    TAX,
    TXA,
)


log = logging.getLogger(__name__)


_WIDTH_MAP = {
    BPF_W: 4,
    BPF_H: 2,
    BPF_B: 1,
}

_JMP_TEST_MAP = {
    BPF_JEQ: JumpTest.EQUAL,
    BPF_JGT: JumpTest.GREATER_THAN,
    BPF_JGE: JumpTest.GREATER_OR_EQUAL,
    BPF_JSET: JumpTest.BITS_SET,
}

# everything except LEN, which is decoded from its own addressing mode
_EXTENSIONS = frozenset(ext.value for ext in Extension if ext != Extension.LEN)


def _decode_ld(raw):
    code = raw.op
    if code == BPF_LD + BPF_W + BPF_IMM:
        return LoadConstant(Register.A, raw.k)
    if code == BPF_LD + BPF_W + BPF_MEM:
        if not 0 <= raw.k < BPF_MEMWORDS:
            return None
        return LoadScratch(Register.A, raw.k)
    if code == BPF_LD + BPF_W + BPF_LEN:
        return LoadExtension(Extension.LEN)
    if code == BPF_LD + BPF_W + BPF_ABS:
        ext = (raw.k - SKF_AD_OFF) & 0xffffffff
        if ext in _EXTENSIONS:
            return LoadExtension(Extension(ext))
        return LoadAbsolute(raw.k, 4)
    for sz, width in _WIDTH_MAP.items():
        if code == BPF_LD + sz + BPF_ABS:
            return LoadAbsolute(raw.k, width)
        if code == BPF_LD + sz + BPF_IND:
            return LoadIndirect(raw.k, width)
    return None


def _decode_ldx(raw):
    code = raw.op
    if code == BPF_LDX + BPF_W + BPF_IMM:
        return LoadConstant(Register.X, raw.k)
    if code == BPF_LDX + BPF_W + BPF_MEM:
        if not 0 <= raw.k < BPF_MEMWORDS:
            return None
        return LoadScratch(Register.X, raw.k)
    if code == BPF_LDX + BPF_B + BPF_MSH:
        return LoadIPv4HeaderLen(raw.k)
    return None


def _decode_st(raw):
    if not 0 <= raw.k < BPF_MEMWORDS:
        return None
    if raw.op == BPF_ST:
        return StoreScratch(Register.A, raw.k)
    if raw.op == BPF_STX:
        return StoreScratch(Register.X, raw.k)
    return None


def _decode_jmp(raw):
    if raw.op == BPF_JMP + BPF_JA:
        return Jump(raw.k)
    jmpop = raw.op & BPF_JMPOP_MASK
    if jmpop in _JMP_TEST_MAP and raw.op == BPF_JMP + jmpop + BPF_K:
        return JumpIf(_JMP_TEST_MAP[jmpop], raw.k, raw.jt, raw.jf)
    return None


def _decode_ret(raw):
    if raw.op == BPF_RET + BPF_A:
        return RetA()
    if raw.op == BPF_RET + BPF_K:
        return RetConstant(raw.k)
    return None


def _decode_misc(raw):
    if raw.op == BPF_MISC + BPF_TXA:
        return TXA()
    if raw.op == BPF_MISC + BPF_TAX:
        return TAX()
    return None


def _decode_alu(raw):
    if raw.op == BPF_ALU + BPF_NEG:
        return NegateA()
    # ALU opcodes are built from three fields, so decode by masking;
    # any bit outside those fields makes the opcode unknown
    aluop = raw.op & BPF_ALUOP_MASK
    if raw.op & ~(BPF_CLASS_MASK | BPF_ALUOP_MASK | BPF_SRC_MASK):
        return None
    try:
        op = ALUOp(aluop)
    except ValueError:
        return None
    if raw.op & BPF_SRC_MASK == BPF_X:
        return ALUOpX(op)
    return ALUOpConstant(op, raw.k)


_CLASS_DECODERS = {
    BPF_LD: _decode_ld,
    BPF_LDX: _decode_ldx,
    BPF_ST: _decode_st,
    BPF_STX: _decode_st,
    BPF_ALU: _decode_alu,
    BPF_JMP: _decode_jmp,
    BPF_RET: _decode_ret,
    BPF_MISC: _decode_misc,
}


def disassemble(raw):
    """
    Disassembles raw into the most specific Instruction it encodes.

    Never fails: bit patterns that are not understood, including scratch
    accesses beyond M[15] and operands set where the opcode ignores them,
    come back as raw itself, which assembles to the same bits again.
    Conditional jumps only ever decode to the four tests the machine
    implements, and width-4 absolute loads at an ancillary data offset
    always decode as LoadExtension.
    """
    insn = _CLASS_DECODERS[raw.op & BPF_CLASS_MASK](raw)
    if insn is None:
        log.debug("Passing through unknown instruction %r", raw)
        return raw
    # jt, jf or k set where the opcode ignores them
    if insn.assemble() != raw:
        log.debug("Passing through instruction with stray operands %r", raw)
        return raw
    return insn
