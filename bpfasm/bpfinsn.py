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


import enum
import struct
from dataclasses import dataclass

from .bpf import *


class Register(enum.Enum):
    A = "A" # accumulator
    X = "X" # index register


class ALUOp(enum.IntEnum):
    """
    Binary ALU operators, valued by their opcode bits.  Negation is unary
    and only available as NegateA.
    """
    ADD = BPF_ADD
    SUB = BPF_SUB
    MUL = BPF_MUL
    DIV = BPF_DIV
    OR = BPF_OR
    AND = BPF_AND
    SHIFT_LEFT = BPF_LSH
    SHIFT_RIGHT = BPF_RSH
    MOD = BPF_MOD
    XOR = BPF_XOR


class JumpTest(enum.Enum):
    EQUAL = "eq"
    NOT_EQUAL = "ne"
    GREATER_THAN = "gt"
    LESS_THAN = "lt"
    GREATER_OR_EQUAL = "ge"
    LESS_OR_EQUAL = "le"
    BITS_SET = "set"
    BITS_NOT_SET = "notset"


class Extension(enum.IntEnum):
    """
    Linux ancillary data, valued by their SKF_AD_* codes.
    """
    PROTO = SKF_AD_PROTOCOL
    LEN = SKF_AD_LEN
    TYPE = SKF_AD_PKTTYPE
    INTERFACE_INDEX = SKF_AD_IFINDEX
    NETLINK_ATTR = SKF_AD_NLATTR
    NETLINK_ATTR_NESTED = SKF_AD_NLATTR_NEST
    MARK = SKF_AD_MARK
    QUEUE = SKF_AD_QUEUE
    LINK_LAYER_TYPE = SKF_AD_HATYPE
    RX_HASH = SKF_AD_RXHASH
    CPU_ID = SKF_AD_CPU
    VLAN_TAG = SKF_AD_VLAN_TAG
    VLAN_TAG_PRESENT = SKF_AD_VLAN_TAG_PRESENT
    PAYLOAD_OFFSET = SKF_AD_PAY_OFFSET
    RAND = SKF_AD_RANDOM
    VLAN_PROTO = SKF_AD_VLAN_TPID


class Instruction:
    """
    Abstract base class for a BPF instruction.

    Every instruction is an immutable value that assembles into exactly one
    RawInstruction.  Assembling raises one of the EncodingError subclasses
    below if a field is out of range; nothing is clamped or corrected.
    """

    class EncodingError(ValueError):
        def __init__(self, field, value, message):
            super().__init__(message)
            self.field = field
            self.value = value

    class InvalidRegisterError(EncodingError):
        pass

    class InvalidLoadWidthError(EncodingError):
        pass

    class InvalidScratchSlotError(EncodingError):
        pass

    class UnknownJumpTestError(EncodingError):
        pass

    def assemble(self):
        raise NotImplementedError(type(self).__name__)

    def __str__(self):
        from .bpftext import format_instruction  # bpftext imports this module
        return format_instruction(self)


_SIZE_MAP = {
    4: BPF_W,
    2: BPF_H,
    1: BPF_B,
}

# cond -> (jmp op, swap jt/jf)
_JMP_MAP = {
    JumpTest.EQUAL: (BPF_JEQ, False),
    JumpTest.NOT_EQUAL: (BPF_JEQ, True),
    JumpTest.GREATER_THAN: (BPF_JGT, False),
    JumpTest.LESS_THAN: (BPF_JGE, True),
    JumpTest.GREATER_OR_EQUAL: (BPF_JGE, False),
    JumpTest.LESS_OR_EQUAL: (BPF_JGT, True),
    JumpTest.BITS_SET: (BPF_JSET, False),
    JumpTest.BITS_NOT_SET: (BPF_JSET, True),
}


def _check_scratch(n):
    if not 0 <= n < BPF_MEMWORDS:
        raise Instruction.InvalidScratchSlotError("n", n, f"Invalid scratch slot {n}")


def _assemble_load(dst, size, mode, k):
    if dst is Register.A:
        cls = BPF_LD
    elif dst is Register.X:
        cls = BPF_LDX
    else:
        raise Instruction.InvalidRegisterError("dst", dst, f"Invalid target register {dst!r}")
    sz = _SIZE_MAP.get(size)
    if sz is None:
        raise Instruction.InvalidLoadWidthError("size", size, f"Invalid load byte length {size!r}")
    return RawInstruction(cls + sz + mode, 0, 0, k)


@dataclass(frozen=True)
class RawInstruction(Instruction):
    """
    A raw BPF instruction, as laid out in struct sock_filter.

    Doubles as the pass-through variant for bit patterns that do not
    disassemble into anything more specific.
    """
    op: int
    jt: int = 0
    jf: int = 0
    k: int = 0

    class DecodingError(Exception):
        pass

    class InvalidStorageError(DecodingError):
        pass

    def assemble(self):
        return self

    def disassemble(self):
        from .bpfdis import disassemble  # bpfdis imports this module
        return disassemble(self)

    @classmethod
    def from_bytes(cls, data, layout=BPF_LAYOUT_HOST):
        if len(data) < BPF_INSN_SIZE:
            raise RawInstruction.InvalidStorageError("Buffer smaller than min insn length")
        return cls(*struct.unpack(layout, data[:BPF_INSN_SIZE]))

    def to_bytes(self, layout=BPF_LAYOUT_HOST):
        return struct.pack(layout, self.op, self.jt, self.jf, self.k)


@dataclass(frozen=True)
class LoadConstant(Instruction):
    """
    Loads val into register dst.
    """
    dst: Register
    val: int

    def assemble(self):
        return _assemble_load(self.dst, 4, BPF_IMM, self.val)


@dataclass(frozen=True)
class LoadScratch(Instruction):
    """
    Loads M[n] into register dst.
    """
    dst: Register
    n: int

    def assemble(self):
        _check_scratch(self.n)
        return _assemble_load(self.dst, 4, BPF_MEM, self.n)


@dataclass(frozen=True)
class LoadAbsolute(Instruction):
    """
    Loads P[off:size] into register A.
    """
    off: int
    size: int

    def assemble(self):
        return _assemble_load(Register.A, self.size, BPF_ABS, self.off)


@dataclass(frozen=True)
class LoadIndirect(Instruction):
    """
    Loads P[X+off:size] into register A.
    """
    off: int
    size: int

    def assemble(self):
        return _assemble_load(Register.A, self.size, BPF_IND, self.off)


@dataclass(frozen=True)
class LoadIPv4HeaderLen(Instruction):
    """
    Loads 4*(P[off:1]&0xf) into register X, the length of the IPv4 header
    starting at off.
    """
    off: int

    def assemble(self):
        return _assemble_load(Register.X, 1, BPF_MSH, self.off)


@dataclass(frozen=True)
class LoadExtension(Instruction):
    """
    Loads a Linux ancillary data value into register A.

    Packet length has its own addressing mode.  Everything else is an
    absolute word load at a negative offset from SKF_AD_OFF, which is why
    disassembly cannot tell such a load apart from a literal one.
    """
    num: Extension

    def assemble(self):
        if self.num == Extension.LEN:
            return _assemble_load(Register.A, 4, BPF_LEN, 0)
        return _assemble_load(Register.A, 4, BPF_ABS, (SKF_AD_OFF + self.num) & 0xffffffff)


@dataclass(frozen=True)
class StoreScratch(Instruction):
    """
    Stores register src into M[n].
    """
    src: Register
    n: int

    def assemble(self):
        _check_scratch(self.n)
        if self.src is Register.A:
            code = BPF_ST
        elif self.src is Register.X:
            code = BPF_STX
        else:
            raise Instruction.InvalidRegisterError("src", self.src, f"Invalid source register {self.src!r}")
        return RawInstruction(code, 0, 0, self.n)


@dataclass(frozen=True)
class ALUOpConstant(Instruction):
    """
    A = A <op> val
    """
    op: ALUOp
    val: int

    def assemble(self):
        return RawInstruction(BPF_ALU + self.op + BPF_K, 0, 0, self.val)


@dataclass(frozen=True)
class ALUOpX(Instruction):
    """
    A = A <op> X
    """
    op: ALUOp

    def assemble(self):
        return RawInstruction(BPF_ALU + self.op + BPF_X)


@dataclass(frozen=True)
class NegateA(Instruction):
    def assemble(self):
        return RawInstruction(BPF_ALU + BPF_NEG)


@dataclass(frozen=True)
class Jump(Instruction):
    """
    Skips the next skip instructions unconditionally.
    """
    skip: int

    def assemble(self):
        return RawInstruction(BPF_JMP + BPF_JA, 0, 0, self.skip)


@dataclass(frozen=True)
class JumpIf(Instruction):
    """
    Skips skip_true instructions if A <cond> val holds, skip_false
    instructions otherwise.

    The machine only has jeq, jgt, jge and jset.  The negated tests are
    assembled as their complement with the skip counts swapped, so they
    disassemble to the complement and never to themselves.
    """
    cond: JumpTest
    val: int
    skip_true: int = 0
    skip_false: int = 0

    def assemble(self):
        try:
            jmpop, swap = _JMP_MAP[self.cond]
        except (KeyError, TypeError):
            raise Instruction.UnknownJumpTestError("cond", self.cond, f"Unknown jump test {self.cond!r}") from None
        jt, jf = self.skip_true, self.skip_false
        if swap:
            jt, jf = jf, jt
        return RawInstruction(BPF_JMP + jmpop + BPF_K, jt, jf, self.val)


@dataclass(frozen=True)
class RetA(Instruction):
    def assemble(self):
        return RawInstruction(BPF_RET + BPF_A)


@dataclass(frozen=True)
class RetConstant(Instruction):
    """
    Returns val, the number of bytes of the packet to accept.
    """
    val: int

    def assemble(self):
        return RawInstruction(BPF_RET + BPF_K, 0, 0, self.val)


@dataclass(frozen=True)
class TXA(Instruction):
    def assemble(self):
        return RawInstruction(BPF_MISC + BPF_TXA)


@dataclass(frozen=True)
class TAX(Instruction):
    def assemble(self):
        return RawInstruction(BPF_MISC + BPF_TAX)


def assemble(insn):
    """
    Assembles insn into a RawInstruction.
    """
    if not isinstance(insn, Instruction):
        raise TypeError(f"Not a BPF instruction: {insn!r}")
    return insn.assemble()
