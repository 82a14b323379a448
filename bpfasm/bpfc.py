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
from .bpfdis import disassemble
from .bpfinsn import (
    ALUOp,
    ALUOpConstant,
    ALUOpX,
    Extension,
    Instruction,
    JumpIf,
    JumpTest,
    LoadAbsolute,
    LoadConstant,
    LoadExtension,
    LoadIndirect,
    LoadIPv4HeaderLen,
    RawInstruction,
    Register,
    RetA,
    RetConstant,
    assemble,
)


log = logging.getLogger(__name__)


class AssemblyError(Exception):
    def __init__(self, index, error):
        super().__init__(f"Assembling instruction {index}: {error}")
        self.index = index
        self.error = error


def assemble_program(insns):
    """
    Assembles a sequence of instructions into a list of RawInstructions.

    Jump targets and program length are not checked.
    """
    raws = []
    for i, insn in enumerate(insns):
        try:
            raws.append(assemble(insn))
        except Instruction.EncodingError as e:
            raise AssemblyError(i, e) from e
    return raws


def disassemble_program(raws):
    """
    Disassembles a sequence of RawInstructions.  Returns the instructions
    and whether every one of them decoded into something more specific than
    a RawInstruction.
    """
    insns = [disassemble(raw) for raw in raws]
    all_decoded = not any(isinstance(insn, RawInstruction) for insn in insns)
    return insns, all_decoded


class BPFProgram:
    """
    Abstract base class for building and serializing BPF programs.

    Instructions are assembled as they are appended.  Subclasses fix the
    byte order of the serialized struct sock_filter array.
    """

    AssemblyError = AssemblyError
    InvalidStorageError = RawInstruction.InvalidStorageError

    def __init__(self, insns=()):
        self._insns = []
        self.extend(insns)

    def append(self, insn):
        self.extend((insn,))

    def extend(self, insns):
        # assemble everything before appending anything
        self._insns += assemble_program(insns)

    def stmt(self, code, k):
        """
        BPF_STMT(code, k) from <linux/filter.h>.
        """
        self._insns.append(RawInstruction(code, 0, 0, k))

    def jump(self, code, k, jt, jf):
        """
        BPF_JUMP(code, k, jt, jf) from <linux/filter.h>.
        """
        self._insns.append(RawInstruction(code, jt, jf, k))

    def __len__(self):
        return len(self._insns)

    def __iter__(self):
        return iter(self._insns)

    def __getitem__(self, index):
        return self._insns[index]

    def __bytes__(self):
        if len(self._insns) > BPF_MAXINSNS:
            log.warning("Program of %d instructions exceeds BPF_MAXINSNS (%d)", len(self._insns), BPF_MAXINSNS)
        return b''.join(insn.to_bytes(self._insn_layout) for insn in self._insns)

    def disassemble(self):
        insns, _ = disassemble_program(self._insns)
        return insns

    def write_to(self, path):
        data = bytes(self)
        with open(path, "wb") as f:
            f.write(data)
        log.debug("Wrote %d instructions to %s", len(self), path)

    @classmethod
    def from_bytes(cls, data):
        if len(data) % BPF_INSN_SIZE != 0:
            raise cls.InvalidStorageError(f"Program size {len(data)} is not a multiple of {BPF_INSN_SIZE}")
        prog = cls()
        for off in range(0, len(data), BPF_INSN_SIZE):
            prog._insns.append(RawInstruction.from_bytes(data[off:off + BPF_INSN_SIZE], cls._insn_layout))
        return prog

    @classmethod
    def read_from(cls, path):
        with open(path, "rb") as f:
            data = f.read()
        prog = cls.from_bytes(data)
        log.debug("Read %d instructions from %s", len(prog), path)
        return prog

    @classmethod
    def build_examples(cls, prefix):
        """
        Writes a number of BPF filter examples to prefix + name + .bpfcode.
        Returns the paths written.
        """
        paths = []
        for name, insns in _examples():
            path = f"{prefix}{name}.bpfcode"
            cls(insns).write_to(path)
            paths.append(path)
        return paths


class BPFLEProgram(BPFProgram):
    _insn_layout = BPF_LAYOUT_LE


class BPFBEProgram(BPFProgram):
    _insn_layout = BPF_LAYOUT_BE


class BPFNativeProgram(BPFProgram):
    _insn_layout = BPF_LAYOUT_HOST


def _examples():
    # Classic reverse ARP example from BSD manual pages
    ETHERTYPE_REVARP = 0x8035
    REVARP_REQUEST = 3
    SIZEOF_ETHER_ARP = 28
    SIZEOF_ETHER_HEADER = 14
    yield "rarp", [
        LoadAbsolute(12, 2),
        JumpIf(JumpTest.EQUAL, ETHERTYPE_REVARP, 0, 3),
        LoadAbsolute(20, 2),
        JumpIf(JumpTest.EQUAL, REVARP_REQUEST, 0, 1),
        RetConstant(SIZEOF_ETHER_ARP + SIZEOF_ETHER_HEADER),
        RetConstant(0),
    ]

    # Classic IP address pair example from BSD manual pages
    ETHERTYPE_IP = 0x0800
    yield "ipaddr", [
        LoadAbsolute(12, 2),
        JumpIf(JumpTest.EQUAL, ETHERTYPE_IP, 0, 8),
        LoadAbsolute(26, 4),
        JumpIf(JumpTest.EQUAL, 0x8003700f, 0, 2),
        LoadAbsolute(30, 4),
        JumpIf(JumpTest.EQUAL, 0x80037023, 3, 4),
        JumpIf(JumpTest.EQUAL, 0x80037023, 0, 3),
        LoadAbsolute(30, 4),
        JumpIf(JumpTest.EQUAL, 0x8003700f, 0, 1),
        RetConstant(0xFFFFFFFF),
        RetConstant(0),
    ]

    # Classic TCP finger example from BSD manual pages
    IPPROTO_TCP = 6
    yield "tcpfinger", [
        LoadAbsolute(12, 2),
        JumpIf(JumpTest.EQUAL, ETHERTYPE_IP, 0, 10),
        LoadAbsolute(23, 1),
        JumpIf(JumpTest.EQUAL, IPPROTO_TCP, 0, 8),
        LoadAbsolute(20, 2),
        JumpIf(JumpTest.BITS_SET, 0x1fff, 6, 0),
        LoadIPv4HeaderLen(14),
        LoadIndirect(14, 2),
        JumpIf(JumpTest.EQUAL, 79, 2, 0),
        LoadIndirect(16, 2),
        JumpIf(JumpTest.EQUAL, 79, 0, 1),
        RetConstant(0xFFFFFFFF),
        RetConstant(0),
    ]

    # Linux specific instructions
    yield "linux", [
        LoadConstant(Register.A, 1337),
        LoadConstant(Register.X, 1),
        ALUOpConstant(ALUOp.MOD, 13),
        ALUOpX(ALUOp.MOD),
        ALUOpConstant(ALUOp.XOR, 0xBFBFBFBF),
        ALUOpX(ALUOp.XOR),
        LoadExtension(Extension.RAND),
        JumpIf(JumpTest.NOT_EQUAL, 0, 0, 1),
        RetA(),
        RetConstant(0),
    ]
