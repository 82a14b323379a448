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


class ParseError(ValueError):
    def __init__(self, lineno, message):
        super().__init__(f"line {lineno}: {message}")
        self.lineno = lineno


_LD_MNEMONIC_MAP = {
    4: "ld",
    2: "ldh",
    1: "ldb",
}

_ALU_MNEMONIC_MAP = {
    ALUOp.ADD: "add",
    ALUOp.SUB: "sub",
    ALUOp.MUL: "mul",
    ALUOp.DIV: "div",
    ALUOp.AND: "and",
    ALUOp.OR: "or",
    ALUOp.SHIFT_LEFT: "lsh",
    ALUOp.SHIFT_RIGHT: "rsh",
    ALUOp.MOD: "mod",
    ALUOp.XOR: "xor",
}

_JMP_MNEMONIC_MAP = {
    JumpTest.EQUAL: "jeq",
    JumpTest.NOT_EQUAL: "jneq",
    JumpTest.GREATER_THAN: "jgt",
    JumpTest.LESS_THAN: "jlt",
    JumpTest.GREATER_OR_EQUAL: "jge",
    JumpTest.LESS_OR_EQUAL: "jle",
    JumpTest.BITS_SET: "jset",
}

_EXT_MNEMONIC_MAP = {
    Extension.LEN: "len",
    Extension.PROTO: "proto",
    Extension.TYPE: "type",
    Extension.PAYLOAD_OFFSET: "poff",
    Extension.INTERFACE_INDEX: "ifidx",
    Extension.NETLINK_ATTR: "nla",
    Extension.NETLINK_ATTR_NESTED: "nlan",
    Extension.MARK: "mark",
    Extension.QUEUE: "queue",
    Extension.LINK_LAYER_TYPE: "hatype",
    Extension.RX_HASH: "rxhash",
    Extension.CPU_ID: "cpu",
    Extension.VLAN_TAG: "vlan_tci",
    Extension.VLAN_TAG_PRESENT: "vlan_avail",
    Extension.VLAN_PROTO: "vlan_tpid",
    Extension.RAND: "rand",
}


def _ld(dst):
    return "ldx" if dst is Register.X else "ld"


def _st(src):
    return "stx" if src is Register.X else "st"


def format_raw(raw):
    """
    Formats raw as one line of tcpdump -dd output.
    """
    return f"{{ {raw.op:#x}, {raw.jt}, {raw.jf}, {raw.k:#010x} }},"


def format_instruction(insn):
    """
    Formats insn in bpf_asm syntax.
    """
    if isinstance(insn, LoadConstant):
        return f"{_ld(insn.dst)} #{insn.val:#x}"
    elif isinstance(insn, LoadScratch):
        return f"{_ld(insn.dst)} M[{insn.n}]"
    elif isinstance(insn, LoadAbsolute):
        return f"{_LD_MNEMONIC_MAP.get(insn.size, 'ld?')} [{insn.off:#x}]"
    elif isinstance(insn, LoadIndirect):
        return f"{_LD_MNEMONIC_MAP.get(insn.size, 'ld?')} [x + {insn.off:#x}]"
    elif isinstance(insn, LoadIPv4HeaderLen):
        return f"ldxb 4*([{insn.off:#x}]&0xf)"
    elif isinstance(insn, LoadExtension):
        return f"ld #{_EXT_MNEMONIC_MAP.get(insn.num, '?')}"
    elif isinstance(insn, StoreScratch):
        return f"{_st(insn.src)} M[{insn.n}]"
    elif isinstance(insn, ALUOpConstant):
        return f"{_ALU_MNEMONIC_MAP.get(insn.op, '?')} #{insn.val:#x}"
    elif isinstance(insn, ALUOpX):
        return f"{_ALU_MNEMONIC_MAP.get(insn.op, '?')} x"
    elif isinstance(insn, NegateA):
        return "neg"
    elif isinstance(insn, Jump):
        return f"ja {insn.skip}"
    elif isinstance(insn, JumpIf):
        # there is no jnset mnemonic
        if insn.cond == JumpTest.BITS_NOT_SET:
            return f"jset #{insn.val:#x},{insn.skip_false},{insn.skip_true}"
        return f"{_JMP_MNEMONIC_MAP.get(insn.cond, '?')} #{insn.val:#x},{insn.skip_true},{insn.skip_false}"
    elif isinstance(insn, RetA):
        return "ret a"
    elif isinstance(insn, RetConstant):
        return f"ret #{insn.val:#x}"
    elif isinstance(insn, TXA):
        return "txa"
    elif isinstance(insn, TAX):
        return "tax"
    elif isinstance(insn, RawInstruction):
        return f"unknown instruction: {format_raw(insn).rstrip(',')}"
    raise TypeError(f"Not a BPF instruction: {insn!r}")


_FIELD_LIMITS = (
    ("code", 0xffff),
    ("jt", 0xff),
    ("jf", 0xff),
    ("k", 0xffffffff),
)


def parse_raw(text):
    """
    Parses tcpdump -dd output, one { code, jt, jf, k } record per line, into
    a list of RawInstructions.  Blank lines and // or # comments are skipped.
    """
    insns = []
    for lineno, line in enumerate(text.splitlines(), 1):
        for sep in ("//", "#"):
            line = line.split(sep, 1)[0]
        for rmc in ("{", ",", "}"):
            line = line.replace(rmc, " ")
        fields = line.split()
        if not fields:
            continue
        if len(fields) != 4:
            raise ParseError(lineno, f"Expected 4 fields, got {len(fields)}")
        try:
            ints = [int(x, 0) for x in fields]
        except ValueError as e:
            raise ParseError(lineno, str(e)) from e
        for (name, limit), value in zip(_FIELD_LIMITS, ints):
            if not 0 <= value <= limit:
                raise ParseError(lineno, f"{name} {value:#x} out of range")
        insns.append(RawInstruction(*ints))
    return insns
