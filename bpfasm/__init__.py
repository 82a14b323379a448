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


"""
Classic BPF instruction assembler and disassembler.
"""

from .bpf import BPF_LAYOUT_BE, BPF_LAYOUT_HOST, BPF_LAYOUT_LE, BPF_MAXINSNS, BPF_MEMWORDS
from .bpfc import (
    AssemblyError,
    BPFBEProgram,
    BPFLEProgram,
    BPFNativeProgram,
    BPFProgram,
    assemble_program,
    disassemble_program,
)
from .bpfdis import disassemble
from .bpfinsn import (
    ALUOp,
    ALUOpConstant,
    ALUOpX,
    Extension,
    Instruction,
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
    assemble,
)
from .bpftext import ParseError, format_instruction, format_raw, parse_raw

EncodingError = Instruction.EncodingError
InvalidRegisterError = Instruction.InvalidRegisterError
InvalidLoadWidthError = Instruction.InvalidLoadWidthError
InvalidScratchSlotError = Instruction.InvalidScratchSlotError
UnknownJumpTestError = Instruction.UnknownJumpTestError

__version__ = "0.1.0"
