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


import argparse
import logging
import sys

from .bpfc import AssemblyError, BPFBEProgram, BPFLEProgram, BPFNativeProgram
from .bpfinsn import RawInstruction
from .bpftext import ParseError, format_instruction, format_raw, parse_raw


log = logging.getLogger(__name__)


_PROGRAM_CLASSES = {
    "le": BPFLEProgram,
    "be": BPFBEProgram,
    "native": BPFNativeProgram,
}


def cmd_disasm(cls, args):
    prog = cls.read_from(args.file)
    for i, insn in enumerate(prog.disassemble()):
        print(f"{i:04d}:  {format_raw(prog[i]):<34} {format_instruction(insn)}")
    return 0


def cmd_compile(cls, args):
    with open(args.file) as f:
        text = f.read()
    prog = cls(parse_raw(text))
    prog.write_to(args.output)
    log.info("Compiled %d instructions into %s", len(prog), args.output)
    return 0


def cmd_examples(cls, args):
    for path in cls.build_examples(args.prefix):
        log.info("Wrote %s", path)
    return 0


def build_parser():
    p = argparse.ArgumentParser(prog="bpfasm", description="Classic BPF assembler and disassembler")
    p.add_argument("--endian", choices=sorted(_PROGRAM_CLASSES), default="le",
                   help="Byte order of binary programs (default: le)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("disasm", help="Disassemble a binary program")
    sp.add_argument("file", help="Path to binary program")
    sp.set_defaults(func=cmd_disasm)

    sp = sub.add_parser("compile", help="Compile tcpdump -dd output into a binary program")
    sp.add_argument("file", help="Path to tcpdump -dd output")
    sp.add_argument("-o", "--output", required=True, help="Path to binary program")
    sp.set_defaults(func=cmd_compile)

    sp = sub.add_parser("examples", help="Write example programs")
    sp.add_argument("prefix", help="Path prefix for the .bpfcode files")
    sp.set_defaults(func=cmd_examples)

    return p


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(name)s: %(levelname)s: %(message)s")
    try:
        return args.func(_PROGRAM_CLASSES[args.endian], args)
    except (OSError, ParseError, AssemblyError, RawInstruction.DecodingError) as e:
        print(f"bpfasm: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
