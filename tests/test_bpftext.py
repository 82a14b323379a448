"""Tests for bpf_asm mnemonics and tcpdump -dd records."""

import pytest

from bpfasm import (
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
    ParseError,
    RawInstruction,
    Register,
    RetA,
    RetConstant,
    StoreScratch,
    TAX,
    TXA,
    format_instruction,
    format_raw,
    parse_raw,
)


class TestFormatInstruction:

    @pytest.mark.parametrize("insn, text", [
        (LoadConstant(Register.A, 1337), "ld #0x539"),
        (LoadConstant(Register.X, 1), "ldx #0x1"),
        (LoadScratch(Register.A, 3), "ld M[3]"),
        (LoadScratch(Register.X, 15), "ldx M[15]"),
        (LoadAbsolute(14, 2), "ldh [0xe]"),
        (LoadAbsolute(23, 1), "ldb [0x17]"),
        (LoadAbsolute(26, 4), "ld [0x1a]"),
        (LoadIndirect(14, 2), "ldh [x + 0xe]"),
        (LoadIPv4HeaderLen(14), "ldxb 4*([0xe]&0xf)"),
        (LoadExtension(Extension.LEN), "ld #len"),
        (LoadExtension(Extension.VLAN_TAG), "ld #vlan_tci"),
        (StoreScratch(Register.A, 1), "st M[1]"),
        (StoreScratch(Register.X, 2), "stx M[2]"),
        (ALUOpConstant(ALUOp.SHIFT_LEFT, 2), "lsh #0x2"),
        (ALUOpX(ALUOp.SUB), "sub x"),
        (NegateA(), "neg"),
        (Jump(4), "ja 4"),
        (JumpIf(JumpTest.EQUAL, 0x800, 0, 3), "jeq #0x800,0,3"),
        (JumpIf(JumpTest.NOT_EQUAL, 0x800, 0, 3), "jneq #0x800,0,3"),
        (JumpIf(JumpTest.LESS_OR_EQUAL, 1, 2, 3), "jle #0x1,2,3"),
        (JumpIf(JumpTest.BITS_NOT_SET, 0x1fff, 1, 2), "jset #0x1fff,2,1"),
        (RetA(), "ret a"),
        (RetConstant(0), "ret #0x0"),
        (TXA(), "txa"),
        (TAX(), "tax"),
        (RawInstruction(0xffff, 1, 2, 3), "unknown instruction: { 0xffff, 1, 2, 0x00000003 }"),
    ])
    def test_format(self, insn, text):
        assert format_instruction(insn) == text
        assert str(insn) == text

    def test_every_extension_has_a_name(self):
        for ext in Extension:
            assert "?" not in format_instruction(LoadExtension(ext))

    def test_rejects_non_instructions(self):
        with pytest.raises(TypeError):
            format_instruction("ld #1")


class TestFormatRaw:

    def test_tcpdump_dd_line(self):
        assert format_raw(RawInstruction(0x28, 0, 0, 0xc)) == "{ 0x28, 0, 0, 0x0000000c },"

    def test_round_trips_through_parser(self):
        raw = RawInstruction(0x15, 0, 27, 0x800)
        assert parse_raw(format_raw(raw)) == [raw]


class TestParseRaw:

    BPFDOOR_HEAD = """
        { 0x28, 0, 0, 0x0000000c },
        { 0x15, 0, 27, 0x00000800 },
        { 0x30, 0, 0, 0x00000017 },
        { 0xb1, 0, 0, 0x0000000e },
        { 0x6, 0, 0, 0x0000ffff },
    """

    def test_parse(self):
        assert parse_raw(self.BPFDOOR_HEAD) == [
            RawInstruction(0x28, 0, 0, 0xc),
            RawInstruction(0x15, 0, 27, 0x800),
            RawInstruction(0x30, 0, 0, 0x17),
            RawInstruction(0xb1, 0, 0, 0xe),
            RawInstruction(0x6, 0, 0, 0xffff),
        ]

    def test_comments_and_blank_lines(self):
        text = "// ether type\n\n{ 0x28, 0, 0, 12 }, # ldh [12]\n"
        assert parse_raw(text) == [RawInstruction(0x28, 0, 0, 12)]

    def test_empty(self):
        assert parse_raw("") == []

    def test_wrong_field_count(self):
        with pytest.raises(ParseError) as exc_info:
            parse_raw("{ 0x28, 0, 0, 12 },\n{ 0x28, 0, 12 },\n")
        assert exc_info.value.lineno == 2
        assert "line 2" in str(exc_info.value)

    def test_not_a_number(self):
        with pytest.raises(ParseError) as exc_info:
            parse_raw("{ 0x28, 0, 0, twelve },")
        assert exc_info.value.lineno == 1

    @pytest.mark.parametrize("line", [
        "{ 0x10000, 0, 0, 0 },",
        "{ 0x28, 256, 0, 0 },",
        "{ 0x28, 0, -1, 0 },",
        "{ 0x28, 0, 0, 0x100000000 },",
    ])
    def test_out_of_range(self, line):
        with pytest.raises(ParseError, match="out of range"):
            parse_raw(line)
