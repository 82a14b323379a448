"""Tests for disassembling raw records back into instructions."""

import logging

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
    RawInstruction,
    Register,
    RetA,
    RetConstant,
    StoreScratch,
    TAX,
    TXA,
    assemble,
    disassemble,
)


VALID_INSNS = [
    LoadConstant(Register.A, 0xdeadbeef),
    LoadConstant(Register.X, 1),
    LoadScratch(Register.A, 0),
    LoadScratch(Register.X, 15),
    LoadAbsolute(14, 2),
    LoadAbsolute(23, 1),
    LoadAbsolute(26, 4),
    LoadAbsolute(0x1000, 4),
    LoadIndirect(14, 1),
    LoadIndirect(16, 2),
    LoadIndirect(0, 4),
    LoadIPv4HeaderLen(14),
    StoreScratch(Register.A, 15),
    StoreScratch(Register.X, 0),
    NegateA(),
    Jump(1000),
    JumpIf(JumpTest.EQUAL, 0x800, 0, 27),
    JumpIf(JumpTest.GREATER_THAN, 0, 255, 255),
    JumpIf(JumpTest.GREATER_OR_EQUAL, 0xffffffff, 1, 0),
    JumpIf(JumpTest.BITS_SET, 0x1fff, 6, 0),
    RetA(),
    RetConstant(0),
    RetConstant(0xffffffff),
    TXA(),
    TAX(),
] + [
    LoadExtension(ext) for ext in Extension
] + [
    ALUOpConstant(op, 7) for op in ALUOp
] + [
    ALUOpX(op) for op in ALUOp
]


class TestForwardRoundTrip:
    """Valid instructions survive assemble then disassemble unchanged."""

    @pytest.mark.parametrize("insn", VALID_INSNS, ids=repr)
    def test_round_trip(self, insn):
        assert disassemble(assemble(insn)) == insn

    def test_load_absolute_half_word(self):
        raw = assemble(LoadAbsolute(14, 2))
        assert raw == RawInstruction(0x28, 0, 0, 14)
        assert disassemble(raw) == LoadAbsolute(14, 2)

    def test_method_form(self):
        assert RawInstruction(0x16).disassemble() == RetA()


class TestRawRoundTrip:
    """Disassemble then assemble never changes the bits."""

    def test_every_opcode(self):
        for op in range(0x100):
            for jt, jf, k in ((0, 0, 0), (0, 0, 15), (0, 0, 16), (1, 2, 0x800), (0, 0, 0xfffff038)):
                raw = RawInstruction(op, jt, jf, k)
                assert assemble(disassemble(raw)) == raw, raw

    def test_high_opcode_bits(self):
        for op in (0x100, 0x104, 0x128, 0x8015, 0xffff):
            raw = RawInstruction(op, 0, 0, 1)
            assert disassemble(raw) is raw


class TestCanonicalJumps:
    """Negated tests come back as their canonical complement."""

    @pytest.mark.parametrize("negated, canonical", [
        (JumpTest.NOT_EQUAL, JumpTest.EQUAL),
        (JumpTest.LESS_THAN, JumpTest.GREATER_OR_EQUAL),
        (JumpTest.LESS_OR_EQUAL, JumpTest.GREATER_THAN),
        (JumpTest.BITS_NOT_SET, JumpTest.BITS_SET),
    ])
    def test_decodes_to_canonical(self, negated, canonical):
        expected = JumpIf(canonical, 99, 5, 2)
        assert disassemble(assemble(JumpIf(negated, 99, 2, 5))) == expected
        assert disassemble(assemble(JumpIf(canonical, 99, 5, 2))) == expected

    def test_jump_with_x_source_is_raw(self):
        raw = RawInstruction(0x1d, 1, 2, 0)
        assert disassemble(raw) is raw

    def test_unknown_jump_op_is_raw(self):
        raw = RawInstruction(0x55, 1, 2, 0)
        assert disassemble(raw) is raw


class TestExtensions:

    def test_rand(self):
        assert disassemble(assemble(LoadExtension(Extension.RAND))) == LoadExtension(Extension.RAND)

    def test_len_uses_own_mode(self):
        assert disassemble(RawInstruction(0x80)) == LoadExtension(Extension.LEN)

    def test_absolute_load_at_extension_offset(self):
        # indistinguishable from ld #rand on the wire
        assert disassemble(assemble(LoadAbsolute(0xfffff038, 4))) == LoadExtension(Extension.RAND)
        assert disassemble(assemble(LoadAbsolute(0xfffff000, 4))) == LoadExtension(Extension.PROTO)

    def test_absolute_load_at_undefined_code(self):
        assert disassemble(assemble(LoadAbsolute(0xfffff002, 4))) == LoadAbsolute(0xfffff002, 4)

    def test_absolute_load_at_len_offset(self):
        assert disassemble(assemble(LoadAbsolute(0xfffff001, 4))) == LoadAbsolute(0xfffff001, 4)

    def test_narrow_absolute_load_never_extension(self):
        assert disassemble(assemble(LoadAbsolute(0xfffff038, 2))) == LoadAbsolute(0xfffff038, 2)

    def test_decoded_value_is_extension_member(self):
        insn = disassemble(RawInstruction(0x20, 0, 0, 0xfffff008))
        assert insn.num is Extension.INTERFACE_INDEX


class TestFallback:
    """Unrecognized or out-of-range patterns pass through as raw."""

    @pytest.mark.parametrize("op", [0x60, 0x61, 0x02, 0x03])
    def test_scratch_overflow(self, op):
        raw = RawInstruction(op, 0, 0, 16)
        assert disassemble(raw) is raw

    def test_scratch_in_range(self):
        assert disassemble(RawInstruction(0x60, 0, 0, 15)) == LoadScratch(Register.A, 15)

    @pytest.mark.parametrize("op", [
        0x81, # ldx len
        0x18, # ld with invalid size
        0xa0, # ld msh
        0xb0, # ld mode 0xb0 with width 1
        0x8c, # neg with x source
        0xb4, # alu op 0xb0
        0x0e, # ret with invalid rval
        0x27, # misc cop
    ])
    def test_unknown_opcodes(self, op):
        raw = RawInstruction(op, 0, 0, 0)
        assert disassemble(raw) is raw

    @pytest.mark.parametrize("raw", [
        RawInstruction(0x16, 0, 0, 1),
        RawInstruction(0x07, 1, 0, 0),
        RawInstruction(0x28, 0, 1, 14),
        RawInstruction(0x05, 1, 1, 3),
        RawInstruction(0x84, 0, 0, 5),
        RawInstruction(0x0c, 0, 0, 1),
        RawInstruction(0x80, 0, 0, 4),
    ])
    def test_stray_operands(self, raw):
        assert disassemble(raw) is raw

    def test_fallback_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="bpfasm.bpfdis"):
            disassemble(RawInstruction(0x60, 0, 0, 16))
        assert "Passing through" in caplog.text

    @pytest.mark.parametrize("op", [0x60, 0x61, 0x02, 0x03])
    def test_scratch_negative_slot(self, op):
        raw = RawInstruction(op, 0, 0, -1)
        assert disassemble(raw) is raw
