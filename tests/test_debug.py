import io

from saynaa.bytecode import Bytecode, OpCode
from saynaa.debug import Disassembler


def _listing(bc, name="code"):
    out = io.StringIO()
    Disassembler(bc, stream=out).disassemble(name)
    return out.getvalue()


def test_full_listing_worked_example():
    bc = Bytecode()
    bc.emit(OpCode.CONSTANT, 1)
    bc.emit(bc.add_constant(42), 1)
    bc.emit(OpCode.RETURN, 2)
    assert _listing(bc) == (
        "== code ==\n"
        "0000    1 OP_CONSTANT       0   '42'\n"
        "0002    2 OP_RETURN\n"
        "== code ==\n"
    )


def test_headers_wrap_listing():
    bc = Bytecode()
    bc.emit(OpCode.NULL, 1)
    lines = _listing(bc, "OPCODE").splitlines()
    assert lines[0] == lines[-1] == "== OPCODE =="
    assert len(lines) == 3


def test_same_line_uses_bar_marker():
    bc = Bytecode()
    bc.emit(OpCode.TRUE, 4)
    bc.emit(OpCode.PRINT, 4)
    lines = _listing(bc).splitlines()[1:-1]
    assert "|" not in lines[0]
    assert lines[1].startswith("0001    | OP_PRINT")


def test_simple_instruction_advances_by_one():
    bc = Bytecode()
    bc.emit(OpCode.ADD, 1)
    out = io.StringIO()
    assert Disassembler(bc, stream=out).disassemble_instruction(0) == 1
    assert out.getvalue().rstrip().endswith("OP_ADD")


def test_name_operand_shows_name():
    bc = Bytecode()
    bc.emit(OpCode.BEG_FUNC, 1)
    bc.emit(bc.add_name("main"), 1)
    out = io.StringIO()
    assert Disassembler(bc, stream=out).disassemble_instruction(0) == 2
    text = out.getvalue()
    assert "OP_BEG_FUNC" in text
    assert text.rstrip().endswith("'main'")


def test_string_constant_shown_verbatim():
    bc = Bytecode()
    bc.emit(OpCode.JUMP_HERE, 1)
    bc.emit(bc.add_constant("?_label"), 1)
    assert "'?_label'" in _listing(bc)


def test_jump_shows_target():
    bc = Bytecode()
    bc.emit(OpCode.JUMP_IF_NOT, 1)
    bc.emit(7, 1)
    out = io.StringIO()
    assert Disassembler(bc, stream=out).disassemble_instruction(0) == 2
    assert "'goto:7'" in out.getvalue()
    assert "OP_JUMP_IF_NOT" in out.getvalue()


def test_call_shows_argument_count():
    bc = Bytecode()
    bc.emit(OpCode.CALL, 1)
    bc.emit(3, 1)
    out = io.StringIO()
    assert Disassembler(bc, stream=out).disassemble_instruction(0) == 2
    assert out.getvalue().split("OP_CALL", 1)[1].strip() == "3"


def test_unlisted_opcode_reported_unknown():
    bc = Bytecode()
    bc.emit(OpCode.PARAM, 1)
    bc.emit(999, 1)
    text = _listing(bc)
    assert f"Unknown opcode {int(OpCode.PARAM)}" in text
    assert "Unknown opcode 999" in text


def test_disabled_writes_nothing_but_advances():
    bc = Bytecode()
    bc.emit(OpCode.CONSTANT, 1)
    bc.emit(bc.add_constant(1), 1)
    out = io.StringIO()
    dis = Disassembler(bc, stream=out, enabled=False)
    assert dis.disassemble_instruction(0) == 2
    dis.disassemble("x")
    assert out.getvalue() == ""


def test_defaults_to_stdout(capsys):
    bc = Bytecode()
    bc.emit(OpCode.POP, 1)
    Disassembler(bc).disassemble("std")
    assert "OP_POP" in capsys.readouterr().out