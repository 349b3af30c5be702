from saynaa.bytecode import Bytecode, OpCode, StackVariable


def test_add_constant_returns_sequential_indices():
    bc = Bytecode()
    first = bc.add_constant(5)
    second = bc.add_constant("text")
    assert (first, second) == (0, 1)
    assert bc.values == [5, "text"]


def test_add_name_returns_index_of_name():
    bc = Bytecode()
    bc.add_name("x")
    index = bc.add_name("y")
    assert bc.names[index] == "y"
    assert len(bc.names) == index + 1


def test_emit_keeps_opcode_and_lines_parallel():
    bc = Bytecode()
    bc.emit(OpCode.CONSTANT, 1)
    bc.emit(bc.add_constant(3), 1)
    offset = bc.emit(OpCode.RETURN, 2)
    assert offset == len(bc) - 1
    assert len(bc.opcode) == len(bc.lines)
    assert bc.opcode[offset] == OpCode.RETURN
    assert bc.lines == [1, 1, 2]


def test_emit_stores_plain_ints_in_declared_order():
    bc = Bytecode()
    for op in OpCode:
        bc.emit(op, 0)
    assert bc.opcode == list(range(len(OpCode)))
    assert all(type(code) is int for code in bc.opcode)
    assert bc.opcode[-1] == OpCode.NONE


def test_fresh_bytecode_instances_do_not_share_lists():
    a = Bytecode()
    b = Bytecode()
    a.emit(OpCode.NULL, 1)
    assert len(b) == 0


def test_stack_variable_default_location():
    var = StackVariable("count")
    assert var.location == 0
    assert StackVariable("count", 3) == StackVariable(name="count", location=3)