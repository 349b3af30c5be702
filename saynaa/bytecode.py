"""Bytecode container shared by the compiler, disassembler and generator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, auto
from typing import Union

Value = Union[int, str]


class OpCode(IntEnum):
    """Instruction codes; operands are stored inline after the opcode."""

    CONSTANT = 0
    NULL = auto()
    TRUE = auto()
    FALSE = auto()
    POP = auto()
    DEFINE_LOCAL = auto()
    SET_LOCAL = auto()
    GET_LOCAL = auto()
    EQUAL = auto()
    NEQU = auto()
    GREATER = auto()
    LESS = auto()
    ADD = auto()
    SUBTRACT = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    NOT = auto()
    NEGATE = auto()
    PARAM = auto()
    BEG_FUNC = auto()
    END_FUNC = auto()
    CALL = auto()
    PRINT = auto()
    JUMP = auto()
    JUMP_IF_NOT = auto()
    JUMP_HERE = auto()
    RETURN = auto()
    TEST = auto()
    NONE = auto()


@dataclass
class Bytecode:
    """A flat instruction stream with its name table, constants and lines."""

    names: list[str] = field(default_factory=list)
    values: list[Value] = field(default_factory=list)
    lines: list[int] = field(default_factory=list)
    opcode: list[int] = field(default_factory=list)

    def add_constant(self, value: Value) -> int:
        """Append a constant and return its index."""
        self.values.append(value)
        return len(self.values) - 1

    def add_name(self, name: str) -> int:
        """Append a name and return its index."""
        self.names.append(name)
        return len(self.names) - 1

    def emit(self, op: int, line: int) -> int:
        """Append an opcode or operand with its source line; return its offset."""
        self.opcode.append(int(op))
        self.lines.append(line)
        return len(self.opcode) - 1

    def __len__(self) -> int:
        return len(self.opcode)


@dataclass
class StackVariable:
    """A variable and its slot in the generated program's variable table."""

    name: str
    location: int = 0