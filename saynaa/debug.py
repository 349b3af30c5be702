"""Human-readable listing of a bytecode stream."""

from __future__ import annotations

import sys
from typing import TextIO

from .bytecode import Bytecode, OpCode

_SIMPLE = frozenset(
    {
        OpCode.NULL,
        OpCode.TRUE,
        OpCode.FALSE,
        OpCode.POP,
        OpCode.EQUAL,
        OpCode.NEQU,
        OpCode.GREATER,
        OpCode.LESS,
        OpCode.ADD,
        OpCode.SUBTRACT,
        OpCode.MULTIPLY,
        OpCode.DIVIDE,
        OpCode.NOT,
        OpCode.NEGATE,
        OpCode.PRINT,
        OpCode.END_FUNC,
        OpCode.RETURN,
        OpCode.TEST,
        OpCode.NONE,
    }
)
_CONSTANT_VALUE = frozenset({OpCode.CONSTANT, OpCode.JUMP_HERE})
_CONSTANT_NAME = frozenset(
    {OpCode.SET_LOCAL, OpCode.GET_LOCAL, OpCode.DEFINE_LOCAL, OpCode.BEG_FUNC}
)
_JUMP = frozenset({OpCode.JUMP, OpCode.JUMP_IF_NOT})


class Disassembler:
    """Writes one line per instruction of a bytecode stream."""

    def __init__(
        self,
        bytecode: Bytecode,
        stream: TextIO | None = None,
        enabled: bool = True,
    ) -> None:
        self.bytecode = bytecode
        self.stream = stream
        self.enabled = enabled

    def _write(self, text: str) -> None:
        if self.enabled:
            (self.stream or sys.stdout).write(text)

    def disassemble(self, name: str) -> None:
        """List every instruction between two headers carrying ``name``."""
        self._write(f"== {name} ==\n")
        offset = 0
        while offset < len(self.bytecode.opcode):
            offset = self.disassemble_instruction(offset)
        self._write(f"== {name} ==\n")

    def disassemble_instruction(self, offset: int) -> int:
        """List the instruction at ``offset`` and return the next offset."""
        code = self.bytecode
        if self.enabled:
            line = code.lines[offset]
            if offset > 0 and line == code.lines[offset - 1]:
                marker = "   | "
            else:
                marker = f"   {line} "
            self._write(f"{offset:04d} {marker}")

        instruction = code.opcode[offset]
        try:
            op = OpCode(instruction)
        except ValueError:
            op = None

        if op in _SIMPLE:
            self._write(f"OP_{op.name}\n")
            return offset + 1
        if op in _CONSTANT_VALUE:
            operand = code.opcode[offset + 1]
            if self.enabled:
                self._write(f"{'OP_' + op.name:<18}{operand:<4}'{code.values[operand]}'\n")
            return offset + 2
        if op in _CONSTANT_NAME:
            operand = code.opcode[offset + 1]
            if self.enabled:
                self._write(f"{'OP_' + op.name:<18}{operand:<4}'{code.names[operand]}'\n")
            return offset + 2
        if op in _JUMP:
            operand = code.opcode[offset + 1]
            self._write(f"{'OP_' + op.name:<18}{'':<4}'goto:{operand}'\n")
            return offset + 2
        if op is OpCode.CALL:
            operand = code.opcode[offset + 1]
            self._write(f"{'OP_CALL':<18}{operand:<4}\n")
            return offset + 2

        self._write(f"Unknown opcode {instruction}\n")
        return offset + 1