"""Generation of x86-64 NASM assembly from bytecode."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Callable

from .bytecode import Bytecode, OpCode, StackVariable, Value
from .utils import generate_random_text, string_to_hex_decimal

_DATA_SECTION = (
    "section .data\n"
    "    allVariable: dq 0\n"
    "    tmpValue: dq 0\n"
    "    exit_code: dq 0\n"
    "    TYPE_INT: equ 20\n"
    "    TYPE_STR: equ 10\n\n"
)

_BEG_LABEL = "    push rbp\n    mov rbp, rsp\n    ; natural code\n"
_END_LABEL = "    pop rbp\n    ret\n"

_PREAMBLE = (
    "section .text\nglobal _start\n\n",
    "%macro allocateSpace 1\n"
    "    push %1\n"
    "    call allocate\n"
    "%endmacro\n"
    "\n"
    "%macro freeSpace 2\n"
    "    push %2\n"
    "    push %1\n"
    "    call free\n"
    "%endmacro\n\n",
    "allocate:; allocate(size)\n"
    "    push rbp\n"
    "    mov rbp, rsp\n"
    "    mov rax, 9\n"
    "    xor rdi, rdi\n"
    "    mov rsi, qword[rbp+16]\n"
    "    mov rdx, 3\n"
    "    mov r10, 0x22\n"
    "    xor r8, r8\n"
    "    xor r9, r9\n"
    "    syscall\n"
    "    pop rbp\n"
    "    \n"
    "    ; remove stack parameter\n"
    "    mov rbx, qword[rsp]\n"
    "    add rsp, 16\n"
    "    push rbx\n"
    "    ret\n\n",
    "free:; free(address, size)\n"
    "    push rbp\n"
    "    mov rbp, rsp\n"
    "    mov rax, 11\n"
    "    mov rdi, qword[rbp+16] ; address\n"
    "    mov rsi, qword[rbp+24] ; size\n"
    "    syscall\n"
    "    pop rbp\n"
    "    \n"
    "    ; remove stack parameter\n"
    "    mov rbx, qword[rsp]\n"
    "    add rsp, 24\n"
    "    push rbx\n"
    "    ret\n\n",
    "print:\n"
    "    push rbp\n"
    "    mov rbp, rsp\n"
    "    mov bl, byte[rdi]\n"
    "    mov rdi, qword[rdi+1]\n"
    "    cmp bl, TYPE_STR\n"
    "    jne .print_int\n"
    "    .print_str:\n"
    "        mov rax, rdi\n"
    "        mov rbx, 0\n"
    "        .print_str_count:\n"
    "            inc rax\n"
    "            inc rbx\n"
    "            mov cl, [rax]\n"
    "            cmp cl, 0\n"
    "            jne .print_str_count\n"
    "        mov rax, 1\n"
    "        mov rsi, rdi\n"
    "        mov rdi, 1\n"
    "        mov rdx, rbx\n"
    "        syscall\n"
    "        jmp .end_print\n"
    "    .print_int:\n"
    "        mov r15, rdi\n"
    "        allocateSpace 16\n"
    "        mov rbx, rax\n"
    "        mov ecx, 0xa\n"
    "        add rax, 16\n"
    "        mov rsi, rax\n"
    "        mov byte[rsi], cl\n"
    "        mov rax, r15\n"
    "        .toascii_digit:\n"
    "            xor edx, edx\n"
    "            div ecx\n"
    "            add edx, '0'\n"
    "            dec rsi\n"
    "            mov byte[rsi], dl\n"
    "            test eax, eax\n"
    "            jnz .toascii_digit\n"
    "        mov rax, 1\n"
    "        mov rdi, 1\n"
    "        lea rdx, [rbx+16+1]\n"
    "        sub rdx, rsi\n"
    "        syscall\n"
    "        freeSpace rbx, 16\n"
    "    .end_print:\n"
    "    pop rbp\n"
    "    ret\n\n",
)

_TMPVALUE_ADD = "__system_tmpvalue_add"
_ASM = "asm"


class GeneratorError(Exception):
    """Raised when bytecode cannot be turned into assembly."""


class _Binary(Enum):
    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()
    EQU = auto()
    NEQ = auto()


_BINARY_CODE = {
    _Binary.ADD: ("    add rax, rbx\n", "    mov r15, rax\n"),
    _Binary.SUB: ("    sub rax, rbx\n", "    mov r15, rax\n"),
    _Binary.MUL: ("    mul rbx\n", "    mov r15, rax\n"),
    _Binary.DIV: ("    xor rdx, rdx\n", "    div rbx\n", "    mov r15, rax\n"),
    _Binary.EQU: (
        "    cmp rax, rbx\n",
        "    sete al\n",
        "    movzx eax, al\n",
        "    mov r15, rax\n",
    ),
    _Binary.NEQ: (
        "    cmp rax, rbx\n",
        "    setne al\n",
        "    movzx eax, al\n",
        "    mov r15, rax\n",
    ),
}


@dataclass
class _Context:
    name: str
    variables: list[StackVariable] = field(default_factory=list)

    def find(self, name: str) -> StackVariable | None:
        return next((var for var in self.variables if var.name == name), None)


class Generator:
    """Turns bytecode into a NASM program for Linux x86-64."""

    def __init__(self, random_text: Callable[[int], str] = generate_random_text) -> None:
        self._random_text = random_text
        self._reset(Bytecode())

    # -- public API ------------------------------------------------------

    def generate(self, bytecode: Bytecode) -> str:
        """Return the assembly text for ``bytecode``; the input is left unchanged."""
        self._reset(bytecode)
        while self._next_op() != OpCode.NONE:
            self._run(self._get_op())

        prologue = "" if self._has_main else "\n\nmain:\n" + _BEG_LABEL
        main_text = prologue + "".join(self._main) + _END_LABEL

        self._total_tmp -= 1
        start = (
            "\n_start:\n"
            "    allocateSpace 80\n"
            "    mov qword[allVariable], rax\n"
            "    allocateSpace 32\n"
            "    mov qword[tmpValue], rax\n"
            "    ; call main function\n"
            "    call main\n"
            "    ; exit\n"
            f"    mov rax, qword[rax+{self._total_tmp * 8}]\n"
            "    mov rbx, qword[rax+1]\n"
            "    mov rdi, rbx\n"
            "    mov rax, 60\n"
            "    syscall\n"
        )
        return "".join(self._data) + "".join(self._labels) + main_text + start

    def write(self, bytecode: Bytecode, path: str | Path = "saynaa.asm") -> Path:
        """Generate assembly for ``bytecode`` and write it to ``path``."""
        target = Path(path)
        target.write_text(self.generate(bytecode), encoding="utf-8")
        return target

    # -- state -----------------------------------------------------------

    def _reset(self, bytecode: Bytecode) -> None:
        self._code = Bytecode(
            names=list(bytecode.names),
            values=list(bytecode.values),
            lines=list(bytecode.lines),
            opcode=list(bytecode.opcode),
        )
        self._data: list[str] = [_DATA_SECTION]
        self._labels: list[str] = list(_PREAMBLE)
        self._main: list[str] = []
        self._streams: list[list[str]] = [self._main]
        self._global = _Context("main")
        self._contexts: list[_Context] = [self._global]
        self._index = -1
        self._has_main = False
        self._total_vars = 0
        self._total_tmp = 0

    @property
    def _body(self) -> list[str]:
        return self._streams[-1]

    @property
    def _context(self) -> _Context:
        return self._contexts[-1]

    def _label(self) -> str:
        return "?_" + self._random_text(7)

    # -- opcode cursor ---------------------------------------------------

    def _in_range(self, position: int) -> bool:
        return 0 <= position < len(self._code.opcode)

    def _get_op(self) -> int:
        return self._code.opcode[self._index] if self._in_range(self._index) else OpCode.NONE

    def _next_op(self) -> int:
        self._index += 1
        return self._get_op()

    def _peek_op(self, offset: int = 1) -> int:
        position = self._index + offset
        return self._code.opcode[position] if self._in_range(position) else OpCode.NONE

    def _value(self, position: int) -> Value:
        try:
            return self._code.values[position]
        except IndexError:
            raise GeneratorError(f"constant {position} does not exist") from None

    def _name(self, position: int) -> str:
        try:
            return self._code.names[position]
        except IndexError:
            raise GeneratorError(f"name {position} does not exist") from None

    def _int_value(self, position: int) -> int:
        value = self._value(position)
        if not isinstance(value, int):
            raise GeneratorError(f"constant {position} is not an integer")
        return value

    # -- emission helpers ------------------------------------------------

    def _store_variable(self, type_: str, value: str) -> None:
        self._body.append("    allocateSpace 9\n")
        self._body.append(f"    mov byte[rax], {type_}\n")
        self._body.append(f"    mov qword[rax+1], {value}\n")

    def _store_ptr_all_variable(self, location: int) -> None:
        self._body.append("    mov rbx, qword[allVariable]\n")
        self._body.append(f"    mov qword[rbx+{location}], rax\n")
        self._body.append("    mov rax, rbx\n")

    def _store_tmp_value(self) -> None:
        self._body.append("    mov rbx, qword[tmpValue]\n")
        self._body.append(f"    mov qword[rbx+{self._total_tmp * 8}], rax\n")
        self._total_tmp += 1
        self._body.append("    mov rax, rbx\n")

    def _pop_tmp_offset(self) -> int:
        self._total_tmp -= 1
        return self._total_tmp * 8

    def _get_tmp_value(self, reg: str) -> None:
        self._body.append(f"    mov {reg}, qword[tmpValue]\n")
        self._body.append(f"    mov {reg}, qword[{reg}+{self._pop_tmp_offset()}]\n")
        self._body.append(f"    mov {reg}, qword[{reg}+1]\n")

    def _binary(self, kind: _Binary) -> None:
        self._body.append("    ; begin BinaryOP\n")
        self._get_tmp_value("rbx")
        self._get_tmp_value("rax")
        self._body.extend(_BINARY_CODE[kind])
        self._store_variable("TYPE_INT", "r15")
        self._store_tmp_value()
        self._body.append("    ; End BinaryOP\n")

    def _condition_label(self, position: int, label: str) -> None:
        constant = self._code.add_constant(label)
        self._code.opcode.insert(position, OpCode.JUMP_HERE)
        self._code.lines.insert(position, 22)
        self._code.opcode.insert(position + 1, constant)
        self._code.lines.insert(position + 1, 23)

    # -- instruction handlers --------------------------------------------

    def _run(self, op: int) -> None:
        handler = self._handlers().get(op)
        if handler is not None:
            handler()

    def _handlers(self) -> dict[int, Callable[[], None]]:
        return {
            OpCode.CONSTANT: self._op_constant,
            OpCode.NOT: self._op_not,
            OpCode.NULL: lambda: self._push_int(0),
            OpCode.TRUE: lambda: self._push_int(1),
            OpCode.FALSE: lambda: self._push_int(0),
            OpCode.POP: self._op_pop,
            OpCode.SET_LOCAL: self._op_set_local,
            OpCode.GET_LOCAL: self._op_get_local,
            OpCode.DEFINE_LOCAL: self._op_define_local,
            OpCode.ADD: lambda: self._binary(_Binary.ADD),
            OpCode.SUBTRACT: lambda: self._binary(_Binary.SUB),
            OpCode.MULTIPLY: lambda: self._binary(_Binary.MUL),
            OpCode.DIVIDE: lambda: self._binary(_Binary.DIV),
            OpCode.EQUAL: lambda: self._binary(_Binary.EQU),
            OpCode.NEQU: lambda: self._binary(_Binary.NEQ),
            OpCode.PRINT: self._op_print,
            OpCode.BEG_FUNC: self._op_begin_function,
            OpCode.END_FUNC: lambda: self._body.append(_END_LABEL),
            OpCode.JUMP: self._op_jump,
            OpCode.JUMP_IF_NOT: self._op_jump_if_not,
            OpCode.JUMP_HERE: self._op_jump_here,
            OpCode.RETURN: lambda: self._body.extend(("    ; OP_RETURN\n",) * 2),
        }

    def _push_int(self, value: int) -> None:
        self._store_variable("TYPE_INT", str(value))
        self._store_tmp_value()

    def _op_pop(self) -> None:
        self._total_tmp -= 1

    def _op_constant(self) -> None:
        value = self._value(self._next_op())
        if self._peek_op() == OpCode.POP:
            self._index += 1
            return
        self._body.append("    ; tmpValue\n")
        if isinstance(value, str):
            label = self._label()
            self._data.append(f"    {label}: db {string_to_hex_decimal(value)}")
            self._body.append(f"    lea r15, [{label}]\n")
            self._store_variable("TYPE_STR", "r15")
        else:
            self._store_variable("TYPE_INT", str(value))
        self._store_tmp_value()
        self._body.append("    ; tmpValue\n")

    def _op_not(self) -> None:
        self._get_tmp_value("rax")
        self._body.extend(
            (
                "    test rax, rax\n",
                "    sete al\n",
                "    movzx eax, al\n",
                "    mov r15, rax\n",
            )
        )
        self._store_variable("TYPE_INT", "r15")
        self._store_tmp_value()

    def _op_set_local(self) -> None:
        name = self._name(self._next_op())
        context = self._context
        var = context.find(name)
        self._body.append("    ; setLocal\n")
        self._body.append(f"    mov rax, qword[rax+{self._pop_tmp_offset()}]\n")
        if var is None:
            raise GeneratorError(f"variable {name} not defined in {context.name}!")
        self._store_ptr_all_variable(var.location * 8)
        self._body.append("    ; setLocal\n")

    def _op_get_local(self) -> None:
        name = self._name(self._next_op())
        if name == _TMPVALUE_ADD:
            self._index += 1
            self._total_tmp += self._int_value(self._peek_op())
            self._index += 1
            return
        if name == _ASM:
            self._inline_asm()
            return
        if self._peek_op() == OpCode.CALL:
            self._index += 2  # CALL and its argument count
            self._body.append(f"    call {name}\n")
            return
        context = self._context
        var = context.find(name)
        if var is None:
            raise GeneratorError(f"variable {name} not defined {context.name}!")
        self._body.append("    ; getLocal\n")
        self._body.append("    mov rax, qword[allVariable]\n")
        self._body.append(f"    mov rbx, qword[rax+{var.location * 8}]\n")
        self._body.append("    mov rax, rbx\n")
        self._store_tmp_value()
        self._body.append("    ; getLocal\n")

    def _inline_asm(self) -> None:
        self._index += 1
        flag = self._int_value(self._peek_op())
        self._index += 2
        value = self._value(self._peek_op())
        if not isinstance(value, str):
            raise GeneratorError("Expect asm code after function asm")
        self._body.append(value + "\n")
        if flag == 1:
            while self._peek_op() != OpCode.END_FUNC or not self._in_range(self._index + 1):
                if not self._in_range(self._index + 1):
                    raise GeneratorError("Unexpected end")
                self._index += 1
        else:
            self._index += 1

    def _op_define_local(self) -> None:
        name = self._name(self._next_op())
        context = self._context
        existing = context.find(name)
        self._body.append("    ; defineLocal\n")
        self._body.append(f"    mov rax, qword[rax+{self._pop_tmp_offset()}]\n")
        if existing is not None:
            raise GeneratorError(f"variable {name} is already defined in {context.name}!")
        context.variables.append(StackVariable(name, self._total_vars))
        self._store_ptr_all_variable(self._total_vars * 8)
        self._total_vars += 1
        self._body.append("    ; defineLocal\n")

    def _op_print(self) -> None:
        self._body.append("    ; print\n")
        self._body.append(f"    mov rdi, qword[rax+{self._pop_tmp_offset()}]\n")
        self._body.append("    call print\n")
        self._body.append("    ; print\n")

    def _op_begin_function(self) -> None:
        stream: list[str] = []
        parent = self._context
        self._streams.append(stream)
        label = self._name(self._next_op())
        is_main = label == "main"
        if is_main:
            self._has_main = True
        inherited = [] if parent is self._global else list(parent.variables)
        self._contexts.append(_Context(label, inherited))

        stream.append(f"{label}:\n")
        stream.append(_BEG_LABEL)
        while True:
            op = self._next_op()
            if not self._in_range(self._index):
                raise GeneratorError("Unexpected end")
            if op == OpCode.END_FUNC:
                break
            self._run(op)
        if not is_main:
            self._run(self._get_op())

        self._streams.pop()
        self._contexts.pop()
        self._labels.append("".join(stream))

    def _op_jump(self) -> None:
        self._body.append("    ; OP_JUMP\n")
        target = self._next_op()
        label = self._label()
        self._body.append(f"    ; {label}\n")
        self._condition_label(target, label)
        self._body.append(f"    jmp {label}\n")

    def _op_jump_if_not(self) -> None:
        self._body.append("    ; OP_JUMP_IF_NOT\n")
        target = self._next_op()
        label = self._label()
        self._body.append(f"    ; {label}\n")
        self._condition_label(target, label)
        self._body.append(f"    mov rax, qword[rax+{self._pop_tmp_offset()}]\n")
        self._body.append("    mov rax, qword[rax+1]\n")
        self._body.append("    cmp rax, 0\n")
        self._body.append(f"    jz {label}\n")

    def _op_jump_here(self) -> None:
        self._body.append("    ; OP_JUMP_HERE\n")
        label = self._value(self._next_op())
        if not isinstance(label, str):
            raise GeneratorError("jump target is not a label")
        self._body.append(f"{label}:\n")