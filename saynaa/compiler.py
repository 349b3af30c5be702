"""Single-pass compiler from source text to bytecode."""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, Optional, TextIO

from .bytecode import Bytecode, OpCode, Value
from .debug import Disassembler
from .tokenizer import Scanner, Token, TokenType


class CompileError(Exception):
    """Raised when the source holds one or more syntax errors."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(self.errors))


class _Prec(IntEnum):
    NONE = 0
    ASSIGNMENT = 1
    OR = 2
    AND = 3
    EQUALITY = 4
    COMPARISON = 5
    TERM = 6
    FACTOR = 7
    UNARY = 8
    CALL = 9
    PRIMARY = 10


_ParseFn = Optional[Callable[[], None]]

_BINARY_OPS: dict[TokenType, tuple[OpCode, ...]] = {
    TokenType.NOTEQ: (OpCode.NEQU,),
    TokenType.EQEQ: (OpCode.EQUAL,),
    TokenType.GT: (OpCode.GREATER,),
    TokenType.GTEQ: (OpCode.LESS, OpCode.NOT),
    TokenType.LT: (OpCode.LESS,),
    TokenType.LTEQ: (OpCode.GREATER, OpCode.NOT),
    TokenType.PLUS: (OpCode.ADD,),
    TokenType.MINUS: (OpCode.SUBTRACT,),
    TokenType.STAR: (OpCode.MULTIPLY,),
    TokenType.SLASH: (OpCode.DIVIDE,),
}

_LITERALS = {
    TokenType.FALSE: OpCode.FALSE,
    TokenType.NULL: OpCode.NULL,
    TokenType.TRUE: OpCode.TRUE,
}


class Parser:
    """Pratt parser that emits bytecode while it reads tokens."""

    def __init__(self, scanner: Scanner, listing: TextIO | None = None) -> None:
        self._scanner = scanner
        self._listing = listing
        self._current = Token(TokenType.EOF, "", 1)
        self._previous = self._current
        self._code = Bytecode()
        self._has_main = False
        self.errors: list[str] = []
        self._rules: dict[TokenType, tuple[_ParseFn, _ParseFn, _Prec]] = {
            TokenType.LPARAN: (self._grouping, self._call, _Prec.CALL),
            TokenType.MINUS: (self._unary, self._binary, _Prec.TERM),
            TokenType.PLUS: (None, self._binary, _Prec.TERM),
            TokenType.SLASH: (None, self._binary, _Prec.FACTOR),
            TokenType.STAR: (None, self._binary, _Prec.FACTOR),
            TokenType.NOT: (self._unary, None, _Prec.NONE),
            TokenType.NOTEQ: (None, self._binary, _Prec.EQUALITY),
            TokenType.EQEQ: (None, self._binary, _Prec.EQUALITY),
            TokenType.GT: (None, self._binary, _Prec.COMPARISON),
            TokenType.GTEQ: (None, self._binary, _Prec.COMPARISON),
            TokenType.LT: (None, self._binary, _Prec.COMPARISON),
            TokenType.LTEQ: (None, self._binary, _Prec.COMPARISON),
            TokenType.NAME: (self._variable, None, _Prec.NONE),
            TokenType.STRING: (self._string, None, _Prec.NONE),
            TokenType.NUMBER: (self._number, None, _Prec.NONE),
            TokenType.FALSE: (self._literal, None, _Prec.NONE),
            TokenType.NULL: (self._literal, None, _Prec.NONE),
            TokenType.TRUE: (self._literal, None, _Prec.NONE),
        }

    def compile(self) -> Bytecode:
        """Compile the whole token stream; raise CompileError on any error."""
        self._code = Bytecode()
        self._has_main = False
        self.errors = []
        self._advance()
        while not self._match(TokenType.EOF):
            self._declaration()
        self._end_compiler()
        if self.errors:
            raise CompileError(self.errors)
        return self._code

    # -- error reporting -------------------------------------------------

    def _error_at(self, token: Token, message: str) -> None:
        if token.type is TokenType.EOF:
            where = " at end"
        elif token.type is TokenType.ERROR:
            where = ""
        else:
            where = f" at '{token.lexeme}'"
        self.errors.append(f"[line {token.line}] Error{where}: {message}")

    def _error(self, message: str) -> None:
        self._error_at(self._previous, message)

    def _error_at_current(self, message: str) -> None:
        self._error_at(self._current, message)

    # -- token handling --------------------------------------------------

    def _advance(self) -> None:
        self._previous = self._current
        while True:
            self._current = self._scanner.scan_token()
            if self._current.type is not TokenType.ERROR:
                return
            self._error_at_current(self._current.lexeme)

    def _check(self, type_: TokenType) -> bool:
        return self._current.type is type_

    def _consume(self, type_: TokenType, message: str) -> None:
        if self._check(type_):
            self._advance()
        else:
            self._error_at_current(message)

    def _match(self, type_: TokenType) -> bool:
        if not self._check(type_):
            return False
        self._advance()
        return True

    # -- emission --------------------------------------------------------

    def _emit(self, *ops: int) -> None:
        for op in ops:
            self._code.emit(op, self._previous.line)

    def _emit_return(self) -> None:
        self._emit(OpCode.NULL, OpCode.RETURN)

    def _last_is_return(self) -> bool:
        return bool(self._code.opcode) and self._code.opcode[-1] == OpCode.RETURN

    def _emit_jump(self, op: OpCode) -> int:
        self._emit(op)
        return self._code.emit(len(self._code.opcode), self._previous.line)

    def _patch_jump(self, offset: int, extra: int = 0) -> None:
        self._code.opcode[offset] = len(self._code.opcode) + extra

    def _emit_constant(self, value: Value) -> None:
        self._emit(OpCode.CONSTANT, self._code.add_constant(value))

    def _end_compiler(self) -> None:
        if not self._last_is_return() and not self._has_main:
            self._emit_return()
        if self._listing is not None and not self.errors:
            Disassembler(self._code, stream=self._listing).disassemble("OPCODE")

    def _parse_variable(self, message: str) -> int:
        self._consume(TokenType.NAME, message)
        return self._code.add_name(self._previous.lexeme)

    # -- expressions -----------------------------------------------------

    def _rule(self, type_: TokenType) -> tuple[_ParseFn, _ParseFn, _Prec]:
        return self._rules.get(type_, (None, None, _Prec.NONE))

    def _parse_precedence(self, precedence: int) -> None:
        self._advance()
        prefix = self._rule(self._previous.type)[0]
        if prefix is None:
            self._error("Expect expression.")
            return
        prefix()
        while precedence <= self._rule(self._current.type)[2]:
            self._advance()
            infix = self._rule(self._previous.type)[1]
            if infix is not None:
                infix()

    def _expression(self) -> None:
        self._parse_precedence(_Prec.ASSIGNMENT)

    def _binary(self) -> None:
        operator = self._previous.type
        self._parse_precedence(self._rule(operator)[2] + 1)
        self._emit(*_BINARY_OPS.get(operator, ()))

    def _call(self) -> None:
        count = 0
        if not self._check(TokenType.RPARAN):
            self._expression()
            count += 1
            while self._match(TokenType.COMMA):
                self._expression()
                count += 1
        self._consume(TokenType.RPARAN, "Expect ')' after arguments.")
        self._emit(OpCode.CALL, count)

    def _literal(self) -> None:
        op = _LITERALS.get(self._previous.type)
        if op is not None:
            self._emit(op)

    def _grouping(self) -> None:
        self._expression()
        self._consume(TokenType.RPARAN, "Expect ')' after expression.")

    def _number(self) -> None:
        self._emit_constant(int(float(self._previous.lexeme)))

    def _string(self) -> None:
        self._emit_constant(self._previous.lexeme[1:-1])

    def _named_variable(self, name: Token) -> None:
        arg = self._code.add_name(name.lexeme)
        if self._match(TokenType.EQ):
            self._expression()
            self._emit(OpCode.SET_LOCAL, arg)
        else:
            self._emit(OpCode.GET_LOCAL, arg)

    def _variable(self) -> None:
        self._named_variable(self._previous)

    def _unary(self) -> None:
        operator = self._previous.type
        self._parse_precedence(_Prec.UNARY)
        if operator is TokenType.NOT:
            self._emit(OpCode.NOT)
        elif operator is TokenType.MINUS:
            self._emit(OpCode.NEGATE)

    # -- statements ------------------------------------------------------

    def _declaration(self) -> None:
        if self._match(TokenType.LET):
            self._var_declaration()
        elif self._match(TokenType.FUNCTION):
            self._function_declaration()
        else:
            self._statement()

    def _var_declaration(self) -> None:
        slot = self._parse_variable("Expect variable name.")
        if self._match(TokenType.EQ):
            self._expression()
        else:
            self._emit(OpCode.NULL)
        self._consume(TokenType.SCOLON, "Expect ';' after variable declaration.")
        self._emit(OpCode.DEFINE_LOCAL, slot)

    def _function_declaration(self) -> None:
        slot = self._parse_variable("Expect function name.")
        if self._code.names and self._code.names[-1] == "main":
            self._has_main = True
        self._emit(OpCode.BEG_FUNC, slot)
        self._function()
        self._emit(OpCode.END_FUNC)

    def _function(self) -> None:
        self._consume(TokenType.LPARAN, "Expect '(' after function name.")
        self._consume(TokenType.RPARAN, "Expect ')' after parameter.")
        self._consume(TokenType.LBRACE, "Expect '{' before function body.")
        self._block_body()
        if not self._last_is_return():
            self._emit(OpCode.NULL)

    def _block_body(self) -> None:
        while not self._check(TokenType.RBRACE) and not self._check(TokenType.EOF):
            self._declaration()
        self._consume(TokenType.RBRACE, "Expect '}' after block.")

    def _statement(self) -> None:
        if self._match(TokenType.PRINT):
            self._print_statement()
        elif self._match(TokenType.RETURN):
            self._return_statement()
        elif self._match(TokenType.IF):
            self._if_statement()
        elif self._match(TokenType.LBRACE):
            self._block_body()
        else:
            self._expression_statement()

    def _print_statement(self) -> None:
        self._expression()
        self._consume(TokenType.SCOLON, "Expect ';' after value.")
        self._emit(OpCode.PRINT)

    def _return_statement(self) -> None:
        if self._check(TokenType.SCOLON):
            self._emit_return()
        else:
            self._expression()
            self._consume(TokenType.SCOLON, "Expect ';' after return value.")
            self._emit(OpCode.RETURN)

    def _if_statement(self) -> None:
        self._consume(TokenType.LPARAN, "Expect '(' after 'if'.")
        self._expression()
        self._consume(TokenType.RPARAN, "Expect ')' after condition.")
        then_jump = self._emit_jump(OpCode.JUMP_IF_NOT)
        self._statement()
        else_jump = self._emit_jump(OpCode.JUMP)
        self._patch_jump(then_jump)
        if self._match(TokenType.ELSE):
            self._statement()
        self._patch_jump(else_jump, 2)

    def _expression_statement(self) -> None:
        self._expression()
        self._consume(TokenType.SCOLON, "Expect ';' after expression.")
        self._emit(OpCode.POP)


def compile_source(source: str) -> Bytecode:
    """Compile source text to bytecode; raise CompileError on failure."""
    return Parser(Scanner(source)).compile()