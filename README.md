# saynaa

A small compiler for the Saynaa scripting language. It reads a source file,
tokenizes it, and compiles it to a compact bytecode. From the bytecode it
generates x86-64 NASM assembly for Linux, which it writes to `saynaa.asm`.
Then it runs `nasm` and `ld` to build an executable named `app`.

## Installing

```
pip install .
```

To build the executable, `nasm` and `ld` must be on your `PATH`. Without them
the assembly file is still written, but the last stage fails.

## Usage

```
saynaa program.sn
```

The command writes `saynaa.asm` and `app` in the current directory. It runs
four stages in this order: `tokenizer`, `compiler`, `generator` and `executor`.
Each one is announced with `Running module: <name>` as it starts.

If a stage fails, the run stops. The command prints its reasons and then
`Module '<name>' failed.` to standard error. A failed stage still gives exit
status 0. The command exits with status 1 only when no file is given or the
file cannot be read. After a successful run, start the program with `./app`.

## The language

```
function main() {
    let x = 6 * 7;
    print x;
    print "done\n";
    return 0;
}
```

- `let name = expr;` declares a variable. `name = expr` assigns to it.
- `print expr;` prints an integer or a string. Strings accept the escapes
  `\n`, `\r`, `\t` and `\a`.
- `if (cond) stmt else stmt` branches. The `else` part is optional.
- `function name() { ... }` defines a function, and `name();` calls it.
  If there is a function called `main`, it becomes the program's entry point.
  Otherwise the top-level statements form `main`.
- `+ - * /`, `==`, `!=` and `!` work on integers.
- `true`, `false` and `null` are the integers 1, 0 and 0.
- A line comment starts with `//`.

## Using it as a library

```python
from saynaa.compiler import compile_source, CompileError
from saynaa.debug import Disassembler
from saynaa.generator import Generator

bytecode = compile_source("let a = 1; print a;")
Disassembler(bytecode).disassemble("OPCODE")     # listing on stdout
assembly = Generator().generate(bytecode)        # assembly text
Generator().write(bytecode, "saynaa.asm")        # or write it to a file
```

- `saynaa.tokenizer.Scanner(source)`: `scan_token()` returns one `Token` at a
  time. `tokens()` yields every token up to and including EOF.
- `saynaa.compiler.Parser(scanner, listing=None).compile()` returns a
  `Bytecode`. If a stream is given as `listing`, the disassembly is written to
  it. On syntax errors it raises `CompileError`, whose `errors` attribute lists
  messages such as `[line 1] Error at ';': Expect expression.`
- `saynaa.bytecode` holds `OpCode`, `Bytecode` (with `names`, `values`,
  `lines` and `opcode`) and `StackVariable`.
- `saynaa.debug.Disassembler(bytecode, stream=None, enabled=True)` prints one
  line per instruction. `disassemble_instruction(offset)` returns the offset
  of the next instruction.
- `saynaa.generator.Generator(random_text=...)` takes an optional function
  that makes the random label names. It raises `GeneratorError` for undefined
  or redefined variables and for malformed bytecode.
- `saynaa.executor.assemble(asm_path="saynaa.asm", output="app")` runs `nasm`
  and `ld`. It raises `AssembleError` if either one fails or cannot be
  started.
- `saynaa.pipeline.run_pipeline(source, registry=None)` runs the stages of a
  `ModuleRegistry` in priority order. It passes each stage's output to the
  next one through a `CompilerContext`. `default_registry()` returns the four
  standard stages. You can add your own stages with `register`, which accepts
  up to 64. A failing stage raises `PipelineError`.
- `saynaa.utils` has `read_file`, `string_to_decimal`,
  `string_to_hex_decimal` and `generate_random_text`.

## What it does not do

- It has no loops. `while` and `for` are tokenized but not compiled, and
  neither are `and` and `or`.
- Functions take no parameters, and calls pass no arguments to them.
- `<`, `>`, `<=`, `>=` and unary `-` compile to bytecode, but the generator
  emits no code for them.
- The output runs only on Linux x86-64. Nothing is interpreted: to run a
  program you must build it with `nasm` and `ld`.