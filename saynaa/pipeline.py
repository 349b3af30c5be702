"""Module registry and the driver that runs the compiler stages in order."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

from .compiler import CompileError, Parser
from .executor import assemble
from .generator import Generator
from .tokenizer import Scanner

MAX_MODULES = 64
ASM_FILENAME = "saynaa.asm"
EXECUTABLE_NAME = "app"


@dataclass
class CompilerContext:
    """State handed from one stage to the next."""

    source: str | None = None
    input: Any = None
    output: Any = None
    meta: Any = None


@dataclass(frozen=True)
class CompilerModule:
    """A named stage; ``run`` raises an exception when the stage fails."""

    name: str
    priority: int
    run: Callable[[CompilerContext], None]


class PipelineError(Exception):
    """Raised when a stage fails; ``module`` names the stage."""

    def __init__(self, module: str) -> None:
        self.module = module
        super().__init__(f"Module '{module}' failed.")


class ModuleRegistry:
    """Holds up to 64 stages; further registrations are ignored."""

    def __init__(self) -> None:
        self._modules: list[CompilerModule] = []

    def register(self, module: CompilerModule) -> None:
        """Add a stage unless the registry is already full."""
        if len(self._modules) < MAX_MODULES:
            self._modules.append(module)

    def sorted_modules(self) -> list[CompilerModule]:
        """Return the stages ordered by ascending priority."""
        return sorted(self._modules, key=lambda module: module.priority)

    def __len__(self) -> int:
        return len(self._modules)

    def __iter__(self) -> Iterator[CompilerModule]:
        return iter(self._modules)


def _tokenizer_run(ctx: CompilerContext) -> None:
    print("[tokenizer] running...")
    if ctx.source is None:
        print("[tokenizer] Error: Input is null.", file=sys.stderr)
        raise ValueError("no source text")
    ctx.output = Scanner(ctx.source)
    print("[tokenizer] finished.")


def _compiler_run(ctx: CompilerContext) -> None:
    print("[compiler] running...")
    if not isinstance(ctx.input, Scanner):
        raise TypeError("compiler expects a scanner as input")
    try:
        ctx.output = Parser(ctx.input).compile()
    except CompileError as exc:
        for message in exc.errors:
            print(message, file=sys.stderr)
        print("Compilling Failed!", file=sys.stderr)
        raise
    print("[compiler] finished.")


def _generator_run(ctx: CompilerContext) -> None:
    print("[generator] running...")
    Generator().write(ctx.input, ASM_FILENAME)
    print("[generator] finished.")


def _executor_run(ctx: CompilerContext) -> None:
    print("[execute] running...")
    assemble(ASM_FILENAME, EXECUTABLE_NAME)
    print(f"\n\033[1;32mGenerated executable: {EXECUTABLE_NAME}\033[0m", end="")
    print(f"\033[1;34m\nRun the executable with: ./{EXECUTABLE_NAME}\033[0m")
    print("[execute] finished.")


def default_registry() -> ModuleRegistry:
    """Return a registry holding the tokenizer, compiler, generator and executor."""
    registry = ModuleRegistry()
    registry.register(CompilerModule("tokenizer", 0, _tokenizer_run))
    registry.register(CompilerModule("compiler", 1, _compiler_run))
    registry.register(CompilerModule("generator", 2, _generator_run))
    registry.register(CompilerModule("executor", 3, _executor_run))
    return registry


def run_pipeline(
    source: str | None, registry: ModuleRegistry | None = None
) -> CompilerContext:
    """Run every stage by priority, feeding each stage's output to the next."""
    if registry is None:
        registry = default_registry()
    ctx = CompilerContext(source=source)
    for module in registry.sorted_modules():
        print(f"Running module: {module.name}", flush=True)
        try:
            module.run(ctx)
        except Exception as exc:
            raise PipelineError(module.name) from exc
        ctx.input = ctx.output
        ctx.output = None
    return ctx


def main(argv: list[str] | None = None) -> int:
    """Compile the source file named on the command line."""
    parser = argparse.ArgumentParser(prog="saynaa")
    parser.add_argument("source_file", nargs="?")
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    if args.source_file is None:
        print(f"Usage: {parser.prog} <source-file>", file=sys.stderr)
        return 1
    try:
        source = Path(args.source_file).read_text(encoding="utf-8")
    except OSError:
        print(f"Failed to open file: {args.source_file}", file=sys.stderr)
        return 1
    try:
        run_pipeline(source)
    except PipelineError as exc:
        # A failing stage stops the run but, as before, is not an exit failure.
        print(str(exc), file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())