"""Assembling and linking of the generated NASM program."""

from __future__ import annotations

import subprocess
from pathlib import Path


class AssembleError(Exception):
    """Raised when the assembler or linker fails or cannot be started."""


def _run(command: list[str]) -> None:
    try:
        result = subprocess.run(command, check=False)
    except OSError as exc:
        raise AssembleError(f"cannot run {command[0]}: {exc}") from exc
    if result.returncode != 0:
        raise AssembleError(f"{command[0]} exited with status {result.returncode}")


def assemble(asm_path: str | Path = "saynaa.asm", output: str | Path = "app") -> Path:
    """Assemble ``asm_path`` with nasm and link it with ld into ``output``."""
    asm = Path(asm_path)
    obj = asm.with_suffix(".o")
    _run(["nasm", "-g", "-f", "elf64", str(asm)])
    _run(["ld", str(obj), "-o", str(output)])
    return Path(output)