"""Small text helpers used while compiling and emitting assembly."""

from __future__ import annotations

import random
from pathlib import Path

_RANDOM_ALPHABET = "abcde1fghij2klmno3pqrst4uvwxy5zABCD6EFGHI7JKLMN8OPQRS9TUVWX0YZ"

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "a": "\a"}


def read_file(path: str | Path) -> str:
    """Return the whole contents of a text file."""
    return Path(path).read_text(encoding="utf-8")


def _unescape(text: str) -> str:
    out: list[str] = []
    chars = iter(text)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, None)
            if nxt is None:
                out.append(ch)
            else:
                out.append(_ESCAPES.get(nxt, nxt))
        else:
            out.append(ch)
    return "".join(out)


def string_to_decimal(text: str) -> list[int]:
    """Resolve backslash escapes and return the UTF-8 byte values."""
    return list(_unescape(text).encode("utf-8"))


def string_to_hex_decimal(value: str) -> str:
    """Render a string as a NASM ``db`` operand list ending in a NUL byte."""
    parts = []
    for byte in string_to_decimal(value):
        prefix = "0x0" if byte <= 16 else "0x"
        parts.append(f"{prefix}{byte:X}, ")
    return "".join(parts) + f"0x00 ; '{value}'\n"


def generate_random_text(length: int) -> str:
    """Return a random alphanumeric string of the given length."""
    return "".join(random.choices(_RANDOM_ALPHABET, k=max(length, 0)))