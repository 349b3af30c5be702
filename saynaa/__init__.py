"""Compiler for Saynaa scripts: scanner, bytecode compiler, disassembler, x86-64 NASM generator and build driver."""

__version__ = "0.1.0"