[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "saynaa"
version = "0.1.0"
description = "A small compiler that turns Saynaa scripts into x86-64 NASM assembly"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "bytecode", "nasm", "x86-64", "assembly", "disassembler"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
saynaa = "saynaa.pipeline:main"

[tool.hatch.build.targets.wheel]
packages = ["saynaa"]

[tool.pytest.ini_options]
addopts = "-ra"
