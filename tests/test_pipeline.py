import subprocess
from unittest import mock

import pytest

from saynaa.bytecode import Bytecode
from saynaa.compiler import CompileError, compile_source
from saynaa.generator import Generator
from saynaa.pipeline import (
    CompilerContext,
    CompilerModule,
    ModuleRegistry,
    PipelineError,
    default_registry,
    main,
    run_pipeline,
)
from saynaa.tokenizer import Scanner


def _noop(ctx):
    ctx.output = ctx.input


def _without_executor():
    registry = ModuleRegistry()
    for module in default_registry():
        if module.name != "executor":
            registry.register(module)
    return registry


def test_sorted_modules_by_priority():
    registry = ModuleRegistry()
    registry.register(CompilerModule("c", 5, _noop))
    registry.register(CompilerModule("a", 1, _noop))
    registry.register(CompilerModule("b", 3, _noop))
    assert [m.name for m in registry.sorted_modules()] == ["a", "b", "c"]


def test_sorted_modules_is_stable_for_equal_priority():
    registry = ModuleRegistry()
    for name in ("first", "second", "third"):
        registry.register(CompilerModule(name, 2, _noop))
    assert [m.name for m in registry.sorted_modules()] == ["first", "second", "third"]


def test_registry_capacity_is_64():
    registry = ModuleRegistry()
    for i in range(70):
        registry.register(CompilerModule(f"m{i}", i, _noop))
    assert len(registry) == 64
    assert registry.sorted_modules()[-1].name == "m63"


def test_default_registry_order():
    names = [m.name for m in default_registry().sorted_modules()]
    assert names == ["tokenizer", "compiler", "generator", "executor"]


def test_output_becomes_next_input(capsys):
    seen = []

    def first(ctx):
        ctx.output = "stage-one"

    def second(ctx):
        seen.append(ctx.input)
        ctx.output = ctx.input + "+two"

    registry = ModuleRegistry()
    registry.register(CompilerModule("second", 2, second))
    registry.register(CompilerModule("first", 1, first))
    ctx = run_pipeline("src", registry)
    assert seen == ["stage-one"]
    assert ctx.input == "stage-one+two"
    assert ctx.output is None
    out = capsys.readouterr().out
    assert out.index("Running module: first") < out.index("Running module: second")


def test_failure_stops_later_modules():
    ran = []

    def failing(ctx):
        raise RuntimeError("boom")

    registry = ModuleRegistry()
    registry.register(CompilerModule("bad", 1, failing))
    registry.register(CompilerModule("later", 2, lambda ctx: ran.append(True)))
    with pytest.raises(PipelineError) as info:
        run_pipeline("x", registry)
    assert info.value.module == "bad"
    assert isinstance(info.value.__cause__, RuntimeError)
    assert ran == []


def test_tokenizer_stage_produces_scanner():
    registry = ModuleRegistry()
    registry.register(next(m for m in default_registry() if m.name == "tokenizer"))
    ctx = run_pipeline("print 1;", registry)
    assert isinstance(ctx.input, Scanner)
    assert ctx.source == "print 1;"
    first = ctx.input.scan_token()
    assert "PRINT" in first.type.name


def test_missing_source_fails_in_tokenizer():
    with pytest.raises(PipelineError) as info:
        run_pipeline(None, _without_executor())
    assert info.value.module == "tokenizer"


def test_compile_error_fails_in_compiler(capsys):
    with pytest.raises(PipelineError) as info:
        run_pipeline("let = ;", _without_executor())
    assert info.value.module == "compiler"
    assert isinstance(info.value.__cause__, CompileError)
    assert "Compilling Failed!" in capsys.readouterr().err


def test_compiler_stage_output_is_bytecode():
    registry = ModuleRegistry()
    for module in default_registry():
        if module.name in ("tokenizer", "compiler"):
            registry.register(module)
    ctx = run_pipeline("print 1;", registry)
    assert isinstance(ctx.input, Bytecode)
    assert len(ctx.input) > 0


def test_generator_writes_assembly(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    ctx = run_pipeline("print 1;", _without_executor())
    assert ctx.source == "print 1;"
    text = (tmp_path / "saynaa.asm").read_text()
    assert "_start:" in text
    assert "call print" in text
    expected = Generator(lambda n: "A" * n).generate(compile_source("print 1;"))
    assert text == expected


def test_context_defaults():
    ctx = CompilerContext()
    assert (ctx.source, ctx.input, ctx.output, ctx.meta) == (None, None, None, None)


def test_main_without_arguments(capsys):
    assert main([]) == 1
    assert "Usage:" in capsys.readouterr().err


def test_main_missing_file(tmp_path, capsys):
    missing = tmp_path / "nope.sy"
    assert main([str(missing)]) == 1
    assert "Failed to open file" in capsys.readouterr().err


def test_main_runs_assembler(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "prog.sy"
    source.write_text("print 1;")
    done = subprocess.CompletedProcess(args=[], returncode=0)
    with mock.patch("saynaa.executor.subprocess.run", return_value=done) as run:
        assert main([str(source)]) == 0
    commands = [call.args[0][0] for call in run.call_args_list]
    assert commands == ["nasm", "ld"]
    assert (tmp_path / "saynaa.asm").exists()


def test_main_reports_failed_module(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "bad.sy"
    source.write_text("let = ;")
    assert main([str(source)]) == 0
    assert "Module 'compiler' failed." in capsys.readouterr().err