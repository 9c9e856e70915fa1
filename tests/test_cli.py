# tests/test_cli.py
"""
lc3_vm.cliモジュールのテスト。
イメージファイルの読み込みから実行、終了コードまでを検証します。
"""
import io
import os
import sys
import time
import pytest

from lc3_vm import cli
from lc3_vm.config.builder import SystemBuilder
from lc3_vm.config.models import SystemConfig, KeyboardConfig
from lc3_vm.console.console import StreamConsole, TerminalConsole

# @intent:test_suite コマンドラインの終了コードと出力の検証。

HELLO = [
    0x3000,  # origin
    0xE002,  # LEA R0, x3003
    0xF022,  # PUTS
    0xF025,  # HALT
    0x0048, 0x0069, 0x0021, 0x0000,  # "Hi!"
]

def write_image(path, words):
    path.write_bytes(b"".join(word.to_bytes(2, "big") for word in words))
    return str(path)

@pytest.fixture
def hello_image(tmp_path):
    return write_image(tmp_path / "hello.obj", HELLO)

@pytest.fixture
def console_output():
    return io.BytesIO()

@pytest.fixture
def console(console_output):
    return StreamConsole(io.BytesIO(), console_output)

def test_run_to_halt(hello_image, console, console_output):
    assert cli.main([hello_image], console=console) == cli.EXIT_HALT
    assert console_output.getvalue() == b"Hi!HALT\n"

def test_multiple_images_overlay(tmp_path, hello_image, console, console_output):
    # 2つ目のイメージで文字列の先頭を書き換える
    patch = write_image(tmp_path / "patch.obj", [0x3003, 0x0059])
    assert cli.main([hello_image, patch], console=console) == cli.EXIT_HALT
    assert console_output.getvalue() == b"Yi!HALT\n"

def test_missing_image(tmp_path, console, capsys):
    path = str(tmp_path / "missing.obj")
    assert cli.main([path], console=console) == cli.EXIT_LOAD_FAILURE
    assert f"failed to load image: {path}" in capsys.readouterr().out

def test_no_arguments_is_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == cli.EXIT_USAGE

def test_invalid_config(tmp_path, hello_image, console, capsys):
    config = tmp_path / "bad.yaml"
    config.write_text("traps:\n  undefined_trap: explode\n")
    assert cli.main([hello_image, "--config", str(config)], console=console) == cli.EXIT_USAGE
    assert "invalid configuration" in capsys.readouterr().err

def test_config_applied(tmp_path, hello_image, console, console_output):
    config = tmp_path / "machine.yaml"
    config.write_text('traps:\n  halt_message: "--- halted ---"\n')
    assert cli.main([hello_image, "--config", str(config)], console=console) == cli.EXIT_HALT
    assert console_output.getvalue() == b"Hi!--- halted ---\n"

def test_disassemble_loaded_range(hello_image, console, console_output, capsys):
    assert cli.main([hello_image, "--disassemble"], console=console) == cli.EXIT_HALT
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 7
    assert lines[0].startswith("x3000  E002")
    assert lines[0].endswith("LEA R0, x3003")
    assert lines[2].endswith("HALT")
    # 実行はしない
    assert console_output.getvalue() == b""

def test_disassemble_explicit_range_with_symbols(tmp_path, hello_image, console, capsys):
    sym = tmp_path / "hello.sym"
    sym.write_text("// Symbol table\n//\tSTART             3000\n//\tMSG               3003\n")
    argv = [hello_image, "--symbols", str(sym), "--disassemble", "x3000:x3001"]
    assert cli.main(argv, console=console) == cli.EXIT_HALT
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert "START" in lines[0]
    assert lines[1].endswith("PUTS")

def test_disassemble_invalid_range(hello_image, console):
    assert cli.main([hello_image, "--disassemble", "3000"], console=console) == cli.EXIT_USAGE

def test_missing_symbol_file(tmp_path, hello_image, console, capsys):
    argv = [hello_image, "--symbols", str(tmp_path / "missing.sym")]
    assert cli.main(argv, console=console) == cli.EXIT_LOAD_FAILURE
    assert "failed to load symbols" in capsys.readouterr().err

def test_trace(hello_image, console, capsys):
    assert cli.main([hello_image, "--trace"], console=console) == cli.EXIT_HALT
    err = capsys.readouterr().err.splitlines()
    assert len(err) == 3
    assert err[0].startswith("x3000  E002  LEA R0, x3003")
    assert "R0=3003" in err[0]
    assert err[2].startswith("x3002  F025  HALT")

class InterruptingConsole(StreamConsole):
    def read_char(self) -> int:
        raise KeyboardInterrupt

def test_interrupt_returns_exit_code(tmp_path):
    image = write_image(tmp_path / "getc.obj", [0x3000, 0xF020, 0xF025])
    console = InterruptingConsole(io.BytesIO(), io.BytesIO())
    assert cli.main([image], console=console) == cli.EXIT_INTERRUPTED

class Aborted(Exception):
    pass

def fake_abort():
    raise Aborted()

def test_illegal_instruction_aborts(tmp_path, console, monkeypatch, capsys):
    monkeypatch.setattr(cli.os, "abort", fake_abort)
    image = write_image(tmp_path / "res.obj", [0x3000, 0xD000])
    with pytest.raises(Aborted):
        cli.main([image], console=console)
    assert "illegal instruction RES (xD000) at x3000" in capsys.readouterr().err

def test_undefined_trap_fatal_aborts(tmp_path, console, monkeypatch, capsys):
    monkeypatch.setattr(cli.os, "abort", fake_abort)
    config = tmp_path / "strict.yaml"
    config.write_text("traps:\n  undefined_trap: fatal\n")
    image = write_image(tmp_path / "trap.obj", [0x3000, 0xF030])
    with pytest.raises(Aborted):
        cli.main([image, "--config", str(config)], console=console)
    assert "undefined trap vector x30" in capsys.readouterr().err

@pytest.mark.parametrize("text, expected", [
    ("x3000:x3010", (0x3000, 0x3010)),
    ("0x3000:0x3001", (0x3000, 0x3001)),
    ("3000:300F", (0x3000, 0x300F)),
])
def test_parse_range(text, expected):
    assert cli._parse_range(text) == expected

def test_symbol_file_not_utf8(tmp_path, hello_image, console, capsys):
    sym = tmp_path / "broken.sym"
    sym.write_bytes(b"//\tSTART\t\xff\xfe3000\n")
    argv = [hello_image, "--symbols", str(sym)]
    assert cli.main(argv, console=console) == cli.EXIT_LOAD_FAILURE
    assert "failed to load symbols" in capsys.readouterr().err

class TestBreakpoints:
    """
    --break/--watchによるデバッガ経由の実行。
    """
    def test_break_reports_registers_and_resumes(self, hello_image, console, console_output, capsys):
        assert cli.main([hello_image, "--break", "x3001"], console=console) == cli.EXIT_HALT
        captured = capsys.readouterr()
        assert "Breakpoint hit at PC: 0x3001" in captured.out
        assert "break: R0=3003" in captured.err
        assert "PC=3001" in captured.err
        assert console_output.getvalue() == b"Hi!HALT\n"

    def test_break_on_symbol(self, tmp_path, hello_image, console, capsys):
        sym = tmp_path / "hello.sym"
        sym.write_text("//\tSTART             3000\n//\tSHOW              3001\n")
        argv = [hello_image, "--symbols", str(sym), "--break", "SHOW"]
        assert cli.main(argv, console=console) == cli.EXIT_HALT
        assert "Breakpoint hit at PC: 0x3001" in capsys.readouterr().out

    def test_watch_stops_after_write(self, tmp_path, console, capsys):
        image = write_image(tmp_path / "store.obj", [
            0x3000,
            0x1021,  # ADD R0, R0, #1
            0x3002,  # ST R0, x3004
            0xF025,  # HALT
            0x0000,
            0x0000,
        ])
        assert cli.main([image, "--watch", "x3004"], console=console) == cli.EXIT_HALT
        err = capsys.readouterr().err
        assert "break: R0=0001" in err
        assert "PC=3002" in err

    def test_break_with_trace(self, hello_image, console, capsys):
        assert cli.main([hello_image, "--break", "x3002", "--trace"], console=console) == cli.EXIT_HALT
        err = capsys.readouterr().err.splitlines()
        traced = [line for line in err if line.startswith("x")]
        assert [line[:5] for line in traced] == ["x3000", "x3001", "x3002"]
        assert any(line.startswith("break:") for line in err)

    def test_invalid_break_address(self, hello_image, console, console_output, capsys):
        assert cli.main([hello_image, "--break", "LOOP"], console=console) == cli.EXIT_USAGE
        assert "invalid breakpoint address" in capsys.readouterr().err
        assert console_output.getvalue() == b""

class TestDefaultConsole:
    def test_stream_without_fd(self):
        stdin = io.TextIOWrapper(io.BytesIO(b"a"))
        console, terminal_fd = cli._default_console(stdin, io.TextIOWrapper(io.BytesIO()))
        assert isinstance(console, StreamConsole)
        assert terminal_fd is None

    # @intent:test_case パイプの標準入力は端末モードを設定せず、selectでタイムアウト付きにポーリングされます。
    @pytest.mark.skipif(sys.platform == "win32", reason="select() on pipes requires POSIX")
    def test_piped_stdin_poll_times_out(self):
        read_fd, write_fd = os.pipe()
        stdin = os.fdopen(read_fd, "r")
        try:
            console, terminal_fd = cli._default_console(stdin, io.TextIOWrapper(io.BytesIO()))
            assert isinstance(console, TerminalConsole)
            assert terminal_fd is None

            config = SystemConfig(keyboard=KeyboardConfig(poll_timeout=0.1))
            cpu, bus = SystemBuilder().build_system(config, console)
            bus.load(0x3000, 0xA201)  # LDI R1, x3002
            bus.load(0x3002, 0xFE00)
            started = time.monotonic()
            cpu.step()
            assert time.monotonic() - started < 1.0
            assert cpu.get_state().get_register(1) == 0
        finally:
            stdin.close()
            os.close(write_fd)
