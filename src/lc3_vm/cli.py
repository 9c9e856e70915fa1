# lc3_vm/cli.py
"""
コマンドラインのエントリポイント。

イメージファイルを読み込み、HALTするまでLC-3を実行します。
"""
import argparse
import os
import sys
from contextlib import nullcontext
from typing import List, Optional, Sequence, TextIO, Tuple

import yaml

from lc3_vm.arch.lc3.cpu import Lc3Cpu
from lc3_vm.arch.lc3.state import Lc3CpuState
from lc3_vm.common.errors import ImageLoadError, IllegalInstructionError, UndefinedTrapError
from lc3_vm.common.types import SymbolMap
from lc3_vm.config.builder import SystemBuilder
from lc3_vm.config.loader import ConfigLoader
from lc3_vm.config.models import SystemConfig
from lc3_vm.console.console import Console, StreamConsole, TerminalConsole, terminal_mode
from lc3_vm.core.snapshot import Snapshot
from lc3_vm.debugger.debugger import Debugger, BreakpointCondition, BreakpointConditionType
from lc3_vm.loader.loader import ObjectImageLoader, SymbolFileLoader

# @intent:constant プロセスの終了コード。
EXIT_HALT = 0
EXIT_LOAD_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = -2

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lc3vm", description="LC-3 virtual machine")
    parser.add_argument("images", nargs="+", metavar="image-file", help="LC-3 object image(s) to load")
    parser.add_argument("--config", help="machine configuration (YAML)")
    parser.add_argument("--symbols", action="append", default=[], metavar="SYM",
                        help="symbol table written by the assembler (repeatable)")
    parser.add_argument("--trace", action="store_true", help="print each executed instruction to stderr")
    parser.add_argument("--break", dest="breakpoints", action="append", default=[], metavar="ADDR",
                        help="stop before executing ADDR (hex or symbol, repeatable)")
    parser.add_argument("--watch", action="append", default=[], metavar="ADDR",
                        help="stop after a write to ADDR (hex or symbol, repeatable)")
    parser.add_argument("--disassemble", nargs="?", const="", metavar="START:END",
                        help="disassemble instead of running (default: the loaded ranges)")
    return parser

# @intent:utility_function "x3000", "0x3000", "3000" のいずれの表記も16進数として解釈します。
def _parse_hex(text: str) -> int:
    text = text.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    elif text.startswith("x"):
        text = text[1:]
    return int(text, 16) & 0xFFFF

def _parse_range(text: str) -> Tuple[int, int]:
    start, sep, end = text.partition(":")
    if not sep:
        raise ValueError(f"Invalid range: {text} (expected START:END)")
    return _parse_hex(start), _parse_hex(end)

# @intent:utility_function シンボル名、またはシンボルでなければ16進数としてアドレスを解釈します。
def _resolve_address(text: str, symbol_map: SymbolMap) -> int:
    if text in symbol_map:
        return symbol_map[text]
    return _parse_hex(text)

# @intent:responsibility レジスタとフラグを1行に整形します。
def format_registers(state: Lc3CpuState) -> str:
    registers = " ".join(f"R{i}={value:04X}" for i, value in enumerate(state.registers))
    flags = "N" if state.flag_n else "Z" if state.flag_z else "P"
    return f"{registers} PC={state.pc:04X} {flags}"

# @intent:responsibility 1命令分のトレース行を整形します。
def format_trace(snapshot: Snapshot) -> str:
    return (f"x{snapshot.address:04X}  {snapshot.operation.opcode_hex}  "
            f"{snapshot.metadata.symbol_info:<24} {format_registers(snapshot.state)}")

def _print_disassembly(cpu: Lc3Cpu, ranges: List[Tuple[int, int]], out: TextIO) -> None:
    for start, end in ranges:
        for address, hex_word, text in cpu.disassemble(start, end - start + 1):
            label = cpu.get_symbol(address)
            out.write(f"x{address:04X}  {hex_word}  {label:<12} {text}\n")

# @intent:responsibility --break/--watchの指定からブレークポイントを設定したDebuggerを生成します。指定がなければNoneです。
# @intent:rationale CLIからは巻き戻しを行わないため、履歴は保持しません。
def build_debugger(cpu: Lc3Cpu, breakpoints: Sequence[str], watches: Sequence[str],
                   trace: Optional[TextIO] = None) -> Optional[Debugger]:
    if not breakpoints and not watches:
        return None
    on_step = (lambda snapshot: trace.write(format_trace(snapshot) + "\n")) if trace is not None else None
    debugger = Debugger(cpu, history_limit=0, on_step=on_step)
    symbol_map = cpu.get_symbol_map()
    for text in breakpoints:
        debugger.add_breakpoint(BreakpointCondition(
            BreakpointConditionType.PC_MATCH, value=_resolve_address(text, symbol_map)))
    for text in watches:
        debugger.add_breakpoint(BreakpointCondition(
            BreakpointConditionType.MEMORY_WRITE, address=_resolve_address(text, symbol_map)))
    return debugger

# @intent:responsibility HALTするまで命令を実行します。
# @intent:post-condition Debuggerを使う場合、ブレークポイントで止まるたびにレジスタをstderrへ出力して実行を再開します。
def _execute(cpu: Lc3Cpu, trace: Optional[TextIO], debugger: Optional[Debugger] = None) -> None:
    if debugger is None:
        while not cpu.is_halted:
            snapshot = cpu.step()
            if trace is not None:
                trace.write(format_trace(snapshot) + "\n")
        return

    while not cpu.is_halted:
        debugger.run()
        if not cpu.is_halted:
            sys.stdout.flush()
            print(f"break: {format_registers(cpu.get_state())}", file=sys.stderr)

# @intent:responsibility 端末モードを設定した上でマシンを実行し、終了コードを返します。
# @intent:rationale 割り込み（Ctrl-C）や未実装命令で抜ける場合も、terminal_modeのfinallyで端末設定が復元されます。
def run_machine(cpu: Lc3Cpu, terminal_fd: Optional[int] = None, trace: Optional[TextIO] = None,
                debugger: Optional[Debugger] = None) -> int:
    mode = terminal_mode(terminal_fd) if terminal_fd is not None else nullcontext()
    try:
        with mode:
            _execute(cpu, trace, debugger)
    except KeyboardInterrupt:
        print()
        return EXIT_INTERRUPTED
    except (IllegalInstructionError, UndefinedTrapError) as e:
        sys.stdout.flush()
        print(f"lc3vm: {e}", file=sys.stderr)
        sys.stderr.flush()
        os.abort()
    return EXIT_HALT

def _load_config(path: Optional[str]) -> SystemConfig:
    if path is None:
        return SystemConfig()
    return ConfigLoader().load_from_file(path)

# @intent:responsibility 標準入力に対応するコンソールと、端末モードを設定すべきfd（TTYの場合のみ）を返します。
# @intent:rationale パイプもselectでタイムアウト付きに待てるため、fdを持つ入力は全てTerminalConsoleで扱います。
def _default_console(stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> Tuple[Console, Optional[int]]:
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    try:
        fd = stdin.fileno()
    except (AttributeError, OSError, ValueError):
        return StreamConsole(stdin.buffer, stdout.buffer), None
    return TerminalConsole(fd, stdout.buffer), (fd if stdin.isatty() else None)

def main(argv: Optional[Sequence[str]] = None, console: Optional[Console] = None) -> int:
    """
    lc3vm のメイン関数。終了コードを返します。
    consoleを指定した場合は端末の設定を変更しません。
    """
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"invalid configuration: {args.config}: {e}", file=sys.stderr)
        return EXIT_USAGE

    terminal_fd: Optional[int] = None
    if console is None:
        console, terminal_fd = _default_console()

    cpu, bus = SystemBuilder().build_system(config, console)

    image_loader = ObjectImageLoader()
    loaded: List[Tuple[int, int]] = []
    for path in args.images:
        try:
            origin, count = image_loader.load_image(path, bus)
        except ImageLoadError:
            print(f"failed to load image: {path}")
            return EXIT_LOAD_FAILURE
        loaded.append((origin, origin + max(count, 1) - 1))

    symbol_map = {}
    symbol_loader = SymbolFileLoader()
    for path in args.symbols:
        try:
            symbol_map.update(symbol_loader.load_symbols(path))
        except (OSError, ValueError) as e:
            print(f"failed to load symbols: {path}: {e}", file=sys.stderr)
            return EXIT_LOAD_FAILURE
    cpu.set_symbol_map(symbol_map)

    if args.disassemble is not None:
        try:
            ranges = [_parse_range(args.disassemble)] if args.disassemble else loaded
        except ValueError as e:
            print(f"lc3vm: {e}", file=sys.stderr)
            return EXIT_USAGE
        _print_disassembly(cpu, ranges, sys.stdout)
        return EXIT_HALT

    trace = sys.stderr if args.trace else None
    try:
        debugger = build_debugger(cpu, args.breakpoints, args.watch, trace)
    except ValueError as e:
        print(f"lc3vm: invalid breakpoint address: {e}", file=sys.stderr)
        return EXIT_USAGE
    return run_machine(cpu, terminal_fd, trace, debugger)

if __name__ == '__main__':
    sys.exit(main())
