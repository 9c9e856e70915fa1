# lc3_vm/arch/lc3/instructions/trap.py
"""
TRAP命令とトラップルーチン（GETC, OUT, PUTS, IN, PUTSP, HALT）の実装。

トラップルーチンはLC-3のOSコードを実行せず、コンソールを直接操作して再現します。
"""
from typing import Callable, Dict

from lc3_vm.core.snapshot import Operation
from lc3_vm.transport.bus import Bus
from lc3_vm.arch.lc3.state import Lc3CpuState, R7
from lc3_vm.common.errors import UndefinedTrapError
from lc3_vm.console.console import EOF
from .base import ExecutionContext, trap_vector_of, update_flags

# @intent:constant トラップベクタ。
TRAP_GETC = 0x20   # キーボードから1文字読む（エコーなし）
TRAP_OUT = 0x21    # 1文字出力
TRAP_PUTS = 0x22   # ワード文字列を出力
TRAP_IN = 0x23     # プロンプトを出して1文字読む（エコーあり）
TRAP_PUTSP = 0x24  # バイト文字列を出力
TRAP_HALT = 0x25   # プログラム停止

R0 = 0

# @intent:utility_function コンソールから読んだ文字コードをワードに変換します。EOFは0xFFFFになります。
def _char_word(code: int) -> int:
    return code & 0xFFFF

# @intent:responsibility GETC: 1文字をエコーせずに読み、R0に格納します。
def trap_getc(state: Lc3CpuState, bus: Bus, ctx: ExecutionContext) -> None:
    state.set_register(R0, _char_word(ctx.console.read_char()))
    update_flags(state, R0)

# @intent:responsibility OUT: R0の下位バイトを出力します。
def trap_out(state: Lc3CpuState, bus: Bus, ctx: ExecutionContext) -> None:
    ctx.console.write(bytes([state.get_register(R0) & 0xFF]))
    ctx.console.flush()

# @intent:responsibility PUTS: R0が指すアドレスから、0ワードまでの各ワードの下位バイトを出力します。
# @intent:rationale 文字列の走査はpeekで行い、キーボードレジスタのポーリングやアクセスログへの記録を起こしません。
def trap_puts(state: Lc3CpuState, bus: Bus, ctx: ExecutionContext) -> None:
    address = state.get_register(R0)
    out = bytearray()
    word = bus.peek(address)
    while word:
        out.append(word & 0xFF)
        address = (address + 1) & 0xFFFF
        word = bus.peek(address)
    ctx.console.write(bytes(out))
    ctx.console.flush()

# @intent:responsibility IN: プロンプトを表示し、1文字読んでエコーしてからR0に格納します。
def trap_in(state: Lc3CpuState, bus: Bus, ctx: ExecutionContext) -> None:
    ctx.console.write(ctx.in_prompt.encode("utf-8"))
    ctx.console.flush()
    code = ctx.console.read_char()
    if code != EOF:
        ctx.console.write(bytes([code & 0xFF]))
    ctx.console.flush()
    state.set_register(R0, _char_word(code))
    update_flags(state, R0)

# @intent:responsibility PUTSP: 1ワードに2文字（下位バイト、上位バイトの順）を詰めた文字列を出力します。
# @intent:post-condition 上位バイトが0の場合、その文字は出力されません。
def trap_putsp(state: Lc3CpuState, bus: Bus, ctx: ExecutionContext) -> None:
    address = state.get_register(R0)
    out = bytearray()
    word = bus.peek(address)
    while word:
        out.append(word & 0xFF)
        high = word >> 8
        if high:
            out.append(high)
        address = (address + 1) & 0xFFFF
        word = bus.peek(address)
    ctx.console.write(bytes(out))
    ctx.console.flush()

# @intent:responsibility HALT: 停止メッセージを出力し、CPUをHALT状態にします。
def trap_halt(state: Lc3CpuState, bus: Bus, ctx: ExecutionContext) -> None:
    ctx.console.write((ctx.halt_message + "\n").encode("utf-8"))
    ctx.console.flush()
    state.halted = True

# @intent:map トラップベクタから名前とルーチンへのマッピングテーブル。
TRAP_MAP: Dict[int, tuple] = {
    TRAP_GETC: ("GETC", trap_getc),
    TRAP_OUT: ("OUT", trap_out),
    TRAP_PUTS: ("PUTS", trap_puts),
    TRAP_IN: ("IN", trap_in),
    TRAP_PUTSP: ("PUTSP", trap_putsp),
    TRAP_HALT: ("HALT", trap_halt),
}

# --- TRAP ---
# @intent:responsibility TRAP 命令をデコードします。既知のベクタはアセンブラのエイリアス名で表記します。
def decode_trap(instruction: int, pc: int) -> Operation:
    vector = trap_vector_of(instruction)
    entry = TRAP_MAP.get(vector)
    if entry:
        return Operation(f"{instruction:04X}", entry[0], [], instruction)
    return Operation(f"{instruction:04X}", "TRAP", [f"x{vector:02X}"], instruction)

# @intent:responsibility TRAP 命令を実行します。R7にPCを保存してから、ベクタに対応するルーチンを呼び出します。
# @intent:rationale 未定義ベクタは既定では何もしません（R7の保存のみ）。厳格モードでは状態を変更する前に例外を送出します。
def execute_trap(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    vector = trap_vector_of(op.instruction)
    entry = TRAP_MAP.get(vector)
    if entry is None and ctx.undefined_trap_fatal:
        raise UndefinedTrapError((state.pc - 1) & 0xFFFF, vector)
    state.set_register(R7, state.pc)
    if entry is not None:
        routine: Callable[[Lc3CpuState, Bus, ExecutionContext], None] = entry[1]
        routine(state, bus, ctx)
