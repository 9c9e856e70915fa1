# lc3_vm/arch/lc3/instructions/load.py
"""
ロード/ストア命令（LD, LDI, LDR, LEA, ST, STI, STR）の実装。
"""
from lc3_vm.core.snapshot import Operation
from lc3_vm.transport.bus import Bus
from lc3_vm.arch.lc3.state import Lc3CpuState
from .base import (
    ExecutionContext, dr_of, sr1_of, pc_offset9_of, offset6_of,
    update_flags, reg_name, addr_text, to_signed,
)

# @intent:utility_function PC相対の実効アドレスを計算します。PCは既にインクリメント済みです。
def _pc_relative(state: Lc3CpuState, instruction: int) -> int:
    return (state.pc + pc_offset9_of(instruction)) & 0xFFFF

# @intent:utility_function ベース+オフセットの実効アドレスを計算します。
def _base_offset(state: Lc3CpuState, instruction: int) -> int:
    return (state.get_register(sr1_of(instruction)) + offset6_of(instruction)) & 0xFFFF

def _decode_pc_relative(mnemonic: str, instruction: int, pc: int) -> Operation:
    target = pc + 1 + pc_offset9_of(instruction)
    return Operation(f"{instruction:04X}", mnemonic,
                     [reg_name(dr_of(instruction)), addr_text(target)], instruction)

def _decode_base_offset(mnemonic: str, instruction: int) -> Operation:
    return Operation(f"{instruction:04X}", mnemonic,
                     [reg_name(dr_of(instruction)), reg_name(sr1_of(instruction)),
                      f"#{to_signed(offset6_of(instruction))}"], instruction)

# --- LD ---
# @intent:responsibility LD 命令をデコードします。
def decode_ld(instruction: int, pc: int) -> Operation:
    return _decode_pc_relative("LD", instruction, pc)

# @intent:responsibility LD 命令を実行し、PC相対アドレスの内容をDRにロードします。
def execute_ld(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    dr = dr_of(op.instruction)
    state.set_register(dr, bus.read(_pc_relative(state, op.instruction)))
    update_flags(state, dr)

# --- LDI ---
# @intent:responsibility LDI 命令をデコードします。
def decode_ldi(instruction: int, pc: int) -> Operation:
    return _decode_pc_relative("LDI", instruction, pc)

# @intent:responsibility LDI 命令を実行し、PC相対アドレスに格納されたアドレスの内容をDRにロードします。
def execute_ldi(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    dr = dr_of(op.instruction)
    state.set_register(dr, bus.read(bus.read(_pc_relative(state, op.instruction))))
    update_flags(state, dr)

# --- LDR ---
# @intent:responsibility LDR 命令をデコードします。
def decode_ldr(instruction: int, pc: int) -> Operation:
    return _decode_base_offset("LDR", instruction)

# @intent:responsibility LDR 命令を実行します。
# @intent:rationale 既定ではベース+オフセットのアドレスから2回読み出す（間接参照する）挙動を再現します。
#                  ctx.ldr_double_indirectがFalseの場合はアーキテクチャ本来の1回の読み出しになります。
def execute_ldr(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    dr = dr_of(op.instruction)
    value = bus.read(_base_offset(state, op.instruction))
    if ctx.ldr_double_indirect:
        value = bus.read(value)
    state.set_register(dr, value)
    update_flags(state, dr)

# --- LEA ---
# @intent:responsibility LEA 命令をデコードします。
def decode_lea(instruction: int, pc: int) -> Operation:
    return _decode_pc_relative("LEA", instruction, pc)

# @intent:responsibility LEA 命令を実行し、メモリにアクセスせずに実効アドレスをDRに格納します。
def execute_lea(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    dr = dr_of(op.instruction)
    state.set_register(dr, _pc_relative(state, op.instruction))
    update_flags(state, dr)

# --- ST ---
# @intent:responsibility ST 命令をデコードします。DRフィールドはソースレジスタとして使われます。
def decode_st(instruction: int, pc: int) -> Operation:
    return _decode_pc_relative("ST", instruction, pc)

def execute_st(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    bus.write(_pc_relative(state, op.instruction), state.get_register(dr_of(op.instruction)))

# --- STI ---
def decode_sti(instruction: int, pc: int) -> Operation:
    return _decode_pc_relative("STI", instruction, pc)

# @intent:responsibility STI 命令を実行し、PC相対アドレスに格納されたアドレスへSRを書き込みます。
def execute_sti(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    address = bus.read(_pc_relative(state, op.instruction))
    bus.write(address, state.get_register(dr_of(op.instruction)))

# --- STR ---
def decode_str(instruction: int, pc: int) -> Operation:
    return _decode_base_offset("STR", instruction)

def execute_str(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    bus.write(_base_offset(state, op.instruction), state.get_register(dr_of(op.instruction)))
