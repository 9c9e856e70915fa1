# lc3_vm/arch/lc3/instructions/control.py
"""
制御命令（分岐、ジャンプ、サブルーチン）と未実装命令（RTI, RES）の実装。
"""
from lc3_vm.core.snapshot import Operation
from lc3_vm.transport.bus import Bus
from lc3_vm.arch.lc3.state import Lc3CpuState, R7
from lc3_vm.common.errors import IllegalInstructionError
from .base import (
    ExecutionContext, dr_of, sr1_of, is_long_jump, pc_offset9_of, pc_offset11_of,
    reg_name, addr_text,
)

# --- BR ---
# @intent:responsibility BR 命令をデコードします。nzpフィールドをニーモニックの接尾辞として表記します。
def decode_br(instruction: int, pc: int) -> Operation:
    nzp = dr_of(instruction)
    if nzp == 0:
        # 条件が一つも指定されていない分岐は決して成立しない
        return Operation(f"{instruction:04X}", "NOP", [], instruction)
    suffix = ("n" if nzp & 0b100 else "") + ("z" if nzp & 0b010 else "") + ("p" if nzp & 0b001 else "")
    target = pc + 1 + pc_offset9_of(instruction)
    return Operation(f"{instruction:04X}", f"BR{suffix}", [addr_text(target)], instruction)

# @intent:responsibility BR 命令を実行し、命令のnzpと現在の条件コードが重なる場合に分岐します。
def execute_br(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    if dr_of(op.instruction) & state.cond:
        state.pc = (state.pc + pc_offset9_of(op.instruction)) & 0xFFFF

# --- JMP / RET ---
# @intent:responsibility JMP 命令をデコードします。BaseRがR7の場合はRETとして表記します。
def decode_jmp(instruction: int, pc: int) -> Operation:
    base = sr1_of(instruction)
    if base == R7:
        return Operation(f"{instruction:04X}", "RET", [], instruction)
    return Operation(f"{instruction:04X}", "JMP", [reg_name(base)], instruction)

# @intent:responsibility JMP 命令を実行し、PCをベースレジスタの値にします。
def execute_jmp(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    state.pc = state.get_register(sr1_of(op.instruction))

# --- JSR / JSRR ---
# @intent:responsibility JSR/JSRR 命令をデコードします。
def decode_jsr(instruction: int, pc: int) -> Operation:
    if is_long_jump(instruction):
        target = pc + 1 + pc_offset11_of(instruction)
        return Operation(f"{instruction:04X}", "JSR", [addr_text(target)], instruction)
    return Operation(f"{instruction:04X}", "JSRR", [reg_name(sr1_of(instruction))], instruction)

# @intent:responsibility JSR/JSRR 命令を実行します。
# @intent:post-condition ジャンプ前のPC（次の命令のアドレス）がR7に保存されます。
def execute_jsr(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    instr = op.instruction
    # R7を先に書き換えるため、JSRR R7 は次の命令へのジャンプになる
    state.set_register(R7, state.pc)
    if is_long_jump(instr):
        state.pc = (state.pc + pc_offset11_of(instr)) & 0xFFFF
    else:
        state.pc = state.get_register(sr1_of(instr))

# --- RTI / RES ---
def decode_rti(instruction: int, pc: int) -> Operation:
    return Operation(f"{instruction:04X}", "RTI", [], instruction)

def decode_res(instruction: int, pc: int) -> Operation:
    return Operation(f"{instruction:04X}", "RES", [], instruction)

# @intent:responsibility 未実装命令を実行しようとした場合、状態を一切変更せずに例外を送出します。
# @intent:rationale PCは既に次の命令を指しているため、命令のアドレスはPC-1です。
def execute_illegal(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    raise IllegalInstructionError((state.pc - 1) & 0xFFFF, op.instruction, op.mnemonic)
