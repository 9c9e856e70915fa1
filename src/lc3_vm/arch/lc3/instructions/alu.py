# lc3_vm/arch/lc3/instructions/alu.py
"""
算術論理演算命令（ADD, AND, NOT）の実装。
"""
from lc3_vm.core.snapshot import Operation
from lc3_vm.transport.bus import Bus
from lc3_vm.arch.lc3.state import Lc3CpuState
from .base import (
    ExecutionContext, dr_of, sr1_of, sr2_of, is_immediate, imm5_of,
    update_flags, reg_name, to_signed,
)

# @intent:utility_function 即値モードならimm5を、そうでなければSR2の値を第2オペランドとして返します。
def _second_operand(state: Lc3CpuState, instruction: int) -> int:
    if is_immediate(instruction):
        return imm5_of(instruction)
    return state.get_register(sr2_of(instruction))

def _decode_binary(mnemonic: str, instruction: int) -> Operation:
    operands = [reg_name(dr_of(instruction)), reg_name(sr1_of(instruction))]
    if is_immediate(instruction):
        operands.append(f"#{to_signed(imm5_of(instruction))}")
    else:
        operands.append(reg_name(sr2_of(instruction)))
    return Operation(f"{instruction:04X}", mnemonic, operands, instruction)

# --- ADD ---
# @intent:responsibility ADD 命令をデコードします。
def decode_add(instruction: int, pc: int) -> Operation:
    return _decode_binary("ADD", instruction)

# @intent:responsibility ADD 命令を実行し、DR = SR1 + (imm5 | SR2) として条件コードを更新します。
def execute_add(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    instr = op.instruction
    dr = dr_of(instr)
    state.set_register(dr, state.get_register(sr1_of(instr)) + _second_operand(state, instr))
    update_flags(state, dr)

# --- AND ---
# @intent:responsibility AND 命令をデコードします。
def decode_and(instruction: int, pc: int) -> Operation:
    return _decode_binary("AND", instruction)

# @intent:responsibility AND 命令を実行し、DR = SR1 & (imm5 | SR2) として条件コードを更新します。
def execute_and(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    instr = op.instruction
    dr = dr_of(instr)
    state.set_register(dr, state.get_register(sr1_of(instr)) & _second_operand(state, instr))
    update_flags(state, dr)

# --- NOT ---
# @intent:responsibility NOT 命令をデコードします。
def decode_not(instruction: int, pc: int) -> Operation:
    return Operation(f"{instruction:04X}", "NOT",
                     [reg_name(dr_of(instruction)), reg_name(sr1_of(instruction))], instruction)

# @intent:responsibility NOT 命令を実行し、SR1のビット反転をDRに格納します。
def execute_not(state: Lc3CpuState, bus: Bus, op: Operation, ctx: ExecutionContext) -> None:
    dr = dr_of(op.instruction)
    state.set_register(dr, ~state.get_register(sr1_of(op.instruction)))
    update_flags(state, dr)
