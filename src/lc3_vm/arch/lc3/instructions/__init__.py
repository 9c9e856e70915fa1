# lc3_vm/arch/lc3/instructions/__init__.py
"""
LC-3命令セット実装パッケージ。
"""
from lc3_vm.transport.bus import Bus
from lc3_vm.core.snapshot import Operation
from lc3_vm.arch.lc3.state import Lc3CpuState
from .base import ExecutionContext, opcode_of
from .maps import DECODE_MAP, EXECUTE_MAP

# @intent:responsibility LC-3の命令ワードをデコードします。
# @intent:pre-condition pcは命令ワードが格納されていたアドレスです（PC相対ターゲットの表示に使用）。
def decode_opcode(instruction: int, pc: int) -> Operation:
    """
    命令ワードの上位4bitでデコード関数を選び、Operationオブジェクトを返します。
    """
    decoder = DECODE_MAP.get(opcode_of(instruction))
    if decoder:
        return decoder(instruction, pc)
    return Operation(f"{instruction:04X}", "UNKNOWN", [f"x{instruction:04X}"], instruction)

# @intent:responsibility デコードされたLC-3命令を実行します。
# @intent:rationale 4bitのオペコード空間は全て列挙済みですが、実行関数が見つからない場合は何もしません。
def execute_instruction(operation: Operation, state: Lc3CpuState, bus: Bus, ctx: ExecutionContext) -> None:
    executor = EXECUTE_MAP.get(opcode_of(operation.instruction))
    if executor:
        executor(state, bus, operation, ctx)
