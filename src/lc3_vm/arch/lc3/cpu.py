# lc3_vm/arch/lc3/cpu.py
"""
LC-3 CPUエミュレーションの中心モジュール。
"""
from typing import Dict, List, Optional, Tuple

from lc3_vm.core.snapshot import Operation, Metadata, Snapshot
from lc3_vm.core.cpu import AbstractCpu
from lc3_vm.arch.lc3.state import Lc3CpuState, PC_START
from lc3_vm.transport.bus import Bus
from lc3_vm.arch.lc3.instructions import decode_opcode, execute_instruction, ExecutionContext
from lc3_vm.arch.lc3 import disassembler

# @intent:responsibility LC-3 CPUの具体的なエミュレーションロジック（フェッチ、デコード、実行）を提供します。
class Lc3Cpu(AbstractCpu):
    """
    LC-3 CPUをエミュレートするクラス。
    メモリとレジスタはこのインスタンスが排他的に所有します。
    """
    # @intent:responsibility Lc3Cpuを初期化します。
    # @intent:pre-condition contextはトラップルーチンが使うコンソールを保持している必要があります。
    def __init__(self, bus: Bus, context: ExecutionContext, entry_pc: int = PC_START):
        self._entry_pc = entry_pc & 0xFFFF
        self._context = context
        super().__init__(bus)

    # @intent:responsibility LC-3の初期状態（PC=エントリアドレス、COND=Z）を生成します。
    def _create_initial_state(self) -> Lc3CpuState:
        return Lc3CpuState(pc=self._entry_pc)

    def get_context(self) -> ExecutionContext:
        return self._context

    # @intent:responsibility PCが指すワードを命令としてフェッチします。
    # @intent:rationale PCのインクリメントはAbstractCpu._update_pcで行います。
    def _fetch(self) -> int:
        return self._bus.read(self._state.pc)

    # @intent:responsibility 命令ワードをデコードし、Operationオブジェクトを返します。
    def _decode(self, instruction: int) -> Operation:
        return decode_opcode(instruction, self._state.pc)

    # @intent:responsibility Operationを実行し、状態を更新します。
    def _execute(self, operation: Operation) -> None:
        execute_instruction(operation, self._state, self._bus, self._context)

    # @intent:responsibility HALT後はフェッチせずにHALT状態のスナップショットを返します。
    def _handle_halt(self, current_pc: int) -> Optional[Snapshot]:
        if not self._state.halted:
            return None
        operation = Operation("0000", "HALT", [], 0, cycle_count=0)
        return Snapshot(
            state=self._state.copy(),
            operation=operation,
            metadata=Metadata(cycle_count=self._cycle_count, symbol_info="HALT"),
            address=current_pc,
        )

    # @intent:responsibility トレースやデバッガ用に、現在のレジスタ値を辞書形式で提供します。
    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        registers = {f"R{i}": value for i, value in enumerate(s.registers)}
        registers["PC"] = s.pc
        registers["COND"] = s.cond
        return registers

    # @intent:responsibility 現在のフラグ状態を辞書形式で提供します。
    def get_flag_state(self) -> Dict[str, bool]:
        s = self._state
        return {"N": s.flag_n, "Z": s.flag_z, "P": s.flag_p}

    # @intent:responsibility 指定範囲のメモリを逆アセンブルします。
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._bus, start_addr, length)
