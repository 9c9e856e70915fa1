# lc3_vm/debugger/debugger.py
"""
デバッガモジュール。

コアエンジンの実行を制御し、ユーザーが指定した条件（ブレークポイント）で
実行を中断させる責務を負います。
"""
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional

from lc3_vm.core.cpu import AbstractCpu
from lc3_vm.core.snapshot import Snapshot
from lc3_vm.core.state import CpuState
from lc3_vm.transport.bus import BusAccessType

# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # プログラムカウンタが特定のアドレスに一致
    MEMORY_READ = "MEMORY_READ"         # 特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した

# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    register_name は get_register_map() のキー（"R0"〜"R7", "PC", "COND"）です。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用
    enabled: bool = True                  # 有効/無効状態

# @intent:responsibility コアエンジンの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    history_limitを指定すると、保持する実行履歴の数を制限します（0で履歴なし）。
    on_stepには、命令を1つ実行するたびにそのSnapshotを受け取る関数を指定できます（トレース出力など）。
    """
    def __init__(self, cpu: AbstractCpu, history_limit: Optional[int] = None,
                 on_step: Optional[Callable[[Snapshot], None]] = None):
        self._cpu = cpu
        self._on_step = on_step
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_registers: Dict[str, int] = self._cpu.get_register_map()
        self._last_snapshot: Optional[Snapshot] = None
        # @intent:responsibility 実行履歴を保持し、ステップバックをサポートします。
        self._history: Deque[Snapshot] = deque(maxlen=history_limit)
        # @intent:responsibility 履歴が尽きた時に戻るための初期状態を保持します。
        self._initial_state: CpuState = self._cpu.get_state().copy()

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    # @intent:responsibility PC_MATCH以外のブレークポイントを、直前に実行した命令のSnapshotに対して評価します。
    def _check_other_breakpoints(self, snapshot: Snapshot, registers: Dict[str, int]) -> bool:
        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.MEMORY_READ:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.READ and access.address == bp.address:
                        return True
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                if bp.address in snapshot.written_addresses():
                    return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                if bp.register_name in registers and registers[bp.register_name] == bp.value:
                    return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                name = bp.register_name
                if name in registers and name in self._previous_registers:
                    if registers[name] != self._previous_registers[name]:
                        return True
        return False

    def _pc_breakpoint_hit(self, pc: int) -> bool:
        return any(
            bp.enabled and bp.condition_type == BreakpointConditionType.PC_MATCH and bp.value == pc
            for bp in self._breakpoints
        )

    def step_instruction(self) -> Snapshot:
        """
        CPUを1命令分実行し、その結果のSnapshotを返します。
        """
        self._previous_registers = self._cpu.get_register_map()
        snapshot = self._cpu.step()
        self._last_snapshot = snapshot
        if self._history.maxlen is not None and len(self._history) == self._history.maxlen:
            # 履歴から押し出される命令の実行後状態が、新しい巻き戻しの終点になる
            self._initial_state = self._history[0].state if self._history else snapshot.state
        self._history.append(snapshot)
        if self._on_step is not None:
            self._on_step(snapshot)
        return snapshot

    def step_back(self) -> Optional[Snapshot]:
        """
        実行履歴を1つ戻り、CPUとメモリの状態を復元します。
        コンソールへの入出力は取り消せません。
        """
        if not self._history:
            return None

        snapshot_to_revert = self._history.pop()
        bus = self._cpu.get_bus()

        # バスアクティビティを逆順にスキャンし、書き込み操作があれば元に戻す
        for access in reversed(snapshot_to_revert.bus_activity):
            if access.access_type == BusAccessType.WRITE and access.previous_data is not None:
                bus.load(access.address, access.previous_data)

        if self._history:
            previous_snapshot = self._history[-1]
            self._cpu.restore_state(previous_snapshot.state)
            self._last_snapshot = previous_snapshot
            return previous_snapshot

        # 履歴が尽きた場合は初期状態に復元
        self._cpu.restore_state(self._initial_state)
        self._last_snapshot = None
        return None

    def run(self) -> Optional[Snapshot]:
        """
        HALTまたはブレークポイントに達するまでCPUの実行を継続し、最後のSnapshotを返します。
        現在のPCにあるPC_MATCHブレークポイントは、再開時に一度だけ無視されます。
        """
        self._running = True

        if self._pc_breakpoint_hit(self._cpu.get_state().pc) and not self._cpu.is_halted:
            self.step_instruction()

        while self._running:
            if self._cpu.is_halted:
                self._running = False
                break

            current_pc = self._cpu.get_state().pc
            if self._pc_breakpoint_hit(current_pc):
                self._running = False
                print(f"Breakpoint hit at PC: {current_pc:#06x}")
                break

            snapshot = self.step_instruction()

            if snapshot.operation.mnemonic == "HALT":
                self._running = False
                break

            if self._check_other_breakpoints(snapshot, self._cpu.get_register_map()):
                self._running = False
                print(f"Breakpoint hit at PC: {snapshot.state.pc:#06x}")

        return self._last_snapshot

    def stop(self) -> None:
        self._running = False
