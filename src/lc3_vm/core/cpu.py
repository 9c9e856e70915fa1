# lc3_vm/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの基本的な状態管理と命令サイクルの駆動に関する抽象化を提供します。
具体的な命令の振る舞いはInstruction Layerに移譲されます。
"""
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Tuple

from lc3_vm.transport.bus import Bus
from lc3_vm.core.snapshot import Snapshot, Operation, Metadata
from lc3_vm.core.state import CpuState
from lc3_vm.common.types import SymbolMap

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    CPUエミュレーションの基底となる抽象クラス。
    Busとのインターフェース、基本的な状態管理、命令サイクルの抽象化を提供します。
    """
    # @intent:responsibility CPUの状態とバスへの参照を初期化します。
    # @intent:pre-condition `bus`は有効なBusオブジェクトである必要があります。
    def __init__(self, bus: Bus):
        self._bus = bus
        self._state: CpuState = self._create_initial_state()
        self._cycle_count: int = 0
        self._symbol_map: SymbolMap = {}
        self._reverse_symbol_map: Dict[int, str] = {}

    # @intent:responsibility シンボルマップを設定します。
    def set_symbol_map(self, symbol_map: SymbolMap) -> None:
        """
        シンボルマップ（名前とアドレスの対応表）を設定します。
        """
        self._symbol_map = symbol_map
        # 逆引きマップを作成して、アドレスからラベルを素早く引けるようにする
        self._reverse_symbol_map = {addr: name for name, addr in symbol_map.items()}

    def get_symbol_map(self) -> SymbolMap:
        return self._symbol_map

    # @intent:responsibility アドレスに対応するラベルを返します。
    def get_symbol(self, address: int) -> str:
        return self._reverse_symbol_map.get(address, "")

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        pass

    # @intent:responsibility CPUをリセットし、初期状態に戻します。
    def reset(self) -> None:
        self._state = self._create_initial_state()
        self._cycle_count = 0

    # @intent:responsibility 現在のCPUの状態を返します。
    def get_state(self) -> CpuState:
        """
        現在のCPUの状態（レジスタ値など）を返します。
        返されるのは実行中の状態そのものであり、コピーではありません。
        """
        return self._state

    # @intent:responsibility 指定された状態のコピーでCPUの状態を置き換えます。
    def restore_state(self, state: CpuState) -> None:
        self._state = state.copy()

    # @intent:responsibility バスへの参照を返します。
    def get_bus(self) -> Bus:
        return self._bus

    # @intent:responsibility HALT状態かどうかを返します。
    @property
    def is_halted(self) -> bool:
        return self._state.halted

    # @intent:responsibility メモリから次の命令ワードをフェッチします。
    @abstractmethod
    def _fetch(self) -> int:
        pass

    # @intent:responsibility フェッチした命令ワードを解析し、Operationオブジェクトに変換します。
    @abstractmethod
    def _decode(self, instruction: int) -> Operation:
        pass

    # @intent:responsibility デコードされた命令を実行し、CPUの状態を更新します。
    @abstractmethod
    def _execute(self, operation: Operation) -> None:
        pass

    # @intent:responsibility CPUを1命令サイクル進め、その結果のスナップショットを返します。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー（ログクリア→フェッチ→デコード→PC更新→実行→Snapshot生成）を定義します。
    def step(self) -> Snapshot:
        """
        CPUを1命令サイクル進め、その時点でのCPU状態とバスアクティビティを含むSnapshotを返します。
        """
        # 1. 前処理: 前サイクルまでの残存ログを破棄
        self._bus.get_and_clear_activity_log()
        initial_pc = self._state.pc

        # 2. HALT判定 (Hook)
        halt_snapshot = self._handle_halt(initial_pc)
        if halt_snapshot:
            return halt_snapshot

        # 3. フェッチ
        instruction = self._fetch()

        # 4. デコード
        operation = self._decode(instruction)

        # 5. PC更新 (Hook)
        self._update_pc(operation)

        # 6. 実行
        self._execute(operation)

        # 7. 後処理 & Snapshot生成
        return self._create_snapshot(initial_pc, operation)

    # @intent:responsibility HALT状態の場合の処理を行います。
    # @intent:return HALT中であればその状態のSnapshot、そうでなければNone。
    def _handle_halt(self, current_pc: int) -> Optional[Snapshot]:
        return None

    # @intent:responsibility 命令実行前にPCを更新します。
    def _update_pc(self, operation: Operation) -> None:
        self._state.pc = (self._state.pc + operation.length) & 0xFFFF

    # @intent:responsibility スナップショットを生成します。
    def _create_snapshot(self, initial_pc: int, operation: Operation) -> Snapshot:
        bus_activity = self._bus.get_and_clear_activity_log()
        self._cycle_count += operation.cycle_count

        symbol_label = self._reverse_symbol_map.get(initial_pc, "")
        symbol_info = f"{symbol_label}: " if symbol_label else ""
        symbol_info += operation.text()

        return Snapshot(
            state=self._state.copy(),
            operation=operation,
            metadata=Metadata(cycle_count=self._cycle_count, symbol_info=symbol_info),
            address=initial_pc,
            bus_activity=bus_activity
        )

    # @intent:responsibility HALTするまで命令を実行し続けます。
    # @intent:return 実行した命令数。
    def run(self, max_steps: Optional[int] = None) -> int:
        steps = 0
        while not self.is_halted:
            if max_steps is not None and steps >= max_steps:
                break
            self.step()
            steps += 1
        return steps

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        トレース出力やデバッガがCPUの内部構造を知らなくても値を参照できるようにするために使用される。
        """
        pass

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        """
        指定されたメモリ範囲を逆アセンブルし、(address, hex_word, text) のタプルリストを返す。
        """
        pass
