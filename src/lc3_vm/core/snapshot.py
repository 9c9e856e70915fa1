# lc3_vm/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1命令の実行結果（CPU状態とバスアクティビティ）を記録した不変のデータ構造を定義します。
トレース出力とデバッガの履歴に用いる責務を負います。
"""
from dataclasses import dataclass, field
from typing import List, Optional

from lc3_vm.core.state import CpuState
from lc3_vm.transport.bus import BusAccessType, BusAccess

# @intent:responsibility 実行された命令の詳細を記録します。
@dataclass(frozen=True) # 不変データ構造
class Operation:
    """
    デコードされた命令の詳細（HEX、ニーモニック、オペランド）を記録するデータクラス。
    """
    opcode_hex: str # 例: "1261"
    mnemonic: str # 例: "ADD"
    operands: List[str] = field(default_factory=list) # 例: ["R1", "R1", "#1"]
    instruction: int = 0 # 命令ワードそのもの
    cycle_count: int = 1
    length: int = 1 # 命令のワード長

    # @intent:responsibility アセンブラ表記の文字列を返します。
    def text(self) -> str:
        if self.operands:
            return f"{self.mnemonic} " + ", ".join(self.operands)
        return self.mnemonic

# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True) # 不変データ構造
class Metadata:
    """
    実行に関するメタデータ（累計サイクル数、シンボル情報など）を記録するデータクラス。
    """
    cycle_count: int
    symbol_info: Optional[str] = None # 例: "LOOP: BRp x3002"

# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True) # 不変データ構造
class Snapshot:
    """
    命令実行直後のCPU状態のコピー、実行した命令、その命令中のバスアクセスを記録します。
    """
    state: CpuState
    operation: Operation
    metadata: Metadata
    address: int = 0 # 命令を読み出したアドレス
    bus_activity: List[BusAccess] = field(default_factory=list)

    # @intent:responsibility この命令中に書き込まれたアドレスの一覧を返します。
    def written_addresses(self) -> List[int]:
        return [a.address for a in self.bus_activity if a.access_type == BusAccessType.WRITE]
