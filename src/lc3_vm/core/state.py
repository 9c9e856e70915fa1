# lc3_vm/core/state.py
"""
Core Layer (CPU状態)

このモジュールは、CPUの基本的な状態を保持するデータ構造を定義します。
"""
from dataclasses import dataclass, replace

# @intent:responsibility CPUの基本状態を保持します。アーキテクチャ固有のレジスタはこれを拡張します。
@dataclass
class CpuState:
    """
    CPUの状態を保持するデータクラス。
    これは抽象的な基底状態であり、特定のCPUアーキテクチャに応じて拡張されます。
    """
    pc: int = 0x0000  # Program Counter
    halted: bool = False

    # @intent:responsibility 独立した状態のコピーを返します。
    # @intent:rationale Snapshotやデバッガの履歴が、実行中に変化し続ける状態を共有しないようにします。
    #                  リストなどの可変フィールドを持つサブクラスはオーバーライドします。
    def copy(self) -> "CpuState":
        return replace(self)
