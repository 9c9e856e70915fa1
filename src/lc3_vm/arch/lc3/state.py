# lc3_vm/arch/lc3/state.py
"""
LC-3 CPU固有の状態定義。
"""
from dataclasses import dataclass, field, replace
from typing import List

from lc3_vm.core.state import CpuState

# LC-3 コンディションコード (COND) ビットマスク
# @intent:constant 条件コードレジスタ内の各フラグビットの位置を定義します。BR命令のnzpフィールドと同じ並びです。
FL_POS = 1 << 0  # P
FL_ZRO = 1 << 1  # Z
FL_NEG = 1 << 2  # N

# @intent:constant 汎用レジスタの数とリターンアドレス用レジスタの番号。
REGISTER_COUNT = 8
R7 = 7

# @intent:constant 既定のプログラム開始アドレス。
PC_START = 0x3000

# @intent:responsibility LC-3 CPUの全てのレジスタ（R0-R7, PC, COND）と停止状態を保持します。
@dataclass
class Lc3CpuState(CpuState):
    """
    LC-3 CPUのレジスタ状態を保持するデータクラス。
    COND は FL_POS, FL_ZRO, FL_NEG のいずれか1つだけを保持します。
    """
    pc: int = PC_START
    registers: List[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    cond: int = FL_ZRO

    # @intent:accessor 3bitのレジスタ番号で汎用レジスタにアクセスします。
    # @intent:rationale 番号は常に命令の3bitフィールドから得られるため、範囲外アクセスは起こりません。
    #                  書き込みは条件コードを更新しません。更新は命令の実装側で明示的に行います。
    def get_register(self, index: int) -> int:
        return self.registers[index & 0x7]

    def set_register(self, index: int, value: int) -> None:
        self.registers[index & 0x7] = value & 0xFFFF

    @property
    def flag_n(self) -> bool:
        return self.cond == FL_NEG

    @property
    def flag_z(self) -> bool:
        return self.cond == FL_ZRO

    @property
    def flag_p(self) -> bool:
        return self.cond == FL_POS

    def copy(self) -> "Lc3CpuState":
        return replace(self, registers=list(self.registers))
