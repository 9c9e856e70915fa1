"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用される汎用的な型エイリアスなどを定義します。
"""
from typing import Dict

# @intent:data_structure 16ビットワード値。アドレスとしては符号なし、演算では2の補数として解釈されます。
Word = int

# @intent:constant ワード値とアドレスの有効ビットマスク。
WORD_MASK = 0xFFFF

# @intent:constant ワードアドレス空間の大きさ（65536ワード）。
MEMORY_SIZE = 1 << 16

# @intent:data_structure シンボル名とアドレスをマッピングする辞書の型エイリアス。
# Loader, CPU, CLIなど複数のレイヤーで共通して使用されます。
SymbolMap = Dict[str, int]
