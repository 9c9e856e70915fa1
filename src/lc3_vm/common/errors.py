"""
プロジェクト共通の例外定義。
"""


# @intent:responsibility イメージファイルの読み込み失敗を表します。
class ImageLoadError(ValueError):
    """
    プログラムイメージを読み込めなかった場合に送出されます。
    失敗したファイルのパスを保持します。
    """
    def __init__(self, path: str, reason: str):
        super().__init__(f"failed to load image: {path} ({reason})")
        self.path = path
        self.reason = reason


# @intent:responsibility 定義されていない命令（RES, RTI）の実行を表します。
# @intent:rationale これらは回復不能な状態であり、状態を変更する前に送出されます。
class IllegalInstructionError(RuntimeError):
    def __init__(self, address: int, instruction: int, mnemonic: str):
        super().__init__(f"illegal instruction {mnemonic} (x{instruction:04X}) at x{address:04X}")
        self.address = address
        self.instruction = instruction
        self.mnemonic = mnemonic


# @intent:responsibility 未定義のトラップベクタが厳格モードで実行されたことを表します。
class UndefinedTrapError(RuntimeError):
    def __init__(self, address: int, vector: int):
        super().__init__(f"undefined trap vector x{vector:02X} at x{address:04X}")
        self.address = address
        self.vector = vector
