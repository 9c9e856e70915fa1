# lc3_vm/transport/keyboard.py
"""
キーボードデバイス（メモリマップドレジスタ）

KBSR（ステータス）とKBDR（データ）の2つのレジスタを持つデバイスです。
KBSRの読み出しごとにコンソールをポーリングし、その場で値を再計算します。
"""
from lc3_vm.transport.bus import Device
from lc3_vm.console.console import Console

# @intent:constant KBSRのレディビット。
KBSR_READY = 0x8000

# @intent:responsibility キーボードのステータス/データレジスタをバス上に提供します。
class KeyboardDevice(Device):
    """
    KBSRからKBDRまでのワード範囲にマップされるデバイス。
    オフセット0がKBSR、最終オフセットがKBDRで、間のワードは通常のストレージとして振る舞います。
    """
    # @intent:pre-condition data_offsetは1以上である必要があります（KBSRとKBDRは別アドレス）。
    def __init__(self, console: Console, poll_timeout: float = 1.0, data_offset: int = 2):
        if data_offset < 1:
            raise ValueError("Keyboard data register must follow the status register.")
        self._console = console
        self._poll_timeout = poll_timeout
        self._data_offset = data_offset
        self._registers = [0] * (data_offset + 1)

    # @intent:responsibility デバイスが占有するワード数を返します。
    def get_size(self) -> int:
        return len(self._registers)

    # @intent:responsibility KBSRの読み出し時にコンソールをポーリングし、入力があればKBDRへ文字をラッチします。
    # @intent:post-condition 入力がある場合KBSR=0x8000、ない場合KBSR=0になります。
    def read(self, address: int) -> int:
        if address == 0:
            if self._console.key_available(self._poll_timeout):
                self._registers[0] = KBSR_READY
                self._registers[self._data_offset] = self._console.read_char() & 0xFFFF
            else:
                self._registers[0] = 0
        return self._registers[address]

    # @intent:responsibility ポーリングせずに現在のレジスタ値を返します。
    def peek(self, address: int) -> int:
        return self._registers[address]

    def write(self, address: int, data: int) -> None:
        self._registers[address] = data & 0xFFFF
