# lc3_vm/loader/loader.py
"""
コードローダーモジュール。
LC-3オブジェクトイメージ（.obj）とシンボルテーブル（.sym）のロードをサポートします。
"""
import re
import struct
from typing import Tuple

from lc3_vm.transport.bus import Bus
from lc3_vm.common.types import SymbolMap, MEMORY_SIZE
from lc3_vm.common.errors import ImageLoadError

class ObjectImageLoader:
    """
    ビッグエンディアンの16bitワード列からなるイメージファイルを解析し、バスにロードするローダー。
    先頭ワードがロード先のアドレス（origin）で、以降のワードがそのアドレスから順に配置されます。
    """
    # @intent:responsibility イメージファイルを読み込み、originから順にメモリへ展開します。
    # @intent:return (origin, ロードしたワード数)
    # @intent:post-condition メモリの末尾を越えるワードは破棄されます。奇数長の末尾バイトは無視されます。
    def load_image(self, file_path: str, bus: Bus) -> Tuple[int, int]:
        try:
            with open(file_path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise ImageLoadError(file_path, e.strerror or str(e)) from e
        return self.load_bytes(data, bus, file_path)

    # @intent:responsibility バイト列からイメージを展開します。
    def load_bytes(self, data: bytes, bus: Bus, source: str = "<bytes>") -> Tuple[int, int]:
        if len(data) < 2:
            raise ImageLoadError(source, "missing origin word")

        (origin,) = struct.unpack_from(">H", data, 0)
        word_count = (len(data) - 2) // 2
        word_count = min(word_count, MEMORY_SIZE - origin)
        words = struct.unpack_from(f">{word_count}H", data, 2)

        for i, word in enumerate(words):
            bus.load(origin + i, word)

        return origin, word_count

class SymbolFileLoader:
    """
    LC-3アセンブラが出力するシンボルテーブル（.sym）を解析するローダー。

        // Symbol table
        // Scope level 0:
        //	Symbol Name       Page Address
        //	----------------  ------------
        //	START             3000
    """
    _ENTRY = re.compile(r'^//\s*([A-Za-z_][\w.]*)\s+(?:x)?([0-9A-Fa-f]{1,4})\s*$')

    # @intent:responsibility シンボルテーブルを読み込み、シンボル名からアドレスへのマップを返します。
    def load_symbols(self, file_path: str) -> SymbolMap:
        symbol_map: SymbolMap = {}
        with open(file_path, 'r', encoding="utf-8") as f:
            for line in f:
                match = self._ENTRY.match(line.strip())
                if not match:
                    continue
                name, address = match.groups()
                # ヘッダ行（"Symbol Name  Page Address"）は16進数にならないため一致しない
                symbol_map[name] = int(address, 16)
        return symbol_map
