# lc3_vm/console/console.py
"""
コンソールI/Oモジュール

トラップルーチンとキーボードデバイスが利用する入出力ストリームを抽象化します。
端末（TTY）とパイプ/テスト用のストリームの2種類の実装を提供します。
"""
import os
import select
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional

# @intent:constant 入力終端（EOF）を表す値。C言語のgetcharと同じく-1を返します。
EOF = -1

# @intent:responsibility コンソール入出力の抽象インターフェースを定義します。
class Console(ABC):
    """
    1文字単位の入力と、バイト列の出力を提供するコンソールの抽象基底クラス。
    """
    # @intent:responsibility 入力が読み取り可能かどうかを最大timeout秒待って返します。
    @abstractmethod
    def key_available(self, timeout: float) -> bool:
        pass

    # @intent:responsibility 1文字読み取り、その文字コードを返します。EOFの場合は-1を返します。
    @abstractmethod
    def read_char(self) -> int:
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        pass

    @abstractmethod
    def flush(self) -> None:
        pass

# @intent:responsibility バイナリストリーム上のコンソールを提供します。
# @intent:rationale ファイルディスクリプタを持たないストリーム（テストでのBytesIOなど）に使用します。
#                  1バイトの先読みバッファで入力の有無を判定するため、timeoutは使用しません。
class StreamConsole(Console):
    def __init__(self, input_stream: BinaryIO, output_stream: BinaryIO):
        self._input = input_stream
        self._output = output_stream
        self._pending: Optional[bytes] = None

    def _fill(self) -> None:
        if self._pending is None:
            self._pending = self._input.read(1)

    def key_available(self, timeout: float) -> bool:
        self._fill()
        return bool(self._pending)

    def read_char(self) -> int:
        self._fill()
        data, self._pending = self._pending, None
        if not data:
            return EOF
        return data[0]

    def write(self, data: bytes) -> None:
        self._output.write(data)

    def flush(self) -> None:
        self._output.flush()

# @intent:responsibility 端末またはパイプのファイルディスクリプタ上のコンソールを提供します。
class TerminalConsole(Console):
    """
    selectで入力の到着を待ち、os.readで1バイトずつ読み取るコンソール。
    端末の場合はterminal_modeでcbreakモードに設定してから使用します。
    """
    def __init__(self, fd: int, output_stream: BinaryIO):
        self._fd = fd
        self._output = output_stream

    def key_available(self, timeout: float) -> bool:
        readable, _, _ = select.select([self._fd], [], [], timeout)
        return bool(readable)

    def read_char(self) -> int:
        data = os.read(self._fd, 1)
        if not data:
            return EOF
        return data[0]

    def write(self, data: bytes) -> None:
        self._output.write(data)

    def flush(self) -> None:
        self._output.flush()

# @intent:responsibility 実行中は端末を非カノニカル・エコーなしに切り替え、終了時に必ず復元します。
# @intent:rationale rawモードではなくcbreakモードを使い、Ctrl-CによるSIGINTを有効なまま残します。
@contextmanager
def terminal_mode(fd: int) -> Iterator[None]:
    """
    端末をcbreakモードに設定し、ブロックを抜ける際に元の設定へ戻します。
    例外（KeyboardInterruptを含む）で抜けた場合も復元されます。
    """
    import termios, tty

    old_settings = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        termios.tcflush(fd, termios.TCIFLUSH)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
