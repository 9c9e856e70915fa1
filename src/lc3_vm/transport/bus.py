# lc3_vm/transport/bus.py
"""
Transport Layer (共通バス)

このモジュールは、ワードアドレス指定のメモリ空間を抽象化し、
読み書きアクセスを適切なデバイスに委譲する責務を負います。
"""
from abc import ABC, abstractmethod
from array import array
from typing import List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from lc3_vm.common.types import WORD_MASK

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True) # 不変データ構造
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    書き込みの場合、previous_dataに書き込み前の値を保持し、デバッガのUndoに利用します。
    """
    address: int
    data: int # 16bit value
    access_type: BusAccessType
    previous_data: Optional[int] = None

# @intent:responsibility バスの抽象デバイスインターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    全てのデバイスはreadとwriteのインターフェースを実装する必要があります。
    """
    # @intent:responsibility 指定されたオフセットから16bitのワードを読み出す責務を負います。
    # @intent:pre-condition オフセットはデバイスの有効範囲内である必要があります。
    @abstractmethod
    def read(self, address: int) -> int:
        """
        指定されたアドレスから16bitのワードを読み出します。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility 副作用なしで現在の値を読み出します。
    # @intent:rationale メモリマップドレジスタはreadでデバイスをポーリングするため、
    #                  逆アセンブラやデバッガには副作用のない経路が必要です。
    def peek(self, address: int) -> int:
        return self.read(address)

    # @intent:responsibility 指定されたオフセットに16bitのワードを書き込みます。
    @abstractmethod
    def write(self, address: int, data: int) -> None:
        pass

# @intent:responsibility 基本的なワードRAMデバイスの機能を提供します。
class RAM(Device):
    """
    16bitワード単位のRAMデバイス。起動時は全ワードが0で初期化されます。
    """
    # @intent:responsibility 指定されたワード数のメモリ領域を初期化します。
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._memory = array('H', [0]) * size
        self._size = size

    # @intent:responsibility 指定されたアドレスから16bitのワードを読み出します。
    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        return self._memory[address]

    # @intent:responsibility 指定されたアドレスに16bitのワードを書き込みます。
    # @intent:pre-condition データは16bit値である必要があります。
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        if not 0 <= data <= WORD_MASK:
            raise ValueError(f"Data {data} is not a 16-bit value.")
        self._memory[address] = data

    # @intent:responsibility RAMのワード数を返します。
    def get_size(self) -> int:
        return self._size

# @intent:responsibility メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
# @intent:rationale バスの全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus:
    """
    ワードアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
    バス上で行われた全てのメモリアクセスを記録する機能を提供します。
    """
    # @intent:responsibility 空のメモリマップとバスアクティビティログを初期化します。
    def __init__(self):
        # メモリマップ: (start_address, end_address, device) のタプルリスト
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._bus_activity_log: List[BusAccess] = [] # バスアクセスログ

    # @intent:responsibility バスアクセスをログに記録します。
    def _log_access(self, address: int, data: int, access_type: BusAccessType,
                    previous_data: Optional[int] = None) -> None:
        self._bus_activity_log.append(
            BusAccess(address=address, data=data, access_type=access_type, previous_data=previous_data)
        )

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        """
        現在のバスアクティビティログを返し、内部ログをクリアします。
        """
        log = self._bus_activity_log
        self._bus_activity_log = [] # ログをクリア
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:pre-condition start_address <= end_addressかつ0x0000-0xFFFFの範囲内である必要があります。
    # @intent:rationale 範囲の重複は許可し、後から登録したデバイスが優先されます。
    #                  これにより全域RAMの上にメモリマップドレジスタを重ねて配置できます。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        """
        指定されたアドレス範囲にデバイスを登録します。
        重複する範囲では、後から登録されたデバイスがアクセスを受け取ります。
        """
        if not (0 <= start_address <= end_address <= WORD_MASK):
            raise ValueError("Invalid address range: start_address must be <= end_address and within 0x0000-0xFFFF.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        if isinstance(device, RAM):
            expected_size = end_address - start_address + 1
            if device.get_size() != expected_size:
                raise ValueError(
                    f"Registered {type(device).__name__} device size ({device.get_size()} words) does not match "
                    f"the specified address range size ({expected_size} words)."
                )

        self._memory_map.append((start_address, end_address, device))

    # @intent:responsibility 指定されたアドレスに対応するデバイスとオフセットを検索します。
    # @intent:post-condition デバイスが見つからなかった場合、IndexErrorを発生させます。
    def _find_device(self, address: int) -> Tuple[Device, int]:
        for start, end, device in reversed(self._memory_map):
            if start <= address <= end:
                return device, address - start
        raise IndexError(f"Address {address:#06x} not mapped to any device.")

    # @intent:responsibility 指定されたアドレスから16bitのワードを読み出します。
    # @intent:rationale アドレスは常に16bitに丸められるため、アクセス違反は発生しません。
    def read(self, address: int) -> int:
        """
        指定されたアドレスから16bitのワードを読み出します。
        アクセスはログに記録されます。
        """
        address &= WORD_MASK
        device, offset = self._find_device(address)
        data = device.read(offset)
        self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログを記録せず、デバイスの副作用も起こさずに値を読み出します。
    def peek(self, address: int) -> int:
        """
        UIやデバッガ、逆アセンブラなどのインスペクタ用。
        """
        address &= WORD_MASK
        device, offset = self._find_device(address)
        return device.peek(offset)

    # @intent:responsibility 指定されたアドレスに16bitのワードを書き込みます。
    def write(self, address: int, data: int) -> None:
        """
        無条件の書き込み。書き込み前の値と共にログに記録されます。
        """
        address &= WORD_MASK
        data &= WORD_MASK
        device, offset = self._find_device(address)
        previous = device.peek(offset)
        device.write(offset, data)
        self._log_access(address, data, BusAccessType.WRITE, previous_data=previous)

    # @intent:responsibility ログを記録せずに書き込みます。
    # @intent:rationale ローダーによるイメージ展開やデバッガのUndoは、命令実行のアクティビティではありません。
    def load(self, address: int, data: int) -> None:
        address &= WORD_MASK
        device, offset = self._find_device(address)
        device.write(offset, data & WORD_MASK)
