# tests/loader/test_loader.py
"""
lc3_vm.loader.loaderモジュールの単体テスト。
オブジェクトイメージとシンボルテーブルのロード機能を検証します。
"""
import pytest

from lc3_vm.transport.bus import Bus, RAM
from lc3_vm.loader.loader import ObjectImageLoader, SymbolFileLoader
from lc3_vm.common.errors import ImageLoadError

# @intent:test_suite コードローダー機能の検証。

class TestObjectImageLoader:
    """
    ObjectImageLoaderの単体テスト。
    """

    @pytest.fixture
    def setup_loader(self, tmp_path):
        bus = Bus()
        ram = RAM(0x10000)
        bus.register_device(0x0000, 0xFFFF, ram)
        loader = ObjectImageLoader()
        return loader, bus, ram, tmp_path

    def test_load_big_endian_image(self, setup_loader):
        loader, bus, ram, tmp_path = setup_loader
        image = tmp_path / "hello.obj"
        image.write_bytes(bytes([0x30, 0x00, 0xE0, 0x02, 0xF0, 0x22, 0xF0, 0x25]))

        origin, count = loader.load_image(str(image), bus)

        assert origin == 0x3000
        assert count == 3
        assert ram.read(0x3000) == 0xE002
        assert ram.read(0x3001) == 0xF022
        assert ram.read(0x3002) == 0xF025
        assert ram.read(0x3003) == 0x0000

    # @intent:test_case イメージのロードはバスアクセスログに記録されません。
    def test_load_does_not_log(self, setup_loader):
        loader, bus, _, _ = setup_loader
        loader.load_bytes(bytes([0x30, 0x00, 0x12, 0x34]), bus)
        assert bus.get_and_clear_activity_log() == []

    def test_origin_only_image(self, setup_loader):
        loader, bus, _, _ = setup_loader
        assert loader.load_bytes(bytes([0x40, 0x00]), bus) == (0x4000, 0)

    def test_odd_trailing_byte_ignored(self, setup_loader):
        loader, bus, ram, _ = setup_loader
        origin, count = loader.load_bytes(bytes([0x30, 0x00, 0xAB, 0xCD, 0xEF]), bus)
        assert count == 1
        assert ram.read(0x3000) == 0xABCD
        assert ram.read(0x3001) == 0

    # @intent:test_case メモリの末尾を越えるワードは破棄されます。
    def test_words_past_end_of_memory_are_dropped(self, setup_loader):
        loader, bus, ram, _ = setup_loader
        data = bytes([0xFF, 0xFE, 0x11, 0x11, 0x22, 0x22, 0x33, 0x33])
        origin, count = loader.load_bytes(data, bus)
        assert origin == 0xFFFE
        assert count == 2
        assert ram.read(0xFFFE) == 0x1111
        assert ram.read(0xFFFF) == 0x2222
        assert ram.read(0x0000) == 0

    def test_later_image_overwrites_earlier(self, setup_loader):
        loader, bus, ram, _ = setup_loader
        loader.load_bytes(bytes([0x30, 0x00, 0x11, 0x11, 0x22, 0x22]), bus)
        loader.load_bytes(bytes([0x30, 0x01, 0x33, 0x33]), bus)
        assert ram.read(0x3000) == 0x1111
        assert ram.read(0x3001) == 0x3333

    def test_missing_file(self, setup_loader):
        loader, bus, _, tmp_path = setup_loader
        path = str(tmp_path / "missing.obj")
        with pytest.raises(ImageLoadError) as excinfo:
            loader.load_image(path, bus)
        assert excinfo.value.path == path

    @pytest.mark.parametrize("data", [b"", b"\x30"])
    def test_image_without_origin(self, setup_loader, data):
        loader, bus, _, _ = setup_loader
        with pytest.raises(ImageLoadError):
            loader.load_bytes(data, bus)

class TestSymbolFileLoader:
    def test_load_symbols(self, tmp_path):
        sym = tmp_path / "hello.sym"
        sym.write_text(
            "// Symbol table\n"
            "// Scope level 0:\n"
            "//\tSymbol Name       Page Address\n"
            "//\t----------------  ------------\n"
            "//\tSTART             3000\n"
            "//\tHELLO_STR         x3003\n"
            "//\tloop.1            300A\n"
            "\n"
        )
        symbols = SymbolFileLoader().load_symbols(str(sym))
        assert symbols == {"START": 0x3000, "HELLO_STR": 0x3003, "loop.1": 0x300A}

    def test_missing_symbol_file(self, tmp_path):
        with pytest.raises(OSError):
            SymbolFileLoader().load_symbols(str(tmp_path / "missing.sym"))
