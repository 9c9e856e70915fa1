# tests/arch/lc3/test_traps.py
"""
TRAP命令とトラップルーチンのテスト。
"""
import io
import pytest

from lc3_vm.transport.bus import Bus, RAM
from lc3_vm.console.console import StreamConsole
from lc3_vm.arch.lc3.cpu import Lc3Cpu
from lc3_vm.arch.lc3.state import FL_POS, FL_NEG
from lc3_vm.arch.lc3.instructions import decode_opcode, ExecutionContext
from lc3_vm.common.errors import UndefinedTrapError
from lc3_vm.transport.keyboard import KeyboardDevice

# @intent:test_suite トラップルーチンのコンソール入出力とR7の保存を検証します。

class Machine:
    """テスト用にバス、コンソール、CPUをまとめたもの。"""
    def __init__(self, input_bytes: bytes = b"", **context_options):
        self.output = io.BytesIO()
        self.bus = Bus()
        self.bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
        self.console = StreamConsole(io.BytesIO(input_bytes), self.output)
        self.cpu = Lc3Cpu(self.bus, ExecutionContext(self.console, **context_options))
        self.state = self.cpu.get_state()

    def execute(self, instruction: int):
        self.bus.load(0x3000, instruction)
        self.state.pc = 0x3000
        return self.cpu.step()

    def load_words(self, address: int, words):
        for i, word in enumerate(words):
            self.bus.load(address + i, word)

def test_getc_reads_without_echo():
    m = Machine(b"a")
    m.execute(0xF020)
    assert m.state.get_register(0) == ord("a")
    assert m.state.cond == FL_POS
    assert m.output.getvalue() == b""
    assert m.state.get_register(7) == 0x3001

# @intent:test_case 入力の終端ではR0に0xFFFFが格納されます。
def test_getc_at_eof():
    m = Machine(b"")
    m.execute(0xF020)
    assert m.state.get_register(0) == 0xFFFF
    assert m.state.cond == FL_NEG

def test_out_writes_low_byte():
    m = Machine()
    m.state.set_register(0, 0x0141)
    m.execute(0xF021)
    assert m.output.getvalue() == b"A"

def test_puts_writes_until_zero_word():
    m = Machine()
    m.load_words(0x4000, [0x0048, 0x0169, 0x0021, 0x0000, 0x0058])
    m.state.set_register(0, 0x4000)
    m.execute(0xF022)
    assert m.output.getvalue() == b"Hi!"

def test_puts_empty_string():
    m = Machine()
    m.state.set_register(0, 0x4000)
    m.execute(0xF022)
    assert m.output.getvalue() == b""

def test_in_prompts_and_echoes():
    m = Machine(b"xy")
    m.execute(0xF023)
    assert m.output.getvalue() == b"Enter a character: x"
    assert m.state.get_register(0) == ord("x")

def test_in_at_eof_does_not_echo():
    m = Machine(b"")
    m.execute(0xF023)
    assert m.output.getvalue() == b"Enter a character: "
    assert m.state.get_register(0) == 0xFFFF

def test_in_uses_configured_prompt():
    m = Machine(b"q", in_prompt="> ")
    m.execute(0xF023)
    assert m.output.getvalue() == b"> q"

def test_putsp_unpacks_two_chars_per_word():
    m = Machine()
    # "Hel" : 'H','e' / 'l',0
    m.load_words(0x4000, [0x6548, 0x006C, 0x0000])
    m.state.set_register(0, 0x4000)
    m.execute(0xF024)
    assert m.output.getvalue() == b"Hel"

def test_halt():
    m = Machine()
    snapshot = m.execute(0xF025)
    assert m.output.getvalue() == b"HALT\n"
    assert m.state.halted
    assert m.cpu.is_halted
    assert snapshot.operation.mnemonic == "HALT"
    assert m.state.get_register(7) == 0x3001

def test_halt_custom_message():
    m = Machine(halt_message="bye")
    m.execute(0xF025)
    assert m.output.getvalue() == b"bye\n"

# @intent:test_case 未定義のベクタは既定ではR7の保存のみ行い、次の命令へ進みます。
def test_undefined_trap_is_ignored_by_default():
    m = Machine()
    m.state.set_register(0, 0x0041)
    m.execute(0xF026)
    assert m.state.get_register(7) == 0x3001
    assert m.state.get_register(0) == 0x0041
    assert m.state.pc == 0x3001
    assert not m.state.halted
    assert m.output.getvalue() == b""

def test_undefined_trap_fatal():
    m = Machine(undefined_trap_fatal=True)
    m.state.set_register(7, 0x1234)
    with pytest.raises(UndefinedTrapError) as excinfo:
        m.execute(0xF026)
    assert excinfo.value.vector == 0x26
    assert excinfo.value.address == 0x3000
    assert m.state.get_register(7) == 0x1234

@pytest.mark.parametrize("instruction, text", [
    (0xF020, "GETC"),
    (0xF021, "OUT"),
    (0xF022, "PUTS"),
    (0xF023, "IN"),
    (0xF024, "PUTSP"),
    (0xF025, "HALT"),
    (0xF026, "TRAP x26"),
])
def test_decode_trap(instruction, text):
    assert decode_opcode(instruction, 0x3000).text() == text

# @intent:test_case 文字列の読み出しはアクセスログに記録されず、記録されるのは命令フェッチのみです。
def test_puts_does_not_log_string_reads():
    m = Machine()
    m.load_words(0x4000, [0x0041, 0x0042, 0x0000])
    m.state.set_register(0, 0x4000)
    snapshot = m.execute(0xF022)
    assert [access.address for access in snapshot.bus_activity] == [0x3000]

# @intent:test_case キーボードレジスタに掛かる文字列を出力しても、キーボードはポーリングされません。
@pytest.mark.parametrize("instruction", [0xF022, 0xF024])
def test_string_output_does_not_poll_keyboard(instruction):
    m = Machine(b"z")
    m.bus.register_device(0xFE00, 0xFE02, KeyboardDevice(m.console, poll_timeout=0))
    m.load_words(0xFDFE, [0x0041, 0x0042])
    m.state.set_register(0, 0xFDFE)
    m.execute(instruction)
    # KBSRは未ポーリングのため0で、文字列の終端になる
    assert m.output.getvalue() == b"AB"
    assert m.console.read_char() == ord("z")
