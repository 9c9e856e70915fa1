# lc3_vm/arch/lc3/instructions/base.py
"""
LC-3命令実装用の共通ユーティリティ。

全ての命令が使う符号拡張、ビットフィールド抽出、条件コード更新と、
命令実行に必要な外部環境（コンソールと実行ポリシー）を定義します。
"""
from dataclasses import dataclass

from lc3_vm.arch.lc3.state import Lc3CpuState, FL_POS, FL_ZRO, FL_NEG
from lc3_vm.console.console import Console

# @intent:responsibility 命令の実行に必要な、CPU状態とバス以外の環境を保持します。
@dataclass
class ExecutionContext:
    """
    トラップルーチンが使うコンソールと、挙動を切り替えるポリシーを保持します。
    """
    console: Console
    halt_message: str = "HALT"
    in_prompt: str = "Enter a character: "
    undefined_trap_fatal: bool = False
    ldr_double_indirect: bool = True

# @intent:utility_function 下位bit_countビットの値を16ビットに符号拡張します。
def sign_extend(value: int, bit_count: int) -> int:
    value &= (1 << bit_count) - 1
    if (value >> (bit_count - 1)) & 1:
        value |= (0xFFFF << bit_count)
    return value & 0xFFFF

# @intent:utility_function 16ビットワードを符号付き整数として解釈します。表示用。
def to_signed(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value

# --- フィールド抽出 ---

def opcode_of(instruction: int) -> int:
    return (instruction >> 12) & 0xF

def dr_of(instruction: int) -> int:
    return (instruction >> 9) & 0x7

def sr1_of(instruction: int) -> int:
    """SR1またはBaseR（ビット8-6）。"""
    return (instruction >> 6) & 0x7

def sr2_of(instruction: int) -> int:
    return instruction & 0x7

def is_immediate(instruction: int) -> bool:
    return (instruction >> 5) & 0x1 == 1

def is_long_jump(instruction: int) -> bool:
    return (instruction >> 11) & 0x1 == 1

def imm5_of(instruction: int) -> int:
    return sign_extend(instruction & 0x1F, 5)

def offset6_of(instruction: int) -> int:
    return sign_extend(instruction & 0x3F, 6)

def pc_offset9_of(instruction: int) -> int:
    return sign_extend(instruction & 0x1FF, 9)

def pc_offset11_of(instruction: int) -> int:
    return sign_extend(instruction & 0x7FF, 11)

def trap_vector_of(instruction: int) -> int:
    return instruction & 0xFF

# @intent:utility_function 書き込まれたレジスタの値に基づいて条件コードを更新します。
# @intent:post-condition N, Z, P のうち正確に1つだけがセットされます。
def update_flags(state: Lc3CpuState, reg: int) -> None:
    value = state.get_register(reg)
    if value == 0:
        state.cond = FL_ZRO
    elif value >> 15:
        state.cond = FL_NEG
    else:
        state.cond = FL_POS

# @intent:utility_function デコード結果の表示用にレジスタ名を返します。
def reg_name(index: int) -> str:
    return f"R{index}"

# @intent:utility_function PC相対アドレスの表示用文字列を返します（LC-3アセンブラ表記）。
def addr_text(address: int) -> str:
    return f"x{address & 0xFFFF:04X}"
