# lc3_vm/arch/lc3/disassembler.py
"""
LC-3 Disassembler

メモリ上のワードを解析し、LC-3のアセンブリ言語（ニーモニック）に変換します。
Instruction Layerのデコードロジックを再利用し、Bus.peekで読み出すため
バスアクセスログやメモリマップドレジスタの状態を変化させません。
"""
from typing import List, Tuple
from lc3_vm.transport.bus import Bus
from lc3_vm.arch.lc3.instructions import decode_opcode

# @intent:responsibility 指定されたメモリ範囲を逆アセンブルし、表示用データを生成します。
def disassemble(bus: Bus, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    指定された範囲のメモリを逆アセンブルします。

    Returns:
        List of (address, hex_word, text) tuples.
    """
    result = []
    current_addr = start_addr
    end_addr = start_addr + length

    while current_addr < end_addr:
        # メモリ境界チェック
        if current_addr > 0xFFFF:
            break

        instruction = bus.peek(current_addr)
        operation = decode_opcode(instruction, current_addr)
        result.append((current_addr, f"{instruction:04X}", operation.text()))

        # LC-3の命令は全て1ワード
        current_addr += operation.length

    return result
