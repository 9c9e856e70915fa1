# lc3_vm/arch/lc3/instructions/maps.py
"""
オペコードと命令実装のマッピング定義。
"""
from . import load
from . import alu
from . import control
from . import trap

# @intent:constant 4bitオペコードの値。
OP_BR = 0x0
OP_ADD = 0x1
OP_LD = 0x2
OP_ST = 0x3
OP_JSR = 0x4
OP_AND = 0x5
OP_LDR = 0x6
OP_STR = 0x7
OP_RTI = 0x8
OP_NOT = 0x9
OP_LDI = 0xA
OP_STI = 0xB
OP_JMP = 0xC
OP_RES = 0xD
OP_LEA = 0xE
OP_TRAP = 0xF

# @intent:map オペコード（4bit）からデコード関数へのマッピングテーブル。
DECODE_MAP = {
    # ALU
    OP_ADD: alu.decode_add,
    OP_AND: alu.decode_and,
    OP_NOT: alu.decode_not,

    # Load/Store
    OP_LD: load.decode_ld,
    OP_LDI: load.decode_ldi,
    OP_LDR: load.decode_ldr,
    OP_LEA: load.decode_lea,
    OP_ST: load.decode_st,
    OP_STI: load.decode_sti,
    OP_STR: load.decode_str,

    # Control
    OP_BR: control.decode_br,
    OP_JMP: control.decode_jmp,
    OP_JSR: control.decode_jsr,
    OP_RTI: control.decode_rti,
    OP_RES: control.decode_res,

    # Trap
    OP_TRAP: trap.decode_trap,
}

# @intent:map オペコード（4bit）から実行関数へのマッピングテーブル。
EXECUTE_MAP = {
    # ALU
    OP_ADD: alu.execute_add,
    OP_AND: alu.execute_and,
    OP_NOT: alu.execute_not,

    # Load/Store
    OP_LD: load.execute_ld,
    OP_LDI: load.execute_ldi,
    OP_LDR: load.execute_ldr,
    OP_LEA: load.execute_lea,
    OP_ST: load.execute_st,
    OP_STI: load.execute_sti,
    OP_STR: load.execute_str,

    # Control
    OP_BR: control.execute_br,
    OP_JMP: control.execute_jmp,
    OP_JSR: control.execute_jsr,
    OP_RTI: control.execute_illegal,
    OP_RES: control.execute_illegal,

    # Trap
    OP_TRAP: trap.execute_trap,
}
