from dataclasses import dataclass, field

from lc3_vm.arch.lc3.state import PC_START

# @intent:constant 未定義トラップの扱い。
UNDEFINED_TRAP_POLICIES = ("ignore", "fatal")

@dataclass
class KeyboardConfig:
    status_address: int = 0xFE00  # KBSR
    data_address: int = 0xFE02    # KBDR
    poll_timeout: float = 1.0     # 秒

@dataclass
class TrapConfig:
    halt_message: str = "HALT"
    in_prompt: str = "Enter a character: "
    undefined_trap: str = "ignore"  # "ignore", "fatal"

@dataclass
class SystemConfig:
    entry_pc: int = PC_START
    keyboard: KeyboardConfig = field(default_factory=KeyboardConfig)
    traps: TrapConfig = field(default_factory=TrapConfig)
    ldr_double_indirect: bool = True
