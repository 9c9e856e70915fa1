from typing import Tuple
from lc3_vm.transport.bus import Bus, RAM
from lc3_vm.transport.keyboard import KeyboardDevice
from lc3_vm.console.console import Console
from lc3_vm.common.types import MEMORY_SIZE
from lc3_vm.arch.lc3.cpu import Lc3Cpu
from lc3_vm.arch.lc3.instructions import ExecutionContext
from .models import SystemConfig

# @intent:responsibility システム構成（Config）に基づいて、Bus、Device、CPUを生成・接続します。
# @intent:rationale 呼び出しごとに新しいBus、RAM、状態を生成するため、複数のマシンが状態を共有することはありません。
class SystemBuilder:
    def build_system(self, config: SystemConfig, console: Console) -> Tuple[Lc3Cpu, Bus]:
        bus = Bus()

        # 全アドレス空間をRAMで覆い、その上にキーボードレジスタを重ねる
        bus.register_device(0x0000, MEMORY_SIZE - 1, RAM(MEMORY_SIZE))

        kb = config.keyboard
        keyboard = KeyboardDevice(
            console,
            poll_timeout=kb.poll_timeout,
            data_offset=kb.data_address - kb.status_address,
        )
        bus.register_device(kb.status_address, kb.data_address, keyboard)

        context = ExecutionContext(
            console=console,
            halt_message=config.traps.halt_message,
            in_prompt=config.traps.in_prompt,
            undefined_trap_fatal=(config.traps.undefined_trap == "fatal"),
            ldr_double_indirect=config.ldr_double_indirect,
        )
        cpu = Lc3Cpu(bus, context, entry_pc=config.entry_pc)
        return cpu, bus
