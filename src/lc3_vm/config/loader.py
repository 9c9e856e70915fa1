import yaml
from typing import Dict, Any, Optional
from .models import SystemConfig, KeyboardConfig, TrapConfig, UNDEFINED_TRAP_POLICIES

class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r', encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return self.parse_config(data)

    def parse_config(self, data: Optional[Dict[str, Any]]) -> SystemConfig:
        # 空のYAMLファイルはNoneになる
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid configuration: expected a mapping, got {type(data).__name__}")

        defaults = SystemConfig()

        keyboard_data = self._section(data, "keyboard")
        keyboard = KeyboardConfig(
            status_address=self._parse_address(keyboard_data.get("status_address", defaults.keyboard.status_address)),
            data_address=self._parse_address(keyboard_data.get("data_address", defaults.keyboard.data_address)),
            poll_timeout=float(keyboard_data.get("poll_timeout", defaults.keyboard.poll_timeout)),
        )
        if keyboard.data_address <= keyboard.status_address:
            raise ValueError("keyboard.data_address must be greater than keyboard.status_address")
        if keyboard.poll_timeout < 0:
            raise ValueError("keyboard.poll_timeout must not be negative")

        traps_data = self._section(data, "traps")
        traps = TrapConfig(
            halt_message=str(traps_data.get("halt_message", defaults.traps.halt_message)),
            in_prompt=str(traps_data.get("in_prompt", defaults.traps.in_prompt)),
            undefined_trap=str(traps_data.get("undefined_trap", defaults.traps.undefined_trap)).lower(),
        )
        if traps.undefined_trap not in UNDEFINED_TRAP_POLICIES:
            raise ValueError(
                f"Invalid traps.undefined_trap: {traps.undefined_trap} (expected one of {', '.join(UNDEFINED_TRAP_POLICIES)})"
            )

        return SystemConfig(
            entry_pc=self._parse_address(data.get("entry_pc", defaults.entry_pc)),
            keyboard=keyboard,
            traps=traps,
            ldr_double_indirect=self._parse_bool(data, "ldr_double_indirect", defaults.ldr_double_indirect),
        )

    # @intent:utility_function 省略または空のセクションは空の辞書として扱い、マッピング以外はエラーにします。
    def _section(self, data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ValueError(f"Invalid configuration: {name} must be a mapping, got {type(section).__name__}")
        return section

    def _parse_bool(self, data: Dict[str, Any], name: str, default: bool) -> bool:
        value = data.get(name, default)
        if not isinstance(value, bool):
            raise ValueError(f"Invalid boolean for {name}: {value!r} (expected true or false)")
        return value

    def _parse_address(self, value: Any) -> int:
        address = self._parse_int(value)
        if not 0 <= address <= 0xFFFF:
            raise ValueError(f"Address out of range: {value}")
        return address

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            value = value.strip()
            if value.lower().startswith("0x"):
                return int(value, 16)
            # LC-3アセンブラ表記 (x3000)
            if value[:1] in ("x", "X"):
                return int(value[1:], 16)
            return int(value)
        raise ValueError(f"Invalid integer format: {value}")
