from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "vitlint.toml"

SEVERITIES = ("off", "warn", "error")

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, *keys: str) -> TomlTable:
    current: TomlValue = data
    for key in keys:
        if not isinstance(current, dict):
            return {}
        current = current.get(key, {})
    return current if isinstance(current, dict) else {}


def rules_defaults(data: TomlTable) -> dict[str, TomlTable]:
    section = _section(data, "rules")
    return {name: value for name, value in section.items() if isinstance(value, dict)}


def vitest_settings_defaults(data: TomlTable) -> TomlTable:
    return _section(data, "settings", "vitest")


def path_defaults(data: TomlTable) -> TomlTable:
    return _section(data, "paths")


def normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def normalize_severity(value: TomlValue, *, default: str = "error") -> str:
    if isinstance(value, bool):
        return "error" if value else "off"
    if isinstance(value, int):
        return SEVERITIES[value] if 0 <= value < len(SEVERITIES) else default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "warning":
            return "warn"
        if lowered in SEVERITIES:
            return lowered
    return default


def exclude_dirs(section: TomlTable | None) -> list[str]:
    if not section:
        return []
    return normalize_name_list(section.get("exclude"))
