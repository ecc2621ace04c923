"""自动加载清单 — YAML 文件持久化

文件格式:
    autoload:
      - foo                      # 启动时按名称定位
      - [bar, /path/to/bar.py]   # 固定路径，跳过定位
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from modpkg.core.exceptions import ConfigError
from modpkg.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    """清单条目：模块名 + 可选的固定路径"""

    module_name: str
    path: str | None = None

    def to_raw(self) -> str | list[str]:
        if self.path is None:
            return self.module_name
        return [self.module_name, self.path]

    @classmethod
    def from_raw(cls, raw: Any) -> RegistryEntry:
        if isinstance(raw, str):
            return cls(raw)
        if isinstance(raw, (list, tuple)) and len(raw) == 2 and all(
            isinstance(x, str) for x in raw
        ):
            return cls(raw[0], raw[1])
        raise ConfigError(f"无效的自动加载条目: {raw!r}")


def find_entry(entries: list[RegistryEntry], module_name: str) -> RegistryEntry | None:
    for e in entries:
        if e.module_name == module_name:
            return e
    return None


class AutoloadRegistry:
    """YAML 文件实现的自动加载清单"""

    section_key = "autoload"

    def __init__(self, registry_file: str | Path) -> None:
        self.registry_file = Path(registry_file).expanduser()

    def list_entries(self) -> list[RegistryEntry]:
        data = load_yaml(self.registry_file)
        raw = data.get(self.section_key) or []
        if not isinstance(raw, list):
            raise ConfigError(f"{self.registry_file}: {self.section_key} 必须是列表")
        return [RegistryEntry.from_raw(r) for r in raw]

    def save(self, entries: list[RegistryEntry]) -> None:
        # 保留文件中其它段
        data = load_yaml(self.registry_file)
        data[self.section_key] = [e.to_raw() for e in entries]
        save_yaml(self.registry_file, data)
        logger.info("自动加载清单已保存: %s (%d 项)", self.registry_file, len(entries))
