"""外部协作者接口契约

安装器只依赖这些 Protocol，不依赖具体实现:
  - Loader:        把文件载入运行中的进程 / 卸载
  - Registry:      持久化的自动加载清单
  - Policy:        所有 是/否 决策（交互确认或批处理固定策略）
  - CodeGenerator: 内联标记扫描与 autoload 桩生成
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from modpkg.core.registry import RegistryEntry


class PromptKind(str, enum.Enum):
    """需要调用方批准的操作类型"""

    DOWNLOAD = "download"
    OVERWRITE = "overwrite"
    GENERATE_STUB = "generate_stub"
    REGISTER = "register"
    DELETE_SIBLINGS = "delete_siblings"
    DELETE_SUBDIRECTORY = "delete_subdirectory"


class Loader(Protocol):
    """模块加载器

    activate 缺少依赖时必须抛 MissingDependencyError(name)，
    其余失败按原样抛出。
    """

    def activate(self, module_name: str, path: Path) -> None:
        ...

    def deactivate(self, module_name: str) -> None:
        ...

    def is_active(self, module_name: str) -> bool:
        ...


class Registry(Protocol):
    """自动加载清单（持久化由实现方负责）"""

    def list_entries(self) -> list[RegistryEntry]:
        ...

    def save(self, entries: list[RegistryEntry]) -> None:
        ...


class Policy(Protocol):
    def approve(self, kind: PromptKind, context: str) -> bool:
        ...


class CodeGenerator(Protocol):
    def has_inline_markers(self, path: Path) -> bool:
        ...

    def generate_stub(self, path: Path) -> Path | None:
        ...
