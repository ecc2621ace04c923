"""共享 fixture — 假协作者 + 组装好的安装器

假协作者:
  FakeLoader:     按 requires 表模拟 "缺少依赖"，记录每次激活
  MemoryRegistry: 内存中的自动加载清单
  FakeExecutor:   记录命令并按需模拟外部工具（下载写文件 / 失败）

installer fixture 的目录布局:
  tmp/load     显式加载目录（第一个搜索目录）
  tmp/site     安装目录（最后一个搜索目录）
  tmp/mirror   本地镜像（唯一的下载策略）
  tmp/dl       下载目录
  tmp/scratch  解包临时目录根
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from modpkg.core.archive import ArchiveExtractor
from modpkg.core.exceptions import MissingDependencyError
from modpkg.core.fetcher import Fetcher, MirrorDirectoryStrategy, TransferTool
from modpkg.core.installer import Installer
from modpkg.core.locator import ModuleLocator
from modpkg.core.policy import FixedPolicy
from modpkg.core.registry import RegistryEntry
from modpkg.utils.shell import CommandResult


class FakeLoader:
    def __init__(self, requires: dict[str, list[str]] | None = None) -> None:
        self.requires = requires or {}
        self.active: dict[str, Path] = {}
        self.calls: list[tuple[str, Path]] = []
        self.deactivated: list[str] = []

    def activate(self, module_name: str, path: Path) -> None:
        self.calls.append((module_name, path))
        for dep in self.requires.get(module_name, []):
            if dep not in self.active:
                raise MissingDependencyError(dep, module=module_name)
        self.active[module_name] = path

    def deactivate(self, module_name: str) -> None:
        self.deactivated.append(module_name)
        self.active.pop(module_name, None)

    def is_active(self, module_name: str) -> bool:
        return module_name in self.active


class MemoryRegistry:
    def __init__(self, entries: list[RegistryEntry] | None = None) -> None:
        self.entries = list(entries or [])
        self.saves = 0

    def list_entries(self) -> list[RegistryEntry]:
        return list(self.entries)

    def save(self, entries: list[RegistryEntry]) -> None:
        self.entries = list(entries)
        self.saves += 1


class FakeExecutor:
    """记录命令；handler 返回 CommandResult 时使用之，默认成功"""

    def __init__(
        self, handler: Callable[[list[str], str], CommandResult | None] | None = None,
    ) -> None:
        self.handler = handler
        self.commands: list[tuple[list[str], str]] = []

    def execute(
        self, cmd: list[str], *, cwd: str = ".", timeout: int | None = None,
    ) -> CommandResult:
        self.commands.append((list(cmd), cwd))
        if self.handler is not None:
            result = self.handler(list(cmd), cwd)
            if result is not None:
                return result
        return CommandResult(returncode=0, output="")


def wget_writer(content: str = "X = 1\n") -> Callable[[list[str], str], CommandResult | None]:
    """模拟 `wget -q -O <dest> <url>`: 向 -O 后的路径写入内容"""

    def handler(cmd: list[str], cwd: str) -> CommandResult | None:
        dest = Path(cmd[cmd.index("-O") + 1])
        dest.write_text(content, encoding="utf-8")
        return None

    return handler


def write_file(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture()
def layout(tmp_path: Path) -> dict[str, Path]:
    dirs = {k: tmp_path / k for k in ("load", "site", "mirror", "dl", "scratch")}
    for d in dirs.values():
        d.mkdir()
    return dirs


@pytest.fixture()
def fake_loader() -> FakeLoader:
    return FakeLoader()


@pytest.fixture()
def memory_registry() -> MemoryRegistry:
    return MemoryRegistry()


@pytest.fixture()
def make_installer(
    layout: dict[str, Path], fake_loader: FakeLoader, memory_registry: MemoryRegistry,
):
    """安装器工厂 — 可覆盖 policy / executor / codegen"""

    def _make(
        policy: FixedPolicy | None = None,
        executor: FakeExecutor | None = None,
        codegen: object | None = None,
    ) -> Installer:
        policy = policy or FixedPolicy(default=True)
        executor = executor or FakeExecutor(wget_writer())
        locator = ModuleLocator([layout["load"], layout["site"]])
        transfer = TransferTool(executor=executor)
        return Installer(
            locator=locator,
            fetcher=Fetcher(
                [MirrorDirectoryStrategy([layout["mirror"]])],
                transfer, layout["dl"], policy,
            ),
            extractor=ArchiveExtractor(layout["scratch"]),
            loader=fake_loader,
            registry=memory_registry,
            policy=policy,
            install_dir=layout["site"],
            codegen=codegen,  # type: ignore[arg-type]
        )

    return _make
