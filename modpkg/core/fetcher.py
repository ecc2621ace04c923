"""模块下载器

两条路径:
  - fetch(name):    按名称依次尝试下载策略（本地镜像 / URL 模板 ...），
                    第一个成功的策略即终止，全部失败为 FetchError
  - fetch_url(url): 直接调用外部传输工具（默认 wget）下载

下载结果统一保存到 download_dir；同名文件已存在时另存为 name.1、name.2 …
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from modpkg.core.exceptions import ExternalToolError, FetchError, NameInferenceError
from modpkg.core.locator import infer_module_name
from modpkg.core.protocols import Policy, PromptKind
from modpkg.utils.net import url_basename, validate_url_scheme
from modpkg.utils.shell import CommandExecutor, run_tool

logger = logging.getLogger(__name__)


def unique_path(path: Path) -> Path:
    """path 已存在时追加 .1 / .2 … 直到不冲突"""
    if not path.exists():
        return path
    n = 1
    while True:
        candidate = path.with_name(f"{path.name}.{n}")
        if not candidate.exists():
            return candidate
        n += 1


class TransferTool:
    """外部传输工具封装

    command 为参数模板，{url} 与 {dest} 会被替换:
        ["wget", "-q", "-O", "{dest}", "{url}"]
        ["curl", "-fsSL", "-o", "{dest}", "{url}"]
    """

    def __init__(
        self,
        command: Sequence[str] = ("wget", "-q", "-O", "{dest}", "{url}"),
        executor: CommandExecutor | None = None,
        timeout: int | None = None,
    ) -> None:
        if not command:
            raise ValueError("传输命令不能为空")
        self.command = list(command)
        self.executor = executor
        self.timeout = timeout

    def download(self, url: str, dest_dir: Path, *, module: str = "") -> Path:
        """下载 url 到 dest_dir，返回保存路径

        Raises:
            ValidationError: URL 协议不允许
            FetchError: URL 中没有文件名
            ExternalToolError: 传输工具返回非零
        """
        validate_url_scheme(url, context=f"download {module}" if module else "")
        filename = url_basename(url)
        if not filename:
            raise FetchError(f"无法从 URL 解析文件名: {url}", module=module)

        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = unique_path(dest_dir / filename)
        argv = [a.replace("{url}", url).replace("{dest}", str(dest)) for a in self.command]
        logger.info("  下载: %s", url)
        try:
            run_tool(
                argv, cwd=str(dest_dir), target=url, module=module,
                timeout=self.timeout, executor=self.executor,
            )
        except ExternalToolError:
            dest.unlink(missing_ok=True)
            raise
        if not dest.exists():
            raise FetchError(f"{argv[0]} 未生成文件: {dest}", module=module)
        logger.info("  已保存: %s", dest)
        return dest


class DownloadStrategy(Protocol):
    """按模块名下载的策略；找不到返回 None，不抛异常"""

    name: str

    def download(self, module_name: str, dest_dir: Path) -> Path | None:
        ...


class MirrorDirectoryStrategy:
    """从本地镜像目录复制（文件名推断出的模块名须一致）"""

    name = "mirror"

    def __init__(self, directories: Sequence[str | Path]) -> None:
        self.directories = [Path(d).expanduser() for d in directories]

    def download(self, module_name: str, dest_dir: Path) -> Path | None:
        for d in self.directories:
            if not d.is_dir():
                continue
            for f in sorted(d.iterdir()):
                if not f.is_file():
                    continue
                try:
                    if infer_module_name(f.name) != module_name:
                        continue
                except NameInferenceError:
                    continue
                dest_dir.mkdir(parents=True, exist_ok=True)
                dest = unique_path(dest_dir / f.name)
                shutil.copy2(f, dest)
                logger.info("  镜像命中: %s", f)
                return dest
        return None


class UrlTemplateStrategy:
    """按 URL 模板列表依次尝试，{name} 替换为模块名"""

    name = "url"

    def __init__(self, templates: Sequence[str], transfer: TransferTool) -> None:
        self.templates = list(templates)
        self.transfer = transfer

    def download(self, module_name: str, dest_dir: Path) -> Path | None:
        for template in self.templates:
            url = template.replace("{name}", module_name)
            try:
                return self.transfer.download(url, dest_dir, module=module_name)
            except (ExternalToolError, FetchError) as e:
                logger.warning("  下载失败，尝试下一个地址: %s (%s)", url, e)
        return None


class Fetcher:
    """下载策略链"""

    def __init__(
        self,
        strategies: Sequence[DownloadStrategy],
        transfer: TransferTool,
        download_dir: str | Path,
        policy: Policy,
    ) -> None:
        self.strategies = list(strategies)
        self.transfer = transfer
        self.download_dir = Path(download_dir).expanduser()
        self.policy = policy

    def fetch(self, module_name: str) -> Path:
        """按名称下载模块，返回下载到本地的文件

        Raises:
            FetchError: 下载未获批准或所有策略都失败
        """
        if not self.policy.approve(PromptKind.DOWNLOAD, module_name):
            raise FetchError(f"未获准下载模块 '{module_name}'", module=module_name)

        for strategy in self.strategies:
            logger.info("尝试下载策略 %s: %s", strategy.name, module_name)
            path = strategy.download(module_name, self.download_dir)
            if path is not None:
                return path

        tried = ", ".join(s.name for s in self.strategies) or "无"
        raise FetchError(
            f"所有下载策略均未找到模块 '{module_name}' (已尝试: {tried})",
            module=module_name,
        )

    def fetch_url(self, url: str, *, module: str = "") -> Path:
        return self.transfer.download(url, self.download_dir, module=module)
