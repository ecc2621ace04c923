"""安装器 / 依赖解析器

单次安装请求的流程:

    识别 → 获取 → 落盘 → 激活 → 登记

  识别: 判断输入是模块名、本地文件还是 URL，并确定模块名
  获取: 模块名且本地已能定位时跳过；否则下载（URL 直接下载，名称走下载策略链）
  落盘: 压缩包解到安装目录，单文件直接复制；随后重新定位可加载文件
  激活: 交给加载器；加载器报告缺少依赖时递归安装该依赖，然后只重试激活
  登记: 模块不在自动加载清单中时，经批准后加入

正在安装的模块名保存在实例内的有序集合中，用于发现循环依赖；
每次激活结束（无论成败）都会移除。
"""

from __future__ import annotations

import contextlib
import enum
import logging
import re
import shutil
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from modpkg.core.archive import ArchiveExtractor, detect_type
from modpkg.core.codegen import NullCodeGenerator
from modpkg.core.config import Config, get_config
from modpkg.core.exceptions import (
    CircularDependencyError,
    MissingDependencyError,
    NoLoadableFileError,
    NotInstalledError,
    OverwriteDeclinedError,
    UnresolvedModuleError,
)
from modpkg.core.fetcher import (
    DownloadStrategy,
    Fetcher,
    MirrorDirectoryStrategy,
    TransferTool,
    UrlTemplateStrategy,
)
from modpkg.core.loader import PythonLoader
from modpkg.core.locator import (
    CandidateFile,
    ModuleLocator,
    NamingConvention,
    infer_module_name,
)
from modpkg.core.protocols import CodeGenerator, Loader, Policy, PromptKind, Registry
from modpkg.core.registry import AutoloadRegistry, RegistryEntry, find_entry
from modpkg.utils.net import looks_like_url, url_basename
from modpkg.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)

_DISAMBIGUATOR_RE = re.compile(r"\.[0-9]+$")


class TargetKind(str, enum.Enum):
    NAME = "name"
    FILE = "file"
    URL = "url"


def classify_target(target: str) -> TargetKind:
    if looks_like_url(target):
        return TargetKind.URL
    if Path(target).expanduser().is_file():
        return TargetKind.FILE
    return TargetKind.NAME


@dataclass
class InstallResult:
    module_name: str
    path: Path
    fetched: bool = False
    registered: bool = False


@dataclass
class UninstallReport:
    module_name: str
    deactivated: bool = False
    unregistered: bool = False
    removed: list[Path] = field(default_factory=list)


class Installer:
    """模块安装器（含依赖递归安装与卸载）"""

    def __init__(
        self,
        *,
        locator: ModuleLocator,
        fetcher: Fetcher,
        extractor: ArchiveExtractor,
        loader: Loader,
        registry: Registry,
        policy: Policy,
        install_dir: str | Path,
        codegen: CodeGenerator | None = None,
    ) -> None:
        self.locator = locator
        self.fetcher = fetcher
        self.extractor = extractor
        self.loader = loader
        self.registry = registry
        self.policy = policy
        self.install_dir = Path(install_dir).expanduser()
        self.codegen: CodeGenerator = codegen or NullCodeGenerator()
        # dict 作有序集合: 模块名 → None
        self._installing: dict[str, None] = {}

    @classmethod
    def from_config(
        cls,
        config: Config | None,
        policy: Policy,
        *,
        executor: CommandExecutor | None = None,
        loader: Loader | None = None,
        registry: Registry | None = None,
        codegen: CodeGenerator | None = None,
    ) -> Installer:
        """按配置组装默认协作者；config 为 None 时使用全局配置"""
        if config is None:
            config = get_config()
        convention = NamingConvention(
            source_suffix=config.source_suffix,
            compiled_suffix=config.compiled_suffix,
        )
        locator = ModuleLocator(config.search_roots, convention)
        transfer = TransferTool(
            config.transfer_command, executor=executor, timeout=config.tool_timeout,
        )
        strategies: list[DownloadStrategy] = []
        if config.mirror_dirs:
            strategies.append(MirrorDirectoryStrategy(config.mirror_dirs))
        if config.url_templates:
            strategies.append(UrlTemplateStrategy(config.url_templates, transfer))
        return cls(
            locator=locator,
            fetcher=Fetcher(strategies, transfer, config.download_dir, policy),
            extractor=ArchiveExtractor(
                config.scratch_dir or None, executor=executor, timeout=config.tool_timeout,
            ),
            loader=loader or PythonLoader(locator),
            registry=registry or AutoloadRegistry(config.registry_file),
            policy=policy,
            install_dir=config.install_path,
            codegen=codegen,
        )

    @property
    def installing(self) -> tuple[str, ...]:
        """当前正在激活的模块（外层在前）"""
        return tuple(self._installing)

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install(self, target: str, module_name: str | None = None) -> InstallResult:
        """安装模块名 / 本地文件 / URL 指向的模块，返回激活的文件

        Raises:
            NameInferenceError, FetchError, OverwriteDeclinedError,
            NoLoadableFileError, CircularDependencyError, 以及压缩包 /
            外部工具 / 加载器抛出的异常
        """
        kind = classify_target(target)
        if module_name:
            name = module_name
        elif kind is TargetKind.NAME:
            name = target
        elif kind is TargetKind.URL:
            name = infer_module_name(url_basename(target) or target)
        else:
            name = infer_module_name(target)
        logger.info("安装 %s (%s: %s)", name, kind.value, target)

        resolved: CandidateFile | None = None
        if kind is TargetKind.NAME:
            resolved = self.locator.resolve(name, allow_autoload=True)
        fetched = resolved is None and kind is not TargetKind.FILE

        if resolved is None:
            artifact, downloaded = self._acquire(kind, target, name)
            resolved = self._stage(name, artifact, downloaded)
        else:
            logger.info("本地已存在，跳过下载: %s -> %s", name, resolved.source_path)

        path = self._activate(name, resolved)
        registered = self._finalize(name, path)
        logger.info("安装完成: %s -> %s", name, path)
        return InstallResult(name, path, fetched=fetched, registered=registered)

    def _acquire(self, kind: TargetKind, target: str, name: str) -> tuple[Path, bool]:
        """返回 (待落盘文件, 是否为本次新下载)"""
        if kind is TargetKind.URL:
            return self.fetcher.fetch_url(target, module=name), True
        if kind is TargetKind.FILE:
            return Path(target).expanduser(), False
        return self.fetcher.fetch(name), True

    def _stage(self, name: str, artifact: Path, downloaded: bool) -> CandidateFile:
        try:
            if detect_type(artifact.name) is not None:
                self.extractor.extract(name, artifact, self.install_dir)
            else:
                self._copy_single(name, artifact, downloaded)
        finally:
            if downloaded:
                artifact.unlink(missing_ok=True)

        resolved = self.locator.resolve(name, allow_autoload=True)
        if resolved is None:
            raise NoLoadableFileError(
                f"已落盘 {artifact.name}，但找不到模块 '{name}' 的可加载文件",
                module=name,
            )
        return resolved

    def _copy_single(self, name: str, artifact: Path, downloaded: bool) -> Path:
        filename = artifact.name
        if downloaded and _DISAMBIGUATOR_RE.search(filename):
            # 下载重名时追加的 .N 后缀
            filename = _DISAMBIGUATOR_RE.sub("", filename)
        dest = self.install_dir / filename
        if dest.exists():
            if dest.resolve() == artifact.resolve():
                return dest
            if not self.policy.approve(PromptKind.OVERWRITE, str(dest)):
                raise OverwriteDeclinedError(f"未获准覆盖已存在文件: {dest}", module=name)
        self.install_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(artifact, dest)
        logger.info("已复制 %s -> %s", artifact, dest)
        return dest

    @contextlib.contextmanager
    def _mark_installing(self, name: str) -> Iterator[None]:
        self._installing[name] = None
        try:
            yield
        finally:
            self._installing.pop(name, None)

    def _activate(self, name: str, candidate: CandidateFile) -> Path:
        """激活模块，缺少依赖时递归安装后重试，返回最终激活的文件"""
        with self._mark_installing(name):
            path = candidate.source_path
            is_autoload = candidate.is_autoload
            stub_tried = False
            satisfied: set[str] = set()
            while True:
                missing = self._try_activate(name, path)
                if missing is not None:
                    if missing in self._installing:
                        raise self._cycle_error(missing)
                    if missing in satisfied:
                        raise UnresolvedModuleError(
                            f"'{name}' 依赖的 '{missing}' 已安装但仍无法加载",
                            module=name,
                        )
                    logger.info("%s 缺少依赖 %s，先安装依赖", name, missing)
                    self.install(missing)
                    satisfied.add(missing)
                    continue

                if stub_tried or is_autoload:
                    return path
                stub_tried = True
                stub = self._maybe_generate_stub(name, path)
                if stub is None:
                    return path
                self.loader.deactivate(name)
                path, is_autoload = stub, True

    def _try_activate(self, name: str, path: Path) -> str | None:
        """激活一次；缺少依赖时返回依赖名"""
        try:
            self.loader.activate(name, path)
        except MissingDependencyError as e:
            return e.name
        return None

    def _maybe_generate_stub(self, name: str, path: Path) -> Path | None:
        if not self.codegen.has_inline_markers(path):
            return None
        if not self.policy.approve(PromptKind.GENERATE_STUB, str(path)):
            return None
        stub = self.codegen.generate_stub(path)
        if stub is not None:
            logger.info("已生成 autoload 桩: %s -> %s", name, stub)
        return stub

    def _cycle_error(self, missing: str) -> CircularDependencyError:
        stack = list(self._installing)
        idx = stack.index(missing)
        waiting_on = stack[idx + 1] if idx + 1 < len(stack) else stack[-1]
        return CircularDependencyError(
            requesting=missing, missing=waiting_on, chain=(*stack[idx:], missing),
        )

    def _finalize(self, name: str, path: Path) -> bool:
        entries = self.registry.list_entries()
        if find_entry(entries, name) is not None:
            return False
        if not self.policy.approve(PromptKind.REGISTER, name):
            return False
        entries.append(RegistryEntry(name, str(path)))
        self.registry.save(entries)
        logger.info("已加入自动加载清单: %s", name)
        return True

    # ------------------------------------------------------------------
    # 启动加载
    # ------------------------------------------------------------------

    def activate_registered(self) -> dict[str, str]:
        """激活自动加载清单中的全部模块，返回 {模块名: 路径|错误信息}"""
        results: dict[str, str] = {}
        failed: list[str] = []
        for entry in self.registry.list_entries():
            name = entry.module_name
            try:
                if entry.path is not None:
                    path = Path(entry.path).expanduser()
                else:
                    path = self.locator.require(name).source_path
                self.loader.activate(name, path)
                results[name] = str(path)
            except Exception as exc:
                logger.exception("启动加载失败: %s", name)
                failed.append(name)
                results[name] = f"[FAILED] {exc}"
        if failed:
            logger.warning(
                "启动加载汇总: %d 成功, %d 失败 (%s)",
                len(results) - len(failed), len(failed), ", ".join(failed),
            )
        return results

    # ------------------------------------------------------------------
    # 卸载
    # ------------------------------------------------------------------

    def uninstall(self, module_name: str) -> UninstallReport:
        """卸载模块：停用、移出清单、删除文件（删除前需批准）

        Raises:
            NotInstalledError: 模块既未激活、未登记，也定位不到文件
        """
        active = self.loader.is_active(module_name)
        entries = self.registry.list_entries()
        entry = find_entry(entries, module_name)
        broken: Path | None = None
        try:
            candidate = self.locator.resolve(module_name, allow_autoload=True)
        except UnresolvedModuleError as e:
            if e.directory is None:
                raise
            logger.warning("包目录已损坏，仍继续卸载: %s", e)
            candidate, broken = None, e.directory
        if not active and entry is None and candidate is None and broken is None:
            raise NotInstalledError(f"模块 '{module_name}' 未安装", module=module_name)

        report = UninstallReport(module_name)
        if active:
            self.loader.deactivate(module_name)
            report.deactivated = True
        if entry is not None:
            self.registry.save([e for e in entries if e.module_name != module_name])
            report.unregistered = True
        if candidate is not None:
            report.removed = self._remove_files(module_name, candidate.source_path)
        elif broken is not None:
            report.removed = self._remove_subdirectory(broken)
        return report

    def _remove_files(self, module_name: str, path: Path) -> list[Path]:
        directory = path.parent
        if self.locator.is_root(directory):
            files = self.locator.siblings(module_name, directory)
            listing = "\n".join(str(f) for f in files)
            if not files or not self.policy.approve(PromptKind.DELETE_SIBLINGS, listing):
                return []
            for f in files:
                f.unlink()
            logger.info("已删除 %s:\n%s", module_name, listing)
            return files
        return self._remove_subdirectory(directory)

    def _remove_subdirectory(self, directory: Path) -> list[Path]:
        if not self.policy.approve(PromptKind.DELETE_SUBDIRECTORY, str(directory)):
            return []
        shutil.rmtree(directory)
        logger.info("已删除目录 %s", directory)
        return [directory]
