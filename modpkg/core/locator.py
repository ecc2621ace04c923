"""模块定位器

在有序的搜索目录中按命名约定查找模块的最佳候选文件。

命名约定（锚定到文件名末尾）:
    <模块名>[-autoload][-<版本>][<编译后缀>|<源码后缀>]

例: foo-autoload-1.2.pyc → 模块 foo、autoload 桩、版本 (1, 2)、已编译。

候选排序（高优先级在前）:
  1. 有版本 > 无版本，新版本 > 旧版本
  2. autoload 桩 > 完整文件
  3. 已编译 > 源码
排序之前先做硬过滤：无扩展名（目录形式）和带版本的候选仅在允许下探目录时接受。
完全同级的候选保留先遇到的那个。
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from modpkg.core.exceptions import (
    NameInferenceError,
    ParseError,
    UnresolvedModuleError,
)
from modpkg.core.version import VersionVector, compare_versions, parse_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamingConvention:
    """文件命名约定：源码/编译后缀与 autoload 标记"""

    source_suffix: str = ".py"
    compiled_suffix: str = ".pyc"
    autoload_marker: str = "-autoload"
    _cache: dict[str, re.Pattern[str]] = field(
        default_factory=dict, init=False, repr=False, compare=False,
    )

    def pattern(self, expected_prefix: str | None) -> re.Pattern[str]:
        """构造匹配正则；expected_prefix 为已转义的正则片段，None 表示任意模块名"""
        key = expected_prefix if expected_prefix is not None else ""
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        name = expected_prefix if expected_prefix is not None else ".+?"
        exts = sorted(
            {re.escape(self.compiled_suffix), re.escape(self.source_suffix)},
            key=len, reverse=True,
        )
        compiled = re.compile(
            rf"^(?P<name>{name})"
            rf"(?P<autoload>{re.escape(self.autoload_marker)})?"
            r"(?:-(?P<version>[0-9]+(?:\.[0-9]+)*))?"
            rf"(?P<ext>{'|'.join(exts)})?$"
        )
        self._cache[key] = compiled
        return compiled


DEFAULT_CONVENTION = NamingConvention()


@dataclass(frozen=True)
class CandidateFile:
    """与命名约定匹配成功的候选文件"""

    source_path: Path
    module_name: str
    is_autoload: bool = False
    version: VersionVector | None = None
    has_extension: bool = True
    is_compiled: bool = False

    def __post_init__(self) -> None:
        if self.is_compiled and not self.has_extension:
            raise ValueError(f"已编译候选必须带扩展名: {self.source_path}")


def parse_candidate(
    expected_prefix: str | None,
    filename: str,
    allow_autoload: bool,
    convention: NamingConvention = DEFAULT_CONVENTION,
    directory: Path | None = None,
) -> CandidateFile | None:
    """按命名约定解析文件名，不匹配返回 None

    Args:
        expected_prefix: 已 re.escape 的模块名；None 时模块名取匹配到的前缀部分
        filename: 待解析的文件名（不含目录）
        allow_autoload: 为 False 时带 autoload 标记的文件视为不匹配
        directory: 候选所在目录，用于拼接 source_path
    """
    m = convention.pattern(expected_prefix).match(filename)
    if m is None:
        return None
    if m.group("autoload") and not allow_autoload:
        return None

    version: VersionVector | None = None
    if m.group("version"):
        try:
            version = parse_version(m.group("version"))
        except ParseError:
            logger.debug("忽略版本号无效的候选: %s", filename)
            return None

    ext = m.group("ext")
    return CandidateFile(
        source_path=(directory / filename) if directory is not None else Path(filename),
        module_name=m.group("name"),
        is_autoload=bool(m.group("autoload")),
        version=version,
        has_extension=bool(ext),
        is_compiled=bool(ext) and ext == convention.compiled_suffix,
    )


def keep_best(
    current: CandidateFile | None,
    candidate: CandidateFile | None,
    allow_directories: bool,
    allow_versioned: bool,
) -> CandidateFile | None:
    """在 current 与 candidate 之间保留更优者

    candidate 需先通过硬过滤，随后依次比较版本、autoload、编译状态；
    完全同级时保留 current。
    """
    if candidate is None:
        return current
    if not candidate.has_extension and not allow_directories:
        return current
    if candidate.version is not None and not allow_versioned:
        return current
    if current is None:
        return candidate

    # 版本先比：旧版本的 autoload 桩不会胜过新版本的完整文件
    order = compare_versions(candidate.version, current.version)
    if order != 0:
        return candidate if order > 0 else current
    if candidate.is_autoload != current.is_autoload:
        return candidate if candidate.is_autoload else current
    if candidate.is_compiled != current.is_compiled:
        return candidate if candidate.is_compiled else current
    return current


def _fold(
    candidates: Iterable[CandidateFile | None],
    allow_directories: bool,
    allow_versioned: bool,
) -> CandidateFile | None:
    def step(best: CandidateFile | None, cand: CandidateFile | None) -> CandidateFile | None:
        return keep_best(best, cand, allow_directories, allow_versioned)

    return functools.reduce(step, candidates, None)


def search_dir(
    directory: Path,
    expected_prefix: str | None,
    allow_recurse: bool,
    allow_autoload: bool,
    convention: NamingConvention = DEFAULT_CONVENTION,
) -> CandidateFile | None:
    """在单个目录中查找最佳候选

    最佳候选若是无扩展名的目录（版本化包目录），且允许下探，则向下查找一层；
    下一层必须恰好提供可加载文件，否则报错。
    """
    try:
        names = sorted(p.name for p in directory.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return None

    best = _fold(
        (parse_candidate(expected_prefix, n, allow_autoload, convention, directory)
         for n in names),
        allow_directories=allow_recurse,
        allow_versioned=allow_recurse,
    )
    if best is None or best.has_extension:
        return best

    if not best.source_path.is_dir():
        # 无扩展名的普通文件，交给跨目录过滤淘汰
        return best
    if not allow_recurse:
        raise UnresolvedModuleError(
            f"无效的候选（目录形式）: {best.source_path}",
            module=best.module_name, directory=best.source_path,
        )

    inner = search_dir(
        best.source_path, expected_prefix,
        allow_recurse=False, allow_autoload=allow_autoload, convention=convention,
    )
    if inner is None:
        raise UnresolvedModuleError(
            f"包目录 {best.source_path} 中没有可加载的 "
            f"'{best.module_name}' 文件",
            module=best.module_name,
            directory=best.source_path,
        )
    if inner.version is None and best.version is not None:
        # 包目录内文件通常不带版本，沿用目录版本参与跨目录排序
        inner = CandidateFile(
            source_path=inner.source_path,
            module_name=inner.module_name,
            is_autoload=inner.is_autoload,
            version=best.version,
            has_extension=inner.has_extension,
            is_compiled=inner.is_compiled,
        )
    return inner


class ModuleLocator:
    """跨搜索目录的模块定位器

    roots 可以是目录列表，也可以是返回目录列表的函数（每次查找时重新读取，
    便于配置变更后立即生效）。
    """

    def __init__(
        self,
        roots: Sequence[Path] | Callable[[], Sequence[Path]],
        convention: NamingConvention = DEFAULT_CONVENTION,
    ) -> None:
        self._roots = roots
        self.convention = convention

    @property
    def roots(self) -> list[Path]:
        roots = self._roots() if callable(self._roots) else self._roots
        return [Path(r) for r in roots]

    def resolve(self, module_name: str, allow_autoload: bool = True) -> CandidateFile | None:
        """返回模块的最佳可加载文件，找不到返回 None"""
        prefix = re.escape(module_name)
        best = _fold(
            (search_dir(root, prefix, True, allow_autoload, self.convention)
             for root in self.roots),
            allow_directories=False,
            allow_versioned=True,
        )
        if best is not None:
            logger.debug("定位 %s -> %s", module_name, best.source_path)
        return best

    def require(self, module_name: str, allow_autoload: bool = True) -> CandidateFile:
        """同 resolve，找不到时抛 UnresolvedModuleError"""
        found = self.resolve(module_name, allow_autoload)
        if found is None:
            raise UnresolvedModuleError(
                f"在搜索目录中找不到模块 '{module_name}': "
                f"{[str(r) for r in self.roots]}",
                module=module_name,
            )
        return found

    def siblings(self, module_name: str, directory: Path) -> list[Path]:
        """列出目录下属于该模块的所有文件（任意版本 / autoload / 扩展名变体）"""
        prefix = re.escape(module_name)
        result = []
        for p in sorted(directory.iterdir()):
            if not p.is_file():
                continue
            if parse_candidate(prefix, p.name, True, self.convention) is not None:
                result.append(p)
        return result

    def is_root(self, directory: Path) -> bool:
        target = directory.resolve()
        return any(r.expanduser().resolve() == target for r in self.roots)


_LEADING_NAME_RE = re.compile(r"^[a-z][a-z0-9]*(?:[-_][a-z][a-z0-9]*)*")


def infer_module_name(filename: str, autoload_marker: str = "-autoload") -> str:
    """从文件名 / URL 末段推断模块名

    取文件名开头连续的小写词（以 - 或 _ 连接，每个词以字母开头），
    因此版本号与扩展名自然被截掉: foo-bar-1.2.tar.gz → foo-bar。

    Raises:
        NameInferenceError: 文件名不以小写字母开头
    """
    base = Path(filename).name
    m = _LEADING_NAME_RE.match(base)
    if m is None:
        raise NameInferenceError(f"无法从文件名推断模块名: {filename}")
    name = m.group(0)
    if name.endswith(autoload_marker) and len(name) > len(autoload_marker):
        name = name[: -len(autoload_marker)]
    return name
