"""压缩包识别与解包

按文件名后缀识别类型（允许下载工具追加的 ".1" 之类的数字后缀），
在独立的临时目录中调用外部工具解包，再把结果移入安装目录:
  - 解出单个条目: 直接放到目标目录下
  - 解出多个条目: 放到 目标目录/<模块名>/ 下
临时目录在任何退出路径上都会被删除。
"""

from __future__ import annotations

import enum
import logging
import re
import shutil
import tempfile
from pathlib import Path

from modpkg.core.exceptions import (
    DestinationNotDirectoryError,
    EmptyArchiveError,
    UnknownArchiveTypeError,
)
from modpkg.utils.shell import CommandExecutor, run_tool

logger = logging.getLogger(__name__)


class ArchiveType(str, enum.Enum):
    TGZ = "tgz"
    TAR_GZ = "tar.gz"
    TAR = "tar"
    ZIP = "zip"
    GZ = "gz"
    BZ2 = "bz2"

    @property
    def is_tarball(self) -> bool:
        return self in (ArchiveType.TGZ, ArchiveType.TAR_GZ, ArchiveType.TAR)

    @property
    def is_gzipped_tar(self) -> bool:
        return self in (ArchiveType.TGZ, ArchiveType.TAR_GZ)


# 顺序即匹配优先级
_SUFFIX_ORDER = ("tgz", "tar.gz", "tar", "zip", "gz", "bz2")
_ARCHIVE_RE = re.compile(
    r"\.(?P<suffix>" + "|".join(re.escape(s) for s in _SUFFIX_ORDER) + r")"
    r"(?P<disambiguator>\.[0-9]+)?$"
)


def detect_type(filename: str) -> ArchiveType | None:
    """按后缀识别压缩包类型，非压缩包返回 None

    >>> detect_type("pkg-1.3.tar.gz.2")
    <ArchiveType.TAR_GZ: 'tar.gz'>
    """
    m = _ARCHIVE_RE.search(filename)
    if m is None:
        return None
    return ArchiveType(m.group("suffix"))


def strip_disambiguator(filename: str) -> str:
    """去掉压缩包名末尾的数字后缀: pkg.tar.gz.2 → pkg.tar.gz"""
    m = _ARCHIVE_RE.search(filename)
    if m is None or not m.group("disambiguator"):
        return filename
    return filename[: m.start("disambiguator")]


class ArchiveExtractor:
    """调用外部工具解包并把内容移入安装目录"""

    def __init__(
        self,
        scratch_root: str | Path | None = None,
        executor: CommandExecutor | None = None,
        timeout: int | None = None,
    ) -> None:
        self.scratch_root = Path(scratch_root).expanduser() if scratch_root else None
        self.executor = executor
        self.timeout = timeout

    def extract(self, module_name: str, archive_path: Path, destination_dir: Path) -> Path:
        """解包 archive_path 到 destination_dir，返回落盘后的顶层路径

        Raises:
            UnknownArchiveTypeError: 文件名不是可识别的压缩包
            ExternalToolError: 解包工具返回非零
            EmptyArchiveError: 解包后没有任何内容
            DestinationNotDirectoryError: 目标路径存在但不是目录
        """
        archive_type = detect_type(archive_path.name)
        if archive_type is None:
            raise UnknownArchiveTypeError(
                f"无法识别的压缩包类型: {archive_path.name}", module=module_name,
            )

        if self.scratch_root is not None:
            self.scratch_root.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(
            prefix=f"modpkg-{module_name}-",
            dir=str(self.scratch_root) if self.scratch_root else None,
        ))
        try:
            work_copy = scratch / strip_disambiguator(archive_path.name)
            shutil.copy2(archive_path, work_copy)
            logger.info("解包 %s (%s) -> %s", archive_path.name, archive_type.value, scratch)
            self._unpack(module_name, archive_type, work_copy, scratch)
            return self._relocate(module_name, scratch, destination_dir)
        finally:
            shutil.rmtree(scratch)

    def _unpack(
        self, module_name: str, archive_type: ArchiveType, work_copy: Path, scratch: Path,
    ) -> None:
        name = work_copy.name
        if archive_type is ArchiveType.BZ2:
            cmd = ["bunzip2", name]
        elif archive_type is ArchiveType.GZ:
            cmd = ["gunzip", name]
        elif archive_type is ArchiveType.ZIP:
            cmd = ["unzip", "-q", name]
        elif archive_type.is_tarball:
            flags = "-xzf" if archive_type.is_gzipped_tar else "-xf"
            cmd = ["tar", flags, name]
        else:
            raise UnknownArchiveTypeError(
                f"无法识别的压缩包类型: {name}", module=module_name,
            )

        run_tool(
            cmd, cwd=str(scratch), target=str(work_copy), module=module_name,
            timeout=self.timeout, executor=self.executor,
        )
        # bunzip2 / gunzip 原地解压会自行删除压缩文件
        if archive_type is ArchiveType.ZIP or archive_type.is_tarball:
            work_copy.unlink(missing_ok=True)

    @staticmethod
    def _relocate(module_name: str, scratch: Path, destination_dir: Path) -> Path:
        entries = sorted(scratch.iterdir())
        if not entries:
            raise EmptyArchiveError(
                f"压缩包解开后为空: {module_name}", module=module_name,
            )

        if destination_dir.exists() and not destination_dir.is_dir():
            raise DestinationNotDirectoryError(
                f"安装目标不是目录: {destination_dir}", module=module_name,
            )
        destination_dir.mkdir(parents=True, exist_ok=True)

        if len(entries) == 1:
            target = destination_dir / entries[0].name
            _move_replacing(entries[0], target)
            logger.info("已安装: %s", target)
            return target

        package_dir = destination_dir / module_name
        if package_dir.exists() and not package_dir.is_dir():
            raise DestinationNotDirectoryError(
                f"安装目标不是目录: {package_dir}", module=module_name,
            )
        package_dir.mkdir(exist_ok=True)
        for entry in entries:
            _move_replacing(entry, package_dir / entry.name)
        logger.info("已安装 %d 个条目: %s", len(entries), package_dir)
        return package_dir


def _move_replacing(src: Path, dest: Path) -> None:
    if dest.is_dir() and not dest.is_symlink():
        logger.warning("替换已存在目录: %s", dest)
        shutil.rmtree(dest)
    elif dest.exists() or dest.is_symlink():
        logger.warning("替换已存在文件: %s", dest)
        dest.unlink()
    shutil.move(str(src), str(dest))
