"""集中配置管理

搜索目录、安装目录、注册表文件、下载策略等统一在此配置。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from modpkg.core.exceptions import ConfigError
from modpkg.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "~/.modpkg/config.yml"

_LIST_FIELDS = ("load_path", "extra_dirs", "url_templates", "mirror_dirs", "transfer_command")


@dataclass
class Config:
    """包管理器全局配置"""

    # 搜索目录（顺序即优先级）
    load_path: list[str] = field(default_factory=list)
    extra_dirs: list[str] = field(default_factory=list)
    install_dir: str = "~/.modpkg/modules"

    # 持久化
    registry_file: str = "~/.modpkg/autoload.yml"

    # 下载与解包
    download_dir: str = "~/.modpkg/downloads"
    scratch_dir: str = ""  # 空串表示系统临时目录
    url_templates: list[str] = field(default_factory=list)
    mirror_dirs: list[str] = field(default_factory=list)
    transfer_command: list[str] = field(
        default_factory=lambda: ["wget", "-q", "-O", "{dest}", "{url}"],
    )
    tool_timeout: int = 600

    # 命名约定
    source_suffix: str = ".py"
    compiled_suffix: str = ".pyc"

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = set(cls.__dataclass_fields__)
        matched = {k: v for k, v in data.items() if k in known}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            logger.warning("忽略未知配置项 %s: %s", ", ".join(unknown), path)
        for key in _LIST_FIELDS:
            if key in matched and not isinstance(matched[key], list):
                raise ConfigError(f"配置项 {key} 必须是列表: {path}")
        return cls(**matched)

    def search_roots(self) -> list[Path]:
        """按优先级返回全部搜索目录: load_path → extra_dirs → install_dir（去重）"""
        roots: list[Path] = []
        for d in [*self.load_path, *self.extra_dirs, self.install_dir]:
            p = Path(d).expanduser()
            if p not in roots:
                roots.append(p)
        return roots

    @property
    def install_path(self) -> Path:
        return Path(self.install_dir).expanduser()


_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
