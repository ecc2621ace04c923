"""配置文件与自动加载清单的 YAML 读写

清单在安装、卸载时都会被改写，写入走"临时文件 + os.replace"，
中途失败时旧清单保持原样。
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 配置/清单文件上限 1MB
MAX_YAML_SIZE = 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """在 path 同目录写临时文件后替换 path，失败时删除临时文件"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except Exception:
        Path(tmp).unlink(missing_ok=True)
        raise


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取 YAML 映射；文件不存在、为空或顶层不是映射时返回 {}

    Raises:
        ValueError: 文件超过 MAX_YAML_SIZE
        yaml.YAMLError: 格式错误
    """
    p = Path(path).expanduser()
    if not p.exists():
        return {}

    size = p.stat().st_size
    if size > MAX_YAML_SIZE:
        raise ValueError(f"YAML 文件过大: {p} ({size} 字节，上限 {MAX_YAML_SIZE})")

    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        logger.error("无法解析 %s: %s", p, e)
        raise

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("%s 顶层应为映射，实际为 %s，按空文件处理", p, type(data).__name__)
        return {}
    return data


def save_yaml(path: str | Path, data: Any) -> None:
    """写 YAML（保持键顺序，允许中文）"""
    p = Path(path).expanduser()
    content = yaml.safe_dump(
        data, default_flow_style=False, allow_unicode=True, sort_keys=False,
    )
    try:
        atomic_write(p, content)
    except OSError as e:
        logger.error("写入 %s 失败: %s", p, e)
        raise
