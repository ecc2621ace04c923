"""modpkg 日志配置

级别由 MODPKG_LOG_LEVEL 控制；MODPKG_LOG_JSON=1 时每条日志输出一行 JSON，
方便批量安装脚本收集安装、下载、解包过程。日志一律写 stderr，
命令本身的输出（路径、清单）留给 stdout。
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import datetime, timezone

LEVEL_ENV = "MODPKG_LOG_LEVEL"
JSON_ENV = "MODPKG_LOG_JSON"

_TRUTHY = {"1", "true", "yes", "on"}


class JSONFormatter(logging.Formatter):
    """单行 JSON 格式器"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.lineno}",
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器；重复调用会替换之前的 handler"""
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)-7s] %(name)s: %(message)s")
        )
    root.addHandler(handler)


def setup_logging_from_env(environ: Mapping[str, str] | None = None) -> None:
    """按 MODPKG_LOG_LEVEL / MODPKG_LOG_JSON 配置日志"""
    env = os.environ if environ is None else environ
    setup_logging(
        level=env.get(LEVEL_ENV, "INFO"),
        json_output=env.get(JSON_ENV, "").strip().lower() in _TRUTHY,
    )


def reset_logging() -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
