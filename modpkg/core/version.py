"""版本向量模型

版本号为点分非负整数序列（高位在前），如 "1.2.10" → (1, 2, 10)。
比较规则：逐段比较，前缀相同则段数多者更大（1.2 < 1.2.1）；
无版本视为小于任何有版本。
"""

from __future__ import annotations

from modpkg.core.exceptions import ParseError

VersionVector = tuple[int, ...]


def parse_version(text: str) -> VersionVector:
    """解析 "N(.N)*" 形式的版本号

    Raises:
        ParseError: 任一段不是非负整数
    """
    parts = text.split(".")
    for part in parts:
        if not part.isdigit() or not part.isascii():
            raise ParseError(f"无效的版本号 '{text}': 段 '{part}' 不是非负整数")
    return tuple(int(p) for p in parts)


def format_version(version: VersionVector) -> str:
    return ".".join(str(n) for n in version)


def compare_versions(a: VersionVector | None, b: VersionVector | None) -> int:
    """比较两个版本，返回 -1 / 0 / 1"""
    if a is None:
        return 0 if b is None else -1
    if b is None:
        return 1
    # 元组比较即逐段比较，前缀相同时较长者更大
    if a == b:
        return 0
    return 1 if a > b else -1
