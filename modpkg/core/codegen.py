"""autoload 桩生成器的默认实现"""

from __future__ import annotations

from pathlib import Path


class NullCodeGenerator:
    """不识别任何内联标记，从不生成桩文件"""

    def has_inline_markers(self, path: Path) -> bool:
        return False

    def generate_stub(self, path: Path) -> Path | None:
        return None
