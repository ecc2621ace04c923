"""基于 importlib 的默认加载器

把定位到的 .py / .pyc 文件作为模块执行并放入 sys.modules。
模块代码里 import 了尚不存在的模块时，转换为 MissingDependencyError，
交给安装器去递归安装。

可选挂载一个 meta path finder，使 `import <模块名>` 也能通过
ModuleLocator 找到带版本号或位于包目录中的文件。
"""

from __future__ import annotations

import importlib.abc
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from modpkg.core.exceptions import MissingDependencyError, UnresolvedModuleError

if TYPE_CHECKING:
    from importlib.machinery import ModuleSpec

    from modpkg.core.locator import ModuleLocator

logger = logging.getLogger(__name__)


class LocatorFinder(importlib.abc.MetaPathFinder):
    """通过 ModuleLocator 解析顶层模块名"""

    def __init__(self, locator: ModuleLocator) -> None:
        self.locator = locator

    def find_spec(
        self, fullname: str, path: object = None, target: ModuleType | None = None,
    ) -> ModuleSpec | None:
        if "." in fullname:
            return None
        try:
            found = self.locator.resolve(fullname, allow_autoload=True)
        except UnresolvedModuleError:
            return None
        if found is None:
            return None
        return importlib.util.spec_from_file_location(fullname, found.source_path)


class PythonLoader:
    """importlib 加载器"""

    def __init__(self, locator: ModuleLocator | None = None) -> None:
        self._finder = LocatorFinder(locator) if locator is not None else None
        # 仅本加载器激活过的模块；sys.modules 里的其他模块不归它管
        self._active: set[str] = set()

    def _ensure_finder(self) -> None:
        if self._finder is not None and self._finder not in sys.meta_path:
            sys.meta_path.append(self._finder)

    def activate(self, module_name: str, path: Path) -> None:
        """执行模块文件

        Raises:
            MissingDependencyError: 模块导入了找不到的顶层模块
        """
        self._ensure_finder()
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"无法为 {path} 创建模块 spec")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except ModuleNotFoundError as e:
            sys.modules.pop(module_name, None)
            missing = (e.name or "").split(".")[0]
            if not missing or missing == module_name:
                raise
            raise MissingDependencyError(missing, module=module_name) from e
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        self._active.add(module_name)
        logger.info("已加载 %s <- %s", module_name, path)

    def deactivate(self, module_name: str) -> None:
        if module_name not in self._active:
            return
        self._active.discard(module_name)
        sys.modules.pop(module_name, None)
        logger.info("已卸载 %s", module_name)

    def is_active(self, module_name: str) -> bool:
        return module_name in self._active and module_name in sys.modules
