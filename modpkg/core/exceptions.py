"""统一异常体系

所有业务异常继承 ModPkgError，携带出错时正在处理的模块名。
CLI 层据此输出 "[code] message" 形式的友好提示。
"""

from __future__ import annotations

from pathlib import Path


class ModPkgError(Exception):
    """包管理器基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str, *, module: str = "") -> None:
        super().__init__(message)
        self.module = module


class ValidationError(ModPkgError):
    """输入数据校验失败（URL 协议、配置项等）"""

    code = "VALIDATION_ERROR"


class ConfigError(ModPkgError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class NameInferenceError(ModPkgError):
    """无法从文件名 / URL 推断模块名"""

    code = "NAME_INFERENCE_ERROR"


class ParseError(ModPkgError):
    """版本号文本无法解析"""

    code = "PARSE_ERROR"


class UnresolvedModuleError(ModPkgError):
    """在搜索目录中找不到可加载文件

    directory 指向出问题的包目录（若是包目录损坏导致）
    """

    code = "UNRESOLVED_MODULE"

    def __init__(
        self, message: str, *, module: str = "", directory: Path | None = None,
    ) -> None:
        super().__init__(message, module=module)
        self.directory = directory


class NoLoadableFileError(UnresolvedModuleError):
    """安装落盘后仍找不到可加载文件"""

    code = "NO_LOADABLE_FILE"


class FetchError(ModPkgError):
    """所有下载策略均失败或被拒绝"""

    code = "FETCH_ERROR"


class OverwriteDeclinedError(ModPkgError):
    """目标文件已存在且未获准覆盖"""

    code = "OVERWRITE_DECLINED"


class DestinationNotDirectoryError(ModPkgError):
    """解包目标路径存在但不是目录"""

    code = "DESTINATION_NOT_DIRECTORY"


class EmptyArchiveError(ModPkgError):
    """压缩包解开后没有任何内容"""

    code = "EMPTY_ARCHIVE"


class UnknownArchiveTypeError(ModPkgError):
    """无法识别的压缩包类型"""

    code = "UNKNOWN_ARCHIVE_TYPE"


class ExternalToolError(ModPkgError):
    """外部工具（wget / tar / unzip ...）返回非零状态"""

    code = "EXTERNAL_TOOL_ERROR"

    def __init__(
        self,
        tool: str,
        exit_code: int,
        *,
        target: str = "",
        output: str = "",
        module: str = "",
    ) -> None:
        message = f"{tool} 执行失败 (rc={exit_code})"
        if target:
            message += f": {target}"
        if output:
            message += f"\n{output[:500]}"
        super().__init__(message, module=module)
        self.tool = tool
        self.exit_code = exit_code
        self.target = target
        self.output = output


class MissingDependencyError(ModPkgError):
    """加载器报告：激活时缺少另一个模块"""

    code = "MISSING_DEPENDENCY"

    def __init__(self, name: str, *, module: str = "") -> None:
        super().__init__(f"缺少依赖模块 '{name}'", module=module)
        self.name = name


class CircularDependencyError(ModPkgError):
    """依赖安装过程中出现环"""

    code = "CIRCULAR_DEPENDENCY"

    def __init__(
        self, requesting: str, missing: str, chain: tuple[str, ...] = (),
    ) -> None:
        cycle = " -> ".join(chain) if chain else f"{requesting} -> {missing}"
        super().__init__(
            f"循环依赖: '{requesting}' 需要 '{missing}' ({cycle})",
            module=requesting,
        )
        self.requesting = requesting
        self.missing = missing
        self.chain = chain


class NotInstalledError(ModPkgError):
    """卸载目标既未激活、未注册，也找不到文件"""

    code = "NOT_INSTALLED"
