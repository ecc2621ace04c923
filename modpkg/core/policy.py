"""确认策略 — 批处理固定策略 / 交互式确认"""

from __future__ import annotations

import logging

import click

from modpkg.core.protocols import PromptKind

logger = logging.getLogger(__name__)

_PROMPTS: dict[PromptKind, str] = {
    PromptKind.DOWNLOAD: "本地没有 {context}，是否下载?",
    PromptKind.OVERWRITE: "{context} 已存在，是否覆盖?",
    PromptKind.GENERATE_STUB: "{context} 含内联 autoload 标记，是否生成 autoload 桩?",
    PromptKind.REGISTER: "是否将 {context} 加入启动自动加载清单?",
    PromptKind.DELETE_SIBLINGS: "是否删除以下文件?\n{context}",
    PromptKind.DELETE_SUBDIRECTORY: "是否递归删除目录 {context}?",
}


class FixedPolicy:
    """非交互策略：默认答复 + 按类型覆盖"""

    def __init__(
        self, default: bool = True, overrides: dict[PromptKind, bool] | None = None,
    ) -> None:
        self.default = default
        self.overrides = dict(overrides or {})

    def approve(self, kind: PromptKind, context: str) -> bool:
        answer = self.overrides.get(kind, self.default)
        logger.debug("自动%s: %s (%s)", "批准" if answer else "拒绝", kind.value, context)
        return answer


class ConfirmPolicy:
    """通过 click.confirm 逐项询问用户"""

    def approve(self, kind: PromptKind, context: str) -> bool:
        return click.confirm(_PROMPTS[kind].format(context=context), default=False)
