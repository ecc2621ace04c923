"""网络工具 — URL 识别与安全校验"""

from __future__ import annotations

import re
from urllib.parse import unquote, urlparse

from modpkg.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https", "ftp"))
_URL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")


def looks_like_url(text: str) -> bool:
    """是否以 scheme:// 开头"""
    return bool(_URL_RE.match(text))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https/ftp，拒绝 file:// 等非预期协议

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https/ftp: {url}"
        )


def url_basename(url: str) -> str:
    """取 URL 路径的最后一段（去掉 query / fragment），可能为空串"""
    path = urlparse(url).path
    return unquote(path.rstrip("/").rsplit("/", 1)[-1])
