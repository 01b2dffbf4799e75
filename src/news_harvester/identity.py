"""文章識別碼推導。

resolve() 依序嘗試：
  1. 路徑符合已知的數字 ID 格式（post-123、/joke/123、/article/123）→ 回傳數字
  2. 路徑最後一個非空片段（slug）
  3. 完整網址的 SHA-1 十六進位摘要

slug 與數字 ID 可能在不同發佈者之間重複，因此 ID 只在同一發佈者內唯一。
"""

import hashlib
import re
from urllib.parse import urlsplit

DEFAULT_ID_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"post-(\d+)"),
    re.compile(r"/joke/(\d+)(?:/|$)"),
    re.compile(r"/article/(\d+)(?:/|$)"),
)


def _path_of(url: str) -> str | None:
    try:
        return urlsplit(url).path
    except ValueError:
        return None


def url_digest(url: str) -> str:
    """網址的 SHA-1 摘要（40 字元）。"""
    return hashlib.sha1(url.encode("utf-8", errors="surrogatepass")).hexdigest()


def slug_from_url(url: str) -> str | None:
    """取網址路徑最後一個非空片段。"""
    path = _path_of(url)
    if not path:
        return None
    segments = [s for s in path.split("/") if s]
    return segments[-1] if segments else None


def publisher_from_url(url: str) -> str | None:
    """以主機名稱（去除 www.）作為發佈者名稱。"""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    return re.sub(r"^www\.", "", host)


def resolve(url: str, patterns: tuple[re.Pattern[str], ...] = DEFAULT_ID_PATTERNS) -> str:
    """由網址推導穩定的文章 ID，永不拋出例外。"""
    path = _path_of(url)
    if path:
        for pattern in patterns:
            m = pattern.search(path)
            if m:
                return m.group(1)

    slug = slug_from_url(url)
    if slug:
        return slug

    return url_digest(url)
