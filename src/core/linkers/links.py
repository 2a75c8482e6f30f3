# src/core/linkers/links.py
"""
Извлечение ссылок из текста поста.
"""

from __future__ import annotations

import re

# http(s)://, дальше всё до пробела или символа, недопустимого в URL
URL_PATTERN = re.compile(r'https?://[^\s<>"{}|\\^\[\]`]+')


def extract_links(content: str) -> list[str]:
    """
    Возвращает ссылки в порядке первого появления, без повторов.

    >>> extract_links("see https://a.io and http://b.io then https://a.io")
    ['https://a.io', 'http://b.io']
    """
    seen: set[str] = set()
    links: list[str] = []
    for match in URL_PATTERN.finditer(content):
        url = match.group(0)
        if url not in seen:
            seen.add(url)
            links.append(url)
    return links
