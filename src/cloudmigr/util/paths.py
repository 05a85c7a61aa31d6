from __future__ import annotations

from urllib.parse import quote


def join_path(*segments: str) -> str:
    """
    Join path segments with '/', dropping empty segments and stray slashes.

    join_path("", "a.jpg") == "a.jpg"
    join_path("A/B/", "/c.txt") == "A/B/c.txt"
    """
    parts: list[str] = []
    for segment in segments:
        if not segment:
            continue
        parts.extend(p for p in segment.split("/") if p)
    return "/".join(parts)


def split_path(path: str) -> tuple[str, str]:
    """Split 'A/B/c.txt' into ('A/B', 'c.txt')."""
    normalized = join_path(path)
    if "/" not in normalized:
        return "", normalized
    parent, _, name = normalized.rpartition("/")
    return parent, name


def quote_path(path: str) -> str:
    """Percent-encode a slash-joined path for path-addressed Graph URLs."""
    return quote(join_path(path), safe="/")
