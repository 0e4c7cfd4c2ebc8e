"""Pure views computed from the loaded posts."""
from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, NamedTuple
from uuid import UUID

from .records import PostRecord

TAG_PATTERN = re.compile(r"#(\w+)")


class TrendingTag(NamedTuple):
    tag: str
    count: int


def extract_tags(text: str) -> list[str]:
    """Return lowercased ``#tag`` tokens in order of appearance."""
    return [f"#{match.lower()}" for match in TAG_PATTERN.findall(text or "")]


def trending_tags(posts: Iterable[PostRecord], limit: int = 5) -> list[TrendingTag]:
    """Rank tags by occurrence count across every post.

    Ties keep the order in which the tags were first seen, so the ranking is
    stable for a fixed corpus.
    """

    counts: Counter[str] = Counter()
    for post in posts:
        counts.update(extract_tags(post.content))
    # Counter preserves insertion order and sorted() is stable.
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [TrendingTag(tag, count) for tag, count in ranked[: max(0, limit)]]


def _normalize_tag(tag: str) -> str:
    return "#" + tag.strip().lstrip("#").lower()


def filter_posts(
    posts: Iterable[PostRecord],
    search: str | None = None,
    tag: str | None = None,
) -> list[PostRecord]:
    needle = (search or "").strip().lower()
    wanted_tag = _normalize_tag(tag) if tag and tag.strip().lstrip("#") else None

    matches: list[PostRecord] = []
    for post in posts:
        content = (post.content or "").lower()
        if needle and needle not in content and needle not in (post.username or "").lower():
            continue
        if wanted_tag and wanted_tag not in extract_tags(content):
            continue
        matches.append(post)
    return matches


def posts_by_author(posts: Iterable[PostRecord], author_id: UUID) -> list[PostRecord]:
    return [post for post in posts if post.user_id == author_id]


__all__ = ["TAG_PATTERN", "TrendingTag", "extract_tags", "trending_tags", "filter_posts", "posts_by_author"]
