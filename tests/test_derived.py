"""Trending tags and feed filtering over plain post lists."""
from __future__ import annotations

import random
from uuid import uuid4

from minisocial.client.derived import extract_tags, filter_posts, posts_by_author, trending_tags
from minisocial.client.records import PostRecord


def _post(content: str, username: str = "alice", user_id=None) -> PostRecord:
    return PostRecord(id=uuid4(), user_id=user_id or uuid4(), content=content, username=username)


def test_extract_tags_lowercases_in_order() -> None:
    assert extract_tags("Loving #Python and #design, more #python") == ["#python", "#design", "#python"]
    assert extract_tags("") == []


def test_trending_counts_case_insensitively_and_limits_to_five() -> None:
    posts = [
        _post("#a #b #c"),
        _post("#A #d #e #f"),
        _post("#b #a"),
        _post("#g"),
    ]

    ranked = trending_tags(posts)

    assert len(ranked) == 5
    assert ranked[0] == ("#a", 3)
    assert ranked[1] == ("#b", 2)
    # Ties keep first-seen order.
    assert [tag for tag, _ in ranked[2:]] == ["#c", "#d", "#e"]


def test_trending_membership_ignores_insertion_order() -> None:
    posts = [_post(f"#t{i % 4} #shared") for i in range(12)]
    shuffled = posts[:]
    random.Random(7).shuffle(shuffled)

    first = {tag for tag, _ in trending_tags(posts)}
    second = {tag for tag, _ in trending_tags(shuffled)}

    assert first == second
    assert trending_tags(posts) == trending_tags(posts)


def test_trending_respects_custom_limit() -> None:
    posts = [_post("#one #two #three")]
    assert [tag for tag, _ in trending_tags(posts, limit=2)] == ["#one", "#two"]
    assert trending_tags([], limit=5) == []


def test_filter_by_tag_matches_either_case() -> None:
    posts = [_post("hello #design world"), _post("no tag here"), _post("#Design rocks")]

    assert filter_posts(posts, tag="design") == [posts[0], posts[2]]
    assert filter_posts(posts, tag="#DESIGN") == [posts[0], posts[2]]


def test_filter_by_tag_ignores_longer_tags_sharing_a_prefix() -> None:
    posts = [_post("love #designer jobs"), _post("#design rocks"), _post("#design-week recap")]

    assert filter_posts(posts, tag="design") == [posts[1], posts[2]]
    assert filter_posts(posts, tag="designer") == [posts[0]]
    # The filter agrees with what the trending view calls a tag.
    assert {tag for tag, _ in trending_tags(posts)} == {"#designer", "#design"}


def test_filter_search_covers_content_and_author() -> None:
    posts = [
        _post("morning coffee", username="bob"),
        _post("evening tea", username="Coffee_Lover"),
        _post("lunch", username="carol"),
    ]

    assert filter_posts(posts, search="COFFEE") == posts[:2]
    assert filter_posts(posts, search="  ") == posts


def test_filter_combines_search_and_tag() -> None:
    posts = [_post("ship it #release"), _post("ship the docs"), _post("#release notes")]

    assert filter_posts(posts, search="ship", tag="release") == [posts[0]]


def test_posts_by_author() -> None:
    author = uuid4()
    posts = [_post("mine", user_id=author), _post("theirs"), _post("mine too", user_id=author)]

    assert posts_by_author(posts, author) == [posts[0], posts[2]]
