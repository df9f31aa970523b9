"""Post deduplication and recency ranking."""

from typing import Iterable, Sequence

from socialprobe.core.normalize import normalize_text
from socialprobe.core.reconcile import fill_missing
from socialprobe.models.post import PostRecord

_OPTIONAL_FIELDS = ("likes", "comments", "posted_at", "media_type")


def caption_key(caption: str, length: int = 60) -> str | None:
    """Case- and whitespace-insensitive caption prefix, None when empty."""
    key = normalize_text(caption).casefold()[:length]
    return key or None


def _absorb(kept: PostRecord, duplicate: PostRecord) -> PostRecord:
    merged = fill_missing(kept, duplicate, fields=_OPTIONAL_FIELDS)
    updates = {}
    if not merged.url and duplicate.url:
        updates["url"] = duplicate.url
    if not merged.caption_snippet and duplicate.caption_snippet:
        updates["caption_snippet"] = duplicate.caption_snippet
    if kept.posted_at is None and duplicate.posted_at is not None:
        updates["date_reliable"] = duplicate.date_reliable
    return merged.model_copy(update=updates) if updates else merged


def dedupe_posts(
    groups: Iterable[Sequence[PostRecord]],
    key_length: int = 60,
) -> list[PostRecord]:
    """
    Merge post lists from several anchor methods, dropping duplicates.

    Groups are consumed in order (primary identifier method first). A
    record is a duplicate if its url was already seen, or if its caption
    key was seen and one of the two records has no url. It then fills
    the missing fields of the record seen first.
    """
    kept: list[PostRecord] = []
    by_url: dict[str, int] = {}
    by_caption: dict[str, int] = {}

    for group in groups:
        for post in group:
            ckey = caption_key(post.caption_snippet, key_length)
            index = by_url.get(post.url) if post.url else None
            if index is None and ckey is not None:
                candidate = by_caption.get(ckey)
                # Distinct urls never merge on caption
                if candidate is not None and not (post.url and kept[candidate].url):
                    index = candidate

            if index is None:
                index = len(kept)
                kept.append(post)
            else:
                kept[index] = _absorb(kept[index], post)

            merged = kept[index]
            if merged.url:
                by_url.setdefault(merged.url, index)
            merged_key = caption_key(merged.caption_snippet, key_length)
            if merged_key is not None:
                by_caption.setdefault(merged_key, index)
            if ckey is not None:
                by_caption.setdefault(ckey, index)

    return kept


def rank_posts(posts: Sequence[PostRecord]) -> list[PostRecord]:
    """
    Order posts newest-first without disturbing undated ones.

    Posts with a reliable date are stably sorted by date descending among
    the slots they occupy; posts without one keep their input position.
    """
    dated_slots = [i for i, post in enumerate(posts) if post.rank_date is not None]
    dated = sorted(
        (posts[i] for i in dated_slots),
        key=lambda post: post.rank_date,
        reverse=True,
    )
    ranked = list(posts)
    for slot, post in zip(dated_slots, dated):
        ranked[slot] = post
    return ranked


def select_posts(
    groups: Iterable[Sequence[PostRecord]],
    limit: int,
    key_length: int = 60,
) -> list[PostRecord]:
    """Deduplicate, rank and truncate posts to the caller's limit."""
    return rank_posts(dedupe_posts(groups, key_length))[:max(0, limit)]
