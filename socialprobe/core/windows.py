"""Anchor-windowed pattern extraction over raw page text.

Payloads are treated as scannable text rather than parsed documents: the
markup changes too often and is partly obfuscated. A record is located by
its anchor (e.g. a post shortcode), and its sibling fields are only looked
for inside a bounded window around that anchor.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, Mapping, Sequence

from socialprobe.core.normalize import is_reliable_date, parse_post_date


@dataclass(frozen=True)
class AnchorWindow:
    """One anchor occurrence and the text window around it."""

    value: str
    position: int
    start: int
    end: int
    text: str


class AnchorWindows:
    """
    Lazy, restartable sequence of anchor windows over a document.

    Each distinct anchor value is yielded once, at its first occurrence.
    Windows extend `before` characters behind and `after` characters past
    the anchor, clipped at the nearest occurrences of a different anchor
    value so one record's fields cannot bleed into its neighbour's.
    """

    def __init__(
        self,
        document: str,
        anchor: re.Pattern,
        before: int = 500,
        after: int = 3000,
        limit: int | None = None,
        clip: bool = True,
    ):
        self.document = document or ""
        self.anchor = anchor
        self.before = before
        self.after = after
        self.limit = limit
        self.clip = clip

    def _next_boundary(self, pos: int, value: str) -> int:
        for match in self.anchor.finditer(self.document, pos):
            if match.group(1) != value:
                return match.start()
        return len(self.document)

    def __iter__(self) -> Iterator[AnchorWindow]:
        if self.limit is not None and self.limit <= 0:
            return
        seen: set[str] = set()
        previous_other_end = 0
        last_value: str | None = None
        last_end = 0

        for match in self.anchor.finditer(self.document):
            value = match.group(1)
            if last_value is not None and last_value != value:
                previous_other_end = last_end
            last_value, last_end = value, match.end()

            if value in seen:
                continue
            seen.add(value)

            start = max(0, match.start() - self.before)
            end = min(len(self.document), match.end() + self.after)
            if self.clip:
                start = max(start, previous_other_end)
                end = min(end, self._next_boundary(match.end(), value))

            yield AnchorWindow(
                value=value,
                position=match.start(),
                start=start,
                end=end,
                text=self.document[start:end],
            )

            if self.limit is not None and len(seen) >= self.limit:
                return


def iter_anchor_windows(
    document: str,
    anchor: re.Pattern,
    before: int = 500,
    after: int = 3000,
    limit: int | None = None,
) -> AnchorWindows:
    """Convenience constructor for AnchorWindows."""
    return AnchorWindows(document, anchor, before=before, after=after, limit=limit)


FieldPatterns = Mapping[str, Sequence[re.Pattern]]


def extract_fields(window: AnchorWindow | str, patterns: FieldPatterns) -> dict[str, str]:
    """
    Search a window for each secondary field.

    For every field the match of any of its patterns closest to the anchor
    wins, ties going to the pattern listed first, and its first group is
    the value. Fields with no match are omitted. For an AnchorWindow the
    text after the anchor is searched before the text behind it, since a
    record's fields usually follow its identifier.
    """
    if isinstance(window, AnchorWindow):
        offset = window.position - window.start
        regions = [(window.text[offset:], False), (window.text[:offset], True)]
    else:
        regions = [(window, False)]

    found: dict[str, str] = {}
    for name, candidates in patterns.items():
        for region, behind in regions:
            match = _closest_match(region, candidates, behind)
            if match:
                found[name] = match.group(1)
                break
    return found


def _closest_match(region: str, candidates: Sequence[re.Pattern], behind: bool) -> re.Match | None:
    """Earliest match in region, or the latest one when region precedes the anchor."""
    matches = []
    for pattern in candidates:
        if behind:
            found = list(pattern.finditer(region))
            if found:
                matches.append(found[-1])
        else:
            match = pattern.search(region)
            if match:
                matches.append(match)
    if not matches:
        return None
    if behind:
        return max(matches, key=lambda m: m.end())
    return min(matches, key=lambda m: m.start())


@dataclass
class WindowRecord:
    """Raw fields pulled from one anchor window."""

    anchor: str
    fields: dict[str, str] = field(default_factory=dict)
    posted_at: date | None = None
    date_reliable: bool = False


def extract_records(
    document: str,
    anchor: re.Pattern,
    patterns: FieldPatterns,
    limit: int | None = None,
    before: int = 500,
    after: int = 3000,
    staleness_days: int = 365,
    today: date | None = None,
) -> list[WindowRecord]:
    """
    Extract one WindowRecord per distinct anchor value.

    A "timestamp" field, if matched, is parsed into posted_at and checked
    against the staleness horizon.
    """
    records = []
    for window in AnchorWindows(document, anchor, before=before, after=after, limit=limit):
        fields = extract_fields(window, patterns)
        posted_at = parse_post_date(fields.get("timestamp"), today=today)
        records.append(WindowRecord(
            anchor=window.value,
            fields=fields,
            posted_at=posted_at,
            date_reliable=is_reliable_date(posted_at, staleness_days, today),
        ))
    return records
