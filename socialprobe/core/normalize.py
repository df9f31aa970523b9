"""Text, count and date normalization for scraped payloads."""

import html
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

_SPECIAL_SPACES = re.compile("[\\u00a0\\u2009\\u202f]")
_WHITESPACE = re.compile(r"\s+")

_ESCAPE = re.compile(
    r"\\u([dD][89abAB][0-9a-fA-F]{2})\\u([dD][c-fC-F][0-9a-fA-F]{2})"
    r"|\\u([0-9a-fA-F]{4})"
    r"|\\(.)",
    re.DOTALL,
)
_SIMPLE_ESCAPES = {
    "n": " ",
    "r": "",
    "t": " ",
    "b": "",
    "f": "",
    '"': '"',
    "'": "'",
    "/": "/",
    "\\": "\\",
}

# A count as written in page text: "1,234", "12 345", "1.5K", "2,5 M"
COUNT_TEXT = r"(?:\d{1,3}(?:[,. ]\d{3})+|\d+)(?:[.,]\d+)?\s?[KkMmBb]?"

_DIGIT_GAP = re.compile(r"(?<=[\d,.])\s+(?=\d)")
_NUMBER = re.compile(r"(\d[\d,.]*)\s*([KkMmBb])?(?![^\W\d_])")
_MULTIPLIERS = {
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}


def decode_entities(text: str) -> str:
    """
    Resolve HTML character references and special spaces.

    Runs until the text stops changing, so double-encoded markup
    ("&amp;amp;") is fully resolved and the result is a fixed point.
    """
    if not text:
        return text or ""
    while True:
        decoded = _SPECIAL_SPACES.sub(" ", html.unescape(text))
        if decoded == text:
            return decoded
        text = decoded


def _replace_escape(match: re.Match) -> str:
    high, low, single, other = match.groups()
    if high:
        combined = 0x10000 + ((int(high, 16) - 0xD800) << 10) + (int(low, 16) - 0xDC00)
        return chr(combined)
    if single:
        code = int(single, 16)
        if 0xD800 <= code <= 0xDFFF:
            # Lone surrogate
            return ""
        return chr(code)
    return _SIMPLE_ESCAPES.get(other, other)


def decode_escapes(text: str) -> str:
    """
    Decode JSON string escapes found inside markup.

    Examples:
        r"Caf\\u00e9" -> "Café"
        r"line\\nbreak" -> "line break"
        r"https:\\/\\/x.com" -> "https://x.com"
    """
    if not text:
        return text or ""
    return _ESCAPE.sub(_replace_escape, text)


def normalize_text(text: str | None) -> str:
    """
    Decode entities and collapse whitespace.

    JSON escapes are not touched: text lifted from a JSON string literal
    goes through decode_escapes once, where it is extracted.
    """
    if not text:
        return ""
    text = decode_entities(text)
    return _WHITESPACE.sub(" ", text).strip()


def snippet(text: str | None, limit: int = 300) -> str:
    """Normalized text truncated to limit characters."""
    return normalize_text(text)[:limit]


def optional_snippet(text: str | None, limit: int = 300) -> str | None:
    """Like snippet, but None when there is no text left."""
    if text is None:
        return None
    return snippet(text, limit) or None


def _resolve_separators(number: str) -> str | None:
    """
    Turn a digit string with ',' / '.' separators into a plain decimal.

    A separator followed by exactly three digits is a thousands separator,
    anything else is the decimal point. More than one decimal point is
    unparseable.
    """
    groups = re.split(r"[,.]", number)
    if len(groups) == 1:
        return number
    integer = groups[0]
    fraction = None
    for group in groups[1:]:
        if not group:
            # Doubled separator ("1,,234")
            continue
        if len(group) == 3 and fraction is None:
            integer += group
        elif fraction is None:
            fraction = group
        else:
            return None
    if fraction is None:
        return integer
    return f"{integer}.{fraction}"


def parse_count(text: str | None) -> int | None:
    """
    Convert locale-formatted count strings to integers.

    Examples:
        "1.5K" -> 1500
        "1,234" -> 1234
        "1.234" -> 1234
        "2,5M" -> 2500000
        "1 234 followers" -> 1234
        "n/a" -> None
    """
    if not text:
        return None
    try:
        cleaned = _DIGIT_GAP.sub("", decode_entities(str(text)))
        match = _NUMBER.search(cleaned)
        if not match:
            return None

        plain = _resolve_separators(match.group(1).rstrip(",."))
        if plain is None:
            return None
        value = Decimal(plain)

        suffix = match.group(2)
        if suffix:
            value *= _MULTIPLIERS[suffix.upper()]

        return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return None


def timestamp_to_date(value: int | str | None) -> date | None:
    """Convert unix seconds to a UTC calendar date."""
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).date()
    except (ValueError, OverflowError, OSError):
        return None


_RELATIVE = re.compile(
    r"^(\d+)\s*(s|sec|secs|seconds?|m|min|mins|minutes?|h|hr|hrs|hours?|d|days?|w|wk|weeks?)$",
    re.IGNORECASE,
)


def parse_post_date(raw: str | int | None, today: date | None = None) -> date | None:
    """
    Parse the many date shapes posts are stamped with.

    Examples:
        1714521600 -> date(2024, 5, 1)
        "2024-05-01T10:00:00.000Z" -> date(2024, 5, 1)
        "3h" -> today
        "2 d" -> today - 2 days
        "May 1" -> May 1 of the current year
        "May 1, 2024" -> date(2024, 5, 1)
    """
    if raw is None:
        return None
    if isinstance(raw, int):
        return timestamp_to_date(raw)

    raw = normalize_text(raw)
    if not raw:
        return None
    today = today or date.today()

    if raw.isdigit() and len(raw) >= 9:
        return timestamp_to_date(raw)

    # ISO 8601 format
    if re.match(r"^\d{4}-\d{2}-\d{2}", raw):
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            try:
                return date.fromisoformat(raw[:10])
            except ValueError:
                return None

    # Relative time patterns
    match = _RELATIVE.match(raw)
    if match:
        value = int(match.group(1))
        unit = match.group(2).lower()
        if unit.startswith("d"):
            return today - timedelta(days=value)
        if unit.startswith("w"):
            return today - timedelta(weeks=value)
        return today

    for fmt in ("%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y"):
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            pass

    # "Month Day" (current year)
    for fmt in ("%B %d", "%b %d"):
        try:
            parsed = datetime.strptime(f"{raw} {today.year}", f"{fmt} %Y").date()
        except ValueError:
            continue
        if parsed > today:
            parsed = parsed.replace(year=today.year - 1)
        return parsed

    return None


def is_reliable_date(
    posted_at: date | None,
    horizon_days: int = 365,
    today: date | None = None,
) -> bool:
    """False for dates in the future or older than the staleness horizon."""
    if posted_at is None:
        return False
    today = today or date.today()
    return today - timedelta(days=horizon_days) <= posted_at <= today
