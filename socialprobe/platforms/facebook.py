"""Facebook strategies.

Public pages are usually reachable without login:
    1. page_html     - page HTML: posts from embedded JSON, followers from
                       JSON counters or follower phrases, bio from meta tags
    2. rendered_page - headless-browser rendering; posts from article blocks
"""

import re
from datetime import date
from functools import partial
from urllib.parse import parse_qs, urljoin, urlsplit

from bs4 import BeautifulSoup

from socialprobe.config import ScraperConfig
from socialprobe.core.fetcher import NetworkAccess
from socialprobe.core.normalize import (
    COUNT_TEXT,
    decode_entities,
    decode_escapes,
    is_reliable_date,
    normalize_text,
    optional_snippet,
    parse_count,
    parse_post_date,
    snippet,
)
from socialprobe.core.ranking import select_posts
from socialprobe.core.reconcile import fill_missing
from socialprobe.core.windows import AnchorWindows, extract_fields, extract_records
from socialprobe.exceptions import AuthRequired, NoFieldsFound
from socialprobe.models.post import MediaType, PostRecord
from socialprobe.models.profile import PartialProfileResult
from socialprobe.platforms.base import PlatformSpec, Strategy, check_response, meta_content

BASE_URL = "https://www.facebook.com/"
LOGIN_MARKERS = ("/login",)

HTML_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "pl-PL,pl;q=0.9,en-US;q=0.8,en;q=0.7",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
}

_JSON_STRING = r'"((?:[^"\\]|\\.)*)"'

POST_ID_ANCHOR = re.compile(r'"post_id"\s*:\s*"(\d+)"')
MESSAGE_ANCHOR = re.compile(r'"message"\s*:\s*\{\s*"text"\s*:\s*' + _JSON_STRING)

POST_FIELDS = {
    "likes": [
        re.compile(r'"reaction_count"\s*:\s*\{\s*"count"\s*:\s*(\d+)'),
        re.compile(r'"i18n_reaction_count"\s*:\s*"([^"]+)"'),
    ],
    "comments": [
        re.compile(r'"total_comment_count"\s*:\s*(\d+)'),
        re.compile(r'"comment_count"\s*:\s*\{\s*"total_count"\s*:\s*(\d+)'),
        re.compile(r'"comments"\s*:\s*\{\s*"total_count"\s*:\s*(\d+)'),
    ],
    "timestamp": [
        re.compile(r'"creation_time"\s*:\s*(\d+)'),
        re.compile(r'"publish_time"\s*:\s*(\d+)'),
    ],
    "typename": [
        re.compile(r'"__typename"\s*:\s*"(Video|Photo)"'),
    ],
    "url": [
        re.compile(r'"(?:url|permalink_url)"\s*:\s*"(https:\\?/\\?/www\.facebook\.com\\?/[^"]*?(?:posts|permalink|videos)[^"]*)"'),
    ],
    "caption": [
        re.compile(r'"message"\s*:\s*\{\s*"text"\s*:\s*' + _JSON_STRING),
    ],
}
# No url: a caption-only record would pick up the preceding post's link
MESSAGE_POST_FIELDS = {name: patterns for name, patterns in POST_FIELDS.items() if name not in ("caption", "url")}

FOLLOWER_COUNT = re.compile(r'"follower_count"\s*:\s*(\d+)')
PAGE_COUNTERS = {"followers": [FOLLOWER_COUNT]}
# Polish phrases first, page locale is usually pl-PL
FOLLOWER_PHRASES = [
    re.compile(r"(" + COUNT_TEXT + r")\s*(?:obserwujących|osób lubi|osób to lubi|polubień)", re.IGNORECASE),
    re.compile(r"(" + COUNT_TEXT + r")\s*(?:followers|people like|likes)", re.IGNORECASE),
]
# "12,345 likes · 42 talking about this. " prefix of page descriptions
_DESCRIPTION_STATS = re.compile(r"^.*?(?:talking about this|were here|mówi o tym|było tutaj)\.?\s*", re.IGNORECASE)

ARTICLE_SELECTOR = 'div[role="article"], div[data-pagelet*="FeedUnit"]'
MESSAGE_SELECTOR = 'div[data-ad-preview="message"], div[dir="auto"]'
REACTION_SELECTOR = 'span[aria-label*="reaction"], div[aria-label*="reaction"], span[aria-label*="reakcj"]'
LINK_SELECTOR = 'a[href*="/posts/"], a[href*="/permalink/"], a[href*="story_fbid="]'
COMMENT_TEXT = re.compile(r"comment|komentarz", re.IGNORECASE)
INTRO_SELECTOR = '[data-pagelet="ProfileTilesFeed_0"], div[class*="about"]'
MIN_RENDERED_TEXT = 10


def page_url(handle: str) -> str:
    """Page URL for a vanity name or a profile.php?id=... handle."""
    if "?" in handle:
        return urljoin(BASE_URL, handle)
    return urljoin(BASE_URL, f"{handle}/")


def post_url(handle: str, post_id: str) -> str:
    if "?" in handle:
        return urljoin(BASE_URL, post_id)
    return urljoin(BASE_URL, f"{handle}/posts/{post_id}")


def _looks_login_walled(html: str) -> bool:
    return "login_form" in html and "<form" in html


# ---------------------------------------------------------------------------
# Embedded JSON (page_html)
# ---------------------------------------------------------------------------


def _media_type(typename: str | None) -> MediaType | None:
    if typename is None:
        return None
    return MediaType.VIDEO if typename == "Video" else MediaType.IMAGE


def _post_from_record(record, caption: str, url: str, config: ScraperConfig) -> PostRecord:
    fields = record.fields
    return PostRecord(
        url=url,
        caption_snippet=snippet(caption, config.snippet_length),
        likes=parse_count(fields.get("likes")),
        comments=parse_count(fields.get("comments")),
        posted_at=record.posted_at,
        media_type=_media_type(fields.get("typename")),
        date_reliable=record.date_reliable,
    )


def extract_posts_from_html(
    html: str,
    handle: str,
    limit: int,
    config: ScraperConfig,
    today: date | None = None,
) -> list[PostRecord]:
    """
    Recover posts from the JSON blobs Facebook embeds in page markup.

    post_id anchors are the primary method; message text anchors recover
    posts whose ids were not serialized next to their content.
    """
    window = {"before": config.window_before, "after": config.window_after}
    by_id = []
    for record in extract_records(
        html, POST_ID_ANCHOR, POST_FIELDS, limit=limit,
        staleness_days=config.staleness_days, today=today, **window,
    ):
        url = decode_escapes(record.fields.get("url", "")) or post_url(handle, record.anchor)
        caption = decode_escapes(record.fields.get("caption", ""))
        by_id.append(_post_from_record(record, caption, url, config))

    by_message = []
    for record in extract_records(
        html, MESSAGE_ANCHOR, MESSAGE_POST_FIELDS, limit=limit,
        staleness_days=config.staleness_days, today=today, **window,
    ):
        caption = decode_escapes(record.anchor)
        if normalize_text(caption):
            url = decode_escapes(record.fields.get("url", ""))
            by_message.append(_post_from_record(record, caption, url, config))

    return select_posts([by_id, by_message], limit, config.caption_key_length)


def owner_anchor(handle: str) -> re.Pattern:
    """Pattern for the page's own vanity, username or numeric id entry."""
    key = handle
    if "?" in handle:
        key = parse_qs(urlsplit(handle).query).get("id", [handle])[0]
    return re.compile(r'"(?:vanity|username|id)"\s*:\s*"(' + re.escape(key) + r')"', re.IGNORECASE)


def find_follower_count(html: str, handle: str, config: ScraperConfig) -> int | None:
    """
    JSON follower counter of the page itself.

    Looked for first next to the page's own entry, then anywhere in the
    document.
    """
    windows = AnchorWindows(
        html, owner_anchor(handle), before=config.window_before, after=config.window_after, limit=1
    )
    for window in windows:
        found = extract_fields(window, PAGE_COUNTERS).get("followers")
        if found is not None:
            return parse_count(found)
    counter = FOLLOWER_COUNT.search(html)
    return parse_count(counter.group(1)) if counter else None


def find_followers(text: str | None) -> int | None:
    """Follower count from a visible follower or like phrase."""
    if not text:
        return None
    decoded = decode_entities(text)
    for pattern in FOLLOWER_PHRASES:
        match = pattern.search(decoded)
        if match:
            return parse_count(match.group(1))
    return None


def bio_from_description(description: str | None, config: ScraperConfig) -> str | None:
    """Page description with its leading like/talking-about statistics removed."""
    if not description:
        return None
    text = normalize_text(description)
    return optional_snippet(_DESCRIPTION_STATS.sub("", text, count=1), config.snippet_length)


def parse_page_html(
    html: str,
    handle: str,
    post_limit: int,
    config: ScraperConfig,
    today: date | None = None,
) -> PartialProfileResult:
    """
    Posts and profile fields from raw page markup.

    Raises:
        AuthRequired: Login form served in place of the page
        NoFieldsFound: Nothing recognizable in the markup
    """
    posts = extract_posts_from_html(html, handle, post_limit, config, today)
    description = meta_content(html, "og:description", "description")

    followers = find_follower_count(html, handle, config)
    if followers is None:
        followers = find_followers(description)

    result = PartialProfileResult(
        followers=followers,
        bio=bio_from_description(description, config),
        posts=posts,
    )
    if not result.has_usable_data:
        if _looks_login_walled(html):
            raise AuthRequired(200, "login form served")
        raise NoFieldsFound("no posts or page fields in page markup")
    return result


# ---------------------------------------------------------------------------
# Rendered DOM (rendered_page)
# ---------------------------------------------------------------------------


def _rendered_post(article, config: ScraperConfig, today: date | None) -> PostRecord | None:
    message = article.select_one(MESSAGE_SELECTOR)
    text = normalize_text(message.get_text(" ", strip=True)) if message else ""
    if len(text) < MIN_RENDERED_TEXT:
        return None

    reactions = article.select_one(REACTION_SELECTOR)
    likes = None
    if reactions is not None:
        likes = parse_count(reactions.get("aria-label") or reactions.get_text(" ", strip=True))

    comments_el = article.find("span", string=COMMENT_TEXT)
    comments = parse_count(comments_el.get_text(" ", strip=True)) if comments_el else None

    link = article.select_one(LINK_SELECTOR)
    url = urljoin(BASE_URL, link["href"]) if link and link.get("href") else ""

    stamp = article.select_one("abbr[data-utime]")
    raw_time = (stamp.get("data-utime") or stamp.get_text(strip=True)) if stamp else None
    posted_at = parse_post_date(raw_time, today=today)

    return PostRecord(
        url=url,
        caption_snippet=snippet(text, config.snippet_length),
        likes=likes,
        comments=comments,
        posted_at=posted_at,
        date_reliable=is_reliable_date(posted_at, config.staleness_days, today),
    )


def parse_rendered_page(
    html: str,
    post_limit: int,
    config: ScraperConfig,
    today: date | None = None,
) -> PartialProfileResult:
    """
    Posts, followers and bio from a rendered page's DOM.

    Article blocks carry no stable identifiers, so posts are keyed by
    caption. Articles nested inside another article are comments and
    are skipped.

    Raises:
        AuthRequired: Login form rendered in place of the page
        NoFieldsFound: Nothing recognizable in the page
    """
    soup = BeautifulSoup(html, "lxml")

    articles = soup.select(ARTICLE_SELECTOR)
    selected = {id(article) for article in articles}
    posts = []
    for article in articles:
        if any(id(parent) in selected for parent in article.parents):
            continue
        post = _rendered_post(article, config, today)
        if post is not None:
            posts.append(post)

    body = soup.body.get_text(" ", strip=True) if soup.body else ""
    intro = soup.select_one(INTRO_SELECTOR)
    rendered = PartialProfileResult(
        followers=find_followers(body),
        bio=optional_snippet(intro.get_text(" ", strip=True), config.snippet_length) if intro else None,
        posts=select_posts([posts], post_limit, config.caption_key_length),
    )
    description = meta_content(html, "og:description", "description")
    result = fill_missing(rendered, PartialProfileResult(bio=bio_from_description(description, config)))

    if not result.has_usable_data:
        if _looks_login_walled(html):
            raise AuthRequired(200, "login form rendered")
        raise NoFieldsFound("no posts or page fields in rendered page")
    return result


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


async def fetch_page_html(
    handle: str,
    post_limit: int,
    net: NetworkAccess,
    config: ScraperConfig,
) -> PartialProfileResult | None:
    """Strategy 1: plain page HTML."""
    response = await net.fetch(page_url(handle), headers=HTML_HEADERS, timeout_s=config.request_timeout_s)
    check_response(response, LOGIN_MARKERS, label="Page")
    return parse_page_html(response.body, handle, post_limit, config)


async def fetch_rendered_page(
    handle: str,
    post_limit: int,
    net: NetworkAccess,
    config: ScraperConfig,
) -> PartialProfileResult | None:
    """Strategy 2: page rendered in a headless browser."""
    response = await net.render(
        page_url(handle),
        timeout_s=config.browser_timeout_ms / 1000,
        scrolls=config.render_scrolls,
    )
    check_response(response, LOGIN_MARKERS, label="Browser")
    return parse_rendered_page(response.body, post_limit, config)


def build_platform(config: ScraperConfig) -> PlatformSpec:
    """Facebook cascade bound to a configuration."""
    return PlatformSpec(
        name="facebook",
        strategies=[
            Strategy("page_html", partial(fetch_page_html, config=config)),
            Strategy("rendered_page", partial(fetch_rendered_page, config=config)),
        ],
        require_posts=True,
    )
