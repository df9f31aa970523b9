"""Instagram strategies.

Cascade, each step leaner than the one before:
    1. private_api   - web_profile_info JSON: profile + posts with engagement
    2. web_page      - profile HTML: posts from embedded JSON, profile from
                       JSON counters or meta tags
    3. rendered_page - the same extraction over a headless-browser rendering
"""

import asyncio
import re
from datetime import date
from functools import partial
from urllib.parse import quote

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
    snippet,
    timestamp_to_date,
)
from socialprobe.core.ranking import select_posts
from socialprobe.core.reconcile import fill_missing
from socialprobe.core.windows import AnchorWindows, extract_fields, extract_records
from socialprobe.exceptions import AuthRequired, NetworkFailure, NoFieldsFound, RateLimited
from socialprobe.logging import get_logger
from socialprobe.models.post import MediaType, PostRecord
from socialprobe.models.profile import PartialProfileResult
from socialprobe.platforms.base import (
    PlatformSpec,
    Strategy,
    check_response,
    load_json,
    meta_content,
    pause_seconds,
)

_log = get_logger("instagram")

APP_ID = "936619743392459"
PROFILE_URL = "https://www.instagram.com/{handle}/"
API_URL = "https://i.instagram.com/api/v1/users/web_profile_info/?username={handle}"
POST_URL = "https://www.instagram.com/p/{shortcode}/"
LOGIN_MARKERS = ("/accounts/login", "/challenge/")

HTML_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
}

_JSON_STRING = r'"((?:[^"\\]|\\.)*)"'

SHORTCODE_ANCHOR = re.compile(r'"shortcode"\s*:\s*"([A-Za-z0-9_-]+)"')
CAPTION_ANCHOR = re.compile(
    r'(?:"edge_media_to_caption"\s*:\s*\{\s*"edges"\s*:\s*\[\s*\{\s*"node"\s*:\s*\{'
    r'|"caption"\s*:\s*\{[^{}]*?)'
    r'"text"\s*:\s*' + _JSON_STRING
)

POST_FIELDS = {
    "likes": [
        re.compile(r'"edge_liked_by"\s*:\s*\{\s*"count"\s*:\s*(\d+)'),
        re.compile(r'"edge_media_preview_like"\s*:\s*\{\s*"count"\s*:\s*(\d+)'),
        re.compile(r'"like_count"\s*:\s*(\d+)'),
    ],
    "comments": [
        re.compile(r'"edge_media_to_comment"\s*:\s*\{\s*"count"\s*:\s*(\d+)'),
        re.compile(r'"comment_count"\s*:\s*(\d+)'),
    ],
    "timestamp": [
        re.compile(r'"taken_at_timestamp"\s*:\s*(\d+)'),
        re.compile(r'"taken_at"\s*:\s*(\d+)'),
    ],
    "video": [
        re.compile(r'"is_video"\s*:\s*(true|false)'),
        re.compile(r'"media_type"\s*:\s*(\d)'),
    ],
    "caption": [
        re.compile(r'"text"\s*:\s*' + _JSON_STRING),
    ],
}
CAPTION_POST_FIELDS = {name: patterns for name, patterns in POST_FIELDS.items() if name != "caption"}

PROFILE_FIELDS = {
    "followers": [
        re.compile(r'"edge_followed_by"\s*:\s*\{\s*"count"\s*:\s*(\d+)'),
        re.compile(r'"follower_count"\s*:\s*(\d+)'),
    ],
    "following": [
        re.compile(r'"edge_follow"\s*:\s*\{\s*"count"\s*:\s*(\d+)'),
        re.compile(r'"following_count"\s*:\s*(\d+)'),
    ],
    "posts_count": [
        re.compile(r'"edge_owner_to_timeline_media"\s*:\s*\{\s*"count"\s*:\s*(\d+)'),
        re.compile(r'"media_count"\s*:\s*(\d+)'),
    ],
    "bio": [
        re.compile(r'"biography"\s*:\s*' + _JSON_STRING),
    ],
}

META_FOLLOWERS = re.compile(r"(" + COUNT_TEXT + r")\s*(?:Followers|obserwuj[aą]cych|follower)", re.IGNORECASE)
META_FOLLOWING = re.compile(r"(" + COUNT_TEXT + r")\s*(?:Following|obserwowanych)", re.IGNORECASE)
META_POSTS = re.compile(r"(" + COUNT_TEXT + r")\s*(?:Posts|post[oó]w|post)\b", re.IGNORECASE)
META_BIO = re.compile(r'on Instagram:\s*"(.+)"\s*$', re.DOTALL)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _media_type(flag: str | None) -> MediaType | None:
    if flag is None:
        return None
    return MediaType.VIDEO if flag in ("true", "2") else MediaType.IMAGE


def _post_from_node(node: dict, config: ScraperConfig, today: date | None = None) -> PostRecord | None:
    shortcode = node.get("shortcode") or node.get("code")
    if not shortcode:
        return None
    caption_edges = (node.get("edge_media_to_caption") or {}).get("edges") or []
    caption = ((caption_edges[0] or {}).get("node") or {}).get("text", "") if caption_edges else ""
    likes = (node.get("edge_liked_by") or {}).get("count")
    if likes is None:
        likes = (node.get("edge_media_preview_like") or {}).get("count")
    posted_at = timestamp_to_date(node.get("taken_at_timestamp"))
    return PostRecord(
        url=POST_URL.format(shortcode=shortcode),
        caption_snippet=snippet(caption, config.snippet_length),
        likes=likes,
        comments=(node.get("edge_media_to_comment") or {}).get("count"),
        posted_at=posted_at,
        media_type=MediaType.VIDEO if node.get("is_video") else MediaType.IMAGE,
        date_reliable=is_reliable_date(posted_at, config.staleness_days, today),
    )


def parse_api_payload(
    data: dict,
    post_limit: int,
    config: ScraperConfig,
    today: date | None = None,
) -> PartialProfileResult:
    """
    Turn a web_profile_info response into a partial result.

    Raises:
        RateLimited: "please wait" failure body
        AuthRequired: require_login failure body
        NoFieldsFound: No user object in the payload
    """
    if data.get("status") == "fail":
        message = str(data.get("message") or "")
        if "wait" in message.lower():
            raise RateLimited(429, f"API: {message}")
        if data.get("require_login"):
            raise AuthRequired(401, "API: login required")

    user = (data.get("data") or {}).get("user")
    if not user:
        raise NoFieldsFound("No user data in API response")

    timeline = user.get("edge_owner_to_timeline_media") or {}
    posts = []
    for edge in timeline.get("edges") or []:
        post = _post_from_node((edge or {}).get("node") or {}, config, today)
        if post is not None:
            posts.append(post)

    bio = user.get("biography")
    return PartialProfileResult(
        followers=(user.get("edge_followed_by") or {}).get("count"),
        following=(user.get("edge_follow") or {}).get("count"),
        posts_count=timeline.get("count"),
        bio=optional_snippet(bio, config.snippet_length),
        posts=select_posts([posts], post_limit, config.caption_key_length),
    )


def extract_posts_from_html(
    html: str,
    limit: int,
    config: ScraperConfig,
    today: date | None = None,
) -> list[PostRecord]:
    """
    Recover posts from JSON embedded in profile markup.

    Shortcode anchors are the primary method; caption anchors recover posts
    whose identifiers were stripped. Both feed one deduplicated list.
    """
    window = {"before": config.window_before, "after": config.window_after}
    by_id = []
    for record in extract_records(
        html, SHORTCODE_ANCHOR, POST_FIELDS, limit=limit,
        staleness_days=config.staleness_days, today=today, **window,
    ):
        url = POST_URL.format(shortcode=record.anchor)
        caption = decode_escapes(record.fields.get("caption", ""))
        by_id.append(_post_from_record(record, config, caption, url))

    by_caption = []
    for record in extract_records(
        html, CAPTION_ANCHOR, CAPTION_POST_FIELDS, limit=limit,
        staleness_days=config.staleness_days, today=today, **window,
    ):
        caption = decode_escapes(record.anchor)
        if normalize_text(caption):
            by_caption.append(_post_from_record(record, config, caption, ""))

    return select_posts([by_id, by_caption], limit, config.caption_key_length)


def _post_from_record(record, config: ScraperConfig, caption: str, url: str) -> PostRecord:
    fields = record.fields
    return PostRecord(
        url=url,
        caption_snippet=snippet(caption, config.snippet_length),
        likes=parse_count(fields.get("likes")),
        comments=parse_count(fields.get("comments")),
        posted_at=record.posted_at,
        media_type=_media_type(fields.get("video")),
        date_reliable=record.date_reliable,
    )


def extract_profile_from_json(html: str, handle: str, config: ScraperConfig) -> PartialProfileResult:
    """
    Profile counters from embedded JSON.

    Looked for first next to the profile's own "username" entry, then
    anywhere in the document.
    """
    found: dict[str, str] = {}
    owner = re.compile(r'"username"\s*:\s*"(' + re.escape(handle) + r')"', re.IGNORECASE)
    for window in AnchorWindows(html, owner, before=config.window_before, after=config.window_after, limit=1):
        found = extract_fields(window, PROFILE_FIELDS)
    for name, value in extract_fields(html, PROFILE_FIELDS).items():
        found.setdefault(name, value)

    bio = decode_escapes(found.get("bio"))
    return PartialProfileResult(
        followers=parse_count(found.get("followers")),
        following=parse_count(found.get("following")),
        posts_count=parse_count(found.get("posts_count")),
        bio=optional_snippet(bio, config.snippet_length),
    )


def extract_profile_from_meta(html: str, config: ScraperConfig) -> PartialProfileResult:
    """Profile counters from the og:description / description meta tag."""
    content = meta_content(html, "og:description", "description")
    if not content:
        return PartialProfileResult()

    decoded = decode_entities(content)
    followers = META_FOLLOWERS.search(decoded)
    following = META_FOLLOWING.search(decoded)
    posts = META_POSTS.search(decoded)
    bio = META_BIO.search(decoded)
    return PartialProfileResult(
        followers=parse_count(followers.group(1)) if followers else None,
        following=parse_count(following.group(1)) if following else None,
        posts_count=parse_count(posts.group(1)) if posts else None,
        bio=optional_snippet(bio.group(1) if bio else None, config.snippet_length),
    )


def _looks_login_walled(html: str) -> bool:
    return "LoginAndSignupPage" in html or "<title>Login • Instagram</title>" in html


def parse_profile_html(
    html: str,
    handle: str,
    post_limit: int,
    config: ScraperConfig,
    today: date | None = None,
) -> PartialProfileResult:
    """
    Full extraction from profile markup: posts plus profile fields, JSON
    counters taking precedence over meta tags field by field.

    Raises:
        AuthRequired: Login page served in place of the profile
        NoFieldsFound: Nothing recognizable in the markup
    """
    posts = extract_posts_from_html(html, post_limit, config, today)
    profile = fill_missing(
        extract_profile_from_json(html, handle, config),
        extract_profile_from_meta(html, config),
    )
    result = profile.model_copy(update={"posts": posts})

    if not result.has_usable_data:
        if _looks_login_walled(html):
            raise AuthRequired(200, "login page served")
        raise NoFieldsFound("no posts or profile fields in page markup")
    return result


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


async def _bootstrap_cookies(handle: str, net: NetworkAccess, config: ScraperConfig) -> dict[str, str]:
    """Visit the profile page for anonymous session cookies; {} on failure."""
    try:
        response = await net.fetch(
            PROFILE_URL.format(handle=handle),
            headers=HTML_HEADERS,
            timeout_s=config.bootstrap_timeout_s,
        )
    except NetworkFailure as e:
        _log.warning("bootstrap_failed", handle=handle, error=str(e))
        return {}
    if not response.ok:
        _log.warning("bootstrap_failed", handle=handle, status=response.status)
    return response.cookies


async def fetch_private_api(
    handle: str,
    post_limit: int,
    net: NetworkAccess,
    config: ScraperConfig,
) -> PartialProfileResult | None:
    """Strategy 1: the web_profile_info endpoint behind the profile page."""
    cookies = await _bootstrap_cookies(handle, net, config)

    # An API call right after the cookie fetch looks bot-like
    delay = pause_seconds(config.bootstrap_delay_min_ms, config.bootstrap_delay_max_ms)
    if delay:
        await asyncio.sleep(delay)

    headers = {
        "x-ig-app-id": APP_ID,
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
        "Origin": "https://www.instagram.com",
        "Referer": PROFILE_URL.format(handle=handle),
        "X-Requested-With": "XMLHttpRequest",
        "Sec-Fetch-Dest": "empty",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Site": "same-site",
    }
    if cookies.get("csrftoken"):
        headers["X-CSRFToken"] = cookies["csrftoken"]

    response = await net.fetch(
        API_URL.format(handle=quote(handle)),
        headers=headers,
        timeout_s=config.request_timeout_s,
    )
    check_response(response, LOGIN_MARKERS, label="API")
    data = load_json(response.body, label="API response")
    return parse_api_payload(data, post_limit, config)


async def fetch_web_page(
    handle: str,
    post_limit: int,
    net: NetworkAccess,
    config: ScraperConfig,
) -> PartialProfileResult | None:
    """Strategy 2: plain profile HTML."""
    response = await net.fetch(
        PROFILE_URL.format(handle=handle),
        headers=HTML_HEADERS,
        timeout_s=config.request_timeout_s,
    )
    check_response(response, LOGIN_MARKERS, label="Web")
    return parse_profile_html(response.body, handle, post_limit, config)


async def fetch_rendered_page(
    handle: str,
    post_limit: int,
    net: NetworkAccess,
    config: ScraperConfig,
) -> PartialProfileResult | None:
    """Strategy 3: profile HTML after client-side rendering."""
    response = await net.render(
        PROFILE_URL.format(handle=handle),
        timeout_s=config.browser_timeout_ms / 1000,
        scrolls=config.render_scrolls,
    )
    check_response(response, LOGIN_MARKERS, label="Browser")
    return parse_profile_html(response.body, handle, post_limit, config)


def build_platform(config: ScraperConfig) -> PlatformSpec:
    """Instagram cascade bound to a configuration."""
    return PlatformSpec(
        name="instagram",
        strategies=[
            Strategy("private_api", partial(fetch_private_api, config=config)),
            Strategy("web_page", partial(fetch_web_page, config=config)),
            Strategy("rendered_page", partial(fetch_rendered_page, config=config)),
        ],
        require_posts=True,
    )
