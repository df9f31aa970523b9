"""Unit tests for post deduplication and ranking."""

from datetime import date

from socialprobe.core.ranking import caption_key, dedupe_posts, rank_posts, select_posts
from socialprobe.models.post import MediaType, PostRecord


def post(caption="", url="", day=None, reliable=True, **fields) -> PostRecord:
    return PostRecord(url=url, caption_snippet=caption, posted_at=day, date_reliable=reliable, **fields)


class TestCaptionKey:
    """Test caption identity keys."""

    def test_case_and_whitespace_insensitive(self):
        assert caption_key("  Hello   World ") == caption_key("hello world")

    def test_truncated_to_length(self):
        assert caption_key("a" * 100) == "a" * 60
        assert caption_key("abcdef", length=3) == "abc"

    def test_empty_caption_has_no_key(self):
        assert caption_key("") is None
        assert caption_key("   ") is None

    def test_entities_normalized(self):
        assert caption_key("Fish &amp; Chips") == caption_key("fish & chips")


class TestDedupePosts:
    """Test merging post lists from several anchor methods."""

    def test_duplicate_by_url(self):
        first = post("Launch day", url="https://x/p/1/")
        second = post("Launch day, updated", url="https://x/p/1/", likes=9)

        result = dedupe_posts([[first], [second]])

        assert len(result) == 1
        assert result[0].caption_snippet == "Launch day"
        assert result[0].likes == 9

    def test_duplicate_by_caption_fills_missing_fields(self):
        by_id = [post("Hello world", url="https://x/p/1/"), post("Other post", url="https://x/p/2/")]
        by_caption = [post("hello  WORLD", likes=5, comments=2), post("Brand new")]

        result = dedupe_posts([by_id, by_caption])

        assert [p.caption_snippet for p in result] == ["Hello world", "Other post", "Brand new"]
        assert result[0].url == "https://x/p/1/"
        assert result[0].likes == 5
        assert result[0].comments == 2

    def test_same_caption_different_urls_kept_apart(self):
        caption = "New arrivals this week! " * 5
        first = post(caption, url="https://x/p/AAA/", likes=3)
        second = post(caption, url="https://x/p/BBB/", likes=7)
        caption_only = post(caption, comments=4)

        result = dedupe_posts([[first, second], [caption_only]])

        assert [p.url for p in result] == ["https://x/p/AAA/", "https://x/p/BBB/"]
        assert [p.likes for p in result] == [3, 7]
        assert result[0].comments == 4
        assert result[1].comments is None

    def test_first_seen_values_win(self):
        first = post("Same caption", url="https://x/p/1/", likes=10, media_type=MediaType.VIDEO)
        second = post("Same caption", likes=99, media_type=MediaType.IMAGE)

        result = dedupe_posts([[first, second]])

        assert result[0].likes == 10
        assert result[0].media_type == MediaType.VIDEO

    def test_missing_url_taken_from_duplicate(self):
        caption_only = post("Caption first")
        with_url = post("Caption first", url="https://x/p/9/")

        result = dedupe_posts([[caption_only], [with_url]])

        assert result[0].url == "https://x/p/9/"

    def test_missing_date_taken_with_its_reliability(self):
        undated = post("Old news")
        dated = post("Old news", day=date(2019, 1, 1), reliable=False)

        result = dedupe_posts([[undated], [dated]])

        assert result[0].posted_at == date(2019, 1, 1)
        assert result[0].date_reliable is False

    def test_posts_without_url_or_caption_are_kept(self):
        result = dedupe_posts([[post(), post()]])
        assert len(result) == 2

    def test_no_duplicate_urls_or_caption_keys(self):
        groups = [
            [post("A", url="u1"), post("B", url="u2"), post("A", url="u3")],
            [post("b"), post("C", url="u1"), post("D")],
        ]
        result = dedupe_posts(groups)

        urls = [p.url for p in result if p.url]
        keys = [caption_key(p.caption_snippet) for p in result]
        assert len(urls) == len(set(urls))
        assert len(keys) == len(set(keys))


class TestRankPosts:
    """Test recency ordering."""

    def test_newest_first(self):
        posts = [post("a", day=date(2024, 4, 1)), post("b", day=date(2024, 5, 1)), post("c", day=date(2024, 4, 15))]
        assert [p.caption_snippet for p in rank_posts(posts)] == ["b", "c", "a"]

    def test_undated_keep_their_position(self):
        posts = [
            post("undated-1"),
            post("april", day=date(2024, 4, 1)),
            post("undated-2"),
            post("may", day=date(2024, 5, 1)),
        ]
        assert [p.caption_snippet for p in rank_posts(posts)] == ["undated-1", "may", "undated-2", "april"]

    def test_unreliable_dates_treated_as_undated(self):
        posts = [
            post("stale", day=date(2015, 1, 1), reliable=False),
            post("april", day=date(2024, 4, 1)),
            post("may", day=date(2024, 5, 1)),
        ]
        assert [p.caption_snippet for p in rank_posts(posts)] == ["stale", "may", "april"]

    def test_stable_for_equal_dates(self):
        day = date(2024, 5, 1)
        posts = [post("first", day=day), post("second", day=day)]
        assert [p.caption_snippet for p in rank_posts(posts)] == ["first", "second"]

    def test_empty(self):
        assert rank_posts([]) == []


class TestSelectPosts:
    """Test the dedupe, rank and truncate pipeline."""

    def test_truncates_after_ranking(self):
        posts = [post(f"post {i}", url=f"u{i}", day=date(2024, 4, i + 1)) for i in range(5)]
        result = select_posts([posts], limit=2)
        assert [p.caption_snippet for p in result] == ["post 4", "post 3"]

    def test_zero_and_negative_limits(self):
        posts = [post("a", url="u1")]
        assert select_posts([posts], limit=0) == []
        assert select_posts([posts], limit=-1) == []
