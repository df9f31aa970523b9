"""Unit tests for exporter utilities - no internet."""

import json
from datetime import date, datetime

import pytest

from conftest import FIXTURES_DIR
from socialprobe.core.exporter import (
    append_jsonl,
    load_batch,
    load_json,
    load_jsonl,
    save_json,
    to_dict,
    to_json,
)
from socialprobe.exceptions import ConfigError
from socialprobe.models.post import MediaType, PostRecord
from socialprobe.models.result import CompositeResult, JobRecord


@pytest.fixture
def result() -> CompositeResult:
    return CompositeResult(
        followers=10000,
        following=321,
        posts_count=542,
        bio="Coffee roasters from Kraków.",
        posts=[
            PostRecord(
                url="https://www.instagram.com/p/CabcNEW1/",
                caption_snippet="New espresso blend launching May 1st! ☕",
                likes=1520,
                comments=48,
                posted_at=date(2024, 5, 1),
                media_type=MediaType.VIDEO,
            ),
            PostRecord(caption_snippet="Undated post", date_reliable=False),
        ],
        sources=["private_api"],
    )


def job_record(result: CompositeResult, name: str = "Example Brand") -> JobRecord:
    return JobRecord.from_result(
        result,
        customer_slug="acme-coffee",
        name=name,
        platform="instagram",
        scraped_at=datetime(2024, 5, 10, 12, 0),
    )


class TestToJson:
    """Test JSON string conversion."""

    def test_valid_json(self, result):
        parsed = json.loads(to_json(result))
        assert parsed["followers"] == 10000
        assert parsed["posts"][0]["posted_at"] == "2024-05-01"
        assert parsed["posts"][0]["media_type"] == "video"

    def test_reliability_flag_not_serialized(self, result):
        parsed = json.loads(to_json(result))
        assert "date_reliable" not in parsed["posts"][0]

    def test_to_dict(self, result):
        d = to_dict(result)
        assert d["sources"] == ["private_api"]
        assert d["error"] is None
        assert d["posts"][1]["posted_at"] is None


class TestSaveLoadJson:
    """Test file round trip."""

    def test_save_creates_parent_dirs(self, result, tmp_path):
        path = save_json(result, tmp_path / "out" / "instagram_examplebrand.json")
        assert path.exists()

    def test_round_trip(self, result, tmp_path):
        path = save_json(result, tmp_path / "result.json")
        loaded = load_json(path)

        assert loaded.followers == result.followers
        assert loaded.bio == result.bio
        assert loaded.posts[0].posted_at == date(2024, 5, 1)
        assert loaded.posts[0].media_type == MediaType.VIDEO
        assert loaded.sources == ["private_api"]


class TestJsonLines:
    """Test JobRecord JSON Lines output."""

    def test_one_line_per_record(self, result, tmp_path):
        path = tmp_path / "results.jsonl"
        append_jsonl([job_record(result), job_record(CompositeResult(error="failed"), "Other")], path)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["customer_slug"] == "acme-coffee"
        assert json.loads(lines[1])["error"] == "failed"

    def test_appends(self, result, tmp_path):
        path = tmp_path / "results.jsonl"
        append_jsonl([job_record(result)], path)
        append_jsonl([job_record(result, "Second")], path)

        records = load_jsonl(path)
        assert [r.name for r in records] == ["Example Brand", "Second"]
        assert records[0].scraped_at == datetime(2024, 5, 10, 12, 0)
        assert records[0].followers == 10000
        assert records[0].success is True

    def test_blank_lines_skipped(self, result, tmp_path):
        path = tmp_path / "results.jsonl"
        append_jsonl([job_record(result)], path)
        with path.open("a", encoding="utf-8") as f:
            f.write("\n\n")
        assert len(load_jsonl(path)) == 1


class TestLoadBatch:
    """Test batch input loading."""

    def test_fixture(self):
        batch = load_batch(FIXTURES_DIR / "batch.json")

        assert batch.customer_slug == "acme-coffee"
        assert batch.posts_per_profile == 3
        assert [c.name for c in batch.competitors] == ["Example Brand", "Other Roasters"]
        assert [(p.value, h) for p, h in batch.competitors[0].targets()] == [
            ("instagram", "@examplebrand"),
            ("facebook", "examplebrand"),
        ]
        assert [p.value for p, _ in batch.competitors[1].targets()] == ["instagram"]

    def test_default_posts_per_profile(self, tmp_path):
        path = tmp_path / "batch.json"
        path.write_text(json.dumps({"customer_slug": "acme", "competitors": [{"name": "A", "facebook": "a"}]}))
        assert load_batch(path).posts_per_profile == 12

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_batch(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "batch.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_batch(path)

    @pytest.mark.parametrize("data", [
        {"customer_slug": "  ", "competitors": [{"name": "A"}]},
        {"customer_slug": "acme", "competitors": []},
        {"customer_slug": "acme", "competitors": [{"name": "A"}], "posts_per_profile": -1},
        {"competitors": [{"name": "A"}]},
    ])
    def test_invalid_structure(self, tmp_path, data):
        path = tmp_path / "batch.json"
        path.write_text(json.dumps(data))
        with pytest.raises(ConfigError):
            load_batch(path)
