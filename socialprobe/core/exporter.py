"""Export utilities for scrape results and batch jobs."""

import json
from pathlib import Path
from typing import Iterable

from socialprobe.exceptions import ConfigError
from socialprobe.models.job import BatchInput
from socialprobe.models.result import CompositeResult, JobRecord


def to_json(result: CompositeResult, indent: int = 2) -> str:
    """
    Convert CompositeResult to JSON string.

    Args:
        result: CompositeResult (or JobRecord) to serialize
        indent: JSON indentation level

    Returns:
        JSON string
    """
    return result.model_dump_json(indent=indent)


def to_dict(result: CompositeResult) -> dict:
    """
    Convert CompositeResult to a JSON-compatible dictionary.

    Dates become ISO strings and media types their string values.
    """
    return result.model_dump(mode="json")


def save_json(
    result: CompositeResult,
    filepath: str | Path,
    indent: int = 2,
) -> Path:
    """
    Save CompositeResult to JSON file.

    Args:
        result: CompositeResult to save
        filepath: Output file path
        indent: JSON indentation level

    Returns:
        Path to saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(result.model_dump_json(indent=indent), encoding="utf-8")
    return path


def load_json(filepath: str | Path) -> CompositeResult:
    """
    Load CompositeResult from JSON file.

    Args:
        filepath: Path to JSON file

    Returns:
        CompositeResult instance
    """
    path = Path(filepath)
    return CompositeResult.model_validate_json(path.read_text(encoding="utf-8"))


def append_jsonl(records: Iterable[JobRecord], filepath: str | Path) -> Path:
    """Append JobRecords to a JSON Lines file, one record per line."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        for record in records:
            f.write(record.model_dump_json() + "\n")
    return path


def load_jsonl(filepath: str | Path) -> list[JobRecord]:
    """Read JobRecords back from a JSON Lines file, skipping blank lines."""
    path = Path(filepath)
    records = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if line.strip():
            records.append(JobRecord.model_validate_json(line))
    return records


def load_batch(filepath: str | Path) -> BatchInput:
    """
    Load a batch job description.

    Raises:
        ConfigError: Unreadable file or invalid batch structure
    """
    path = Path(filepath)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return BatchInput.model_validate(data)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Invalid batch file {path}: {e}") from e
