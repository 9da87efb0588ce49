"""Stored link-check results and popularity counts."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from awesomelint.errors import CheckerError, error_from_data

PathLike = Union[str, "os.PathLike[str]"]

_TIMESTAMP = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<zone>Z|[+-]\d{2}:?\d{2})?$"
)


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.astimezone()
    return value.isoformat()


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.astimezone()
    if not isinstance(value, str):
        raise ValueError(f"not a timestamp: {value!r}")
    match = _TIMESTAMP.match(value.strip())
    if match is None:
        raise ValueError(f"not a timestamp: {value!r}")
    text = match["base"].replace(" ", "T")
    if match["fraction"]:
        text += "." + match["fraction"][:6].ljust(6, "0")
    zone = match["zone"]
    if zone:
        if zone == "Z":
            zone = "+00:00"
        elif ":" not in zone:
            zone = f"{zone[:3]}:{zone[3:]}"
        text += zone
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo is not None else parsed.astimezone()


@dataclass
class Link:
    """The last known state of one checked URL."""

    updated_at: datetime
    last_working: datetime | None = None
    error: CheckerError | None = None

    @property
    def working(self) -> bool:
        return self.error is None

    def to_data(self) -> dict[str, Any]:
        """Return the plain data stored in the results file."""
        return {
            "last_working": None if self.last_working is None else _format_datetime(self.last_working),
            "updated_at": _format_datetime(self.updated_at),
            "working": "Yes" if self.error is None else {"No": self.error.to_data()},
        }


def link_from_data(data: Any) -> Link:
    """Rebuild a Link from its stored form."""
    if not isinstance(data, dict):
        raise ValueError(f"not a stored link: {data!r}")
    try:
        working = data["working"]
        updated_at = _parse_datetime(data["updated_at"])
    except KeyError as exc:
        raise ValueError(f"stored link lacks {exc}") from exc
    last = data.get("last_working")
    last_working = None if last is None else _parse_datetime(last)
    if working == "Yes":
        error = None
    elif isinstance(working, dict) and set(working) == {"No"}:
        error = error_from_data(working["No"])
    else:
        raise ValueError(f"bad working state: {working!r}")
    return Link(updated_at=updated_at, last_working=last_working, error=error)


@dataclass
class PopularityData:
    """Star counts of GitHub repositories and download counts of crates."""

    github_stars: Dict[str, int] = field(default_factory=dict)
    cargo_downloads: Dict[str, int] = field(default_factory=dict)


_LOAD_ERRORS = (OSError, UnicodeDecodeError, yaml.YAMLError, ValueError, TypeError, KeyError)


def _read_yaml(path: PathLike) -> Any:
    return yaml.safe_load(Path(path).read_text(encoding="utf-8"))


def _write_yaml(data: Any, path: PathLike) -> None:
    Path(path).write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False),
        encoding="utf-8",
    )


def load_results(path: PathLike) -> dict[str, Link]:
    """Read stored results; a missing or unreadable file gives no results."""
    try:
        data = _read_yaml(path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(url): link_from_data(entry) for url, entry in data.items()}
    except _LOAD_ERRORS:
        return {}


def save_results(results: dict[str, Link], path: PathLike) -> None:
    """Write results, ordered by URL."""
    _write_yaml({url: results[url].to_data() for url in sorted(results)}, path)


def _counts(data: Any) -> dict[str, int]:
    if not isinstance(data, dict):
        raise ValueError("counts must be a mapping")
    return {str(key): int(value) for key, value in data.items()}


def load_popularity(path: PathLike) -> PopularityData:
    """Read stored popularity counts; a missing or unreadable file gives none."""
    try:
        data = _read_yaml(path)
        if not isinstance(data, dict):
            return PopularityData()
        return PopularityData(
            github_stars=_counts(data["github_stars"]),
            cargo_downloads=_counts(data["cargo_downloads"]),
        )
    except _LOAD_ERRORS:
        return PopularityData()


def save_popularity(popularity: PopularityData, path: PathLike) -> None:
    """Write popularity counts, each table ordered by URL."""
    _write_yaml(
        {
            "github_stars": {k: popularity.github_stars[k] for k in sorted(popularity.github_stars)},
            "cargo_downloads": {k: popularity.cargo_downloads[k] for k in sorted(popularity.cargo_downloads)},
        },
        path,
    )