"""List the GitHub repositories of a README that carry the "hacktoberfest" topic."""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import httpx
import yaml

from awesomelint.checker import MAX_HANDLES, Auth, create_client, github_auth
from awesomelint.errors import CheckerError, ErrorKind
from awesomelint.markdown_events import EventKind, TagKind, iter_events

log = logging.getLogger(__name__)

GITHUB_REPO_PATTERN = re.compile(r"^https://github.com/(?P<org>[^/]+)/(?P<repo>[^/]+)/?$")
HACKTOBERFEST_TOPIC = "hacktoberfest"
RESULTS_FILE = "hacktoberfest.yaml"
LISTING_HEADER = "All listed repos tagged with 'hacktoberfest'"
SAVE_INTERVAL_SECONDS = 5.0
SAVE_EVERY = 20

_TIMESTAMP = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<zone>Z|[+-]\d{2}:?\d{2})?$"
)


@dataclass
class RepoInfo:
    """What is known about one repository."""

    name: str
    description: str = ""
    hacktoberfest: bool = False

    def to_data(self) -> dict[str, Any]:
        """Return the plain data stored in the results file."""
        return {
            "hacktoberfest": self.hacktoberfest,
            "name": self.name,
            "description": self.description,
        }


@dataclass
class _Entry:
    updated_at: datetime
    info: RepoInfo

    def to_data(self) -> dict[str, Any]:
        return {"updated_at": self.updated_at.isoformat(), "info": self.info.to_data()}


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


def _entry_from_data(data: Any) -> _Entry:
    if not isinstance(data, dict):
        raise ValueError(f"not a stored entry: {data!r}")
    info = data["info"]
    if not isinstance(info, dict):
        raise ValueError(f"not stored repository info: {info!r}")
    return _Entry(
        updated_at=_parse_datetime(data["updated_at"]),
        info=RepoInfo(
            name=str(info["name"]),
            description=str(info.get("description") or ""),
            hacktoberfest=bool(info["hacktoberfest"]),
        ),
    )


def _load(path: Path) -> dict[str, _Entry]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            return {}
        return {str(url): _entry_from_data(entry) for url, entry in data.items()}
    except (OSError, UnicodeDecodeError, yaml.YAMLError, ValueError, TypeError, KeyError):
        return {}


def _save(results: Mapping[str, _Entry], path: Path) -> None:
    data = {url: results[url].to_data() for url in sorted(results)}
    path.write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False),
        encoding="utf-8",
    )


def github_repo_urls(markdown_text: str) -> list[str]:
    """Return the link and image targets that name a GitHub repository, in document order."""
    return [
        event.url
        for event in iter_events(markdown_text)
        if event.kind is EventKind.START
        and event.tag in (TagKind.LINK, TagKind.IMAGE)
        and event.url
        and GITHUB_REPO_PATTERN.search(event.url)
    ]


async def fetch_repo_info(
    client: httpx.AsyncClient, github_url: str, auth: Optional[Auth] = None
) -> RepoInfo:
    """Fetch the name, description and topics of a repository.

    Raises CheckerError when the request fails or is answered with an error status,
    and ValueError when the answer is not repository data.
    """
    log.warning("Downloading Hacktoberfest label for %s", github_url)
    api_url = GITHUB_REPO_PATTERN.sub(r"https://api.github.com/repos/\g<org>/\g<repo>", github_url)
    try:
        response = await client.get(api_url, auth=auth)
    except httpx.HTTPError as exc:
        log.warning("Error while getting %s: %s", github_url, exc)
        raise CheckerError(ErrorKind.REQUEST_ERROR, error=str(exc)) from exc
    if not response.is_success:
        raise CheckerError(ErrorKind.HTTP_ERROR, status=response.status_code)
    raw = response.text
    try:
        data = response.json()
        name = data["full_name"]
        topics = data["topics"]
        description = data.get("description")
        if not isinstance(name, str) or not isinstance(topics, list):
            raise TypeError("unexpected field types")
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"unexpected repository data: {raw!r}") from exc
    return RepoInfo(
        name=name,
        description=description or "",
        hacktoberfest=HACKTOBERFEST_TOPIC in topics,
    )


def format_listing(results: Mapping[str, RepoInfo]) -> list[str]:
    """Return one Markdown list line per hacktoberfest repository, sorted case-insensitively by URL."""
    return [
        f"* [{results[url].name}]({url}) - {results[url].description}"
        for url in sorted(results, key=str.lower)
        if results[url].hacktoberfest
    ]


def _now() -> datetime:
    return datetime.now().astimezone()


async def _run(readme_path: Path, results_dir: Path) -> int:
    markdown_text = readme_path.read_text(encoding="utf-8")
    results_dir.mkdir(parents=True, exist_ok=True)
    results_path = results_dir / RESULTS_FILE
    results = _load(results_path)

    used: set[str] = set()
    selected: list[str] = []
    for url in github_repo_urls(markdown_text):
        if not url.startswith("http") or url in used:
            continue
        used.add(url)
        if url not in results:
            selected.append(url)

    for stale in [url for url in results if url not in used]:
        del results[stale]
    _save(results, results_path)

    auth = github_auth()
    handles = asyncio.Semaphore(MAX_HANDLES)
    failed = 0

    async with create_client() as client:

        async def check(url: str) -> tuple[str, Optional[RepoInfo], Optional[CheckerError]]:
            log.debug("Need handle for %s", url)
            async with handles:
                try:
                    return url, await fetch_repo_info(client, url, auth), None
                except CheckerError as exc:
                    return url, None, exc

        tasks = [asyncio.ensure_future(check(url)) for url in selected]
        not_written = 0
        last_written = time.monotonic()
        for finished in asyncio.as_completed(tasks):
            url, info, error = await finished
            if error is None and info is not None:
                print("\u2714 ", end="", flush=True)
                results[url] = _Entry(updated_at=_now(), info=info)
            else:
                print("\u2718 ", end="")
                print(url, flush=True)
                failed += 1
            not_written += 1
            if time.monotonic() - last_written > SAVE_INTERVAL_SECONDS or not_written > SAVE_EVERY:
                _save(results, results_path)
                not_written = 0
                last_written = time.monotonic()

    _save(results, results_path)
    print()
    if failed == 0:
        print(LISTING_HEADER)
        for line in format_listing({url: entry.info for url, entry in results.items()}):
            print(line)
    return failed


def run(readme_path: str | Path = "README.md", results_dir: str | Path = "results") -> int:
    """Look up every GitHub repository in the README; return the number of failed lookups."""
    return asyncio.run(_run(Path(readme_path), Path(results_dir)))


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="List the README's GitHub repositories tagged with 'hacktoberfest'."
    )
    parser.add_argument("--readme", default="README.md", help="the Markdown file to read")
    parser.add_argument("--results-dir", default="results", help="where stored results live")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    failed = run(args.readme, args.results_dir)
    if failed:
        print(f"Error: {failed} urls with errors", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())