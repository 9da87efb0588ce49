"""The link checker command: lint the README, then check every link in it."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

import humanize

from awesomelint.checker import UrlChecker, create_client, github_auth
from awesomelint.errors import CheckerError, ErrorKind, format_error
from awesomelint.readme import ReadmeError, ReadmeScanner
from awesomelint.results import (
    Link,
    load_popularity,
    load_results,
    save_popularity,
    save_results,
)

log = logging.getLogger(__name__)

MIN_BETWEEN_CHECKS = timedelta(days=3)
MAX_ALLOWED_FAILED = timedelta(days=7)
SAVE_INTERVAL_SECONDS = 5.0
SAVE_EVERY = 20

RESULTS_FILE = "results.yaml"
POPULARITY_FILE = "popularity.yaml"


def order_by_last_working(urls: Iterable[str], results: Mapping[str, Link]) -> list[str]:
    """Order URLs so that known ones come first, the longest-unseen-working first.

    Known URLs that never worked lead; unknown URLs follow in alphabetical order.
    """

    def key(url: str) -> tuple:
        link = results.get(url)
        if link is None:
            return (1, url)
        if link.last_working is None:
            return (0, 0)
        return (0, 1, link.last_working)

    return sorted(urls, key=key)


def select_for_checking(
    urls: Iterable[str], results: Mapping[str, Link], now: datetime
) -> tuple[list[str], set[str]]:
    """Pick the URLs due for a check.

    Returns the selected URLs in order and the set of every HTTP URL seen.
    Links that worked less than three days ago are seen but not selected.
    """
    selected: list[str] = []
    used: set[str] = set()
    for url in urls:
        if not url.startswith("http") or url in used:
            continue
        used.add(url)
        link = results.get(url)
        if link is not None and link.working and now - link.updated_at < MIN_BETWEEN_CHECKS:
            continue
        selected.append(url)
    return selected, used


def prune_results(results: dict[str, Link], used: Iterable[str]) -> list[str]:
    """Drop the results of URLs no longer in use; return the dropped URLs."""
    keep = set(used)
    stale = sorted(url for url in results if url not in keep)
    for url in stale:
        del results[url]
    return stale


def record_result(
    results: dict[str, Link], url: str, error: Optional[CheckerError], now: datetime
) -> Link:
    """Store the outcome of one check and return the updated link."""
    link = results.get(url)
    if link is None:
        link = Link(updated_at=now)
        results[url] = link
    link.updated_at = now
    link.error = error
    if error is None:
        link.last_working = now
    return link


def _debug_time(value: Optional[datetime]) -> str:
    return "None" if value is None else f"Some({value.isoformat()})"


def _debug_link(link: Link) -> str:
    working = "Yes" if link.error is None else f"No({link.error.debug_text})"
    return (
        f"Link {{ last_working: {_debug_time(link.last_working)}, "
        f"updated_at: {link.updated_at.isoformat()}, working: {working} }}"
    )


def summarize_failures(results: Mapping[str, Link], now: datetime) -> tuple[int, list[str]]:
    """Count the failures that matter and describe every failure worth a line."""
    failed = 0
    lines: list[str] = []
    for url in sorted(results):
        link = results[url]
        err = link.error
        if err is None:
            continue
        if err.kind is ErrorKind.HTTP_ERROR and err.status in (301, 404):
            lines.append(f"{url} {_debug_link(link)}")
            failed += 1
            continue
        if err.kind is ErrorKind.TOO_MANY_REQUESTS and link.last_working is not None:
            log.info("Ignoring 429 failure on %s as we've seen success before", url)
            continue
        if link.last_working is None:
            lines.append(f"{url} {_debug_link(link)}")
            failed += 1
            continue
        since = now - link.last_working
        if since > MAX_ALLOWED_FAILED:
            lines.append(f"{url} {_debug_link(link)}")
            failed += 1
        else:
            lines.append(
                f"Failure occurred but only {humanize.naturaltime(since)}, "
                f"so we're not worrying yet: {format_error(err, url)}"
            )
    return failed, lines


def _now() -> datetime:
    return datetime.now().astimezone()


async def _run(readme_path: Path, results_dir: Path) -> int:
    markdown_text = readme_path.read_text(encoding="utf-8")
    results_dir.mkdir(parents=True, exist_ok=True)
    results_path = results_dir / RESULTS_FILE
    popularity_path = results_dir / POPULARITY_FILE

    results = load_results(results_path)
    popularity = load_popularity(popularity_path)

    async with create_client() as client:
        checker = UrlChecker(client, auth=github_auth())
        scanner = ReadmeScanner(
            popularity,
            checker.get_stars,
            checker.get_downloads,
            save_popularity=lambda data: save_popularity(data, popularity_path),
        )
        to_check = await scanner.scan(markdown_text)
        save_popularity(popularity, popularity_path)

        ordered = order_by_last_working(to_check, results)
        selected, used = select_for_checking(ordered, results, _now())
        prune_results(results, used)
        save_results(results, results_path)

        tasks = [asyncio.ensure_future(checker.check(url)) for url in selected]
        not_written = 0
        last_written = time.monotonic()
        for finished in asyncio.as_completed(tasks):
            url, error = await finished
            print("\u2718 " if error is not None else "\u2714 ", end="", flush=True)
            record_result(results, url, error, _now())
            not_written += 1
            if time.monotonic() - last_written > SAVE_INTERVAL_SECONDS or not_written > SAVE_EVERY:
                save_results(results, results_path)
                not_written = 0
                last_written = time.monotonic()

    save_results(results, results_path)
    print()
    failed, lines = summarize_failures(results, _now())
    for line in lines:
        print(line)
    if failed == 0:
        print("No errors!")
    return failed


def run(readme_path: str | Path = "README.md", results_dir: str | Path = "results") -> int:
    """Lint the README and check its links; return the number of failing URLs.

    Raises ReadmeError if the README breaks a list rule.
    """
    return asyncio.run(_run(Path(readme_path), Path(results_dir)))


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Lint a README list and check its links.")
    parser.add_argument("--readme", default="README.md", help="the Markdown file to check")
    parser.add_argument("--results-dir", default="results", help="where stored results live")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    try:
        failed = run(args.readme, args.results_dir)
    except ReadmeError as exc:
        if exc.patch:
            print(exc.patch)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if failed:
        print(f"Error: {failed} urls with errors", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())