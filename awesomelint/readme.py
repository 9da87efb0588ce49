"""Checks the list items of a README for popularity, template and ordering."""

from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional

from awesomelint.checker import CRATE_PATTERN, GITHUB_REPO_PATTERN
from awesomelint.markdown_events import Event, EventKind, TagKind, iter_events
from awesomelint.results import PopularityData

log = logging.getLogger(__name__)

MINIMUM_GITHUB_STARS = 50
MINIMUM_CARGO_DOWNLOADS = 2000
_MAX_COUNT = 2**32 - 1

# Each of these is enough for an item to pass the popularity checks, for
# projects whose popularity cannot be counted automatically.
POPULARITY_OVERRIDES = frozenset(
    {
        "https://github.com/maidsafe",
        "https://pijul.org",
        "https://gitlab.com/veloren/veloren",
        "https://gitlab.redox-os.org/redox-os/redox",
        "https://amp.rs",
        "https://marketplace.visualstudio.com/items?itemName=vadimcn.vscode-lldb",
        "https://gitpod.io",
        "https://wiki.gnome.org/Apps/Builder",
        "https://www.jetbrains.com/rust/",
        "https://marketplace.visualstudio.com/items?itemName=tamasfe.even-better-toml",
        "https://marketplace.visualstudio.com/items?itemName=rust-lang.rust-analyzer",
        "https://marketplace.visualstudio.com/items?itemName=rust-lang.rust",
        "https://docs.rs",
        "https://github.com/rust-bio",
        "https://github.com/contain-rs",
        "https://github.com/georust",
        "http://kiss3d.org",
        "https://github.com/rust-qt",
        "https://chromium.googlesource.com/chromiumos/platform/crosvm/",
        "https://crates.io",
        "https://cloudsmith.com/product/formats/cargo-registry",
        "https://gitlab.com/ttyperacer/terminal-typeracer",
        "https://github.com/esp-rs",
        "https://github.com/arkworks-rs",
        "https://marketplace.visualstudio.com/items?itemName=jinxdash.prettier-rust",
        "https://github.com/andoriyu/uclicious",
        "https://marketplace.visualstudio.com/items?itemName=fill-labs.dependi",
    }
)

ITEM_PATTERN = re.compile(r"(?P<repo>(\S+)(/\S+)?)(?P<crate> \[\S*\])? - (?P<desc>\S.+)")

FetchCount = Callable[[str], Awaitable[Optional[int]]]
SavePopularity = Callable[[PopularityData], None]


class ReadmeError(Exception):
    """The README breaks one of the list rules."""

    def __init__(self, message: str, patch: str | None = None) -> None:
        super().__init__(message)
        self.patch = patch


def override_stars(level: int | None, text: str) -> int | None:
    """Return the star threshold a heading of ``level`` sets, or None for the default."""
    if level == 2 and "Resources" in text:
        # Many resources are not on GitHub or crates.io at all.
        return 0
    if level == 3 and ("Games" in text or "Emulators" in text):
        return 40
    return None


def matches_item_template(item: str) -> bool:
    """Tell whether the text of a list item has the "name - description" form."""
    return ITEM_PATTERN.search(item) is not None


def sorting_patch(items: Iterable[str]) -> str:
    """Return a diff that would sort ``items`` case-insensitively; empty if sorted."""
    original = list(items)
    ordered = sorted(original, key=str.lower)
    if original == ordered:
        return ""
    diff = difflib.unified_diff(
        "\n".join(original).split("\n"),
        "\n".join(ordered).split("\n"),
        fromfile="original",
        tofile="modified",
        lineterm="",
    )
    return "\n".join(diff)


def _debug_count(value: int | None) -> str:
    return "None" if value is None else f"Some({value})"


@dataclass
class _ScanState:
    lists: List[List[str]] = field(default_factory=list)
    in_list_item: bool = False
    list_item: str = ""
    link_count: int = 0
    github_stars: Optional[int] = None
    cargo_downloads: Optional[int] = None
    required_stars: int = MINIMUM_GITHUB_STARS
    last_level: int = 0
    star_override_level: Optional[int] = None
    to_check: List[str] = field(default_factory=list)


class ReadmeScanner:
    """Walks a README, enforcing the list rules and collecting links to check."""

    def __init__(
        self,
        popularity: PopularityData,
        fetch_stars: FetchCount,
        fetch_downloads: FetchCount,
        save_popularity: SavePopularity | None = None,
    ) -> None:
        self.popularity = popularity
        self._fetch_stars = fetch_stars
        self._fetch_downloads = fetch_downloads
        self._save_popularity = save_popularity

    def _save(self) -> None:
        if self._save_popularity is not None:
            self._save_popularity(self.popularity)

    async def scan(self, markdown_text: str) -> list[str]:
        """Check ``markdown_text`` and return the links whose liveness still needs checking.

        Raises ReadmeError at the first rule that is broken.
        """
        state = _ScanState()
        for event in iter_events(markdown_text):
            log.debug("Event %r", event)
            if event.kind is EventKind.START:
                await self._on_start(state, event)
            elif event.kind is EventKind.TEXT:
                self._on_text(state, event.text or "")
            elif event.kind is EventKind.END:
                self._on_end(state, event)
            elif event.kind is EventKind.HTML:
                content = event.text or ""
                if "<!-- toc" not in content:
                    raise ReadmeError(f"Contains HTML content, not markdown: {content}")
        return state.to_check

    async def _on_start(self, state: _ScanState, event: Event) -> None:
        tag = event.tag
        if tag in (TagKind.LINK, TagKind.IMAGE):
            await self._on_link(state, event.url or "")
        elif tag is TagKind.LIST:
            if state.in_list_item and state.list_item:
                state.lists[-1].append(state.list_item)
                state.in_list_item = False
            state.lists.append([])
        elif tag is TagKind.ITEM:
            if state.in_list_item and state.list_item:
                state.lists[-1].append(state.list_item)
            state.in_list_item = True
            state.list_item = ""
            state.link_count = 0
            state.github_stars = None
            state.cargo_downloads = None
        elif tag is TagKind.HEADING:
            level = event.level or 0
            state.last_level = level
            if state.star_override_level is not None and level == state.star_override_level:
                state.star_override_level = None
                state.required_stars = MINIMUM_GITHUB_STARS
        elif tag is TagKind.PARAGRAPH:
            pass
        else:
            state.in_list_item = False

    async def _on_link(self, state: _ScanState, url: str) -> None:
        if url.startswith("#"):
            return
        if url in POPULARITY_OVERRIDES:
            state.github_stars = MINIMUM_GITHUB_STARS
        elif GITHUB_REPO_PATTERN.search(url) and state.github_stars is None:
            github_url = GITHUB_REPO_PATTERN.sub(r"https://github.com/\g<org>/\g<repo>", url)
            known = self.popularity.github_stars.get(github_url)
            if known is not None:
                # Known counts are reused, but the link is still checked for liveness.
                state.github_stars = known
            else:
                stars = await self._fetch_stars(github_url)
                state.github_stars = stars
                if stars is not None:
                    self.popularity.github_stars[github_url] = stars
                    if stars >= state.required_stars:
                        self._save()
                    state.link_count += 1
                    return
        if CRATE_PATTERN.search(url):
            known = self.popularity.cargo_downloads.get(url)
            if known is not None:
                state.cargo_downloads = known
            else:
                downloads = await self._fetch_downloads(url)
                if downloads is not None:
                    clamped = max(0, min(downloads, _MAX_COUNT))
                    state.cargo_downloads = clamped
                    self.popularity.cargo_downloads[url] = clamped
                    if clamped >= MINIMUM_CARGO_DOWNLOADS:
                        self._save()
                state.link_count += 1
                return
        state.to_check.append(url)
        state.link_count += 1

    def _on_text(self, state: _ScanState, text: str) -> None:
        override = override_stars(state.last_level, text)
        if override is not None:
            state.star_override_level = state.last_level
            state.required_stars = override
        if state.in_list_item:
            state.list_item += text

    def _on_end(self, state: _ScanState, event: Event) -> None:
        if event.tag is TagKind.ITEM:
            item = state.list_item
            if item:
                self._check_item(state, item)
                state.lists[-1].append(item)
                state.list_item = ""
            state.in_list_item = False
        elif event.tag is TagKind.LIST:
            entries = state.lists.pop()
            if "License" in entries and "Resources" in entries:
                # The top-level table of contents is not in alphabetical order.
                return
            patch = sorting_patch(entries)
            if patch:
                raise ReadmeError("Sorting error", patch=patch)

    def _check_item(self, state: _ScanState, item: str) -> None:
        if state.link_count == 0:
            return
        stars = state.github_stars
        downloads = state.cargo_downloads
        if (stars or 0) < state.required_stars and (downloads or 0) < MINIMUM_CARGO_DOWNLOADS:
            if stars is None:
                log.warning("No valid github link for %s", item)
            if downloads is None:
                log.warning("No valid crates link for %s", item)
            raise ReadmeError(
                f"Not high enough metrics ({_debug_count(stars)} stars < {state.required_stars}, "
                f"and {_debug_count(downloads)} cargo downloads < {MINIMUM_CARGO_DOWNLOADS}): {item}"
            )
        if not matches_item_template(item):
            if "—" in item:
                log.warning(
                    "\"%s\" uses a '—' hyphen, not the '-' hyphen and we enforce the use of the latter one",
                    item,
                )
            raise ReadmeError(
                f'Item does not match the template: "{item}". See CONTRIBUTING.md#tldr'
            )