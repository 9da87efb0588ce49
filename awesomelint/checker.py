"""Checking that links are alive, and fetching popularity counts."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from typing import Mapping, Optional, Tuple

import httpx

from awesomelint.errors import CheckerError, ErrorKind

log = logging.getLogger(__name__)

Auth = Tuple[str, str]

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.14; rv:68.0) Gecko/20100101 Firefox/68.0"
ACCEPT = "image/svg+xml, text/html, */*;q=0.8"
MAX_HANDLES = 20
MAX_ATTEMPTS = 5
REQUEST_TIMEOUT = 20.0

# These misbehave when checked from CI, so they are taken as working.
ASSUME_WORKS = frozenset(
    {
        "https://www.reddit.com/r/rust/",
        "https://opcfoundation.org/about/opc-technologies/opc-ua/",
        "https://arangodb.com",
        "https://git.sr.ht/~lessa/pepper",
        "https://git.sr.ht/~pyrossh/rust-embed",
        "https://www.gnu.org/software/emacs/",
        "http://www.gnu.org/software/gsl/",
    }
)

GITHUB_REPO_PATTERN = re.compile(r"^https://github.com/(?P<org>[^/]+)/(?P<repo>[^/]+)(.*)")
GITHUB_API_PATTERN = re.compile(r"https://api.github.com/")
CRATE_PATTERN = re.compile(r"https://crates.io/crates/(?P<crate>[^/]+)/?$")

_GITHUB_API_REPO = r"https://api.github.com/repos/\g<org>/\g<repo>"
_ACTIONS = re.compile(r"https://github.com/(?P<org>[^/]+)/(?P<repo>[^/]+)/actions(?:\?workflow=.+)?")
_YOUTUBE_VIDEO = re.compile(r"https://www.youtube.com/watch\?v=(?P<video_id>.+)")
_YOUTUBE_PLAYLIST = re.compile(r"https://www.youtube.com/playlist\?list=(?P<playlist_id>.+)")
_YOUTUBE_CONSENT = re.compile(r"https://consent.youtube.com/m\?continue=.+")
_AZURE_BUILD = re.compile(r"https://dev.azure.com/[^/]+/[^/]+/_build")
_TRAVIS_IMAGE = re.compile(r"https://api.travis-ci.(?:com|org)/[^/]+/.+\.svg(\?.+)?")


def github_auth(environ: Optional[Mapping[str, str]] = None) -> Optional[Auth]:
    """Return GitHub credentials from the environment, if both are set."""
    env = os.environ if environ is None else environ
    username = env.get("USERNAME_FOR_GITHUB")
    token = env.get("TOKEN_FOR_GITHUB")
    if username is None or token is None:
        return None
    return username, token


def create_client() -> httpx.AsyncClient:
    """Build the HTTP client used for every check."""
    return httpx.AsyncClient(
        verify=False,  # some certificates are out of date
        headers={"User-Agent": USER_AGENT},
        follow_redirects=False,
        timeout=REQUEST_TIMEOUT,
        limits=httpx.Limits(max_keepalive_connections=0),
    )


class UrlChecker:
    """Checks URLs with at most ``max_handles`` requests under way at once."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_handles: int = MAX_HANDLES,
        auth: Optional[Auth] = None,
    ) -> None:
        self.client = client
        self.auth = auth
        self._handles = asyncio.Semaphore(max_handles)

    async def check(self, url: str) -> Tuple[str, Optional[CheckerError]]:
        """Check ``url``; return it with the error it failed with, or None."""
        log.debug("Need handle for %s", url)
        async with self._handles:
            return url, await self._check(url)

    async def _check(self, url: str) -> Optional[CheckerError]:
        if url in ASSUME_WORKS:
            log.info("We assume %s just works...", url)
            return None
        if self.auth is not None and GITHUB_REPO_PATTERN.search(url):
            rewritten = GITHUB_REPO_PATTERN.sub(_GITHUB_API_REPO, url)
            log.info("Replacing %s with %s to work around rate limits on GitHub", url, rewritten)
            return await self._check(rewritten)

        error: Optional[CheckerError] = CheckerError(ErrorKind.NOT_TRIED)
        for _ in range(MAX_ATTEMPTS):
            log.debug("Running %s", url)
            auth = self.auth if GITHUB_API_PATTERN.search(url) else None
            try:
                if auth is not None:
                    response = await self.client.get(url, headers={"Accept": ACCEPT}, auth=auth)
                else:
                    response = await self.client.get(url, headers={"Accept": ACCEPT})
            except httpx.HTTPError as exc:
                log.warning("Error while getting %s, retrying: %s", url, exc)
                error = CheckerError(ErrorKind.REQUEST_ERROR, error=str(exc))
                continue

            status = response.status_code
            if status != 200:
                if status == 404 and _ACTIONS.search(url):
                    rewritten = _ACTIONS.sub(r"https://github.com/\g<org>/\g<repo>", url)
                    log.warning("Got 404 with GitHub actions, so replacing %s with %s", url, rewritten)
                    return await self._check(rewritten)
                if status == 302 and _YOUTUBE_VIDEO.search(url):
                    rewritten = _YOUTUBE_VIDEO.sub(r"http://img.youtube.com/vi/\g<video_id>/mqdefault.jpg", url)
                    log.warning("Got 302 with Youtube, so replacing %s with %s", url, rewritten)
                    return await self._check(rewritten)
                if status == 302 and _YOUTUBE_PLAYLIST.search(url):
                    location = response.headers.get("location", "")
                    if _YOUTUBE_CONSENT.search(location):
                        log.warning("Got Youtube consent link for %s, so assuming playlist is ok", url)
                        return None
                if status == 302 and _AZURE_BUILD.search(url):
                    # Azure build URLs always redirect to a particular build id.
                    merged = str(httpx.URL(url).join(response.headers["location"]))
                    log.info("Got 302 from Azure devops, so replacing %s with %s", url, merged)
                    return await self._check(merged)
                if status == 429:
                    log.warning("Error while getting %s: %s", url, status)
                    return CheckerError(ErrorKind.TOO_MANY_REQUESTS)
                if 300 <= status < 400:
                    if status not in (302, 307):
                        log.warning("Redirect while getting %s - %s", url, status)
                        return CheckerError(
                            ErrorKind.HTTP_ERROR,
                            status=status,
                            location=response.headers.get("location"),
                        )
                else:
                    log.warning("Error while getting %s, retrying: %s", url, status)
                    error = CheckerError(ErrorKind.HTTP_ERROR, status=status)
                    continue

            travis = _TRAVIS_IMAGE.search(url)
            if travis is not None:
                if "unknown" in response.text:
                    return CheckerError(ErrorKind.TRAVIS_BUILD_UNKNOWN)
                query = travis.group(1) or ""
                if not query.startswith("?") or "branch=" not in query:
                    return CheckerError(ErrorKind.TRAVIS_BUILD_NO_BRANCH)
            log.debug("Finished %s", url)
            return None
        return error

    async def get_stars(self, github_url: str) -> Optional[int]:
        """Return the star count of a repository, 0 if archived, None on network failure."""
        log.warning("Downloading GitHub stars for %s", github_url)
        api_url = GITHUB_REPO_PATTERN.sub(_GITHUB_API_REPO, github_url)
        try:
            if self.auth is not None:
                response = await self.client.get(api_url, auth=self.auth)
            else:
                response = await self.client.get(api_url)
        except httpx.HTTPError as exc:
            log.warning("Error while getting %s: %s", github_url, exc)
            return None
        raw = response.text
        try:
            data = response.json()
            stars = int(data["stargazers_count"])
            archived = bool(data["archived"])
        except (ValueError, KeyError, TypeError) as exc:
            raise ValueError(f"unexpected repository data: {raw!r}") from exc
        if archived:
            log.warning("%s is archived, so ignoring stars", github_url)
            return 0
        return stars

    async def get_downloads(self, crate_url: str) -> Optional[int]:
        """Return the download count of a crate, None on network failure."""
        log.warning("Downloading Crates downloads for %s", crate_url)
        api_url = CRATE_PATTERN.sub(r"https://crates.io/api/v1/crates/\g<crate>", crate_url)
        try:
            response = await self.client.get(api_url)
        except httpx.HTTPError as exc:
            log.warning("Error while getting %s: %s", crate_url, exc)
            return None
        try:
            return int(response.json()["crate"]["downloads"])
        except (ValueError, KeyError, TypeError) as exc:
            raise ValueError(f"unexpected crate data: {response.text!r}") from exc