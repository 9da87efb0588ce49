import httpx
import pytest
import respx

from awesomelint.checker import (
    USER_AGENT,
    UrlChecker,
    create_client,
    github_auth,
)
from awesomelint.errors import CheckerError, ErrorKind

AUTH = ("user", "token")


@pytest.fixture
def router():
    with respx.mock(assert_all_called=False) as mocked:
        yield mocked


async def _check(url, auth=None):
    async with httpx.AsyncClient() as client:
        return await UrlChecker(client, 20, auth).check(url)


def test_github_auth_needs_both_variables():
    env = {"USERNAME_FOR_GITHUB": "user", "TOKEN_FOR_GITHUB": "token"}
    assert github_auth(env) == ("user", "token")
    assert github_auth({"USERNAME_FOR_GITHUB": "user"}) is None
    assert github_auth({"TOKEN_FOR_GITHUB": "token"}) is None


@pytest.mark.asyncio
async def test_create_client_settings():
    client = create_client()
    try:
        assert client.follow_redirects is False
        assert client.headers["user-agent"] == USER_AGENT
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_assumed_url_makes_no_request(router):
    url = "https://www.reddit.com/r/rust/"
    assert await _check(url) == (url, None)
    assert len(router.calls) == 0


@pytest.mark.asyncio
async def test_ok_response(router):
    url = "https://example.com/page"
    route = router.get(url).mock(return_value=httpx.Response(200))
    assert await _check(url) == (url, None)
    assert route.call_count == 1
    assert route.calls.last.request.headers["accept"] == "image/svg+xml, text/html, */*;q=0.8"


@pytest.mark.asyncio
async def test_not_found_is_retried_five_times(router):
    url = "https://example.com/missing"
    route = router.get(url).mock(return_value=httpx.Response(404))
    result_url, error = await _check(url)
    assert result_url == url
    assert error == CheckerError(ErrorKind.HTTP_ERROR, status=404)
    assert route.call_count == 5


@pytest.mark.asyncio
async def test_permanent_redirect_stops_with_location(router):
    url = "https://example.com/old"
    route = router.get(url).mock(
        return_value=httpx.Response(301, headers={"Location": "https://example.com/new"})
    )
    _, error = await _check(url)
    assert error == CheckerError(ErrorKind.HTTP_ERROR, status=301, location="https://example.com/new")
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_temporary_redirects_count_as_working(router):
    for status in (302, 307):
        url = f"https://example.com/temp{status}"
        router.get(url).mock(return_value=httpx.Response(status, headers={"Location": "/x"}))
        assert await _check(url) == (url, None)


@pytest.mark.asyncio
async def test_too_many_requests_is_not_retried(router):
    url = "https://example.com/busy"
    route = router.get(url).mock(return_value=httpx.Response(429))
    _, error = await _check(url)
    assert error.kind is ErrorKind.TOO_MANY_REQUESTS
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_connection_error_is_retried(router):
    url = "https://example.com/down"
    route = router.get(url).mock(side_effect=httpx.ConnectError("boom"))
    _, error = await _check(url)
    assert error.kind is ErrorKind.REQUEST_ERROR
    assert "boom" in error.error
    assert route.call_count == 5


@pytest.mark.asyncio
async def test_retry_succeeds_after_failure(router):
    url = "https://example.com/flaky"
    route = router.get(url).mock(side_effect=[httpx.Response(500), httpx.Response(200)])
    assert await _check(url) == (url, None)
    assert route.call_count == 2


@pytest.mark.asyncio
async def test_actions_404_falls_back_to_repository(router):
    url = "https://github.com/org/repo/actions?workflow=CI"
    router.get(url).mock(return_value=httpx.Response(404))
    repo = router.get("https://github.com/org/repo").mock(return_value=httpx.Response(200))
    assert await _check(url) == (url, None)
    assert repo.call_count == 1


@pytest.mark.asyncio
async def test_youtube_video_redirect_checks_thumbnail(router):
    url = "https://www.youtube.com/watch?v=abc"
    router.get(url).mock(return_value=httpx.Response(302, headers={"Location": "/elsewhere"}))
    thumb = router.get("http://img.youtube.com/vi/abc/mqdefault.jpg").mock(
        return_value=httpx.Response(404)
    )
    result_url, error = await _check(url)
    assert result_url == url
    assert error == CheckerError(ErrorKind.HTTP_ERROR, status=404)
    assert thumb.call_count == 5


@pytest.mark.asyncio
async def test_youtube_playlist_consent_counts_as_working(router):
    url = "https://www.youtube.com/playlist?list=PL1"
    route = router.get(url).mock(
        return_value=httpx.Response(
            302, headers={"Location": "https://consent.youtube.com/m?continue=somewhere"}
        )
    )
    assert await _check(url) == (url, None)
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_azure_build_follows_relative_redirect(router):
    url = "https://dev.azure.com/org/project/_build"
    router.get(url).mock(return_value=httpx.Response(302, headers={"Location": "/org/project/_build/1"}))
    target = router.get("https://dev.azure.com/org/project/_build/1").mock(
        return_value=httpx.Response(429)
    )
    _, error = await _check(url)
    assert error.kind is ErrorKind.TOO_MANY_REQUESTS
    assert target.call_count == 1


@pytest.mark.asyncio
async def test_travis_unknown_build(router):
    url = "https://api.travis-ci.org/org/repo.svg?branch=main"
    router.get(url).mock(return_value=httpx.Response(200, text="<svg>unknown</svg>"))
    _, error = await _check(url)
    assert error.kind is ErrorKind.TRAVIS_BUILD_UNKNOWN


@pytest.mark.asyncio
async def test_travis_without_branch(router):
    url = "https://api.travis-ci.org/org/repo.svg"
    router.get(url).mock(return_value=httpx.Response(200, text="<svg>passing</svg>"))
    _, error = await _check(url)
    assert error.kind is ErrorKind.TRAVIS_BUILD_NO_BRANCH


@pytest.mark.asyncio
async def test_travis_with_branch_passes(router):
    url = "https://api.travis-ci.com/org/repo.svg?branch=main"
    router.get(url).mock(return_value=httpx.Response(200, text="<svg>passing</svg>"))
    assert await _check(url) == (url, None)


@pytest.mark.asyncio
async def test_github_link_uses_api_with_auth(router):
    url = "https://github.com/org/repo/tree/main"
    api = router.get("https://api.github.com/repos/org/repo").mock(return_value=httpx.Response(200))
    assert await _check(url, AUTH) == (url, None)
    assert api.call_count == 1
    assert api.calls.last.request.headers["authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_github_link_without_auth_is_fetched_directly(router):
    url = "https://github.com/org/repo"
    direct = router.get(url).mock(return_value=httpx.Response(200))
    assert await _check(url) == (url, None)
    assert direct.call_count == 1
    assert "authorization" not in direct.calls.last.request.headers


@pytest.mark.asyncio
async def test_get_stars(router):
    router.get("https://api.github.com/repos/org/repo").mock(
        return_value=httpx.Response(200, json={"stargazers_count": 123, "archived": False})
    )
    async with httpx.AsyncClient() as client:
        assert await UrlChecker(client, 20, None).get_stars("https://github.com/org/repo") == 123


@pytest.mark.asyncio
async def test_get_stars_of_archived_repository_is_zero(router):
    route = router.get("https://api.github.com/repos/org/old").mock(
        return_value=httpx.Response(200, json={"stargazers_count": 900, "archived": True})
    )
    async with httpx.AsyncClient() as client:
        stars = await UrlChecker(client, 20, AUTH).get_stars("https://github.com/org/old")
    assert stars == 0
    assert route.calls.last.request.headers["authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_get_stars_rejects_unexpected_body(router):
    router.get("https://api.github.com/repos/org/repo").mock(
        return_value=httpx.Response(200, json={"message": "Not Found"})
    )
    async with httpx.AsyncClient() as client:
        with pytest.raises(ValueError):
            await UrlChecker(client, 20, None).get_stars("https://github.com/org/repo")


@pytest.mark.asyncio
async def test_get_stars_network_failure_gives_none(router):
    router.get("https://api.github.com/repos/org/repo").mock(side_effect=httpx.ConnectError("down"))
    async with httpx.AsyncClient() as client:
        assert await UrlChecker(client, 20, None).get_stars("https://github.com/org/repo") is None


@pytest.mark.asyncio
async def test_get_downloads(router):
    route = router.get("https://crates.io/api/v1/crates/serde").mock(
        return_value=httpx.Response(200, json={"crate": {"downloads": 5000}})
    )
    async with httpx.AsyncClient() as client:
        downloads = await UrlChecker(client, 20, None).get_downloads("https://crates.io/crates/serde/")
    assert downloads == 5000
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_get_downloads_network_failure_gives_none(router):
    router.get("https://crates.io/api/v1/crates/serde").mock(side_effect=httpx.ConnectError("down"))
    async with httpx.AsyncClient() as client:
        assert await UrlChecker(client, 20, None).get_downloads("https://crates.io/crates/serde") is None


@pytest.mark.asyncio
async def test_get_downloads_rejects_unexpected_body(router):
    router.get("https://crates.io/api/v1/crates/serde").mock(return_value=httpx.Response(200, text="oops"))
    async with httpx.AsyncClient() as client:
        with pytest.raises(ValueError):
            await UrlChecker(client, 20, None).get_downloads("https://crates.io/crates/serde")