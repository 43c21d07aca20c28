"""Tests for the Jikan REST client."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest

from app.config import Settings
from app.services.errors import ProviderEmptyResult, ProviderTransportError
from app.services.jikan import JikanClient, build_search_params

from payloads import jikan_anime


def build_client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[JikanClient, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://jikan.example.com/v4"
    )
    return JikanClient(Settings(_env_file=None), http_client), http_client


def test_search_params_use_numeric_genre_ids() -> None:
    params = build_search_params(query="", genre="romance", sort="rating", page=2, limit=25)

    assert params == {
        "limit": 25,
        "page": 2,
        "order_by": "score",
        "sort": "desc",
        "genres": 22,
    }


def test_search_params_keep_text_alongside_known_genre() -> None:
    params = build_search_params(query="school", genre="Comedy", sort="newest", page=1, limit=25)

    assert params["genres"] == 4
    assert params["q"] == "school"
    assert (params["order_by"], params["sort"]) == ("start_date", "desc")


def test_unknown_genre_is_folded_into_query() -> None:
    params = build_search_params(query="", genre="Isekai", sort="title", page=1, limit=25)

    assert "genres" not in params
    assert params["q"] == "Isekai"
    assert (params["order_by"], params["sort"]) == ("title", "asc")

    combined = build_search_params(query="slime", genre="Isekai", sort=None, page=1, limit=25)
    assert combined["q"] == "slime Isekai"
    assert "order_by" not in combined


def test_adult_content_sets_rating_filter() -> None:
    by_genre = build_search_params(query="", genre="Hentai", sort=None, page=1, limit=25)
    by_text = build_search_params(query="hentai classics", genre=None, sort=None, page=1, limit=25)
    safe = build_search_params(query="", genre="Action", sort=None, page=1, limit=25)

    assert by_genre["rating"] == "rx"
    assert by_genre["genres"] == 12
    assert by_text["rating"] == "rx"
    assert "rating" not in safe


@pytest.mark.anyio("asyncio")
async def test_search_hits_anime_endpoint() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"data": [jikan_anime(1), jikan_anime(2)]})

    client, http_client = build_client(handler)
    async with http_client:
        results = await client.search(genre="Action", sort="rating")

    assert [item.mal_id for item in results] == [1, 2]
    assert requests[0].url.path == "/v4/anime"
    assert requests[0].url.params["genres"] == "1"
    assert requests[0].url.params["order_by"] == "score"


@pytest.mark.anyio("asyncio")
async def test_feeds_use_their_endpoints() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(f"{request.url.path}?{request.url.query.decode()}")
        return httpx.Response(200, json={"data": [jikan_anime(3)]})

    client, http_client = build_client(handler)
    async with http_client:
        await client.fetch_airing(page=1, limit=15)
        await client.fetch_season_now(page=2, limit=15)
        await client.fetch_top(page=1, limit=25)

    assert paths[0].startswith("/v4/top/anime?") and "filter=airing" in paths[0]
    assert paths[1].startswith("/v4/seasons/now?") and "page=2" in paths[1]
    assert paths[2].startswith("/v4/top/anime?") and "filter" not in paths[2]


@pytest.mark.anyio("asyncio")
async def test_malformed_entries_are_skipped() -> None:
    client, http_client = build_client(
        lambda _: httpx.Response(200, json={"data": [{"title": "no id"}, jikan_anime(4)]})
    )
    async with http_client:
        results = await client.fetch_top()

    assert [item.mal_id for item in results] == [4]


@pytest.mark.anyio("asyncio")
async def test_fetch_episode_count() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/anime/5"):
            return httpx.Response(200, json={"data": {"mal_id": 5, "episodes": 12}})
        if request.url.path.endswith("/anime/6"):
            return httpx.Response(200, json={"data": {"mal_id": 6, "episodes": None}})
        return httpx.Response(404, json={"status": 404})

    client, http_client = build_client(handler)
    async with http_client:
        assert await client.fetch_episode_count(5) == 12
        assert await client.fetch_episode_count(6) is None
        with pytest.raises(ProviderTransportError):
            await client.fetch_episode_count(7)


@pytest.mark.anyio("asyncio")
async def test_find_one_raises_when_nothing_matches() -> None:
    client, http_client = build_client(lambda _: httpx.Response(200, json={"data": []}))
    async with http_client:
        with pytest.raises(ProviderEmptyResult):
            await client.find_one("Nothing Here")
