"""Tests for the AniList GraphQL client."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from app.config import Settings
from app.services.anilist import AniListClient, anilist_sort
from app.services.errors import (
    ProviderEmptyResult,
    ProviderPayloadError,
    ProviderTransportError,
)

from payloads import anilist_media, anilist_page


def build_client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> tuple[AniListClient, httpx.AsyncClient]:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://graphql.example.com"
    )
    return AniListClient(Settings(_env_file=None), http_client), http_client


@pytest.mark.parametrize(
    ("sort", "search", "expected"),
    [
        (None, "naruto", ["SEARCH_MATCH"]),
        ("rating", "naruto", ["SCORE_DESC"]),
        ("newest", "", ["START_DATE_DESC"]),
        ("title", "", ["TITLE_ROMAJI"]),
        ("title", "   ", ["TITLE_ROMAJI"]),
        ("title", "naruto", ["SEARCH_MATCH"]),
    ],
)
def test_anilist_sort(sort: Any, search: str, expected: list[str]) -> None:
    assert anilist_sort(sort, search) == expected


@pytest.mark.anyio("asyncio")
async def test_search_posts_query_document_and_variables() -> None:
    """Search sends one POST with the named query and only the filters in use."""

    bodies: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=anilist_page(anilist_media(1), anilist_media(2)))

    client, http_client = build_client(handler)
    async with http_client:
        results = await client.search(genre="Action", sort="rating", page=2, per_page=25)

    assert [media.id for media in results] == [1, 2]
    assert results[0].id_mal == 1001
    assert results[0].cover_image is not None
    assert results[0].cover_image.extra_large == "https://img.example/1/xl.jpg"
    assert "query Search" in bodies[0]["query"]
    assert bodies[0]["variables"] == {
        "page": 2,
        "perPage": 25,
        "sort": ["SCORE_DESC"],
        "genre": "Action",
    }


@pytest.mark.anyio("asyncio")
async def test_empty_page_is_reported_as_empty_result() -> None:
    client, http_client = build_client(lambda _: httpx.Response(200, json=anilist_page()))
    async with http_client:
        with pytest.raises(ProviderEmptyResult):
            await client.fetch_trending()


@pytest.mark.anyio("asyncio")
async def test_http_errors_raise_transport_error() -> None:
    client, http_client = build_client(
        lambda _: httpx.Response(429, json={"errors": [{"message": "Too Many Requests"}]})
    )
    async with http_client:
        with pytest.raises(ProviderTransportError):
            await client.fetch_top()


@pytest.mark.anyio("asyncio")
async def test_graphql_errors_raise_transport_error() -> None:
    client, http_client = build_client(
        lambda _: httpx.Response(200, json={"data": None, "errors": [{"message": "Not Found."}]})
    )
    async with http_client:
        with pytest.raises(ProviderTransportError, match="Not Found"):
            await client.fetch_details(99)


@pytest.mark.anyio("asyncio")
async def test_malformed_json_raises_payload_error() -> None:
    client, http_client = build_client(lambda _: httpx.Response(200, text="<html>oops</html>"))
    async with http_client:
        with pytest.raises(ProviderPayloadError):
            await client.fetch_seasonal()


@pytest.mark.anyio("asyncio")
async def test_network_failures_raise_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client, http_client = build_client(handler)
    async with http_client:
        with pytest.raises(ProviderTransportError):
            await client.search(search="Monster")


@pytest.mark.anyio("asyncio")
async def test_fetch_total_count_reads_page_info() -> None:
    client, http_client = build_client(
        lambda _: httpx.Response(200, json=anilist_page({"id": 1}, total=19_234))
    )
    async with http_client:
        assert await client.fetch_total_count() == 19_234


@pytest.mark.anyio("asyncio")
async def test_find_id_then_fetch_details() -> None:
    """Title resolution asks for a single result before fetching the detail document."""

    seen: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        if "query Search" in body["query"]:
            return httpx.Response(200, json=anilist_page(anilist_media(7)))
        return httpx.Response(
            200,
            json={
                "data": {
                    "Media": anilist_media(
                        7,
                        trailer={"site": "youtube", "id": "abc"},
                        relations={"edges": [{"relationType": "SEQUEL", "node": {"id": 8, "title": {"romaji": "Seven II"}}}]},
                    )
                }
            },
        )

    client, http_client = build_client(handler)
    async with http_client:
        media_id = await client.find_id("Seven")
        media = await client.fetch_details(media_id)

    assert media_id == 7
    assert seen[0]["variables"]["search"] == "Seven"
    assert seen[0]["variables"]["perPage"] == 1
    assert seen[1]["variables"] == {"id": 7}
    assert media.trailer is not None and media.trailer.id == "abc"
    assert media.relations is not None
    assert media.relations.edges[0].relation_type == "SEQUEL"
