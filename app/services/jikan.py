"""Client for the Jikan REST API (MyAnimeList mirror)."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import Settings
from ..genres import GenreIndex, genre_index
from ..models import SortMode
from .errors import ProviderEmptyResult, ProviderPayloadError, ProviderTransportError

logger = logging.getLogger(__name__)

PROVIDER = "jikan"
ADULT_QUERY_MARKER = "hentai"

JIKAN_SORTS: dict[str, tuple[str, str]] = {
    "rating": ("score", "desc"),
    "newest": ("start_date", "desc"),
    "title": ("title", "asc"),
}


class _JikanModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class JikanImageSet(_JikanModel):
    image_url: str | None = None
    large_image_url: str | None = None


class JikanImages(_JikanModel):
    jpg: JikanImageSet | None = None
    webp: JikanImageSet | None = None


class JikanNamedResource(_JikanModel):
    mal_id: int | None = None
    name: str | None = None


class JikanTrailer(_JikanModel):
    embed_url: str | None = None


class JikanAnime(_JikanModel):
    """An ``anime`` resource from the list and detail endpoints."""

    mal_id: int
    title: str | None = None
    title_english: str | None = None
    title_japanese: str | None = None
    images: JikanImages | None = None
    synopsis: str | None = None
    episodes: int | None = None
    status: str | None = None
    type: str | None = None
    season: str | None = None
    year: int | None = None
    score: float | None = None
    genres: list[JikanNamedResource] = Field(default_factory=list)
    studios: list[JikanNamedResource] = Field(default_factory=list)
    duration: str | None = None
    rating: str | None = None
    trailer: JikanTrailer | None = None


def build_search_params(
    *,
    query: str | None,
    genre: str | None,
    sort: SortMode | None,
    page: int,
    limit: int,
    genres: GenreIndex = genre_index,
) -> dict[str, Any]:
    """Translate a catalog search into ``/anime`` query parameters.

    Jikan filters genres by numeric id. A genre without a known id is folded
    into the free-text query instead.
    """

    params: dict[str, Any] = {"limit": limit, "page": page}
    order = JIKAN_SORTS.get(sort or "")
    if order:
        params["order_by"], params["sort"] = order

    text = (query or "").strip()
    genre_id = genres.to_provider_id(genre)
    if genre_id is not None:
        params["genres"] = genre_id
        if text:
            params["q"] = text
        if genres.is_adult(genre):
            params["rating"] = "rx"
        return params

    folded = f"{text} {genre.strip()}".strip() if genre else text
    if ADULT_QUERY_MARKER in folded.lower():
        params["rating"] = "rx"
    if folded:
        params["q"] = folded
    return params


class JikanClient:
    """Thin wrapper around the Jikan v4 endpoints used as a fallback catalog."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        genres: GenreIndex = genre_index,
    ):
        self._settings = settings
        self._client = http_client
        self._genres = genres

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``path`` and return the ``data`` member of the response."""

        try:
            response = await self._client.get(
                path,
                params=params,
                headers={"User-Agent": f"{self._settings.app_name} (hawk)"},
            )
        except httpx.HTTPError as exc:
            raise ProviderTransportError(PROVIDER, f"request to {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise ProviderTransportError(
                PROVIDER, f"HTTP {response.status_code} for {path}: {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderPayloadError(PROVIDER, f"{path} returned invalid JSON") from exc
        if not isinstance(payload, dict) or "data" not in payload:
            raise ProviderPayloadError(PROVIDER, f"{path} response is missing 'data'")
        return payload["data"]

    async def _get_list(self, path: str, params: dict[str, Any]) -> list[JikanAnime]:
        data = await self._get(path, params)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ProviderPayloadError(PROVIDER, f"{path} returned a non-list 'data'")
        items: list[JikanAnime] = []
        for entry in data:
            try:
                items.append(JikanAnime.model_validate(entry))
            except ValidationError:
                logger.debug("Skipping malformed Jikan entry from %s", path)
        return items

    async def search(
        self,
        *,
        query: str | None = None,
        genre: str | None = None,
        sort: SortMode | None = None,
        page: int = 1,
        limit: int = 25,
    ) -> list[JikanAnime]:
        params = build_search_params(
            query=query,
            genre=genre,
            sort=sort,
            page=page,
            limit=limit,
            genres=self._genres,
        )
        return await self._get_list("/anime", params)

    async def find_one(self, title: str) -> JikanAnime:
        """Return the first free-text match for ``title``."""

        results = await self._get_list("/anime", {"q": title, "limit": 1})
        if not results:
            raise ProviderEmptyResult(PROVIDER, f"no match for {title!r}")
        return results[0]

    async def fetch_airing(self, *, page: int = 1, limit: int = 20) -> list[JikanAnime]:
        return await self._get_list(
            "/top/anime", {"filter": "airing", "limit": limit, "page": page}
        )

    async def fetch_season_now(self, *, page: int = 1, limit: int = 20) -> list[JikanAnime]:
        return await self._get_list("/seasons/now", {"limit": limit, "page": page})

    async def fetch_top(self, *, page: int = 1, limit: int = 25) -> list[JikanAnime]:
        return await self._get_list("/top/anime", {"limit": limit, "page": page})

    async def fetch_episode_count(self, mal_id: int) -> int | None:
        """Return the episode count for ``mal_id``; ``None`` when Jikan does not know it."""

        data = await self._get(f"/anime/{mal_id}")
        if not isinstance(data, dict):
            raise ProviderPayloadError(PROVIDER, f"anime {mal_id} payload is not an object")
        episodes = data.get("episodes")
        if isinstance(episodes, int) and episodes > 0:
            return episodes
        return None
