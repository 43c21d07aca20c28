"""Client for the AniList GraphQL catalog."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..config import Settings
from ..models import SortMode
from .errors import ProviderEmptyResult, ProviderPayloadError, ProviderTransportError

logger = logging.getLogger(__name__)

PROVIDER = "anilist"

MEDIA_FIELDS = """
fragment MediaFields on Media {
  id
  idMal
  title { romaji english native }
  coverImage { large extraLarge }
  bannerImage
  description
  episodes
  meanScore
  format
  status
  season
  seasonYear
  genres
  duration
  studios(isMain: true) { nodes { name } }
  isAdult
}
"""

QUERY_TOTAL_COUNT = """
query TotalCount {
  Page(perPage: 1) {
    pageInfo { total }
    media(type: ANIME) { id }
  }
}
"""

QUERY_SEARCH = (
    """
query Search($search: String, $genre: String, $page: Int, $perPage: Int, $sort: [MediaSort]) {
  Page(page: $page, perPage: $perPage) {
    media(search: $search, genre: $genre, type: ANIME, sort: $sort) { ...MediaFields }
  }
}
"""
    + MEDIA_FIELDS
)

QUERY_TRENDING = (
    """
query Trending($page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    media(type: ANIME, sort: TRENDING_DESC) { ...MediaFields }
  }
}
"""
    + MEDIA_FIELDS
)

QUERY_SEASONAL = (
    """
query Seasonal($page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    media(type: ANIME, sort: POPULARITY_DESC, status: RELEASING) { ...MediaFields }
  }
}
"""
    + MEDIA_FIELDS
)

QUERY_TOP = (
    """
query Top($page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    media(type: ANIME, sort: SCORE_DESC) { ...MediaFields }
  }
}
"""
    + MEDIA_FIELDS
)

QUERY_DETAILS = (
    """
query Details($id: Int) {
  Media(id: $id, type: ANIME) {
    ...MediaFields
    trailer { site id }
    relations {
      edges {
        relationType(version: 2)
        node {
          id
          title { romaji english }
          format
          status
          coverImage { medium }
        }
      }
    }
    recommendations(sort: RATING_DESC, perPage: 10) {
      nodes {
        mediaRecommendation {
          id
          title { romaji english }
          coverImage { large }
          meanScore
        }
      }
    }
  }
}
"""
    + MEDIA_FIELDS
)


class _AniListModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AniListTitle(_AniListModel):
    romaji: str | None = None
    english: str | None = None
    native: str | None = None


class AniListCoverImage(_AniListModel):
    extra_large: str | None = None
    large: str | None = None
    medium: str | None = None


class AniListStudio(_AniListModel):
    name: str | None = None


class AniListStudios(_AniListModel):
    nodes: list[AniListStudio] = Field(default_factory=list)


class AniListTrailer(_AniListModel):
    site: str | None = None
    id: str | None = None


class AniListRelationNode(_AniListModel):
    id: int | None = None
    title: AniListTitle = Field(default_factory=AniListTitle)
    format: str | None = None
    status: str | None = None
    cover_image: AniListCoverImage | None = None


class AniListRelationEdge(_AniListModel):
    relation_type: str | None = None
    node: AniListRelationNode | None = None


class AniListRelations(_AniListModel):
    edges: list[AniListRelationEdge] = Field(default_factory=list)


class AniListRecommendedMedia(_AniListModel):
    id: int | None = None
    title: AniListTitle = Field(default_factory=AniListTitle)
    cover_image: AniListCoverImage | None = None
    mean_score: int | None = None


class AniListRecommendationNode(_AniListModel):
    media_recommendation: AniListRecommendedMedia | None = None


class AniListRecommendations(_AniListModel):
    nodes: list[AniListRecommendationNode] = Field(default_factory=list)


class AniListMedia(_AniListModel):
    """A ``Media`` object as returned by the search, feed and detail queries."""

    id: int
    id_mal: int | None = None
    title: AniListTitle = Field(default_factory=AniListTitle)
    cover_image: AniListCoverImage | None = None
    banner_image: str | None = None
    description: str | None = None
    episodes: int | None = None
    mean_score: int | None = None
    format: str | None = None
    status: str | None = None
    season: str | None = None
    season_year: int | None = None
    genres: list[str] | None = None
    duration: int | None = None
    studios: AniListStudios | None = None
    is_adult: bool | None = None
    trailer: AniListTrailer | None = None
    relations: AniListRelations | None = None
    recommendations: AniListRecommendations | None = None


class AniListPageInfo(_AniListModel):
    total: int | None = None


class AniListPage(_AniListModel):
    page_info: AniListPageInfo | None = None
    media: list[AniListMedia] = Field(default_factory=list)


def anilist_sort(sort: SortMode | None, search: str | None) -> list[str]:
    """Translate a sort mode into AniList ``MediaSort`` values.

    Alphabetical ordering cannot be combined with a text search upstream, so
    ``title`` degrades to relevance whenever free text is present.
    """

    has_text = bool(search and search.strip())
    if sort == "rating":
        return ["SCORE_DESC"]
    if sort == "newest":
        return ["START_DATE_DESC"]
    if sort == "title" and not has_text:
        return ["TITLE_ROMAJI"]
    return ["SEARCH_MATCH"]


class AniListClient:
    """Thin wrapper around the AniList GraphQL endpoint.

    Every failure is raised as a :class:`ProviderError`; falling back to another
    catalog is left to the caller.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"{self._settings.app_name} (hawk)",
        }

    async def _execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """POST a query document and return the ``data`` subtree."""

        body = {"query": query, "variables": variables or {}}
        try:
            response = await self._client.post("/", json=body, headers=self._headers())
        except httpx.HTTPError as exc:
            raise ProviderTransportError(PROVIDER, f"request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ProviderTransportError(
                PROVIDER, f"HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderPayloadError(PROVIDER, "response is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderPayloadError(PROVIDER, "unexpected response structure")

        errors = payload.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message") if isinstance(first, dict) else first
            raise ProviderTransportError(PROVIDER, f"query error: {message}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ProviderPayloadError(PROVIDER, "response is missing 'data'")
        return data

    async def _fetch_page(self, query: str, variables: dict[str, Any]) -> AniListPage:
        data = await self._execute(query, variables)
        raw_page = data.get("Page")
        if not isinstance(raw_page, dict):
            raise ProviderPayloadError(PROVIDER, "response is missing 'Page'")
        try:
            return AniListPage.model_validate(raw_page)
        except ValidationError as exc:
            raise ProviderPayloadError(PROVIDER, f"malformed page: {exc}") from exc

    async def _fetch_media_page(self, query: str, variables: dict[str, Any]) -> list[AniListMedia]:
        page = await self._fetch_page(query, variables)
        if not page.media:
            raise ProviderEmptyResult(PROVIDER, "no media returned")
        return page.media

    async def fetch_total_count(self) -> int:
        """Return the number of anime entries in the catalog."""

        page = await self._fetch_page(QUERY_TOTAL_COUNT, {})
        total = page.page_info.total if page.page_info else None
        if not total:
            raise ProviderEmptyResult(PROVIDER, "catalog size unavailable")
        return total

    async def search(
        self,
        *,
        search: str | None = None,
        genre: str | None = None,
        sort: SortMode | None = None,
        page: int = 1,
        per_page: int = 25,
    ) -> list[AniListMedia]:
        """Search the catalog by free text and/or genre."""

        variables: dict[str, Any] = {
            "page": page,
            "perPage": per_page,
            "sort": anilist_sort(sort, search),
        }
        if search and search.strip():
            variables["search"] = search
        if genre:
            variables["genre"] = genre
        return await self._fetch_media_page(QUERY_SEARCH, variables)

    async def fetch_trending(self, *, page: int = 1, per_page: int = 20) -> list[AniListMedia]:
        return await self._fetch_media_page(QUERY_TRENDING, {"page": page, "perPage": per_page})

    async def fetch_seasonal(self, *, page: int = 1, per_page: int = 20) -> list[AniListMedia]:
        return await self._fetch_media_page(QUERY_SEASONAL, {"page": page, "perPage": per_page})

    async def fetch_top(self, *, page: int = 1, per_page: int = 25) -> list[AniListMedia]:
        return await self._fetch_media_page(QUERY_TOP, {"page": page, "perPage": per_page})

    async def find_id(self, title: str) -> int:
        """Resolve a free-text title to the id of the best matching entry."""

        results = await self.search(search=title, page=1, per_page=1)
        return results[0].id

    async def fetch_details(self, media_id: int) -> AniListMedia:
        """Fetch a single entry including its relations and recommendations."""

        data = await self._execute(QUERY_DETAILS, {"id": media_id})
        raw_media = data.get("Media")
        if raw_media is None:
            raise ProviderEmptyResult(PROVIDER, f"media {media_id} not found")
        try:
            return AniListMedia.model_validate(raw_media)
        except ValidationError as exc:
            raise ProviderPayloadError(PROVIDER, f"malformed media {media_id}: {exc}") from exc
