"""Public entry point combining the AniList and Jikan catalogs.

Every read follows the same path: cache lookup, AniList, Jikan as a fallback,
normalization, cache write. Reads never raise; when both catalogs fail callers
get an empty list, ``None`` or a configured default.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Sequence

import httpx
from pydantic import ValidationError

from ..config import FALLBACK_ON_EMPTY, Settings
from ..genres import ALL_GENRES, GenreIndex, genre_index
from ..models import CanonicalMedia, Provenance, SortMode
from ..utils import build_cache_key
from .anilist import AniListClient, AniListMedia
from .cache import CacheStore
from .errors import ProviderEmptyResult, ProviderError
from .jikan import JikanAnime, JikanClient
from .normalizers import normalize_anilist, normalize_jikan

logger = logging.getLogger(__name__)

__all__ = ["FALLBACK_ON_EMPTY", "MetadataAggregator", "resolve_search_terms"]

PROVIDER_FAILURES = (ProviderError, ValidationError, httpx.HTTPError)


def resolve_search_terms(
    query: str | None,
    genre: str | None,
    genres: GenreIndex = genre_index,
) -> tuple[str, str | None]:
    """Return the ``(text, genre)`` pair a search should actually run with.

    Free text that exactly names a genre, typed while no genre filter is
    selected, becomes a genre-only browse.
    """

    text = (query or "").strip()
    selected = (genre or "").strip()
    if not selected or selected.casefold() == ALL_GENRES.casefold():
        matched = genres.resolve(text) if text else None
        if matched:
            return "", matched
        return text, None
    return text, genres.resolve(selected) or selected


def _same_entry(candidate: CanonicalMedia, record: CanonicalMedia) -> bool:
    # Jikan records are keyed by their MyAnimeList id.
    if str(candidate.id) == str(record.id):
        return True
    return record.external_id is not None and candidate.external_id == record.external_id


class MetadataAggregator:
    """Resolve titles and feeds into :class:`CanonicalMedia` records."""

    def __init__(
        self,
        settings: Settings,
        anilist: AniListClient,
        jikan: JikanClient,
        cache: CacheStore,
        genres: GenreIndex = genre_index,
        *,
        fallback_on_empty: bool | None = None,
    ):
        self._settings = settings
        self._anilist = anilist
        self._jikan = jikan
        self._cache = cache
        self._genres = genres
        if fallback_on_empty is None:
            fallback_on_empty = settings.fallback_on_empty
        self._fallback_on_empty = fallback_on_empty

    @property
    def fallback_on_empty(self) -> bool:
        return self._fallback_on_empty

    # -- cache helpers -------------------------------------------------

    async def _cached_records(self, key: str) -> list[CanonicalMedia] | None:
        raw = await self._cache.get(key)
        if raw is None:
            return None
        try:
            return [CanonicalMedia.model_validate(entry) for entry in raw]
        except (ValidationError, TypeError) as exc:
            logger.warning("Discarding unreadable cache entry %s: %s", key, exc)
            return None

    async def _cached_record(self, key: str) -> CanonicalMedia | None:
        raw = await self._cache.get(key)
        if raw is None:
            return None
        try:
            return CanonicalMedia.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cache entry %s: %s", key, exc)
            return None

    async def _store_records(self, key: str, records: Sequence[CanonicalMedia]) -> None:
        await self._cache.put(key, [record.to_payload() for record in records])

    # -- fallback protocol ---------------------------------------------

    def _falls_back(self, exc: BaseException) -> bool:
        return self._fallback_on_empty or not isinstance(exc, ProviderEmptyResult)

    async def _fetch_records(
        self,
        key: str,
        operation: str,
        primary: Callable[[], Awaitable[list[AniListMedia]]],
        secondary: Callable[[], Awaitable[list[JikanAnime]]],
    ) -> list[CanonicalMedia]:
        cached = await self._cached_records(key)
        if cached is not None:
            return cached

        try:
            records = [normalize_anilist(media) for media in await primary()]
        except PROVIDER_FAILURES as exc:
            if not self._falls_back(exc):
                logger.info("AniList %s returned nothing", operation)
                await self._store_records(key, [])
                return []
            logger.warning("AniList %s failed, falling back to Jikan: %s", operation, exc)
        else:
            await self._store_records(key, records)
            return records

        try:
            records = [normalize_jikan(item) for item in await secondary()]
        except PROVIDER_FAILURES as exc:
            logger.warning("Jikan %s failed: %s", operation, exc)
            return []
        await self._store_records(key, records)
        return records

    # -- public operations ---------------------------------------------

    async def get_total_count(self, *, force: bool = False) -> int:
        """Return the catalog size, or the configured default when unavailable."""

        key = build_cache_key("total_count")
        if not force:
            cached = await self._cache.get(key)
            if isinstance(cached, int):
                return cached

        try:
            total = await self._anilist.fetch_total_count()
        except PROVIDER_FAILURES as exc:
            logger.warning("Failed to fetch catalog size: %s", exc)
            return self._settings.default_total_count
        await self._cache.put(key, total)
        return total

    async def search(
        self,
        query: str | None = "",
        genre: str | None = None,
        sort: SortMode = "newest",
        page: int = 1,
    ) -> list[CanonicalMedia]:
        """Search by free text and/or genre."""

        text, resolved_genre = resolve_search_terms(query, genre, self._genres)
        key = build_cache_key("search", query=text, genre=resolved_genre, sort=sort, page=page)
        per_page = self._settings.search_page_size

        return await self._fetch_records(
            key,
            "search",
            lambda: self._anilist.search(
                search=text, genre=resolved_genre, sort=sort, page=page, per_page=per_page
            ),
            lambda: self._jikan.search(
                query=text, genre=resolved_genre, sort=sort, page=page, limit=per_page
            ),
        )

    async def get_trending(self, page: int = 1, per_page: int = 20) -> list[CanonicalMedia]:
        key = build_cache_key("trending", page=page, per_page=per_page)
        return await self._fetch_records(
            key,
            "trending feed",
            lambda: self._anilist.fetch_trending(page=page, per_page=per_page),
            lambda: self._jikan.fetch_airing(page=page, limit=per_page),
        )

    async def get_seasonal(self, page: int = 1, per_page: int = 20) -> list[CanonicalMedia]:
        key = build_cache_key("seasonal", page=page, per_page=per_page)
        return await self._fetch_records(
            key,
            "seasonal feed",
            lambda: self._anilist.fetch_seasonal(page=page, per_page=per_page),
            lambda: self._jikan.fetch_season_now(page=page, limit=per_page),
        )

    async def get_top_rated(self, page: int = 1, per_page: int = 25) -> list[CanonicalMedia]:
        key = build_cache_key("top_rated", page=page, per_page=per_page)
        return await self._fetch_records(
            key,
            "top-rated feed",
            lambda: self._anilist.fetch_top(page=page, per_page=per_page),
            lambda: self._jikan.fetch_top(page=page, limit=per_page),
        )

    async def get_episode_count(self, mal_id: int) -> int | None:
        """Return the Jikan episode count for ``mal_id`` or ``None``."""

        key = build_cache_key("jikan_episodes", id=mal_id)
        cached = await self._cache.get(key)
        if isinstance(cached, int):
            return cached

        try:
            episodes = await self._jikan.fetch_episode_count(mal_id)
        except PROVIDER_FAILURES as exc:
            logger.warning("Jikan episode lookup for %s failed: %s", mal_id, exc)
            return None
        if episodes is not None:
            await self._cache.put(key, episodes)
        return episodes

    async def get_details_by_title(self, title: str) -> CanonicalMedia | None:
        """Resolve ``title`` to a full record, enriched when it came from AniList."""

        title = (title or "").strip()
        if not title:
            return None

        key = build_cache_key("details", title=title)
        cached = await self._cached_record(key)
        if cached is not None:
            return cached

        try:
            record = await self._fetch_anilist_details(title)
        except PROVIDER_FAILURES as exc:
            if not self._falls_back(exc):
                logger.info("AniList has no entry for %r", title)
                return None
            logger.warning(
                "AniList detail lookup for %r failed, falling back to Jikan: %s", title, exc
            )
            record = await self._fetch_jikan_details(title)
            if record is None:
                return None
        else:
            record = await self._enrich(record)

        await self._cache.put(key, record.to_payload())
        return record

    # -- detail helpers ------------------------------------------------

    async def _fetch_anilist_details(self, title: str) -> CanonicalMedia:
        media_id = await self._anilist.find_id(title)
        media = await self._anilist.fetch_details(media_id)
        return normalize_anilist(media)

    async def _fetch_jikan_details(self, title: str) -> CanonicalMedia | None:
        try:
            return normalize_jikan(await self._jikan.find_one(title))
        except PROVIDER_FAILURES as exc:
            logger.warning("Jikan detail lookup for %r failed: %s", title, exc)
            return None

    async def _enrich(self, record: CanonicalMedia) -> CanonicalMedia:
        """Fill gaps in an AniList record using Jikan and a genre search."""

        if record.provenance is not Provenance.ANILIST:
            return record

        update: dict[str, Any] = {}
        if record.episode_count == 0 and record.external_id:
            episodes = await self.get_episode_count(record.external_id)
            if episodes:
                update["episode_count"] = episodes

        if not record.recommendations and record.genres:
            similar = await self.search("", record.genres[0], "rating", 1)
            recommendations = [
                candidate for candidate in similar if not _same_entry(candidate, record)
            ]
            update["recommendations"] = tuple(
                recommendations[: self._settings.recommendation_limit]
            )

        if not update:
            return record
        return record.model_copy(update=update)
