"""Entry point for the FastAPI-powered metadata service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import Database
from .models import SortMode
from .services.aggregator import MetadataAggregator
from .services.anilist import AniListClient
from .services.cache import CacheMedium, CacheStore, DatabaseCacheMedium, MemoryCacheMedium
from .services.jikan import JikanClient
from .utils import format_count

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    anilist_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(settings.anilist_api_url))
    )
    jikan_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(settings.jikan_api_url))
    )

    database: Database | None = None
    medium: CacheMedium
    if settings.database_url:
        database = Database(settings.database_url)
        await database.create_all()
        medium = DatabaseCacheMedium(
            database.session_factory, max_entries=settings.cache_max_entries
        )
    else:
        logger.info("No DATABASE_URL configured, keeping the cache in memory")
        medium = MemoryCacheMedium(max_entries=settings.cache_max_entries)

    fastapi_app.state.aggregator = MetadataAggregator(
        settings,
        AniListClient(settings, anilist_http),
        JikanClient(settings, jikan_http),
        CacheStore(medium, ttl_seconds=settings.cache_ttl_seconds),
    )
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        if database is not None:
            await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Normalized anime metadata aggregated from AniList and Jikan",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_aggregator(app: FastAPI) -> MetadataAggregator:
    aggregator = getattr(app.state, "aggregator", None)
    if not isinstance(aggregator, MetadataAggregator):
        raise RuntimeError("Metadata aggregator not initialised")
    return aggregator


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/count")
    async def total_count(force: bool = False) -> dict[str, Any]:
        total = await get_aggregator(fastapi_app).get_total_count(force=force)
        return {"total": total, "display": format_count(total)}

    @fastapi_app.get("/api/search")
    async def search(
        q: str = "",
        genre: str | None = None,
        sort: SortMode = "newest",
        page: int = Query(default=1, ge=1),
    ) -> list[dict[str, object]]:
        results = await get_aggregator(fastapi_app).search(q, genre, sort, page)
        return [record.to_payload() for record in results]

    @fastapi_app.get("/api/details")
    async def details(title: str = Query(min_length=1)) -> dict[str, object]:
        record = await get_aggregator(fastapi_app).get_details_by_title(title)
        if record is None:
            raise HTTPException(status_code=404, detail="No catalog entry matches that title")
        return record.to_payload()

    @fastapi_app.get("/api/trending")
    async def trending(
        page: int = Query(default=1, ge=1),
        per_page: int = Query(default=20, ge=1, le=50, alias="perPage"),
    ) -> list[dict[str, object]]:
        results = await get_aggregator(fastapi_app).get_trending(page, per_page)
        return [record.to_payload() for record in results]

    @fastapi_app.get("/api/seasonal")
    async def seasonal(
        page: int = Query(default=1, ge=1),
        per_page: int = Query(default=20, ge=1, le=50, alias="perPage"),
    ) -> list[dict[str, object]]:
        results = await get_aggregator(fastapi_app).get_seasonal(page, per_page)
        return [record.to_payload() for record in results]

    @fastapi_app.get("/api/top")
    async def top_rated(
        page: int = Query(default=1, ge=1),
        per_page: int = Query(default=25, ge=1, le=50, alias="perPage"),
    ) -> list[dict[str, object]]:
        results = await get_aggregator(fastapi_app).get_top_rated(page, per_page)
        return [record.to_payload() for record in results]

    @fastapi_app.get("/api/episodes/{mal_id}")
    async def episodes(mal_id: int) -> dict[str, int | None]:
        count = await get_aggregator(fastapi_app).get_episode_count(mal_id)
        return {"episodes": count}


app = create_app()
