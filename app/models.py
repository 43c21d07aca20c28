"""Pydantic models describing normalized show metadata."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SortMode = Literal["title", "rating", "newest"]


class Provenance(str, Enum):
    """Catalog that produced a record."""

    ANILIST = "anilist"
    JIKAN = "jikan"


class _CanonicalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class MediaRelation(_CanonicalModel):
    """Lightweight pointer to a related show (sequel, prequel, ...)."""

    id: int | str
    title: str
    cover_image_url: str | None = None
    relation_kind: str
    format: str | None = None


class CanonicalMedia(_CanonicalModel):
    """A single show after normalization, independent of the source catalog.

    ``episode_count`` of ``0`` means the count is unknown. ``score`` is always
    on a 0-100 scale. ``id`` is only unique within ``provenance``; ``external_id``
    holds the Jikan (MyAnimeList) id when the record came from AniList.
    """

    id: int | str
    external_id: int | None = None
    title: str
    native_title: str | None = None
    cover_image_url: str | None = None
    banner_image_url: str | None = None
    synopsis: str | None = None
    episode_count: int = Field(default=0, ge=0)
    lifecycle_status: str | None = None
    format: str | None = None
    season: str | None = None
    year: int | None = None
    score: int = Field(default=0, ge=0, le=100)
    genres: tuple[str, ...] = ()
    studios: tuple[str, ...] = ()
    duration_minutes: int | None = None
    provenance: Provenance
    is_adult: bool | None = None
    trailer_url: str | None = None
    relations: tuple[MediaRelation, ...] = ()
    recommendations: tuple[CanonicalMedia, ...] = ()

    def to_payload(self) -> dict[str, object]:
        """Return the JSON-compatible camelCase representation."""

        return self.model_dump(mode="json", by_alias=True)
