"""Mapping of raw provider payloads onto :class:`CanonicalMedia`."""

from __future__ import annotations

from ..models import CanonicalMedia, MediaRelation, Provenance
from ..utils import first_number
from .anilist import (
    AniListCoverImage,
    AniListMedia,
    AniListRecommendedMedia,
    AniListRelationEdge,
    AniListTitle,
)
from .jikan import JikanAnime, JikanImages

RELATION_KINDS: frozenset[str] = frozenset(
    {"SEQUEL", "PREQUEL", "SIDE_STORY", "PARENT", "ALTERNATIVE", "SUMMARY", "SPIN_OFF"}
)
ADULT_RATING_MARKERS: tuple[str, ...] = ("rx", "hentai")
YOUTUBE_EMBED_URL = "https://www.youtube.com/embed/{id}"
UNTITLED = "Untitled"


def _pick_title(title: AniListTitle) -> str:
    return title.english or title.romaji or title.native or UNTITLED


def _pick_cover(cover: AniListCoverImage | None) -> str | None:
    if cover is None:
        return None
    return cover.extra_large or cover.large or cover.medium


def _pick_jikan_cover(images: JikanImages | None) -> str | None:
    if images is None:
        return None
    for image_set in (images.jpg, images.webp):
        if image_set is None:
            continue
        best = image_set.large_image_url or image_set.image_url
        if best:
            return best
    return None


def _clamp_score(value: float) -> int:
    return max(0, min(100, round(value)))


def normalize_relation(edge: AniListRelationEdge) -> MediaRelation | None:
    """Return a relation for allow-listed kinds, ``None`` for everything else."""

    kind = (edge.relation_type or "").upper()
    if kind not in RELATION_KINDS or edge.node is None or edge.node.id is None:
        return None
    node = edge.node
    return MediaRelation(
        id=node.id,
        title=_pick_title(node.title),
        cover_image_url=_pick_cover(node.cover_image),
        relation_kind=kind,
        format=node.format,
    )


def normalize_anilist_recommendation(media: AniListRecommendedMedia) -> CanonicalMedia | None:
    if media.id is None:
        return None
    return CanonicalMedia(
        id=media.id,
        title=_pick_title(media.title),
        cover_image_url=_pick_cover(media.cover_image),
        score=_clamp_score(media.mean_score or 0),
        provenance=Provenance.ANILIST,
    )


def normalize_anilist(media: AniListMedia) -> CanonicalMedia:
    """Map an AniList ``Media`` object to a canonical record.

    ``meanScore`` is already on the 0-100 scale.
    """

    relations: list[MediaRelation] = []
    if media.relations is not None:
        for edge in media.relations.edges:
            relation = normalize_relation(edge)
            if relation is not None:
                relations.append(relation)

    recommendations: list[CanonicalMedia] = []
    if media.recommendations is not None:
        for node in media.recommendations.nodes:
            if node.media_recommendation is None:
                continue
            stub = normalize_anilist_recommendation(node.media_recommendation)
            if stub is not None:
                recommendations.append(stub)

    trailer_url = None
    if media.trailer and media.trailer.id and (media.trailer.site or "").lower() == "youtube":
        trailer_url = YOUTUBE_EMBED_URL.format(id=media.trailer.id)

    studios = media.studios.nodes if media.studios else []

    return CanonicalMedia(
        id=media.id,
        external_id=media.id_mal,
        title=_pick_title(media.title),
        native_title=media.title.native,
        cover_image_url=_pick_cover(media.cover_image),
        banner_image_url=media.banner_image,
        synopsis=media.description,
        episode_count=max(media.episodes or 0, 0),
        lifecycle_status=media.status,
        format=media.format,
        season=media.season,
        year=media.season_year,
        score=_clamp_score(media.mean_score or 0),
        genres=tuple(dict.fromkeys(media.genres or [])),
        studios=tuple(studio.name for studio in studios if studio.name),
        duration_minutes=media.duration,
        provenance=Provenance.ANILIST,
        is_adult=media.is_adult,
        trailer_url=trailer_url,
        relations=tuple(relations),
        recommendations=tuple(recommendations),
    )


def is_adult_rating(rating: str | None) -> bool:
    if not rating:
        return False
    lowered = rating.lower()
    return any(marker in lowered for marker in ADULT_RATING_MARKERS)


def normalize_jikan(item: JikanAnime) -> CanonicalMedia:
    """Map a Jikan ``anime`` resource to a canonical record.

    Jikan scores are 0-10 with one decimal and are rescaled to 0-100. Jikan
    carries no relations or recommendations in these payloads.
    """

    genres = [genre.name for genre in item.genres if genre.name]
    return CanonicalMedia(
        id=item.mal_id,
        external_id=item.mal_id,
        title=item.title or item.title_english or item.title_japanese or UNTITLED,
        native_title=item.title_japanese,
        cover_image_url=_pick_jikan_cover(item.images),
        synopsis=item.synopsis,
        episode_count=max(item.episodes or 0, 0),
        lifecycle_status=item.status,
        format=item.type,
        season=item.season,
        year=item.year,
        score=_clamp_score((item.score or 0) * 10),
        genres=tuple(dict.fromkeys(genres)),
        studios=tuple(studio.name for studio in item.studios if studio.name),
        duration_minutes=first_number(item.duration),
        provenance=Provenance.JIKAN,
        is_adult=is_adult_rating(item.rating),
        trailer_url=item.trailer.embed_url if item.trailer else None,
    )
