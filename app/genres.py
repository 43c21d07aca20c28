"""Static genre table shared by the catalog providers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GenreDefinition:
    """Maps a canonical genre name to the Jikan numeric genre identifier."""

    name: str
    jikan_id: int
    adult: bool = False


GENRES: tuple[GenreDefinition, ...] = (
    GenreDefinition(name="Action", jikan_id=1),
    GenreDefinition(name="Adventure", jikan_id=2),
    GenreDefinition(name="Comedy", jikan_id=4),
    GenreDefinition(name="Drama", jikan_id=8),
    GenreDefinition(name="Fantasy", jikan_id=10),
    GenreDefinition(name="Horror", jikan_id=14),
    GenreDefinition(name="Mystery", jikan_id=7),
    GenreDefinition(name="Romance", jikan_id=22),
    GenreDefinition(name="Sci-Fi", jikan_id=24),
    GenreDefinition(name="Slice of Life", jikan_id=36),
    GenreDefinition(name="Sports", jikan_id=30),
    GenreDefinition(name="Supernatural", jikan_id=37),
    GenreDefinition(name="Psychological", jikan_id=40),
    GenreDefinition(name="Mecha", jikan_id=18),
    GenreDefinition(name="Ecchi", jikan_id=9),
    GenreDefinition(name="Hentai", jikan_id=12, adult=True),
    GenreDefinition(name="Harem", jikan_id=35),
    GenreDefinition(name="Erotica", jikan_id=49, adult=True),
    GenreDefinition(name="Thriller", jikan_id=41),
    GenreDefinition(name="Seinen", jikan_id=42),
    GenreDefinition(name="Shoujo", jikan_id=25),
    GenreDefinition(name="Shounen", jikan_id=27),
    GenreDefinition(name="Josei", jikan_id=43),
)

ALL_GENRES = "All"


class GenreIndex:
    """Case-insensitive lookups over a genre table."""

    def __init__(self, definitions: tuple[GenreDefinition, ...] = GENRES) -> None:
        self._definitions = definitions
        self._by_key = {
            definition.name.casefold(): definition for definition in definitions
        }

    def _lookup(self, name: str | None) -> GenreDefinition | None:
        if not name:
            return None
        return self._by_key.get(name.strip().casefold())

    def resolve(self, name: str | None) -> str | None:
        """Return the canonical spelling for ``name`` or ``None`` when unknown."""

        definition = self._lookup(name)
        return definition.name if definition else None

    def to_provider_id(self, name: str | None) -> int | None:
        definition = self._lookup(name)
        return definition.jikan_id if definition else None

    def is_adult(self, name: str | None) -> bool:
        definition = self._lookup(name)
        return bool(definition and definition.adult)

    def names(self) -> tuple[str, ...]:
        return tuple(definition.name for definition in self._definitions)


genre_index = GenreIndex()
