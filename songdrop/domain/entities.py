from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, List, Sequence, TypeVar

from .normalization import display_key


T = TypeVar("T")


@dataclass(frozen=True)
class PlaylistRef:
    """Opaque reference to a remote playlist, accepted by items sources and append calls."""

    id: str
    uri: str


@dataclass(frozen=True)
class Playlist:
    """Domain entity representing a remotely hosted playlist. Identity is the id."""

    id: str
    name: str
    uri: str

    @property
    def ref(self) -> PlaylistRef:
        return PlaylistRef(id=self.id, uri=self.uri)

    @property
    def display_key(self) -> str:
        """Ordering key used wherever playlists are listed for a user."""
        return display_key(self.name)


@dataclass(frozen=True)
class Track:
    """A currently playing or playlist-contained track. Identity is the id."""

    id: str
    uri: str
    name: str = ""
    artists: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Alias:
    """User-defined alternate name pointing at a playlist id (soft reference)."""

    alias_name: str
    playlist_id: str


@dataclass(frozen=True)
class PlaylistPage(Generic[T]):
    """One page of an offset-paginated remote collection."""

    items: Sequence[T]
    offset: int
    total: int
    limit: int = 0
    has_more: bool = False


@dataclass(frozen=True)
class Match:
    """Fuzzy matcher hit. Scores lie in [0, 1]; lower is better."""

    candidate_index: int
    score: float
    lower_is_better: bool = True
