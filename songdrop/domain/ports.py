from __future__ import annotations

from typing import Dict, Optional, Protocol

from .entities import Playlist, PlaylistPage, PlaylistRef, Track


class PlaylistListSource(Protocol):
    """Paged access to the current user's playlist collection."""

    def first_page(self) -> PlaylistPage[Playlist]:
        """Return the page at offset 0."""

    def page(self, offset: int) -> PlaylistPage[Playlist]:
        """Return the page starting at the given offset."""


class PlaylistItemsSource(Protocol):
    """Paged access to the tracks of playlists, scoped by reference."""

    def first_page(self, playlist: PlaylistRef) -> PlaylistPage[Track]:
        """Return the first page of the playlist's items."""

    def page(self, playlist: PlaylistRef, offset: int) -> PlaylistPage[Track]:
        """Return the page of the playlist's items starting at offset."""


class PlaybackSource(Protocol):
    def current_track(self) -> Optional[Track]:
        """Return the currently playing track, or None when nothing is playing."""


class AppendCapability(Protocol):
    def append(self, playlist: PlaylistRef, track: Track) -> str:
        """Append the track to the playlist and return the new snapshot id."""


class AliasStore(Protocol):
    """Persisted alias name -> playlist id mapping."""

    def load(self) -> Dict[str, str]:
        """Return the stored mapping, empty when nothing is stored."""

    def save(self, aliases: Dict[str, str]) -> bool:
        """Replace the stored mapping. Returns False when it could not be persisted."""


class AuthorizationState(Protocol):
    @property
    def is_authorized(self) -> bool:
        """Whether remote calls may be issued."""
