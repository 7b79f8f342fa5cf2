import logging
from typing import Any, Dict, List, Optional

import requests
import spotipy
from urllib3.exceptions import ReadTimeoutError

from songdrop.crosscutting.logging import log_error
from songdrop.domain.entities import Playlist, PlaylistPage, PlaylistRef, Track
from songdrop.domain.errors import (
    NotFound, PermanentFailure, RateLimited, RemoteFailure, TemporaryFailure, Unauthorized,
)

logger = logging.getLogger(__name__)

# Only what the engine reads from each playlist item
_ITEM_FIELDS = 'items(track(id,uri,name,type,artists(name))),offset,total,limit,next'


class SpotifyAuthorization:
    """Authorization gate: open while an access token is present."""

    def __init__(self, access_token: Optional[str]):
        self.access_token = access_token

    @property
    def is_authorized(self) -> bool:
        return bool(self.access_token and self.access_token.strip())


class SpotifyProvider:
    """Spotify Web API adapter for the engine's remote collaborators."""

    def __init__(self,
                 access_token: str,
                 market: Optional[str] = None,
                 playlist_page_size: int = 50,
                 items_page_size: int = 100,
                 client: Optional[Any] = None):
        """Initialize Spotify provider.

        Args:
            access_token: Spotify access token (obtained and refreshed elsewhere)
            market: Market passed to playback and item lookups
            playlist_page_size: Page size for the playlist collection (Spotify max 50)
            items_page_size: Page size for playlist items (Spotify max 100)
            client: Preconfigured spotipy client, mainly for tests
        """
        self.market = market
        self.playlist_page_size = min(max(1, playlist_page_size), 50)
        self.items_page_size = min(max(1, items_page_size), 100)
        self._client = client or spotipy.Spotify(auth=access_token, requests_timeout=15)

    def _translate_error(self, error: Exception, operation: str) -> Exception:
        """Map spotipy/requests failures onto domain errors."""
        if isinstance(error, RemoteFailure):
            return error

        if isinstance(error, spotipy.SpotifyException):
            message = getattr(error, 'msg', None) or str(error)
            status = getattr(error, 'http_status', None)
            if status == 401:
                return Unauthorized(message)
            if status == 429:
                headers = getattr(error, 'headers', None) or {}
                try:
                    retry_after = int(headers.get('Retry-After', 1))
                except (TypeError, ValueError):
                    retry_after = 1
                return RateLimited(retry_after_ms=retry_after * 1000, message=message)
            if status == 404:
                return NotFound(message)
            if status is not None and status >= 500:
                return TemporaryFailure(message)
            return PermanentFailure(message)

        if isinstance(error, (requests.exceptions.RequestException, ReadTimeoutError)):
            return TemporaryFailure(f"Network error during {operation}: {error}")

        return TemporaryFailure(str(error) or f"{operation} failed")

    def _call(self, operation: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            translated = self._translate_error(e, operation)
            log_error(logger, f"Spotify {operation} failure", translated, operation=operation)
            raise translated from e

    @staticmethod
    def _page(response: Optional[Dict[str, Any]], items: List[Any], offset: int) -> PlaylistPage:
        response = response or {}
        return PlaylistPage(
            items=items,
            offset=response.get('offset', offset),
            total=response.get('total', len(items)),
            limit=response.get('limit', len(items)),
            has_more=response.get('next') is not None,
        )

    @staticmethod
    def _spotify_playlist_to_domain(data: Dict[str, Any]) -> Optional[Playlist]:
        if not data or not data.get('id'):
            return None
        return Playlist(
            id=data['id'],
            name=data.get('name') or '',
            uri=data.get('uri') or f"spotify:playlist:{data['id']}",
        )

    @staticmethod
    def _spotify_track_to_domain(data: Optional[Dict[str, Any]]) -> Optional[Track]:
        """Convert a Spotify track object; local files, episodes and id-less items yield None."""
        if not data or not data.get('id'):
            return None
        if data.get('type', 'track') != 'track':
            return None
        artists = [a.get('name', '') for a in data.get('artists') or [] if a and a.get('name')]
        return Track(
            id=data['id'],
            uri=data.get('uri') or f"spotify:track:{data['id']}",
            name=data.get('name') or '',
            artists=artists,
        )

    def playlists_page(self, offset: int = 0) -> PlaylistPage[Playlist]:
        """One page of the current user's playlists."""
        response = self._call('list playlists', self._client.current_user_playlists,
                              limit=self.playlist_page_size, offset=offset)
        playlists = [p for p in (self._spotify_playlist_to_domain(item)
                                 for item in (response or {}).get('items') or []) if p]
        return self._page(response, playlists, offset)

    def items_page(self, playlist: PlaylistRef, offset: int = 0) -> PlaylistPage[Track]:
        """One page of a playlist's tracks."""
        response = self._call('list playlist items', self._client.playlist_items,
                              playlist.id,
                              fields=_ITEM_FIELDS,
                              limit=self.items_page_size,
                              offset=offset,
                              market=self.market,
                              additional_types=('track',))
        tracks = []
        for item in (response or {}).get('items') or []:
            track = self._spotify_track_to_domain((item or {}).get('track'))
            if track:
                tracks.append(track)
        return self._page(response, tracks, offset)

    def current_track(self) -> Optional[Track]:
        """Currently playing track, or None when nothing (or a non-track item) is playing."""
        context = self._call('current playback', self._client.current_playback, market=self.market)
        if not context:
            return None
        return self._spotify_track_to_domain(context.get('item'))

    def append(self, playlist: PlaylistRef, track: Track) -> str:
        """Append one track to the playlist; returns the new snapshot id."""
        result = self._call('add to playlist', self._client.playlist_add_items, playlist.id, [track.uri])
        snapshot_id = (result or {}).get('snapshot_id')
        if not snapshot_id:
            raise TemporaryFailure("Spotify did not return a snapshot id")
        return snapshot_id

    def playlist_list_source(self) -> "SpotifyPlaylistListSource":
        return SpotifyPlaylistListSource(self)

    def playlist_items_source(self) -> "SpotifyPlaylistItemsSource":
        return SpotifyPlaylistItemsSource(self)


class SpotifyPlaylistListSource:
    def __init__(self, provider: SpotifyProvider):
        self.provider = provider

    def first_page(self) -> PlaylistPage[Playlist]:
        return self.provider.playlists_page(0)

    def page(self, offset: int) -> PlaylistPage[Playlist]:
        return self.provider.playlists_page(offset)


class SpotifyPlaylistItemsSource:
    def __init__(self, provider: SpotifyProvider):
        self.provider = provider

    def first_page(self, playlist: PlaylistRef) -> PlaylistPage[Track]:
        return self.provider.items_page(playlist, 0)

    def page(self, playlist: PlaylistRef, offset: int) -> PlaylistPage[Track]:
        return self.provider.items_page(playlist, offset)
