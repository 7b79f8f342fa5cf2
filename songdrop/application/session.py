import logging
from typing import List, Optional, Tuple

from songdrop.application.catalog import CatalogCache
from songdrop.application.duplicates import DuplicateGuard
from songdrop.application.matching import FuzzyMatcher
from songdrop.application.pagination import PaginatedFetcher
from songdrop.application.pipeline import IngestionPipeline, IngestionResult
from songdrop.application.resolution import PlaylistResolver, Resolution, ResolutionPolicy, ResolutionStatus
from songdrop.crosscutting.config import Settings
from songdrop.crosscutting.logging import CorrelationContext, log_resolution, new_session_id
from songdrop.domain.entities import Playlist
from songdrop.domain.errors import RemoteFailure, SongdropError, Unauthorized
from songdrop.domain.ports import (
    AliasStore, AppendCapability, AuthorizationState, PlaybackSource, PlaylistItemsSource, PlaylistListSource,
)


logger = logging.getLogger(__name__)


class Session:
    """Everything one voice invocation needs, built explicitly and passed around.

    Each session owns its own catalog snapshot; nothing is shared between
    sessions. Callers that run two invocations at once must use two sessions.
    """

    def __init__(self,
                 authorization: AuthorizationState,
                 list_source: PlaylistListSource,
                 items_source: PlaylistItemsSource,
                 playback: PlaybackSource,
                 appender: AppendCapability,
                 alias_store: AliasStore,
                 settings: Optional[Settings] = None,
                 session_id: Optional[str] = None):
        self.settings = settings or Settings()
        self.session_id = session_id or new_session_id()
        self.authorization = authorization
        self.alias_store = alias_store

        fetcher = PaginatedFetcher(max_workers=self.settings.max_page_workers)
        self.catalog = CatalogCache(list_source, alias_store, fetcher=fetcher)
        self.resolver = PlaylistResolver(
            self.catalog,
            matcher=FuzzyMatcher(threshold=self.settings.match_threshold),
            policy=ResolutionPolicy(confidence_threshold=self.settings.confidence_threshold),
        )
        self.duplicate_guard = DuplicateGuard(items_source, fetcher=fetcher,
                                              allow_duplicates=self.settings.allow_duplicates)
        self.pipeline = IngestionPipeline(authorization, playback, appender, self.duplicate_guard)

    def _load_catalog(self) -> None:
        try:
            self.catalog.refresh()
        except SongdropError:
            raise
        except Exception as e:
            raise RemoteFailure(str(e) or type(e).__name__) from e
        self.catalog.load_aliases()

    def resolve_playlist(self, phrase: Optional[str]) -> Resolution:
        """Resolve a spoken playlist name against freshly fetched playlists and aliases.

        Raises:
            RemoteFailure: the playlist collection could not be fetched
        """
        with CorrelationContext(session_id=self.session_id):
            if not self.authorization.is_authorized:
                logger.warning("Resolution requested while unauthorized")
                return Resolution(status=ResolutionStatus.UNAUTHORIZED)

            if not phrase or not phrase.strip():
                return Resolution(status=ResolutionStatus.NO_MATCH)

            try:
                self._load_catalog()
            except Unauthorized:
                return Resolution(status=ResolutionStatus.UNAUTHORIZED)

            resolution = self.resolver.resolve_phrase(phrase)
            log_resolution(logger, phrase, resolution.status.value, len(resolution.candidates),
                           playlist_id=resolution.playlist.id if resolution.playlist else None)
            return resolution

    def playlist_options(self, search_term: Optional[str] = None) -> List[Playlist]:
        """Playlists to offer for manual selection, optionally narrowed by a search term.

        Raises:
            Unauthorized: the gate is closed
            RemoteFailure: the playlist collection could not be fetched
        """
        with CorrelationContext(session_id=self.session_id):
            if not self.authorization.is_authorized:
                raise Unauthorized("Spotify is not authorized")
            self._load_catalog()
            return self.resolver.options(search_term)

    def add_current_track(self, playlist: Optional[Playlist]) -> IngestionResult:
        """Add the currently playing track to an already resolved playlist."""
        with CorrelationContext(session_id=self.session_id):
            return self.pipeline.add_current_track(playlist)

    def add_to_spoken_playlist(self, phrase: str) -> Tuple[Resolution, Optional[IngestionResult]]:
        """Resolve a phrase and, when it auto-accepts, add the current track to it.

        Returns:
            The resolution, and the ingestion result when ingestion ran
        """
        resolution = self.resolve_playlist(phrase)
        if not resolution.resolved:
            return resolution, None
        return resolution, self.add_current_track(resolution.playlist)
