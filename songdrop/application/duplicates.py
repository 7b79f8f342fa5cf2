import logging
from typing import List, Optional

from songdrop.application.pagination import PaginatedFetcher
from songdrop.domain.entities import PlaylistRef, Track
from songdrop.domain.ports import PlaylistItemsSource


logger = logging.getLogger(__name__)


class DuplicateGuard:
    """Checks whether a playlist already holds a track, by exact track id.

    The playlist's full item list is fetched on every check. A fetch failure
    propagates; it is never read as "not present".
    """

    def __init__(self,
                 items_source: PlaylistItemsSource,
                 fetcher: Optional[PaginatedFetcher] = None,
                 allow_duplicates: bool = False):
        """Initialize the guard.

        Args:
            items_source: Paged access to playlist contents
            fetcher: Paginated fetcher used for the item list
            allow_duplicates: Skip the check entirely (playlists can be large)
        """
        self.items_source = items_source
        self.fetcher = fetcher or PaginatedFetcher()
        self.allow_duplicates = allow_duplicates

    def list_items(self, playlist: PlaylistRef) -> List[Track]:
        return self.fetcher.fetch_all(
            lambda: self.items_source.first_page(playlist),
            lambda offset: self.items_source.page(playlist, offset),
        )

    def contains_track(self, playlist: PlaylistRef, track_id: str) -> bool:
        """Return True when any item in the playlist has exactly this id.

        Returns False without fetching when duplicates are allowed.
        """
        if self.allow_duplicates:
            logger.debug(f"Duplicates allowed, skipping check for playlist {playlist.id}")
            return False

        items = self.list_items(playlist)
        present = any(item.id == track_id for item in items)
        logger.debug(f"Checked {len(items)} items in playlist {playlist.id} for track {track_id}: present={present}")
        return present
