import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from songdrop.application.pagination import PaginatedFetcher
from songdrop.domain.entities import Alias, Playlist
from songdrop.domain.ports import AliasStore, PlaylistListSource


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateEntry:
    """Back-reference from a candidate name to where it came from."""

    name: str
    playlist_id: str
    alias: Optional[str] = None

    @property
    def is_alias(self) -> bool:
        return self.alias is not None


class CatalogCache:
    """Latest playlist list plus the user's aliases, exposed as one name space.

    Candidate names are the playlist names in stored order followed by the
    alias names in stored order. A parallel entry list maps every index back
    to a playlist id so a match index can be resolved either directly or
    through an alias.
    """

    def __init__(self,
                 list_source: PlaylistListSource,
                 alias_store: AliasStore,
                 fetcher: Optional[PaginatedFetcher] = None):
        self.list_source = list_source
        self.alias_store = alias_store
        self.fetcher = fetcher or PaginatedFetcher()
        self._playlists: List[Playlist] = []
        self._aliases: List[Alias] = []

    @property
    def playlists(self) -> List[Playlist]:
        return list(self._playlists)

    @property
    def aliases(self) -> List[Alias]:
        return list(self._aliases)

    def refresh(self) -> List[Playlist]:
        """Replace the stored playlist list with the remote one.

        The list is replaced wholesale and sorted by display key. On failure
        the previous list is kept and the error propagates to the caller.

        Returns:
            The newly stored playlists
        """
        try:
            fetched = self.fetcher.fetch_all(self.list_source.first_page, self.list_source.page)
        except Exception as e:
            logger.error(f"Playlist refresh failed, keeping {len(self._playlists)} cached playlists: {e}")
            raise

        self._playlists = sorted(fetched, key=lambda p: p.display_key)
        logger.info(f"Received {len(self._playlists)} playlists")
        return self.playlists

    def load_aliases(self) -> List[Alias]:
        """Reload aliases from the store, in stored (insertion) order."""
        mapping = self.alias_store.load() or {}
        self._aliases = [Alias(alias_name=name, playlist_id=pid) for name, pid in mapping.items()]
        logger.debug(f"Loaded {len(self._aliases)} aliases")
        return self.aliases

    def _playlists_by_id(self) -> Dict[str, Playlist]:
        return {p.id: p for p in self._playlists}

    def entries(self) -> List[CandidateEntry]:
        """Candidate entries in name-space order; aliases with a dangling target are left out."""
        known = self._playlists_by_id()
        entries = [CandidateEntry(name=p.name, playlist_id=p.id) for p in self._playlists]
        for alias in self._aliases:
            if alias.playlist_id not in known:
                logger.debug(f"Skipping alias '{alias.alias_name}': playlist {alias.playlist_id} not in catalog")
                continue
            entries.append(CandidateEntry(name=alias.alias_name,
                                          playlist_id=alias.playlist_id,
                                          alias=alias.alias_name))
        return entries

    def candidate_names(self) -> List[str]:
        """Playlist names followed by resolvable alias names."""
        return [entry.name for entry in self.entries()]

    def resolve(self, candidate_index: int) -> Optional[Playlist]:
        """Map a candidate index back to a playlist.

        Args:
            candidate_index: Index into ``candidate_names()``

        Returns:
            The playlist, or None when the index is out of range or points at
            an alias whose target is no longer in the catalog
        """
        entries = self.entries()
        if candidate_index < 0 or candidate_index >= len(entries):
            return None
        entry = entries[candidate_index]
        return self._playlists_by_id().get(entry.playlist_id)
