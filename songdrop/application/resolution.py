import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from songdrop.application.catalog import CatalogCache
from songdrop.application.matching import FuzzyMatcher
from songdrop.domain.entities import Match, Playlist


logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.1


class ResolutionStatus(str, Enum):
    UNAUTHORIZED = "unauthorized"
    NO_MATCH = "no_match"
    AUTO_ACCEPT = "auto_accept"
    DISAMBIGUATE = "disambiguate"


@dataclass(frozen=True)
class Resolution:
    """Terminal outcome of resolving a spoken playlist name."""

    status: ResolutionStatus
    playlist: Optional[Playlist] = None
    candidates: List[Playlist] = field(default_factory=list)
    score: Optional[float] = None

    @property
    def resolved(self) -> bool:
        return self.status == ResolutionStatus.AUTO_ACCEPT and self.playlist is not None


def _unique_by_id(playlists: Sequence[Optional[Playlist]]) -> List[Playlist]:
    seen = set()
    unique = []
    for playlist in playlists:
        if playlist is None or playlist.id in seen:
            continue
        seen.add(playlist.id)
        unique.append(playlist)
    return unique


class ResolutionPolicy:
    """Decides between auto-accept, disambiguation and no-match.

    1. No matches -> NO_MATCH
    2. Best score below the confidence bound -> AUTO_ACCEPT with that playlist,
       or NO_MATCH when it points at a dangling alias
    3. Otherwise -> DISAMBIGUATE with every match that resolves, ranked
    """

    def __init__(self, confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        if not 0.0 <= confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be between 0 and 1")
        self.confidence_threshold = confidence_threshold

    def decide(self, matches: Sequence[Match], catalog: CatalogCache) -> Resolution:
        """Turn ranked matches into a resolution.

        Args:
            matches: Matcher output, best first
            catalog: Catalog the match indices refer to

        Returns:
            Resolution in one of the three terminal states
        """
        if not matches:
            return Resolution(status=ResolutionStatus.NO_MATCH)

        best = matches[0]
        if best.score < self.confidence_threshold:
            playlist = catalog.resolve(best.candidate_index)
            if playlist is None:
                logger.info(f"Confident match at index {best.candidate_index} is a dangling alias; treating as no match")
                return Resolution(status=ResolutionStatus.NO_MATCH)
            return Resolution(status=ResolutionStatus.AUTO_ACCEPT, playlist=playlist, score=best.score)

        candidates = _unique_by_id([catalog.resolve(m.candidate_index) for m in matches])
        if not candidates:
            return Resolution(status=ResolutionStatus.NO_MATCH)

        return Resolution(status=ResolutionStatus.DISAMBIGUATE, candidates=candidates, score=best.score)


class PlaylistResolver:
    """Resolves spoken phrases against a catalog using a matcher and a policy."""

    def __init__(self,
                 catalog: CatalogCache,
                 matcher: Optional[FuzzyMatcher] = None,
                 policy: Optional[ResolutionPolicy] = None):
        self.catalog = catalog
        self.matcher = matcher or FuzzyMatcher()
        self.policy = policy or ResolutionPolicy()

    def resolve_phrase(self, phrase: str) -> Resolution:
        """Match a phrase against the catalog's current name space."""
        names = self.catalog.candidate_names()
        matches = self.matcher.search(phrase, names)
        resolution = self.policy.decide(matches, self.catalog)
        logger.info(f"Resolved '{phrase}' against {len(names)} names: {resolution.status.value}")
        return resolution

    def options(self, search_term: Optional[str] = None) -> List[Playlist]:
        """Playlists to offer for manual selection, ordered for display.

        Args:
            search_term: When given, only playlists whose name or alias matches it

        Returns:
            Unique playlists sorted by display key
        """
        if not search_term:
            playlists = self.catalog.playlists
        else:
            matches = self.matcher.search(search_term, self.catalog.candidate_names())
            playlists = [self.catalog.resolve(m.candidate_index) for m in matches]
        return sorted(_unique_by_id(playlists), key=lambda p: p.display_key)
