from typing import List, Sequence

from rapidfuzz import fuzz

from songdrop.domain.entities import Match
from songdrop.domain.normalization import significant_tokens


DEFAULT_MATCH_THRESHOLD = 0.4


def _prepare(value: str) -> str:
    return " ".join(significant_tokens(value))


class FuzzyMatcher:
    """Approximate matching of a spoken phrase against candidate names.

    Scores blend two rapidfuzz measures on the normalized strings:

    1. ``fuzz.ratio`` - whole-string edit similarity, so "mix" is far from
       "Chill Mix" even though one contains the other
    2. ``fuzz.token_set_ratio`` - word overlap regardless of order, so
       "mix chill" and "Chill Mix" still agree

    The blend is inverted into a distance in [0, 1] where 0 is an exact match.
    Candidates whose distance reaches the threshold are not returned at all.
    """

    def __init__(self, threshold: float = DEFAULT_MATCH_THRESHOLD):
        """Initialize the matcher.

        Args:
            threshold: Distance at or above which a candidate is discarded
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        self.threshold = threshold

    def score(self, query: str, candidate: str) -> float:
        """Distance between a query and one candidate (0.0 best, 1.0 worst)."""
        return self._score(_prepare(query), _prepare(candidate))

    def _score(self, query: str, candidate: str) -> float:
        if not query or not candidate:
            return 1.0
        if query == candidate:
            return 0.0
        similarity = (fuzz.ratio(query, candidate)
                      + fuzz.token_set_ratio(query, candidate)) / 2.0
        return min(1.0, max(0.0, 1.0 - similarity / 100.0))

    def search(self, query: str, candidates: Sequence[str]) -> List[Match]:
        """Rank candidates against the query.

        Args:
            query: Spoken phrase, possibly mis-transcribed
            candidates: Names to search, in catalog order

        Returns:
            Matches below the threshold, best (lowest score) first. Ties keep
            candidate order. Empty when nothing is close enough.
        """
        prepared_query = _prepare(query)
        if not prepared_query:
            return []

        matches = []
        for index, candidate in enumerate(candidates):
            distance = self._score(prepared_query, _prepare(candidate))
            if distance < self.threshold:
                matches.append(Match(candidate_index=index, score=distance))

        matches.sort(key=lambda m: (m.score, m.candidate_index))
        return matches
