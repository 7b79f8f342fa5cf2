import pytest

from songdrop.application.matching import DEFAULT_MATCH_THRESHOLD, FuzzyMatcher


CATALOG = ["Chill Mix", "Workout Mix", "Road Trip", "Jazz Classics", "My Playlist", "Café Beats"]


class TestFuzzyMatcher:
    """Tests for FuzzyMatcher."""

    def setup_method(self):
        self.matcher = FuzzyMatcher()

    def test_default_threshold(self):
        assert self.matcher.threshold == DEFAULT_MATCH_THRESHOLD == 0.4

    def test_exact_name_scores_zero(self):
        assert self.matcher.score("chill mix", "Chill Mix") == 0.0

    def test_filler_words_are_ignored(self):
        assert self.matcher.score("my chill mix playlist", "Chill Mix") == 0.0

    def test_diacritics_are_ignored(self):
        assert self.matcher.score("cafe beats", "Café Beats") == 0.0

    def test_filler_only_name_is_still_matchable(self):
        matches = self.matcher.search("my playlist", CATALOG)

        assert matches[0].candidate_index == CATALOG.index("My Playlist")
        assert matches[0].score == 0.0

    def test_word_order_does_not_prevent_a_match(self):
        matches = self.matcher.search("mix chill", CATALOG)

        assert matches
        assert matches[0].candidate_index == CATALOG.index("Chill Mix")

    def test_tolerates_transcription_errors(self):
        matches = self.matcher.search("chill list", CATALOG)

        assert matches
        assert matches[0].candidate_index == CATALOG.index("Chill Mix")
        assert matches[0].score < 0.4

    def test_ambiguous_query_ranks_shorter_name_first(self):
        matches = self.matcher.search("mix", CATALOG)

        assert [m.candidate_index for m in matches[:2]] == [CATALOG.index("Chill Mix"), CATALOG.index("Workout Mix")]
        assert matches[0].score == pytest.approx(0.25)
        assert matches[1].score == pytest.approx(1 - (300 / 7 + 100) / 200)

    def test_unrelated_query_returns_nothing(self):
        assert self.matcher.search("zzzz qqqq", CATALOG) == []

    def test_empty_query_returns_nothing(self):
        assert self.matcher.search("", CATALOG) == []
        assert self.matcher.search("   ", CATALOG) == []

    def test_empty_candidate_list(self):
        assert self.matcher.search("chill mix", []) == []

    def test_empty_candidate_scores_worst(self):
        assert self.matcher.score("chill", "") == 1.0

    def test_results_are_sorted_and_below_threshold(self):
        for query in ["mix", "chill", "road", "jazz classic", "work out", "trip", "beats", "classics mix"]:
            matches = self.matcher.search(query, CATALOG)
            scores = [m.score for m in matches]
            assert scores == sorted(scores)
            assert all(0.0 <= s < self.matcher.threshold for s in scores)
            assert all(0 <= m.candidate_index < len(CATALOG) for m in matches)
            assert all(m.lower_is_better for m in matches)

    def test_ties_keep_candidate_order(self):
        matches = self.matcher.search("chill mix", ["Chill Mix", "Workout", "chill mix"])

        assert [m.candidate_index for m in matches] == [0, 2]

    def test_stricter_threshold_returns_subset(self):
        loose = self.matcher.search("mix", CATALOG)
        strict = FuzzyMatcher(threshold=0.26).search("mix", CATALOG)

        assert [m.candidate_index for m in strict] == [CATALOG.index("Chill Mix")]
        assert len(strict) < len(loose)


@pytest.mark.parametrize("threshold", [-0.1, 1.5])
def test_rejects_threshold_outside_unit_interval(threshold):
    with pytest.raises(ValueError):
        FuzzyMatcher(threshold=threshold)
