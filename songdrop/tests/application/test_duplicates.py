import pytest

from songdrop.application.duplicates import DuplicateGuard
from songdrop.domain.errors import TemporaryFailure
from songdrop.tests.fakes import FakeItemsSource, make_playlist, make_track


class TestDuplicateGuard:
    """Tests for DuplicateGuard."""

    def setup_method(self):
        self.playlist = make_playlist("p1", "Chill Mix")
        self.source = FakeItemsSource({"p1": [make_track("A"), make_track("B"), make_track("C")]}, page_size=2)

    def test_present_track(self):
        guard = DuplicateGuard(self.source)

        assert guard.contains_track(self.playlist.ref, "B") is True

    def test_present_on_later_page(self):
        guard = DuplicateGuard(self.source)

        assert guard.contains_track(self.playlist.ref, "C") is True
        assert self.source.calls == 2

    def test_absent_track(self):
        guard = DuplicateGuard(self.source)

        assert guard.contains_track(self.playlist.ref, "D") is False

    def test_match_is_exact_on_id(self):
        guard = DuplicateGuard(self.source)

        assert guard.contains_track(self.playlist.ref, "b") is False
        assert guard.contains_track(self.playlist.ref, "B ") is False

    def test_empty_playlist(self):
        guard = DuplicateGuard(FakeItemsSource({}))

        assert guard.contains_track(self.playlist.ref, "A") is False

    def test_fetch_failure_propagates(self):
        guard = DuplicateGuard(FakeItemsSource({}, error=TemporaryFailure("items unavailable")))

        with pytest.raises(TemporaryFailure, match="items unavailable"):
            guard.contains_track(self.playlist.ref, "A")

    def test_allow_duplicates_skips_fetch(self):
        guard = DuplicateGuard(self.source, allow_duplicates=True)

        assert guard.contains_track(self.playlist.ref, "B") is False
        assert self.source.calls == 0

    def test_list_items_in_playlist_order(self):
        guard = DuplicateGuard(self.source)

        assert [t.id for t in guard.list_items(self.playlist.ref)] == ["A", "B", "C"]
