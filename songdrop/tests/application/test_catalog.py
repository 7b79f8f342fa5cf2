import pytest

from songdrop.application.catalog import CatalogCache
from songdrop.application.pagination import PaginatedFetcher
from songdrop.domain.errors import TemporaryFailure
from songdrop.tests.fakes import FakeAliasStore, FakePager, make_playlist


def build_catalog(playlists, aliases=None, page_size=2):
    pager = FakePager(playlists, page_size=page_size)
    catalog = CatalogCache(pager, FakeAliasStore(aliases), fetcher=PaginatedFetcher(max_workers=4))
    return catalog, pager


class TestCatalogCache:
    """Tests for CatalogCache."""

    def setup_method(self):
        self.playlists = [
            make_playlist("p_work", "Workout"),
            make_playlist("p_chill", "chill mix"),
            make_playlist("p_road", "  Road Trip"),
        ]

    def test_refresh_sorts_by_display_key(self):
        catalog, _ = build_catalog(self.playlists)

        refreshed = catalog.refresh()

        assert [p.id for p in refreshed] == ["p_chill", "p_road", "p_work"]
        assert [p.id for p in catalog.playlists] == ["p_chill", "p_road", "p_work"]

    def test_refresh_replaces_previous_list(self):
        catalog, pager = build_catalog(self.playlists)
        catalog.refresh()

        pager.items = [make_playlist("p_new", "Brand New")]
        catalog.refresh()

        assert [p.id for p in catalog.playlists] == ["p_new"]

    def test_failed_refresh_keeps_previous_list(self):
        catalog, pager = build_catalog(self.playlists)
        catalog.refresh()

        pager.fail_at = 0
        pager.error = TemporaryFailure("network down")
        with pytest.raises(TemporaryFailure):
            catalog.refresh()

        assert [p.id for p in catalog.playlists] == ["p_chill", "p_road", "p_work"]

    def test_candidate_names_are_playlists_then_aliases(self):
        catalog, _ = build_catalog(self.playlists, {"gym": "p_work", "drive": "p_road"})
        catalog.refresh()
        catalog.load_aliases()

        assert catalog.candidate_names() == ["chill mix", "  Road Trip", "Workout", "gym", "drive"]

    def test_dangling_alias_is_left_out(self):
        catalog, _ = build_catalog(self.playlists, {"old": "p_deleted", "gym": "p_work"})
        catalog.refresh()
        catalog.load_aliases()

        assert "old" not in catalog.candidate_names()
        assert catalog.candidate_names()[-1] == "gym"
        assert len(catalog.aliases) == 2

    def test_resolve_playlist_index(self):
        catalog, _ = build_catalog(self.playlists)
        catalog.refresh()

        assert catalog.resolve(0).id == "p_chill"

    def test_resolve_alias_index(self):
        catalog, _ = build_catalog(self.playlists, {"gym": "p_work"})
        catalog.refresh()
        catalog.load_aliases()

        assert catalog.resolve(3).id == "p_work"
        assert catalog.entries()[3].is_alias

    def test_resolve_out_of_range(self):
        catalog, _ = build_catalog(self.playlists)
        catalog.refresh()

        assert catalog.resolve(-1) is None
        assert catalog.resolve(3) is None

    def test_every_candidate_index_resolves(self):
        catalog, _ = build_catalog(self.playlists, {"gym": "p_work", "old": "gone", "drive": "p_road"})
        catalog.refresh()
        catalog.load_aliases()

        names = catalog.candidate_names()
        assert all(catalog.resolve(i) is not None for i in range(len(names)))

    def test_empty_catalog(self):
        catalog, _ = build_catalog([])
        catalog.refresh()
        catalog.load_aliases()

        assert catalog.candidate_names() == []
        assert catalog.resolve(0) is None
