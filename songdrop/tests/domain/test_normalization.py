from songdrop.domain.entities import Playlist
from songdrop.domain.normalization import display_key, normalize_phrase, significant_tokens


def test_normalize_phrase_folds_case_punctuation_and_spacing():
    assert normalize_phrase("  My   Chill-Mix!! ") == "my chill mix"


def test_normalize_phrase_strips_diacritics():
    assert normalize_phrase("Café Beyoncé") == "cafe beyonce"


def test_normalize_phrase_spells_out_ampersand():
    assert normalize_phrase("R&B Jams") == "r and b jams"


def test_normalize_phrase_keeps_contractions_together():
    assert normalize_phrase("Rock'n'Roll") == "rocknroll"
    assert normalize_phrase("Don’t Stop") == "dont stop"


def test_normalize_phrase_handles_empty_and_none():
    assert normalize_phrase("") == ""
    assert normalize_phrase(None) == ""


def test_significant_tokens_drop_filler_words():
    assert significant_tokens("add to my Road Trip playlist") == ["add", "to", "road", "trip"]
    assert significant_tokens("the chill mix") == ["chill", "mix"]


def test_significant_tokens_fall_back_when_only_filler():
    assert significant_tokens("My Playlist") == ["my", "playlist"]


def test_display_key_trims_and_lowercases():
    assert display_key("  Zebra ") == "zebra"
    assert display_key(None) == ""


def test_playlists_sort_by_display_key():
    playlists = [
        Playlist(id="1", name="  workout", uri="u1"),
        Playlist(id="2", name="Chill Mix", uri="u2"),
        Playlist(id="3", name="road trip ", uri="u3"),
    ]
    ordered = sorted(playlists, key=lambda p: p.display_key)
    assert [p.id for p in ordered] == ["2", "3", "1"]


def test_playlist_ref_carries_id_and_uri():
    playlist = Playlist(id="pl_1", name="Chill", uri="spotify:playlist:pl_1")
    assert playlist.ref.id == "pl_1"
    assert playlist.ref.uri == "spotify:playlist:pl_1"
