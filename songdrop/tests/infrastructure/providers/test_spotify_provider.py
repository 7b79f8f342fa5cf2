from unittest.mock import Mock

import pytest
import requests
import spotipy

from songdrop.application.pagination import PaginatedFetcher
from songdrop.domain.entities import PlaylistRef, Track
from songdrop.domain.errors import (
    NotFound, PermanentFailure, RateLimited, TemporaryFailure, Unauthorized,
)
from songdrop.infrastructure.providers.spotify import SpotifyAuthorization, SpotifyProvider


def playlist_json(pid, name):
    return {'id': pid, 'name': name, 'uri': f'spotify:playlist:{pid}'}


def track_item(tid, name='', item_type='track'):
    return {'track': {'id': tid, 'uri': f'spotify:track:{tid}', 'name': name or tid,
                      'type': item_type, 'artists': [{'name': 'Artist'}]}}


class TestSpotifyProvider:
    """Adapter tests for the Spotify provider with a mocked spotipy client."""

    def setup_method(self):
        self.client = Mock()
        self.provider = SpotifyProvider(access_token='test_access_token', market='US', client=self.client)
        self.ref = PlaylistRef(id='p1', uri='spotify:playlist:p1')

    def test_playlists_page(self):
        self.client.current_user_playlists.return_value = {
            'items': [playlist_json('p1', 'Chill Mix'), {'id': None, 'name': 'broken'}, playlist_json('p2', 'Road')],
            'offset': 0, 'total': 3, 'limit': 50, 'next': None,
        }

        page = self.provider.playlists_page(0)

        self.client.current_user_playlists.assert_called_once_with(limit=50, offset=0)
        assert [p.id for p in page.items] == ['p1', 'p2']
        assert page.total == 3
        assert page.limit == 50
        assert page.has_more is False

    def test_items_page_skips_episodes_and_local_files(self):
        self.client.playlist_items.return_value = {
            'items': [track_item('A'), track_item('E1', item_type='episode'), {'track': None},
                      {'track': {'id': None, 'uri': 'spotify:local:x', 'name': 'local'}}, track_item('B')],
            'offset': 100, 'total': 205, 'limit': 100, 'next': 'https://api.spotify.com/next',
        }

        page = self.provider.items_page(self.ref, 100)

        assert [t.id for t in page.items] == ['A', 'B']
        assert page.offset == 100
        assert page.has_more is True
        _, kwargs = self.client.playlist_items.call_args
        assert kwargs['offset'] == 100
        assert kwargs['limit'] == 100
        assert kwargs['market'] == 'US'

    def test_page_sizes_are_clamped(self):
        provider = SpotifyProvider('token', playlist_page_size=500, items_page_size=0, client=self.client)

        assert provider.playlist_page_size == 50
        assert provider.items_page_size == 1

    def test_current_track(self):
        self.client.current_playback.return_value = {
            'item': {'id': 'X', 'uri': 'spotify:track:X', 'name': 'Midnight City', 'type': 'track',
                     'artists': [{'name': 'M83'}]},
        }

        track = self.provider.current_track()

        assert track == Track(id='X', uri='spotify:track:X', name='Midnight City', artists=['M83'])

    def test_nothing_playing(self):
        self.client.current_playback.return_value = None

        assert self.provider.current_track() is None

    def test_podcast_playing_counts_as_no_track(self):
        self.client.current_playback.return_value = {'item': {'id': 'ep', 'type': 'episode'}}

        assert self.provider.current_track() is None

    def test_append_returns_snapshot(self):
        self.client.playlist_add_items.return_value = {'snapshot_id': 'snap-42'}

        snapshot = self.provider.append(self.ref, Track(id='X', uri='spotify:track:X'))

        assert snapshot == 'snap-42'
        self.client.playlist_add_items.assert_called_once_with('p1', ['spotify:track:X'])

    def test_append_without_snapshot_fails(self):
        self.client.playlist_add_items.return_value = {}

        with pytest.raises(TemporaryFailure):
            self.provider.append(self.ref, Track(id='X', uri='spotify:track:X'))

    @pytest.mark.parametrize('status,expected', [
        (401, Unauthorized),
        (403, PermanentFailure),
        (404, NotFound),
        (500, TemporaryFailure),
        (503, TemporaryFailure),
    ])
    def test_http_errors_are_translated(self, status, expected):
        self.client.playlist_add_items.side_effect = spotipy.SpotifyException(status, -1, 'API said no')

        with pytest.raises(expected) as exc_info:
            self.provider.append(self.ref, Track(id='X', uri='spotify:track:X'))

        assert 'API said no' in str(exc_info.value)

    def test_rate_limit_carries_retry_after(self):
        self.client.current_user_playlists.side_effect = spotipy.SpotifyException(
            429, -1, 'Too many requests', headers={'Retry-After': '3'})

        with pytest.raises(RateLimited) as exc_info:
            self.provider.playlists_page(0)

        assert exc_info.value.retry_after_ms == 3000

    def test_network_error_is_temporary(self):
        self.client.current_playback.side_effect = requests.exceptions.ConnectionError('connection refused')

        with pytest.raises(TemporaryFailure) as exc_info:
            self.provider.current_track()

        assert 'connection refused' in exc_info.value.message

    def test_list_source_feeds_paginated_fetcher(self):
        def current_user_playlists(limit, offset):
            names = [f'List {i:03d}' for i in range(120)]
            chunk = names[offset:offset + limit]
            return {'items': [playlist_json(f'p{offset + i}', n) for i, n in enumerate(chunk)],
                    'offset': offset, 'total': 120, 'limit': limit,
                    'next': None if offset + limit >= 120 else 'next'}

        self.client.current_user_playlists.side_effect = current_user_playlists
        source = self.provider.playlist_list_source()

        playlists = PaginatedFetcher(max_workers=3).fetch_all(source.first_page, source.page)

        assert [p.id for p in playlists] == [f'p{i}' for i in range(120)]

    def test_items_source_is_scoped_to_playlist(self):
        self.client.playlist_items.return_value = {'items': [track_item('A')], 'offset': 0, 'total': 1, 'limit': 100}
        source = self.provider.playlist_items_source()

        page = source.first_page(self.ref)

        assert [t.id for t in page.items] == ['A']
        assert self.client.playlist_items.call_args[0][0] == 'p1'


class TestSpotifyAuthorization:
    """Tests for SpotifyAuthorization."""

    def test_open_with_token(self):
        assert SpotifyAuthorization('token').is_authorized

    @pytest.mark.parametrize('token', [None, '', '   '])
    def test_closed_without_token(self, token):
        assert not SpotifyAuthorization(token).is_authorized
