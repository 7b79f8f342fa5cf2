from typing import Optional

from songdrop.application.session import Session
from songdrop.crosscutting.config import ConfigManager, Settings
from songdrop.infrastructure.aliases import FileAliasStore
from songdrop.infrastructure.providers.spotify import SpotifyAuthorization, SpotifyProvider


def create_alias_store(config: ConfigManager, settings: Optional[Settings] = None) -> FileAliasStore:
    settings = settings or config.load_settings()
    return FileAliasStore(settings.aliases_file or str(config.config_dir / 'aliases.json'))


def create_spotify_session(config: ConfigManager,
                           access_token: Optional[str] = None,
                           settings: Optional[Settings] = None) -> Session:
    """Build a session backed by the Spotify Web API and the on-disk alias store.

    The token is taken as-is; obtaining and refreshing it happens elsewhere.
    """
    settings = settings or config.load_settings()
    token = access_token or config.get_spotify_access_token()
    authorization = SpotifyAuthorization(token)

    provider = SpotifyProvider(
        access_token=token or '',
        market=settings.market,
        playlist_page_size=settings.playlist_page_size,
        items_page_size=settings.items_page_size,
    )

    return Session(
        authorization=authorization,
        list_source=provider.playlist_list_source(),
        items_source=provider.playlist_items_source(),
        playback=provider,
        appender=provider,
        alias_store=create_alias_store(config, settings),
        settings=settings,
    )
