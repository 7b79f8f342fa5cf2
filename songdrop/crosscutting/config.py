import os
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import dotenv_values


class ConfigError(Exception):
    """Configuration error."""
    pass


_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off', ''}


@dataclass(frozen=True)
class Settings:
    """Engine settings for one session."""

    match_threshold: float = 0.4
    confidence_threshold: float = 0.1
    allow_duplicates: bool = False
    max_page_workers: int = 8
    playlist_page_size: int = 50
    items_page_size: int = 100
    market: Optional[str] = None
    aliases_file: Optional[str] = None


class ConfigManager:
    """Loads settings and stored Spotify tokens from a config directory.

    Values come from the process environment first, then from ``.env`` in
    the config directory.
    """

    def __init__(self, config_dir: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """Initialize config manager."""
        self.environ = os.environ if environ is None else environ
        default_dir = self.environ.get('SONGDROP_CONFIG_DIR') or str(Path.home() / '.songdrop')
        self.config_dir = Path(config_dir) if config_dir else Path(default_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.tokens_file = self.config_dir / 'tokens.json'
        self.env_file = self.config_dir / '.env'

    def get_spotify_scopes(self) -> list:
        """Get the Spotify scopes the engine needs."""
        return [
            'playlist-read-private',        # Read private playlists
            'playlist-read-collaborative',  # Read collaborative playlists
            'playlist-modify-public',       # Add to public playlists
            'playlist-modify-private',      # Add to private playlists
            'user-read-playback-state',     # Read current playback
            'user-read-currently-playing',  # Read currently playing track
        ]

    def get_spotify_scope_string(self) -> str:
        """Get Spotify scopes as space-separated string."""
        return ' '.join(self.get_spotify_scopes())

    def validate_spotify_scopes(self, scopes: str) -> bool:
        """Validate that provided scopes include all required ones."""
        provided_scopes = set(scopes.split())
        required_scopes = set(self.get_spotify_scopes())

        return required_scopes.issubset(provided_scopes)

    def get_missing_spotify_scopes(self, scopes: str) -> list:
        """Get list of missing required Spotify scopes."""
        provided_scopes = set(scopes.split())
        return [s for s in self.get_spotify_scopes() if s not in provided_scopes]

    def load_env_vars(self) -> Dict[str, str]:
        """Load variables from the .env file in the config directory."""
        if not self.env_file.exists():
            return {}
        try:
            values = dotenv_values(self.env_file)
        except (IOError, UnicodeDecodeError) as e:
            raise ConfigError(f"Failed to load .env file {self.env_file}: {e}")
        return {k: v for k, v in values.items() if v is not None}

    def _lookup(self, key: str, env_vars: Dict[str, str]) -> Optional[str]:
        value = self.environ.get(key)
        if value is None:
            value = env_vars.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def _float(self, key: str, env_vars: Dict[str, str], default: float) -> float:
        raw = self._lookup(key, env_vars)
        if raw is None:
            return default
        try:
            value = float(raw)
        except ValueError:
            raise ConfigError(f"{key} must be a number, got '{raw}'")
        if not 0.0 <= value <= 1.0:
            raise ConfigError(f"{key} must be between 0 and 1, got {value}")
        return value

    def _int(self, key: str, env_vars: Dict[str, str], default: int) -> int:
        raw = self._lookup(key, env_vars)
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got '{raw}'")
        if value < 1:
            raise ConfigError(f"{key} must be at least 1, got {value}")
        return value

    def _bool(self, key: str, env_vars: Dict[str, str], default: bool) -> bool:
        raw = self._lookup(key, env_vars)
        if raw is None:
            return default
        lowered = raw.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigError(f"{key} must be a boolean, got '{raw}'")

    def load_settings(self) -> Settings:
        """Build settings from the environment and .env file."""
        env_vars = self.load_env_vars()

        match_threshold = self._float('SONGDROP_MATCH_THRESHOLD', env_vars, 0.4)
        confidence_threshold = self._float('SONGDROP_CONFIDENCE_THRESHOLD', env_vars, 0.1)
        if confidence_threshold > match_threshold:
            raise ConfigError("SONGDROP_CONFIDENCE_THRESHOLD must not exceed SONGDROP_MATCH_THRESHOLD")

        return Settings(
            match_threshold=match_threshold,
            confidence_threshold=confidence_threshold,
            allow_duplicates=self._bool('SONGDROP_ALLOW_DUPLICATES', env_vars, False),
            max_page_workers=self._int('SONGDROP_MAX_PAGE_WORKERS', env_vars, 8),
            playlist_page_size=self._int('SONGDROP_PLAYLIST_PAGE_SIZE', env_vars, 50),
            items_page_size=self._int('SONGDROP_ITEMS_PAGE_SIZE', env_vars, 100),
            market=self._lookup('SONGDROP_MARKET', env_vars),
            aliases_file=self._lookup('SONGDROP_ALIASES_FILE', env_vars) or str(self.config_dir / 'aliases.json'),
        )

    def load_server_address(self) -> Tuple[str, int]:
        """Host and port for the HTTP interface (SONGDROP_HOST, SONGDROP_PORT)."""
        env_vars = self.load_env_vars()
        host = self._lookup('SONGDROP_HOST', env_vars) or 'localhost'
        port = self._int('SONGDROP_PORT', env_vars, 3000)
        if port > 65535:
            raise ConfigError(f"SONGDROP_PORT must be at most 65535, got {port}")
        return host, port

    def load_tokens(self) -> Dict[str, Any]:
        """Load tokens from tokens.json file."""
        if not self.tokens_file.exists():
            return {}

        try:
            with open(self.tokens_file, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Failed to load tokens from {self.tokens_file}: {e}")

    def get_spotify_access_token(self) -> Optional[str]:
        """Spotify access token from SPOTIFY_ACCESS_TOKEN, .env or tokens.json."""
        token = self._lookup('SPOTIFY_ACCESS_TOKEN', self.load_env_vars())
        if token:
            return token
        spotify = self.load_tokens().get('spotify') or {}
        return spotify.get('access_token') or None

    def get_granted_spotify_scopes(self) -> Optional[str]:
        """Scope string stored alongside the token in tokens.json, if any."""
        spotify = self.load_tokens().get('spotify') or {}
        scope = spotify.get('scope')
        return scope if isinstance(scope, str) else None

    def get_config_summary(self) -> Dict[str, Any]:
        """Get configuration summary (without sensitive data)."""
        settings = self.load_settings()
        granted = self.get_granted_spotify_scopes()
        return {
            'config_dir': str(self.config_dir),
            'tokens_file': str(self.tokens_file),
            'env_file': str(self.env_file),
            'aliases_file': settings.aliases_file,
            'has_spotify_token': bool(self.get_spotify_access_token()),
            'spotify_scopes': self.get_spotify_scope_string(),
            'spotify_scopes_ok': self.validate_spotify_scopes(granted) if granted is not None else None,
            'missing_spotify_scopes': self.get_missing_spotify_scopes(granted) if granted is not None else [],
            'match_threshold': settings.match_threshold,
            'confidence_threshold': settings.confidence_threshold,
            'allow_duplicates': settings.allow_duplicates,
            'max_page_workers': settings.max_page_workers,
        }
