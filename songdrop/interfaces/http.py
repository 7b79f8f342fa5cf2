import logging
import os
import sys
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from songdrop.application.pipeline import IngestionOutcome, IngestionResult
from songdrop.application.resolution import Resolution, ResolutionStatus
from songdrop.application.session import Session
from songdrop.crosscutting.config import ConfigError, ConfigManager
from songdrop.domain.entities import Playlist
from songdrop.domain.errors import RemoteFailure, Unauthorized
from songdrop.infrastructure.aliases import FileAliasStore
from songdrop.interfaces.wiring import create_alias_store, create_spotify_session


_INGESTION_STATUS = {
    IngestionOutcome.SUCCESS: 200,
    IngestionOutcome.DUPLICATE: 200,
    IngestionOutcome.NO_ACTIVE_TRACK: 409,
    IngestionOutcome.UNAUTHORIZED: 401,
    IngestionOutcome.FAILURE: 502,
}


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _text(value: Any) -> Optional[str]:
    """The value when it is a non-blank string, otherwise None."""
    if isinstance(value, str) and value.strip():
        return value
    return None


def _playlist_json(playlist: Optional[Playlist]) -> Optional[Dict[str, str]]:
    if playlist is None:
        return None
    return {'id': playlist.id, 'name': playlist.name, 'uri': playlist.uri}


def _resolution_json(resolution: Resolution) -> Dict[str, Any]:
    return {
        'status': resolution.status.value,
        'playlist': _playlist_json(resolution.playlist),
        'candidates': [_playlist_json(p) for p in resolution.candidates],
    }


def _ingestion_json(result: IngestionResult) -> Dict[str, Any]:
    return {
        'outcome': result.outcome.value,
        'track': result.track_name,
        'playlist': result.playlist_name,
        'snapshot_id': result.snapshot_id,
        'message': result.message,
    }


class HTTPServer:
    """HTTP surface a voice shortcut can call to resolve playlists and add tracks."""

    def __init__(self,
                 host: str = 'localhost',
                 port: int = 3000,
                 debug: bool = False,
                 session_factory: Optional[Callable[[], Session]] = None,
                 alias_store: Optional[FileAliasStore] = None):
        """Initialize HTTP server.

        Args:
            session_factory: Builds a fresh Session per request
            alias_store: Store used by the alias endpoints
        """
        self.host = host
        self.port = port
        self.debug = debug
        self.app = Flask(__name__)
        self.logger = logging.getLogger(__name__)

        self.version = "0.1.0"
        self.commit = os.getenv('GIT_COMMIT', 'unknown')

        self._config: Optional[ConfigManager] = None
        self._session_factory = session_factory
        self._alias_store = alias_store

        self._setup_routes()

    def _config_manager(self) -> ConfigManager:
        if self._config is None:
            self._config = ConfigManager()
        return self._config

    def new_session(self) -> Session:
        if self._session_factory is not None:
            return self._session_factory()
        return create_spotify_session(self._config_manager())

    def alias_store(self) -> FileAliasStore:
        if self._alias_store is None:
            self._alias_store = create_alias_store(self._config_manager())
        return self._alias_store

    def _setup_routes(self) -> None:
        """Setup Flask routes."""

        @self.app.errorhandler(Unauthorized)
        def handle_unauthorized(error):
            return jsonify({'error': 'unauthorized', 'details': str(error)}), 401

        @self.app.errorhandler(RemoteFailure)
        def handle_remote_failure(error):
            self.logger.error(f"Remote failure: {error.message}")
            return jsonify({'error': 'remote_failure', 'details': error.message}), 502

        @self.app.route('/health', methods=['GET'])
        def health_check():
            """Health check endpoint."""
            return jsonify({
                'status': 'healthy',
                'version': self.version,
                'commit': self.commit,
                'timestamp': datetime.now().isoformat()
            }), 200

        @self.app.route('/resolve', methods=['POST'])
        def resolve():
            """Resolve a spoken playlist name."""
            phrase = _text(_json_body().get('phrase'))
            if phrase is None:
                return jsonify({'error': 'phrase must be a non-empty string'}), 400

            resolution = self.new_session().resolve_playlist(phrase)
            status = 401 if resolution.status == ResolutionStatus.UNAUTHORIZED else 200
            return jsonify(_resolution_json(resolution)), status

        @self.app.route('/add', methods=['POST'])
        def add_track():
            """Add the current track to a resolved playlist, or to one named by phrase."""
            body = _json_body()
            session = self.new_session()

            target = body.get('playlist')
            if isinstance(target, dict):
                playlist_id, uri = _text(target.get('id')), _text(target.get('uri'))
                if playlist_id is None or uri is None:
                    return jsonify({'error': 'Playlist needs id and uri strings'}), 400
                name = target.get('name')
                playlist = Playlist(id=playlist_id, name=name if isinstance(name, str) else '', uri=uri)
                result = session.add_current_track(playlist)
                return jsonify({'resolution': None, 'ingestion': _ingestion_json(result)}), \
                    _INGESTION_STATUS[result.outcome]

            phrase = _text(body.get('phrase'))
            if phrase is None:
                return jsonify({'error': 'Missing phrase or playlist'}), 400

            resolution, result = session.add_to_spoken_playlist(phrase)
            if result is None:
                status = 401 if resolution.status == ResolutionStatus.UNAUTHORIZED else 200
                return jsonify({'resolution': _resolution_json(resolution), 'ingestion': None}), status
            return jsonify({
                'resolution': _resolution_json(resolution),
                'ingestion': _ingestion_json(result),
            }), _INGESTION_STATUS[result.outcome]

        @self.app.route('/playlists', methods=['GET'])
        def playlists():
            """Playlist options, optionally narrowed by ?search=."""
            search = request.args.get('search') or None
            options = self.new_session().playlist_options(search)
            return jsonify({'playlists': [_playlist_json(p) for p in options]}), 200

        @self.app.route('/aliases', methods=['GET'])
        def list_aliases():
            return jsonify({'aliases': self.alias_store().load()}), 200

        @self.app.route('/aliases/<name>', methods=['PUT'])
        def put_alias(name):
            playlist_id = _text(_json_body().get('playlist_id'))
            if playlist_id is None:
                return jsonify({'error': 'Missing playlist_id'}), 400
            try:
                saved = self.alias_store().set_alias(name, playlist_id)
            except ValueError as e:
                return jsonify({'error': str(e)}), 400
            if not saved:
                return jsonify({'error': 'Failed to save aliases'}), 500
            return jsonify({'alias': name, 'playlist_id': playlist_id}), 200

        @self.app.route('/aliases/<name>', methods=['DELETE'])
        def delete_alias(name):
            if name not in self.alias_store().load():
                return jsonify({'error': f"Unknown alias '{name}'"}), 404
            if not self.alias_store().remove_alias(name):
                return jsonify({'error': 'Failed to save aliases'}), 500
            return '', 204

        @self.app.route('/', methods=['GET'])
        def root():
            """Root endpoint with basic info."""
            return jsonify({
                'service': 'songdrop HTTP Interface',
                'version': self.version,
                'endpoints': {
                    'health': '/health',
                    'resolve': '/resolve',
                    'add': '/add',
                    'playlists': '/playlists',
                    'aliases': '/aliases'
                }
            }), 200

    def run(self) -> None:
        """Run the HTTP server."""
        self.logger.info(f"Starting songdrop HTTP server on {self.host}:{self.port}")
        self.app.run(
            host=self.host,
            port=self.port,
            debug=self.debug
        )


def create_app(session_factory: Optional[Callable[[], Session]] = None,
               alias_store: Optional[FileAliasStore] = None) -> Flask:
    """Create Flask app (used by tests and WSGI servers)."""
    server = HTTPServer(session_factory=session_factory, alias_store=alias_store)
    return server.app


def main():
    """Run the HTTP server with settings from the environment."""
    load_dotenv()
    try:
        host, port = ConfigManager().load_server_address()
    except ConfigError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)
    HTTPServer(host=host, port=port).run()


if __name__ == '__main__':
    main()
