import argparse
import json
import logging
import sys
import time
from dataclasses import replace
from typing import List, Optional

from dotenv import load_dotenv

from songdrop.application.pipeline import IngestionOutcome, IngestionResult
from songdrop.application.resolution import ResolutionStatus
from songdrop.application.session import Session
from songdrop.crosscutting.config import ConfigError, ConfigManager
from songdrop.crosscutting.logging import setup_logging
from songdrop.domain.entities import Playlist
from songdrop.domain.errors import RemoteFailure, Unauthorized
from songdrop.interfaces.wiring import create_alias_store, create_spotify_session


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NEEDS_INPUT = 2
EXIT_UNAUTHORIZED = 3

logger = logging.getLogger(__name__)


class CLI:
    """Command Line Interface for songdrop."""

    def __init__(self, session_factory=None):
        """Initialize CLI.

        Args:
            session_factory: Callable (config, args) -> Session; defaults to the Spotify wiring
        """
        self.parser = self._create_parser()
        self._session_factory = session_factory or self._create_session
        self._start_time = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog='songdrop',
            description='Add the currently playing Spotify track to a playlist named by voice'
        )
        parser.add_argument(
            '--config-dir',
            default=None,
            help='Configuration directory (default: ~/.songdrop)'
        )
        parser.add_argument(
            '--log-level',
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
            default='WARNING',
            help='Set logging level'
        )
        parser.add_argument(
            '--json-logs',
            action='store_true',
            help='Emit structured JSON log lines'
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        resolve_parser = subparsers.add_parser('resolve', help='Resolve a spoken playlist name')
        resolve_parser.add_argument('phrase', help='Spoken playlist name')

        add_parser = subparsers.add_parser('add', help='Add the current track to a playlist')
        add_parser.add_argument('phrase', help='Spoken playlist name')
        add_parser.add_argument(
            '--choice',
            type=int,
            default=None,
            help='Pick the Nth candidate (1-based) when the name is ambiguous'
        )
        add_parser.add_argument(
            '--allow-duplicates',
            action='store_true',
            help='Skip the duplicate check'
        )

        playlists_parser = subparsers.add_parser('playlists', help='List playlists')
        playlists_parser.add_argument('--search', default=None, help='Only playlists matching this term')

        alias_parser = subparsers.add_parser('alias', help='Manage playlist aliases')
        alias_sub = alias_parser.add_subparsers(dest='alias_command')
        alias_sub.add_parser('list', help='Show aliases')
        set_parser = alias_sub.add_parser('set', help='Create or update an alias')
        set_parser.add_argument('name', help='Alias name')
        set_parser.add_argument('playlist_id', help='Target playlist id')
        remove_parser = alias_sub.add_parser('remove', help='Delete an alias')
        remove_parser.add_argument('name', help='Alias name')

        subparsers.add_parser('config', help='Show configuration summary')

        return parser

    def _create_session(self, config: ConfigManager, args: argparse.Namespace) -> Session:
        settings = config.load_settings()
        if getattr(args, 'allow_duplicates', False):
            settings = replace(settings, allow_duplicates=True)
        return create_spotify_session(config, settings=settings)

    @staticmethod
    def _print_playlists(playlists: List[Playlist]) -> None:
        for index, playlist in enumerate(playlists, start=1):
            print(f"{index}. {playlist.name} ({playlist.id})")

    @staticmethod
    def _print_ingestion(result: IngestionResult) -> int:
        if result.outcome == IngestionOutcome.SUCCESS:
            print(f"Added '{result.track_name}' to '{result.playlist_name}'")
            return EXIT_OK
        if result.outcome == IngestionOutcome.DUPLICATE:
            print(f"'{result.track_name}' is already in '{result.playlist_name}'")
            return EXIT_OK
        if result.outcome == IngestionOutcome.NO_ACTIVE_TRACK:
            print("Nothing is playing right now")
            return EXIT_FAILURE
        if result.outcome == IngestionOutcome.UNAUTHORIZED:
            print("Spotify is not authorized; sign in again")
            return EXIT_UNAUTHORIZED
        print(f"Failed to add track: {result.message}")
        return EXIT_FAILURE

    def _resolve(self, session: Session, args: argparse.Namespace) -> int:
        resolution = session.resolve_playlist(args.phrase)
        if resolution.status == ResolutionStatus.UNAUTHORIZED:
            print("Spotify is not authorized; sign in again")
            return EXIT_UNAUTHORIZED
        if resolution.status == ResolutionStatus.NO_MATCH:
            print(f"No playlist matches '{args.phrase}'")
            return EXIT_NEEDS_INPUT
        if resolution.status == ResolutionStatus.AUTO_ACCEPT:
            print(f"{resolution.playlist.name} ({resolution.playlist.id})")
            return EXIT_OK
        print(f"'{args.phrase}' could mean:")
        self._print_playlists(resolution.candidates)
        return EXIT_NEEDS_INPUT

    def _add(self, session: Session, args: argparse.Namespace) -> int:
        resolution = session.resolve_playlist(args.phrase)
        if resolution.status == ResolutionStatus.UNAUTHORIZED:
            print("Spotify is not authorized; sign in again")
            return EXIT_UNAUTHORIZED
        if resolution.status == ResolutionStatus.NO_MATCH:
            print(f"No playlist matches '{args.phrase}'")
            return EXIT_NEEDS_INPUT

        target = resolution.playlist
        if resolution.status == ResolutionStatus.DISAMBIGUATE:
            choice = args.choice
            if choice is None or not 1 <= choice <= len(resolution.candidates):
                print(f"'{args.phrase}' could mean (re-run with --choice N):")
                self._print_playlists(resolution.candidates)
                return EXIT_NEEDS_INPUT
            target = resolution.candidates[choice - 1]

        return self._print_ingestion(session.add_current_track(target))

    def _playlists(self, session: Session, args: argparse.Namespace) -> int:
        playlists = session.playlist_options(args.search)
        if not playlists:
            print("No playlists found")
            return EXIT_NEEDS_INPUT if args.search else EXIT_OK
        self._print_playlists(playlists)
        return EXIT_OK

    def _alias(self, config: ConfigManager, args: argparse.Namespace) -> int:
        store = create_alias_store(config)
        if args.alias_command == 'set':
            try:
                saved = store.set_alias(args.name, args.playlist_id)
            except ValueError as e:
                print(f"Invalid alias: {e}")
                return EXIT_FAILURE
            if not saved:
                print("Failed to save aliases")
                return EXIT_FAILURE
            print(f"Alias '{args.name}' -> {args.playlist_id}")
            return EXIT_OK
        if args.alias_command == 'remove':
            if not store.remove_alias(args.name):
                print(f"Alias '{args.name}' not removed")
                return EXIT_FAILURE
            print(f"Removed alias '{args.name}'")
            return EXIT_OK

        aliases = store.load()
        if not aliases:
            print("No aliases defined")
        for name, playlist_id in aliases.items():
            print(f"{name} -> {playlist_id}")
        return EXIT_OK

    def _cleanup_resources(self) -> None:
        if self._start_time:
            duration = time.time() - self._start_time
            logger.debug(f"CLI execution time: {duration:.2f}s")

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI and return the exit code."""
        self._start_time = time.time()
        args = self.parser.parse_args(argv)

        if not args.command:
            self.parser.print_help()
            return EXIT_FAILURE

        setup_logging(args.log_level, structured=args.json_logs)

        try:
            config = ConfigManager(args.config_dir)

            if args.command == 'config':
                print(json.dumps(config.get_config_summary(), indent=2))
                return EXIT_OK
            if args.command == 'alias':
                return self._alias(config, args)

            session = self._session_factory(config, args)
            if args.command == 'resolve':
                return self._resolve(session, args)
            if args.command == 'add':
                return self._add(session, args)
            if args.command == 'playlists':
                return self._playlists(session, args)

            self.parser.print_help()
            return EXIT_FAILURE

        except Unauthorized as e:
            print(f"Spotify is not authorized; sign in again ({e})")
            return EXIT_UNAUTHORIZED
        except RemoteFailure as e:
            print(f"Spotify request failed: {e.message}")
            return EXIT_FAILURE
        except ConfigError as e:
            print(f"Configuration error: {e}")
            return EXIT_FAILURE
        except KeyboardInterrupt:
            logger.warning("Operation cancelled by user")
            return 130
        finally:
            self._cleanup_resources()


def main():
    """Main entry point."""
    load_dotenv()
    sys.exit(CLI().run())


if __name__ == '__main__':
    main()
