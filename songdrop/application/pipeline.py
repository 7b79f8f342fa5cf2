import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from songdrop.application.duplicates import DuplicateGuard
from songdrop.crosscutting.logging import CorrelationContext, log_ingestion
from songdrop.domain.entities import Playlist, Track
from songdrop.domain.errors import RemoteFailure, Unauthorized
from songdrop.domain.ports import AppendCapability, AuthorizationState, PlaybackSource


logger = logging.getLogger(__name__)


class IngestionOutcome(str, Enum):
    SUCCESS = "success"
    UNAUTHORIZED = "unauthorized"
    NO_ACTIVE_TRACK = "no_active_track"
    DUPLICATE = "duplicate"
    FAILURE = "failure"


@dataclass(frozen=True)
class IngestionResult:
    """Result of adding the currently playing track to a playlist."""

    outcome: IngestionOutcome
    track_name: Optional[str] = None
    playlist_name: Optional[str] = None
    snapshot_id: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == IngestionOutcome.SUCCESS


def _failure_message(error: Exception) -> str:
    if isinstance(error, RemoteFailure):
        return error.message
    return str(error) or type(error).__name__


class IngestionPipeline:
    """Adds the currently playing track to a resolved playlist.

    Linear, no retries: authorization -> playback lookup -> duplicate check
    -> append. The first stage that does not succeed decides the outcome.
    """

    def __init__(self,
                 authorization: AuthorizationState,
                 playback: PlaybackSource,
                 appender: AppendCapability,
                 duplicate_guard: DuplicateGuard):
        """Initialize the pipeline.

        Args:
            authorization: Gate checked before any remote call
            playback: Source of the currently playing track
            appender: Mutating append call
            duplicate_guard: Presence check, bypassed when it allows duplicates
        """
        self.authorization = authorization
        self.playback = playback
        self.appender = appender
        self.duplicate_guard = duplicate_guard

    def add_current_track(self, playlist: Optional[Playlist]) -> IngestionResult:
        """Run the pipeline against a target playlist.

        Args:
            playlist: Resolved target; None is treated like a closed gate

        Returns:
            IngestionResult carrying the terminal outcome
        """
        if not self.authorization.is_authorized or playlist is None or not playlist.id or not playlist.uri:
            logger.warning("Unauthorized or target playlist missing")
            return IngestionResult(outcome=IngestionOutcome.UNAUTHORIZED)

        with CorrelationContext(playlist_id=playlist.id):
            result = self._run(playlist)

        log_ingestion(logger, playlist.id, result.outcome.value,
                      track=result.track_name, snapshot_id=result.snapshot_id)
        return result

    def _run(self, playlist: Playlist) -> IngestionResult:
        with CorrelationContext(stage='playback'):
            try:
                track: Optional[Track] = self.playback.current_track()
            except Unauthorized:
                return IngestionResult(outcome=IngestionOutcome.UNAUTHORIZED, playlist_name=playlist.name)
            except Exception as e:
                logger.error(f"Current playback failure: {e}")
                return self._failure(playlist, None, e)

        if track is None:
            logger.info("Nothing is playing")
            return IngestionResult(outcome=IngestionOutcome.NO_ACTIVE_TRACK, playlist_name=playlist.name)

        if not self.duplicate_guard.allow_duplicates:
            with CorrelationContext(stage='duplicate_check'):
                try:
                    present = self.duplicate_guard.contains_track(playlist.ref, track.id)
                except Unauthorized:
                    return IngestionResult(outcome=IngestionOutcome.UNAUTHORIZED, playlist_name=playlist.name)
                except Exception as e:
                    logger.error(f"Duplicate check failure: {e}")
                    return self._failure(playlist, track, e)

            if present:
                logger.info(f"Track {track.id} already in playlist {playlist.id}")
                return IngestionResult(outcome=IngestionOutcome.DUPLICATE,
                                       track_name=track.name,
                                       playlist_name=playlist.name)

        with CorrelationContext(stage='append'):
            try:
                snapshot_id = self.appender.append(playlist.ref, track)
            except Unauthorized:
                return IngestionResult(outcome=IngestionOutcome.UNAUTHORIZED, playlist_name=playlist.name)
            except Exception as e:
                logger.error(f"Add to playlist failure: {e}")
                return self._failure(playlist, track, e)

        logger.info(f"Added track {track.id} to playlist {playlist.id}, snapshot id: {snapshot_id}")
        return IngestionResult(outcome=IngestionOutcome.SUCCESS,
                               track_name=track.name,
                               playlist_name=playlist.name,
                               snapshot_id=snapshot_id)

    def _failure(self, playlist: Playlist, track: Optional[Track], error: Exception) -> IngestionResult:
        return IngestionResult(outcome=IngestionOutcome.FAILURE,
                               track_name=track.name if track else None,
                               playlist_name=playlist.name,
                               message=_failure_message(error))
