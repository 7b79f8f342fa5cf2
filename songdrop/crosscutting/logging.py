import json
import logging
import re
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Pattern

# Correlation values attached to every structured log line
session_id_var: ContextVar[Optional[str]] = ContextVar('session_id', default=None)
playlist_id_var: ContextVar[Optional[str]] = ContextVar('playlist_id', default=None)
stage_var: ContextVar[Optional[str]] = ContextVar('stage', default=None)

_CORRELATION_FIELDS = (
    ('sessionId', session_id_var),
    ('playlistId', playlist_id_var),
    ('stage', stage_var),
)


class SecretMasker:
    """Hides Spotify credentials that end up in log messages.

    Matches ``<name>=<value>`` and ``<name>: <value>`` pairs for token-like
    names and keeps only the first and last four characters of the value.
    """

    _SECRET_NAMES = (
        r'spotify_access_token|spotify_refresh_token|access_token|refresh_token'
        r'|client_secret|authorization|bearer|password|secret|token|key|auth'
    )

    def __init__(self, min_length: int = 10):
        self.patterns: List[Pattern] = [
            re.compile(
                r'(?i)(' + self._SECRET_NAMES + r')\s*[:=]\s*["\']?([A-Za-z0-9\-_.]{%d,})["\']?' % min_length
            ),
        ]

    @staticmethod
    def _hide(secret: str) -> str:
        if len(secret) <= 8:
            return '*' * len(secret)
        return secret[:4] + '*' * (len(secret) - 8) + secret[-4:]

    def mask_secrets(self, text: str) -> str:
        if not text:
            return text
        for pattern in self.patterns:
            text = pattern.sub(lambda m: f"{m.group(1)}: {self._hide(m.group(2))}", text)
        return text

    def _mask_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.mask_secrets(value)
        if isinstance(value, dict):
            return self.mask_dict(value)
        if isinstance(value, (list, tuple)):
            return [self._mask_value(item) for item in value]
        return value

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Mask every string found in a nested structure of dicts and lists."""
        if not data:
            return data
        return {key: self._mask_value(value) for key, value in data.items()}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, tagged with the current correlation values."""

    def __init__(self):
        super().__init__()
        self.masker = SecretMasker()

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'ts': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f') + 'Z',
            'level': record.levelname,
            'logger': record.name,
            'message': self.masker.mask_secrets(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for key, var in _CORRELATION_FIELDS:
            value = var.get()
            if value:
                entry[key] = value

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        fields = getattr(record, 'fields', None)
        if fields:
            entry['fields'] = self.masker.mask_dict(fields)

        return json.dumps(entry, ensure_ascii=False)


class CorrelationContext:
    """Sets correlation values for the duration of a ``with`` block.

    Only the values given are set; on exit each is restored to what it was,
    so contexts nest (session -> playlist -> stage).
    """

    def __init__(self, session_id: Optional[str] = None,
                 playlist_id: Optional[str] = None,
                 stage: Optional[str] = None):
        self._values = [
            (session_id_var, session_id),
            (playlist_id_var, playlist_id),
            (stage_var, stage),
        ]
        self._tokens = []

    def __enter__(self):
        self._tokens = [(var, var.set(value)) for var, value in self._values if value is not None]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens = []


def new_session_id() -> str:
    return f"sd_{uuid.uuid4().hex[:12]}"


def setup_logging(level: str = 'INFO',
                  log_file: Optional[str] = None,
                  structured: bool = True) -> logging.Logger:
    """Route the 'songdrop' logger hierarchy to stderr and optionally a file.

    Args:
        level: Level name, e.g. 'DEBUG'
        log_file: Extra file destination
        structured: JSON lines instead of plain text

    Returns:
        The configured 'songdrop' logger
    """
    logger = logging.getLogger('songdrop')
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s [%(name)s] %(message)s')

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def log_with_fields(logger: logging.Logger, level: str, message: str,
                    fields: Optional[Dict[str, Any]] = None, **kwargs):
    """Log a message with structured fields attached to the record."""
    merged = dict(fields or {})
    merged.update(kwargs)
    logger.log(getattr(logging, level.upper()), message, extra={'fields': merged})


def log_resolution(logger: logging.Logger, phrase: str, status: str, candidate_count: int, **kwargs):
    """Record how a spoken playlist name was resolved."""
    with CorrelationContext(stage='resolve'):
        log_with_fields(logger, 'INFO', 'Playlist resolved',
                        phrase=phrase, status=status, candidate_count=candidate_count, **kwargs)


def log_ingestion(logger: logging.Logger, playlist_id: str, outcome: str, **kwargs):
    """Record the terminal outcome of adding the current track."""
    with CorrelationContext(playlist_id=playlist_id, stage='ingest'):
        log_with_fields(logger, 'INFO', 'Ingestion finished', outcome=outcome, **kwargs)


def log_error(logger: logging.Logger, message: str, error: Exception, **kwargs):
    """Record a failure with its type and message as fields."""
    log_with_fields(logger, 'ERROR', f"{message}: {error}",
                    error_type=type(error).__name__, error_message=str(error), **kwargs)
