import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict


logger = logging.getLogger(__name__)


class FileAliasStore:
    """Alias name -> playlist id mapping persisted as a JSON object on disk.

    Loading never fails: a missing, unreadable or malformed file yields an
    empty mapping. Saving reports failure through its return value.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to deserialize aliases from {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring aliases file {self.path}: expected a JSON object")
            return {}

        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def save(self, aliases: Dict[str, str]) -> bool:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write then rename so a crash never leaves a half-written file
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(dict(aliases), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (IOError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save aliases to {self.path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            return False

        logger.debug(f"Saved {len(aliases)} aliases to {self.path}")
        return True

    def set_alias(self, alias_name: str, playlist_id: str) -> bool:
        """Create or re-point an alias."""
        alias_name = (alias_name or '').strip()
        if not alias_name or not playlist_id:
            raise ValueError("alias name and playlist id are required")
        aliases = self.load()
        aliases[alias_name] = playlist_id
        return self.save(aliases)

    def remove_alias(self, alias_name: str) -> bool:
        """Delete an alias. Returns False when it did not exist or could not be saved."""
        aliases = self.load()
        if aliases.pop(alias_name, None) is None:
            return False
        return self.save(aliases)
