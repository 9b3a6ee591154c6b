"""
Per-device player preferences: stem volumes, the one-time warning flag and
the anonymous listener id used for random-track requests.
"""

import json
import random
import string
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from shared.constants import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_VOLUME,
    PREF_ANONYMOUS_ID,
    PREF_INSTRUMENT_VOLUME,
    PREF_VOCAL_VOLUME,
    PREF_WARNING_SHOWN,
    PREFERENCES_FILENAME,
)

_ID_ALPHABET = string.ascii_lowercase + string.digits


class Preferences:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else Path(DEFAULT_CONFIG_DIR).expanduser() / PREFERENCES_FILENAME
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8")) or {}
        except (json.JSONDecodeError, OSError):
            return {}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._save()

    def anonymous_id(self) -> str:
        """Return the persisted listener id, creating `user_xxxxxxx` on first use."""
        with self._lock:
            anon_id = self._data.get(PREF_ANONYMOUS_ID)
            if not anon_id:
                anon_id = "user_" + "".join(random.choices(_ID_ALPHABET, k=7))
                self._data[PREF_ANONYMOUS_ID] = anon_id
                self._save()
            return anon_id

    def volume(self, stem: str) -> int:
        key = PREF_VOCAL_VOLUME if stem == "vocal" else PREF_INSTRUMENT_VOLUME
        return int(self._data.get(key, DEFAULT_VOLUME))

    def set_volume(self, stem: str, level: int) -> None:
        key = PREF_VOCAL_VOLUME if stem == "vocal" else PREF_INSTRUMENT_VOLUME
        self.set(key, max(0, min(100, int(level))))

    @property
    def warning_shown(self) -> bool:
        return bool(self._data.get(PREF_WARNING_SHOWN, False))

    def mark_warning_shown(self) -> None:
        self.set(PREF_WARNING_SHOWN, True)
