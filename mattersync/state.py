"""Persistent sync state.

Holds credentials, the sync watermark, the syncing flag, the file name to
record id map, and user settings. The whole object is stored as one JSON
document and written atomically, so a crash mid-write never leaves a torn
file. Other devices may write the same file through a file-sync layer, so
callers reload before deciding anything that depends on it.
"""

import copy
import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from mattersync import config

STATE_PATH = config.STATE_PATH

NOTIFY_ALWAYS = "always"
NOTIFY_ERROR = "error"
NOTIFY_NEVER = "never"

# Keys and defaults are shared with other installations reading this file.
_DEFAULT_STATE = {
    "accessToken": None,
    "refreshToken": None,
    "qrSessionToken": None,
    "dataDir": "Matter",
    "syncInterval": 60,
    "syncOnLaunch": True,
    "notifyOnSync": NOTIFY_ALWAYS,
    "hasCompletedInitialSetup": False,
    "lastSync": None,
    "isSyncing": False,
    "contentMap": {},
    "recreateIfMissing": True,
    "metadataTemplate": None,
    "highlightTemplate": None,
}


def _load_raw() -> Dict[str, Any]:
    data = copy.deepcopy(_DEFAULT_STATE)
    if STATE_PATH.exists():
        data.update(json.loads(STATE_PATH.read_text(encoding="utf-8")))
    return data


def _save_raw(data: Dict[str, Any]) -> None:
    """Write state atomically: write to temp file, then rename."""
    STATE_PATH.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        dir=STATE_PATH.parent, prefix=".state_", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp, STATE_PATH)
    except BaseException:
        os.unlink(tmp)
        raise


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class State:
    """Interface for reading and writing the persisted sync state."""

    def __init__(self) -> None:
        self._data = _load_raw()

    def reload(self) -> None:
        """Discard in-memory values and re-read the file."""
        self._data = _load_raw()

    def save(self) -> None:
        _save_raw(self._data)

    # -- Credentials --

    @property
    def access_token(self) -> Optional[str]:
        return self._data["accessToken"]

    @access_token.setter
    def access_token(self, token: Optional[str]) -> None:
        self._data["accessToken"] = token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._data["refreshToken"]

    @refresh_token.setter
    def refresh_token(self, token: Optional[str]) -> None:
        self._data["refreshToken"] = token

    @property
    def qr_session_token(self) -> Optional[str]:
        return self._data["qrSessionToken"]

    @qr_session_token.setter
    def qr_session_token(self, token: Optional[str]) -> None:
        self._data["qrSessionToken"] = token

    @property
    def has_completed_initial_setup(self) -> bool:
        return bool(self._data["hasCompletedInitialSetup"])

    @has_completed_initial_setup.setter
    def has_completed_initial_setup(self, value: bool) -> None:
        self._data["hasCompletedInitialSetup"] = value

    # -- Settings --

    @property
    def data_dir(self) -> str:
        return self._data["dataDir"] or _DEFAULT_STATE["dataDir"]

    @data_dir.setter
    def data_dir(self, value: str) -> None:
        self._data["dataDir"] = value

    @property
    def sync_interval(self) -> int:
        """Minutes between automatic syncs. 0 means manual only."""
        return int(self._data["syncInterval"])

    @sync_interval.setter
    def sync_interval(self, minutes: int) -> None:
        self._data["syncInterval"] = minutes

    @property
    def sync_on_launch(self) -> bool:
        return bool(self._data["syncOnLaunch"])

    @sync_on_launch.setter
    def sync_on_launch(self, value: bool) -> None:
        self._data["syncOnLaunch"] = value

    @property
    def notify_on_sync(self) -> str:
        return self._data["notifyOnSync"]

    @notify_on_sync.setter
    def notify_on_sync(self, value: str) -> None:
        if value not in (NOTIFY_ALWAYS, NOTIFY_ERROR, NOTIFY_NEVER):
            raise ValueError(f"Unknown notification preference: {value}")
        self._data["notifyOnSync"] = value

    @property
    def recreate_if_missing(self) -> bool:
        return bool(self._data["recreateIfMissing"])

    @recreate_if_missing.setter
    def recreate_if_missing(self, value: bool) -> None:
        self._data["recreateIfMissing"] = value

    @property
    def metadata_template(self) -> Optional[str]:
        return self._data["metadataTemplate"]

    @metadata_template.setter
    def metadata_template(self, template: Optional[str]) -> None:
        self._data["metadataTemplate"] = template

    @property
    def highlight_template(self) -> Optional[str]:
        return self._data["highlightTemplate"]

    @highlight_template.setter
    def highlight_template(self, template: Optional[str]) -> None:
        self._data["highlightTemplate"] = template

    # -- Sync bookkeeping --

    @property
    def is_syncing(self) -> bool:
        return bool(self._data["isSyncing"])

    @is_syncing.setter
    def is_syncing(self, value: bool) -> None:
        self._data["isSyncing"] = value

    @property
    def last_sync(self) -> Optional[str]:
        return self._data["lastSync"]

    @property
    def last_sync_at(self) -> Optional[datetime]:
        return parse_timestamp(self._data["lastSync"])

    def touch_last_sync(self, when: Optional[datetime] = None) -> None:
        when = when or datetime.now(timezone.utc)
        self._data["lastSync"] = when.isoformat()

    # -- Content map --

    @property
    def content_map(self) -> Dict[str, str]:
        return self._data["contentMap"]

    def record_entry(self, file_name: str, record_id: str) -> None:
        self._data["contentMap"][file_name] = record_id

    def known_record_ids(self) -> Set[str]:
        return set(self._data["contentMap"].values())
