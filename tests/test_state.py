"""Tests for state management: defaults, reload, atomic writes, content map."""

import json

import pytest


@pytest.fixture(autouse=True)
def isolate_state(tmp_path, monkeypatch):
    """Point state module at a temp directory so tests don't touch real state."""
    import mattersync.state as state_mod

    state_file = tmp_path / "data.json"
    monkeypatch.setattr(state_mod, "STATE_PATH", state_file)
    yield tmp_path


class TestStateBasics:
    def test_fresh_state_has_defaults(self):
        from mattersync.state import State

        s = State()
        assert s.access_token is None
        assert s.refresh_token is None
        assert s.data_dir == "Matter"
        assert s.sync_interval == 60
        assert s.sync_on_launch is True
        assert s.notify_on_sync == "always"
        assert s.has_completed_initial_setup is False
        assert s.last_sync is None
        assert s.is_syncing is False
        assert s.content_map == {}
        assert s.recreate_if_missing is True
        assert s.metadata_template is None
        assert s.highlight_template is None

    def test_save_and_reload(self):
        from mattersync.state import State

        s = State()
        s.access_token = "tok"
        s.touch_last_sync()
        s.record_entry("Title.md", "42")
        s.save()

        s2 = State()
        assert s2.access_token == "tok"
        assert s2.last_sync is not None
        assert s2.content_map == {"Title.md": "42"}

    def test_persists_original_key_names(self):
        from mattersync.state import State, STATE_PATH

        s = State()
        s.is_syncing = True
        s.data_dir = "Reading"
        s.save()

        data = json.loads(STATE_PATH.read_text())
        assert data["isSyncing"] is True
        assert data["dataDir"] == "Reading"
        assert set(data) == {
            "accessToken", "refreshToken", "qrSessionToken", "dataDir",
            "syncInterval", "syncOnLaunch", "notifyOnSync",
            "hasCompletedInitialSetup", "lastSync", "isSyncing", "contentMap",
            "recreateIfMissing", "metadataTemplate", "highlightTemplate",
        }

    def test_missing_keys_get_defaults(self):
        """State written by an older version only has a few keys."""
        from mattersync.state import State, STATE_PATH

        STATE_PATH.write_text(json.dumps({"accessToken": "old", "syncInterval": 720}))
        s = State()
        assert s.access_token == "old"
        assert s.sync_interval == 720
        assert s.content_map == {}
        assert s.recreate_if_missing is True

    def test_unknown_keys_preserved(self):
        from mattersync.state import State, STATE_PATH

        STATE_PATH.write_text(json.dumps({"someFutureSetting": [1, 2]}))
        s = State()
        s.save()
        assert json.loads(STATE_PATH.read_text())["someFutureSetting"] == [1, 2]

    def test_reload_picks_up_external_writes(self):
        from mattersync.state import State

        mine = State()
        other = State()
        other.record_entry("Other.md", "7")
        other.save()

        assert mine.known_record_ids() == set()
        mine.reload()
        assert mine.known_record_ids() == {"7"}

    def test_fresh_states_do_not_share_content_map(self):
        from mattersync.state import State

        a = State()
        a.record_entry("A.md", "1")
        b = State()
        assert b.content_map == {}

    def test_no_temp_files_left_behind(self, tmp_path):
        from mattersync.state import State

        s = State()
        s.save()
        assert [p.name for p in tmp_path.iterdir()] == ["data.json"]


class TestTimestamps:
    def test_last_sync_at_parses_zulu(self):
        from datetime import datetime, timezone
        from mattersync.state import State, STATE_PATH

        STATE_PATH.write_text(json.dumps({"lastSync": "2024-03-01T12:00:00.000Z"}))
        assert State().last_sync_at == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

    def test_naive_timestamp_treated_as_utc(self):
        from datetime import timezone
        from mattersync.state import parse_timestamp

        assert parse_timestamp("2024-03-01T12:00:00").tzinfo == timezone.utc

    def test_empty_timestamp_is_none(self):
        from mattersync.state import parse_timestamp

        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_touch_last_sync_roundtrip(self):
        from datetime import datetime, timezone
        from mattersync.state import State

        when = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        s = State()
        s.touch_last_sync(when)
        s.save()
        assert State().last_sync_at == when


class TestSettings:
    def test_notify_preference_validated(self):
        from mattersync.state import State

        s = State()
        s.notify_on_sync = "error"
        assert s.notify_on_sync == "error"
        with pytest.raises(ValueError):
            s.notify_on_sync = "sometimes"

    def test_empty_data_dir_falls_back_to_default(self):
        from mattersync.state import State, STATE_PATH

        STATE_PATH.write_text(json.dumps({"dataDir": None}))
        assert State().data_dir == "Matter"
