"""Tests for notification preferences and the desktop notifier."""

from unittest.mock import patch

import pytest


class TestNotice:
    @pytest.mark.parametrize("preference,error,shown", [
        ("always", False, True),
        ("always", True, True),
        ("error", False, False),
        ("error", True, True),
        ("never", False, False),
        ("never", True, False),
    ])
    def test_preference_gates_notifications(self, preference, error, shown):
        from mattersync import notify

        with patch("mattersync.notify.send") as send:
            notify.notice("Finished syncing with Matter", preference, error=error)
        assert send.called is shown

    def test_error_notice_logged_as_warning(self, caplog):
        from mattersync import notify

        with patch("mattersync.notify.send"):
            notify.notice("Sync failed", "never", error=True)
        assert caplog.records[-1].levelname == "WARNING"


class TestSend:
    def test_falls_back_to_osascript_on_macos(self):
        from mattersync import notify

        with patch("mattersync.notify.platform.system", return_value="Darwin"), \
             patch("mattersync.notify.subprocess.run",
                   side_effect=[FileNotFoundError(), None]) as run:
            notify.send("Matter", 'Say "hi"')

        assert run.call_count == 2
        assert run.call_args_list[1].args[0][0] == "osascript"
        assert '\\"hi\\"' in run.call_args_list[1].args[0][2]

    def test_linux_uses_notify_send(self):
        from mattersync import notify

        with patch("mattersync.notify.platform.system", return_value="Linux"), \
             patch("mattersync.notify.subprocess.run") as run:
            notify.send("Matter", "Done")

        cmd = run.call_args.args[0]
        assert cmd[0] == "notify-send"
        assert cmd[-2:] == ["Matter", "Done"]

    def test_unsupported_platform_is_noop(self):
        from mattersync import notify

        with patch("mattersync.notify.platform.system", return_value="Windows"), \
             patch("mattersync.notify.subprocess.run") as run:
            notify.send("Matter", "Done")
        run.assert_not_called()

    def test_missing_notifier_does_not_raise(self):
        from mattersync import notify

        with patch("mattersync.notify.platform.system", return_value="Linux"), \
             patch("mattersync.notify.subprocess.run", side_effect=FileNotFoundError()):
            notify.send("Matter", "Done")
