"""Desktop notifications for sync progress and failures.

Best-effort: shown via terminal-notifier or osascript on macOS and
notify-send on Linux, and only logged elsewhere. Nothing here raises.
"""

import logging
import platform
import subprocess
from typing import List

from mattersync.state import NOTIFY_ALWAYS, NOTIFY_ERROR, NOTIFY_NEVER

log = logging.getLogger(__name__)

_TITLE = "Matter"


def _commands(title: str, message: str) -> List[List[str]]:
    """Candidate notifier command lines for this platform, preferred first."""
    system = platform.system()
    if system == "Darwin":
        script = (
            f'display notification "{_escape(message)}" '
            f'with title "{_escape(title)}"'
        )
        return [
            ["terminal-notifier", "-title", title, "-message", message,
             "-group", "mattersync"],
            ["osascript", "-e", script],
        ]
    if system == "Linux":
        return [["notify-send", "--app-name=mattersync", title, message]]
    return []


def send(title: str, message: str) -> None:
    """Show a desktop notification. Silently no-ops where unsupported."""
    commands = _commands(title, message)
    if not commands:
        log.debug("Notifications not supported on %s, skipping", platform.system())
        return

    for cmd in commands:
        try:
            subprocess.run(cmd, capture_output=True, timeout=10)
            return
        except FileNotFoundError:
            continue
        except Exception as e:
            log.debug("Failed to send notification: %s", e)
            return
    log.debug("No notifier found (tried %s)", ", ".join(c[0] for c in commands))


def notice(message: str, preference: str = NOTIFY_ALWAYS, error: bool = False) -> None:
    """Show a notice if the user's notification preference allows it.

    ``always`` shows everything, ``error`` only failures and warnings,
    ``never`` nothing. The message is logged either way.
    """
    if error:
        log.warning("%s", message)
    else:
        log.info("%s", message)

    if preference == NOTIFY_NEVER:
        return
    if preference == NOTIFY_ERROR and not error:
        return
    send(_TITLE, message)


def _escape(s: str) -> str:
    """Escape for AppleScript string."""
    return s.replace("\\", "\\\\").replace('"', '\\"')
