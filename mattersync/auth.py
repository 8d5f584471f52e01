"""One-time pairing with a Matter account.

Flow:
  1. We start a QR login session and show its session token
  2. The user scans it in the Matter app
     (Profile > Settings > Connected Accounts > Obsidian)
  3. We poll the exchange endpoint until tokens arrive
  4. We store the tokens in the sync state
"""

import logging
import time
from typing import Optional, Tuple

import requests

from mattersync import api
from mattersync.state import State

log = logging.getLogger(__name__)

_POLL_ATTEMPTS = 600
_POLL_DELAY = 1  # seconds


def poll_qr_login(
    session_token: str, attempts: int = _POLL_ATTEMPTS,
) -> Optional[Tuple[str, Optional[str]]]:
    """Poll until the session is scanned. Returns (access, refresh) or None."""
    for _ in range(attempts):
        try:
            payload = api.exchange_qr_login(session_token)
        except requests.exceptions.RequestException as e:
            log.debug("QR login exchange failed: %s", e)
            payload = {}
        if payload.get("access_token"):
            return payload["access_token"], payload.get("refresh_token")
        time.sleep(_POLL_DELAY)
    return None


def login_interactive(state: State) -> bool:
    """Interactive pairing flow. Stores tokens in the state on success."""
    print("Matter Login")
    print("=" * 40)
    print()

    session_token = api.trigger_qr_login()
    state.reload()
    state.qr_session_token = session_token
    state.save()

    print("1. Open Matter: Profile > Settings > Connected Accounts > Obsidian")
    print("2. Scan a QR code containing this session token:")
    print()
    print(f"   {session_token}")
    print()
    print("Waiting for confirmation...")

    tokens = poll_qr_login(session_token)
    if tokens is None:
        print("Error: Timed out waiting for the QR code to be scanned.")
        return False

    access_token, refresh_token = tokens
    state.reload()
    state.access_token = access_token
    state.refresh_token = refresh_token
    state.has_completed_initial_setup = True
    state.save()
    print()
    print("Success! Signed in to Matter.")
    return True
