"""When to sync: on launch, on a timer, or on demand."""

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from mattersync import notify
from mattersync.state import State
from mattersync.sync import SyncResult, Syncer
from mattersync.vault import Vault

log = logging.getLogger(__name__)

# Seconds between checks of whether a sync is due.
LOOP_SYNC_INTERVAL = 60

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def initial_sync(state: State, vault: Vault) -> Optional[SyncResult]:
    """Startup hook. Clears a stale syncing flag, then syncs if set up to.

    A process that died mid-sync leaves ``isSyncing`` set; this is the only
    place it is reset, so call it once per process start.
    """
    state.reload()
    if state.is_syncing:
        log.warning("Clearing syncing flag left by an interrupted sync")
    state.is_syncing = False
    state.save()

    if not (state.access_token and state.has_completed_initial_setup):
        notify.notice(
            "Finish setting up Matter: run 'mattersync --login'",
            state.notify_on_sync,
        )
        return None

    if not state.sync_on_launch:
        return None
    return Syncer(state, vault).sync()


def is_due(state: State, now: Optional[datetime] = None) -> bool:
    """Return True if an automatic sync should start now."""
    if not (state.access_token and state.has_completed_initial_setup):
        return False
    if state.sync_interval <= 0:
        return False
    now = now or datetime.now(timezone.utc)
    elapsed = (now - (state.last_sync_at or _EPOCH)).total_seconds()
    return elapsed >= state.sync_interval * 60


def loop_check(
    state: State, vault: Vault, now: Optional[datetime] = None,
) -> Optional[SyncResult]:
    """Timer tick: sync if the configured interval has elapsed."""
    state.reload()
    if not is_due(state, now):
        return None
    return Syncer(state, vault).sync()


def sync_now(state: State, vault: Vault) -> SyncResult:
    """Manual trigger. Ignores the interval but not a sync in flight."""
    return Syncer(state, vault).sync()


def run_forever(
    state: State,
    vault: Vault,
    stop_event: Optional[threading.Event] = None,
    interval_s: int = LOOP_SYNC_INTERVAL,
) -> None:
    """Sync on launch, then check every ``interval_s`` seconds until stopped."""
    initial_sync(state, vault)
    stop = stop_event or threading.Event()
    while not stop.wait(interval_s):
        try:
            loop_check(state, vault)
        except Exception:
            log.exception("Scheduled sync check failed")
