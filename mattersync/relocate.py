"""Move synced notes to a different folder in the vault."""

import logging

from mattersync import notify
from mattersync import vault as vault_mod
from mattersync.errors import FileSystemError
from mattersync.state import State
from mattersync.vault import Vault

log = logging.getLogger(__name__)


def clean_folder_name(value: str) -> str:
    return vault_mod.normalize_path(value.strip().strip("/"))


def move_data_dir(state: State, vault: Vault, new_dir: str) -> bool:
    """Move every mapped note from the current data folder to ``new_dir``.

    Syncing is blocked while files move. Files are copied first and the
    originals deleted afterwards; if anything fails the copies already made
    stay where they are and the data folder setting is left unchanged.
    Returns True when the data folder now points at ``new_dir``.
    """
    new_dir = clean_folder_name(new_dir)
    state.reload()
    old_dir = state.data_dir
    preference = state.notify_on_sync

    if new_dir == old_dir:
        return True

    if state.is_syncing:
        notify.notice(
            "Wait for the current sync to end and try again.", preference, error=True,
        )
        return False

    # Temporarily disable sync
    state.is_syncing = True
    state.save()

    try:
        vault.mkdir(new_dir)

        names = [n for n in vault.list(old_dir) if n in state.content_map]
        for name in names:
            vault.copy(vault_mod.join(old_dir, name), vault_mod.join(new_dir, name))
        for name in names:
            vault.remove(vault_mod.join(old_dir, name))

        # If the old data folder is empty, go ahead and remove it as well
        if old_dir != "/" and vault.is_empty(old_dir):
            vault.rmdir(old_dir)
    except FileSystemError as e:
        log.exception("Could not move notes from %s to %s", old_dir, new_dir)
        state.is_syncing = False
        state.save()
        notify.notice(str(e), preference, error=True)
        return False

    state.data_dir = new_dir
    state.is_syncing = False
    state.save()
    log.info("Moved %d notes from %s to %s", len(names), old_dir, new_dir)
    notify.notice("Sync folder updated", preference)
    return True
