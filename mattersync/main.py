"""mattersync entry point.

``--sync`` is a one-shot run suitable for cron or launchd; ``--watch`` keeps
running and syncs whenever the configured interval has elapsed.
"""

import logging
import sys
from pathlib import Path

import requests

log = logging.getLogger("mattersync")

_VERSION = "0.3.0"

_HELP = """\
Usage: mattersync <command>

  mattersync --sync       Sync Matter highlights into your vault now
  mattersync --watch      Keep running and sync on the configured interval
  mattersync --login      Connect your Matter account
  mattersync --status     Show sync settings and state

Setup:
  --vault PATH                 Vault (or plain folder) to write notes into
  --folder NAME                Move synced notes to another folder in the vault
  --interval MINUTES           How often --watch syncs (0 = manual only)
  --notify always|error|never  When to show desktop notifications
  --recreate-missing on|off    Re-create notes you deleted from the vault
  --template-metadata FILE     Custom metadata template ("-" resets)
  --template-highlight FILE    Custom highlight template ("-" resets)

Options:
  -h, --help            Show this help
  -V, --version         Show version

Advanced:
  --unlock              Clear the syncing flag left by a crashed sync
"""


def _arg_after(flag: str) -> str:
    idx = sys.argv.index(flag)
    if idx + 1 >= len(sys.argv):
        print(f"Error: {flag} needs a value. See 'mattersync --help'.")
        sys.exit(2)
    return sys.argv[idx + 1]


def _vault():
    from mattersync import config
    from mattersync.vault import Vault

    config.ensure_loaded()
    return Vault(config.OBSIDIAN_VAULT_PATH)


def _status() -> None:
    from mattersync.state import State

    state = State()
    print()
    print(f"  Signed in:        {'yes' if state.access_token else 'no'}")
    print(f"  Setup complete:   {'yes' if state.has_completed_initial_setup else 'no'}")
    print(f"  Sync folder:      {state.data_dir}")
    interval = state.sync_interval
    print(f"  Sync interval:    {f'{interval} min' if interval > 0 else 'manual'}")
    print(f"  Last sync:        {state.last_sync or 'never'}")
    print(f"  Syncing now:      {'yes' if state.is_syncing else 'no'}")
    print(f"  Synced entries:   {len(state.known_record_ids())}")
    print(f"  Notifications:    {state.notify_on_sync}")
    print(f"  Recreate missing: {'on' if state.recreate_if_missing else 'off'}")
    print(f"  Custom templates: "
          f"metadata={'yes' if state.metadata_template else 'no'}, "
          f"highlight={'yes' if state.highlight_template else 'no'}")
    print()


def _set_template(flag: str, attr: str) -> None:
    from mattersync.errors import TemplateError
    from mattersync.rendering import check_template
    from mattersync.state import State

    value = _arg_after(flag)
    if value == "-":
        template = None
    else:
        template = Path(value).expanduser().read_text(encoding="utf-8")
        # Fail early on syntax errors rather than during the next sync
        try:
            check_template(template)
        except TemplateError as e:
            print(f"Error: {e}")
            return

    state = State()
    setattr(state, attr, template)
    state.save()
    print(f"{'Reset' if template is None else 'Updated'} {attr.replace('_', ' ')}.")


def _update_settings() -> bool:
    """Apply setting flags. Returns True if any were given."""
    from mattersync.state import State

    handled = False

    if "--interval" in sys.argv:
        value = _arg_after("--interval")
        if not value.isdigit():
            print("Error: --interval takes a number of minutes.")
            sys.exit(2)
        state = State()
        state.sync_interval = int(value)
        state.save()
        print(f"Sync interval set to {value} minutes.")
        handled = True

    if "--notify" in sys.argv:
        state = State()
        try:
            state.notify_on_sync = _arg_after("--notify")
        except ValueError as e:
            print(f"Error: {e}")
            sys.exit(2)
        state.save()
        print(f"Notifications: {state.notify_on_sync}.")
        handled = True

    if "--recreate-missing" in sys.argv:
        value = _arg_after("--recreate-missing").lower()
        if value not in ("on", "off"):
            print("Error: --recreate-missing takes 'on' or 'off'.")
            sys.exit(2)
        state = State()
        state.recreate_if_missing = value == "on"
        state.save()
        print(f"Recreate missing notes: {value}.")
        handled = True

    if "--template-metadata" in sys.argv:
        _set_template("--template-metadata", "metadata_template")
        handled = True

    if "--template-highlight" in sys.argv:
        _set_template("--template-highlight", "highlight_template")
        handled = True

    return handled


def main():
    if "--help" in sys.argv or "-h" in sys.argv:
        print(_HELP)
        return

    if "--version" in sys.argv or "-V" in sys.argv:
        print(f"mattersync {_VERSION}")
        return

    from mattersync import config

    config.setup_logging()

    if "--vault" in sys.argv:
        vault_path = Path(_arg_after("--vault")).expanduser().resolve()
        if not vault_path.is_dir():
            print(f"Error: {vault_path} is not a folder.")
            return
        config.save_to_env("OBSIDIAN_VAULT_PATH", str(vault_path))
        print(f"Vault set to {vault_path}")
        return

    if "--login" in sys.argv:
        from mattersync.auth import login_interactive
        from mattersync.state import State

        try:
            login_interactive(State())
        except requests.exceptions.RequestException as e:
            print(f"\n  Could not reach Matter: {e}\n")
        return

    if "--status" in sys.argv:
        _status()
        return

    if "--unlock" in sys.argv:
        from mattersync.state import State

        state = State()
        state.is_syncing = False
        state.save()
        print("Syncing flag cleared.")
        return

    if _update_settings():
        return

    if "--folder" in sys.argv:
        from mattersync.relocate import move_data_dir
        from mattersync.state import State

        if move_data_dir(State(), _vault(), _arg_after("--folder")):
            print("Sync folder updated.")
        else:
            print("Sync folder unchanged. See the log above for details.")
        return

    from mattersync import scheduler
    from mattersync.state import State
    from mattersync.sync import SyncStatus

    vault = _vault()
    state = State()

    if "--watch" in sys.argv:
        log.info("Watching for new highlights every %ds", scheduler.LOOP_SYNC_INTERVAL)
        try:
            scheduler.run_forever(state, vault)
        except KeyboardInterrupt:
            log.info("Stopped")
        return

    result = scheduler.sync_now(state, vault)
    if result.status is SyncStatus.SKIPPED:
        if not state.access_token:
            print("\n  Not signed in. Run 'mattersync --login' first.\n")
        else:
            print(
                "\n  Another sync is running. If a previous sync crashed,"
                "\n  run 'mattersync --unlock' and try again.\n"
            )
    elif result.status is SyncStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
