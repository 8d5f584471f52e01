"""Sync Matter highlights into the vault.

One run pages through the whole highlights feed, then handles entries
oldest first:

  - a new entry gets a fresh note rendered from the templates
  - an entry whose note exists gets any highlights created since the last
    successful sync appended to the end of the note
  - an entry whose note was deleted is recreated only if the user opted in

The persisted ``isSyncing`` flag keeps runs from overlapping. It is only
cooperative: the state file may be shared with other devices, so the state
is reloaded before each entry and entries that another device materialized
during this run are left for the next run.

An entry whose template fails is skipped. A new note is then retried on the
next run, but highlights that failed to append are not: the sync watermark
moves past them, so they are only counted and logged.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Set

from mattersync import api
from mattersync import naming
from mattersync import notify
from mattersync import vault as vault_mod
from mattersync.api import Annotation, FeedPage, FeedRecord
from mattersync.errors import AuthError, TemplateError
from mattersync.rendering import Renderer
from mattersync import state as state_mod
from mattersync.state import State
from mattersync.vault import Vault

log = logging.getLogger(__name__)


class SyncStatus(Enum):
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SyncResult:
    status: SyncStatus = SyncStatus.SKIPPED
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    not_recreated: int = 0
    conflicts: int = 0
    template_failures: List[str] = field(default_factory=list)
    lost_highlights: int = 0
    error: Optional[Exception] = None


class Syncer:
    """Runs sync passes for one vault against one persisted state."""

    def __init__(self, state: State, vault: Vault) -> None:
        self.state = state
        self.vault = vault

    def sync(self) -> SyncResult:
        """Run one sync pass.

        Network, vault and template failures are reported in the result and
        never raised. Returns a SKIPPED result without doing anything when
        another sync is in flight or no access token is stored, and a FAILED
        one when the state file cannot be read. An error while writing the
        state file back after the run propagates, since the syncing flag can
        then no longer be trusted.
        """
        # The state file can change via multiple device sync. Fetch a fresh
        # copy in case another sync is happening elsewhere.
        try:
            self.state.reload()
        except (OSError, ValueError) as e:
            log.exception("Could not read sync state from %s", state_mod.STATE_PATH)
            notify.notice(
                "There was a problem reading the Matter sync state.",
                error=True,
            )
            return SyncResult(status=SyncStatus.FAILED, error=e)

        if self.state.is_syncing:
            log.info("A sync is already running, skipping")
            return SyncResult()
        if not self.state.access_token:
            log.info("Not signed in to Matter, skipping sync")
            return SyncResult()

        self.state.is_syncing = True
        self.state.save()

        preference = self.state.notify_on_sync
        run_started = datetime.now(timezone.utc)
        result = SyncResult()

        try:
            notify.notice("Syncing with Matter", preference)
            self._page_annotations(result)
            self.state.touch_last_sync(run_started)
            result.status = SyncStatus.SUCCESS
        except Exception as e:
            log.exception("Sync with Matter failed")
            result.status = SyncStatus.FAILED
            result.error = e
        finally:
            self.state.is_syncing = False
            self.state.save()

        if result.status is SyncStatus.FAILED:
            if isinstance(result.error, AuthError):
                message = "Unable to sync with Matter, please sign in again."
            else:
                message = "There was a problem syncing with Matter, try again later."
            notify.notice(message, preference, error=True)
        elif result.template_failures:
            count = len(result.template_failures)
            notify.notice(
                f"Synced with Matter, but {count} "
                f"{'entry' if count == 1 else 'entries'} could not be rendered. "
                "Check your templates.",
                preference, error=True,
            )
        else:
            notify.notice("Finished syncing with Matter", preference)

        log.info(
            "Sync %s: %d created, %d updated, %d unchanged, %d not recreated, "
            "%d left for next run, %d template failures, %d highlights not appended",
            result.status.value, result.created, result.updated,
            result.unchanged, result.not_recreated, result.conflicts,
            len(result.template_failures), result.lost_highlights,
        )
        return result

    # -- Feed paging --

    def _page_annotations(self, result: SyncResult) -> None:
        # Baseline for spotting entries materialized elsewhere during this run
        initial_ids = self.state.known_record_ids()

        url: Optional[str] = api.ENDPOINTS["HIGHLIGHTS_FEED"]
        records: List[FeedRecord] = []

        # Load all feed items new to old.
        while url is not None:
            page = self._authed_fetch(url)
            records.extend(page.records)
            url = page.next_url

        # Reverse the feed items so that chronological ordering is preserved.
        records.reverse()
        log.info("Fetched %d entries from Matter", len(records))

        renderer = Renderer(
            self.state.metadata_template, self.state.highlight_template,
        )
        for record in records:
            self._handle_feed_entry(record, initial_ids, renderer, result)

    def _authed_fetch(self, url: str) -> FeedPage:
        try:
            return api.fetch_page(url, self.state.access_token)
        except AuthError:
            log.info("Matter access token rejected, refreshing")
            self._refresh_token_exchange()
            return api.fetch_page(url, self.state.access_token)

    def _refresh_token_exchange(self) -> None:
        access_token, refresh_token = api.refresh_access_token(
            self.state.refresh_token,
        )
        self.state.access_token = access_token
        if refresh_token:
            self.state.refresh_token = refresh_token
        self.state.save()
        log.info("Refreshed Matter access token")

    # -- Per-entry reconciliation --

    def _handle_feed_entry(
        self,
        record: FeedRecord,
        initial_ids: Set[str],
        renderer: Renderer,
        result: SyncResult,
    ) -> None:
        self.state.reload()
        current_ids = self.state.known_record_ids()
        if record.id not in initial_ids and record.id in current_ids:
            log.info(
                "'%s' was synced by another device during this run, "
                "leaving it for the next run", record.title,
            )
            result.conflicts += 1
            return

        data_dir = self.state.data_dir
        if not self.vault.exists(data_dir):
            self.vault.mkdir(data_dir)

        name = naming.resolve_name(
            self.vault, data_dir, self.state.content_map, record.title, record.id,
        )
        path = vault_mod.join(data_dir, name)

        pending = 0
        try:
            if self.vault.exists(path):
                content = self.vault.read(path)
                new_annotations = self._new_annotations(
                    record, self.state.last_sync_at,
                )
                pending = len(new_annotations)
                new_content = self._append_annotations(
                    content, new_annotations, renderer,
                )
                if new_content != content:
                    self.vault.write(path, new_content)
                    result.updated += 1
                    log.info("Appended new highlights: %s", path)
                else:
                    result.unchanged += 1
            elif record.id in current_ids and not self.state.recreate_if_missing:
                log.info("Not recreating deleted note: %s", path)
                result.not_recreated += 1
            else:
                self.vault.write(path, renderer.render_entry(record))
                result.created += 1
                log.info("Created note: %s", path)
        except TemplateError as e:
            log.warning("Could not render '%s', skipping: %s", record.title, e)
            result.template_failures.append(record.title)
            if pending:
                # lastSync moves past these, so later runs will not append them
                log.warning(
                    "%d new highlights were not appended to %s and will not be "
                    "retried", pending, path,
                )
                result.lost_highlights += pending
            return

        self.state.record_entry(name, record.id)
        self.state.save()

    def _new_annotations(
        self, record: FeedRecord, after: Optional[datetime],
    ) -> List[Annotation]:
        """Highlights created after ``after``. Undated ones never qualify."""
        return [
            a for a in record.annotations
            if a.created_date is not None
            and (after is None or a.created_date > after)
        ]

    def _append_annotations(
        self, content: str, new_annotations: List[Annotation], renderer: Renderer,
    ) -> str:
        """Return content with ``new_annotations`` appended.

        Returns content unchanged when there is nothing new.
        """
        if not new_annotations:
            return content

        return content.rstrip() + "\n" + renderer.render_annotations(new_annotations)
