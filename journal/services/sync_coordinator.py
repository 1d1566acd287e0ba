"""Sync Coordinator — local write on every mutation, debounced remote upsert.

State machine exposed through ``status``:

    IDLE     remote sync not configured (or nothing pulled at startup)
    SYNCING  a remote write is pending in the debounce window or in flight
    SAVED    the most recent remote write succeeded
    ERROR    the most recent remote write (or the startup pull) failed

Local writes happen synchronously on every ``notify`` and are never
debounced.  Remote writes are coalesced: each mutation re-arms the debounce
timer and only the latest snapshot is sent when it fires.  There is no
retry; the next mutation re-arms the cycle.

Conflict policy is whole-state last-writer-wins keyed by the sync id.  The
startup pull, when it finds a row, replaces trades and accounts wholesale;
two devices editing at once silently overwrite each other.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

import duckdb

from journal.config import settings
from journal.errors import RemoteStoreError
from journal.models.journal import Account, JournalSnapshot
from journal.services.local_store import LocalStore
from journal.services.remote_store import RemoteStore
from journal.utils.debounce import DebouncedJob
from journal.utils.logger import logger


class SyncStatus(str, Enum):
    IDLE = "IDLE"
    SYNCING = "SYNCING"
    SAVED = "SAVED"
    ERROR = "ERROR"


def default_account() -> Account:
    """The seed account a journal always starts with."""
    return Account(
        id="1",
        name=settings.DEFAULT_ACCOUNT_NAME,
        currency=settings.DEFAULT_CURRENCY,
        balance=settings.DEFAULT_ACCOUNT_BALANCE,
    )


class SyncCoordinator:
    """Persists journal snapshots locally and (optionally) to the remote row."""

    def __init__(
        self,
        local_store: LocalStore,
        remote_store: RemoteStore | None = None,
        *,
        debounce_seconds: float | None = None,
    ) -> None:
        self._local = local_store
        self._remote = remote_store
        self._debounce = DebouncedJob(
            self._push_latest,
            debounce_seconds if debounce_seconds is not None else settings.SYNC_DEBOUNCE_SECONDS,
            job_id="remote_push",
        )
        self._latest: JournalSnapshot | None = None
        # bumped by every notify; lets a finished push tell whether it was stale
        self._generation = 0
        self._pushing = False
        self._ready = False
        self._closed = False

        self.status = SyncStatus.IDLE
        self.last_error: str | None = None
        self.last_synced_at: datetime | None = None
        self.push_count = 0

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def remote_configured(self) -> bool:
        return self._remote is not None and self._remote.is_configured

    async def configure_remote(self, remote_store: RemoteStore | None) -> None:
        """Swap the remote target at runtime (None disables remote sync).

        The previous store's HTTP client is closed.  A snapshot still waiting
        in the debounce window is re-armed against the new target.
        """
        had_pending = self._debounce.cancel()
        previous, self._remote = self._remote, remote_store
        if previous is not None and previous is not remote_store:
            await previous.aclose()

        self.last_error = None
        if had_pending and self.remote_configured and self._latest is not None:
            self.status = SyncStatus.SYNCING
            self._debounce.trigger()
        else:
            self.status = SyncStatus.IDLE
        logger.info(
            "[Sync] Remote sync %s",
            "configured" if self.remote_configured else "disabled",
        )

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def load_initial(self) -> JournalSnapshot:
        """Load local state, then (if configured) pull the remote row once.

        The push path is only enabled after this completes, so stale local
        data never overwrites newer remote data at startup.
        """
        self._closed = False
        snapshot = self._local.load_snapshot()
        if not snapshot.accounts:
            snapshot.accounts = [default_account()]
            self._write_local(snapshot)
            logger.info("[Sync] No accounts found — seeded default account")

        if not self.remote_configured:
            self.status = SyncStatus.IDLE
            self._ready = True
            return snapshot

        self.status = SyncStatus.SYNCING
        try:
            backup = await self._remote.fetch()
        except RemoteStoreError as exc:
            self.status = SyncStatus.ERROR
            self.last_error = str(exc)
            logger.error("[Sync] Startup pull failed, using local data: %s", exc)
            self._ready = True
            return snapshot

        if backup is None:
            self.status = SyncStatus.IDLE
            logger.info("[Sync] No remote backup yet — keeping local data")
        else:
            snapshot.trades = backup.trades
            if backup.accounts:
                snapshot.accounts = backup.accounts
            self._write_local(snapshot)
            self.status = SyncStatus.SAVED
            self.last_synced_at = datetime.now()
            logger.info(
                "[Sync] Pulled remote backup: %d trades, %d accounts",
                len(snapshot.trades), len(snapshot.accounts),
            )

        self._ready = True
        return snapshot

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def notify(self, snapshot: JournalSnapshot) -> None:
        """Record a mutation: write locally now, schedule the remote write."""
        self._write_local(snapshot)

        if not self._ready or not self.remote_configured:
            return

        self._latest = snapshot
        self._generation += 1
        self.status = SyncStatus.SYNCING
        self._debounce.trigger()

    def _write_local(self, snapshot: JournalSnapshot) -> None:
        try:
            self._local.save_snapshot(snapshot)
        except (duckdb.Error, OSError) as exc:
            logger.warning("[Sync] Local save failed (change kept in memory only): %s", exc)

    async def _push_latest(self) -> None:
        """Debounce callback: send the latest snapshot to the remote row.

        Pushes never overlap.  If a newer snapshot arrived while one was in
        flight, the timer is re-armed so that snapshot goes out too.
        """
        snapshot = self._latest
        if snapshot is None or not self.remote_configured or self._pushing:
            return

        generation = self._generation
        self._pushing = True
        try:
            await self._remote.upsert(snapshot)
        except RemoteStoreError as exc:
            self.last_error = str(exc)
            logger.error("[Sync] Auto-sync failed: %s", exc)
            if not self._rearm_if_stale(generation):
                self.status = SyncStatus.ERROR
            return
        finally:
            self._pushing = False

        self.push_count += 1
        self.last_synced_at = datetime.now()
        self.last_error = None
        logger.info(
            "[Sync] Remote backup saved (%d trades, %d accounts)",
            len(snapshot.trades), len(snapshot.accounts),
        )
        if not self._rearm_if_stale(generation):
            self.status = SyncStatus.SAVED

    def _rearm_if_stale(self, pushed_generation: int) -> bool:
        """Re-arm the timer when state changed after ``pushed_generation``."""
        if self._generation == pushed_generation or self._closed:
            return False
        self.status = SyncStatus.SYNCING
        if not self._debounce.pending:
            logger.debug("[Sync] Newer changes arrived during push, re-arming")
            self._debounce.trigger()
        return True

    async def flush(self) -> None:
        """Skip the rest of the debounce window and push the latest snapshot now."""
        # an in-flight push re-arms on its own once it sees the newer state
        if self._debounce.cancel() and not self._pushing:
            await self._push_latest()

    def close(self) -> None:
        """Cancel any pending push and stop the timer."""
        self._closed = True
        self._debounce.shutdown()

    async def shutdown(self) -> None:
        """Push whatever is still pending, then release the timer and HTTP client."""
        await self.flush()
        self.close()
        if self._remote is not None:
            await self._remote.aclose()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> dict:
        """Return sync state for display."""
        return {
            "status": self.status.value,
            "remote_configured": self.remote_configured,
            "pending": self._debounce.pending,
            "push_count": self.push_count,
            "last_error": self.last_error,
            "last_synced_at": (
                self.last_synced_at.isoformat() if self.last_synced_at else None
            ),
        }
