"""Remote Store — whole-journal backup row on a PostgREST (Supabase) backend.

One row per sync identifier in the ``backups`` table:

    id          text primary key   -- the user-chosen sync id
    data        jsonb              -- {"trades": [...], "accounts": [...]}
    updated_at  timestamptz

The sync id is both the row key and the de facto shared secret.  Writes are
insert-or-replace of the whole document; there is no per-record merge, so
two devices writing to the same id overwrite each other.

Every transport, status or decoding failure surfaces as RemoteStoreError.
"""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
from pydantic import ValidationError

from journal.config import settings
from journal.errors import RemoteStoreError
from journal.models.journal import JournalSnapshot, RemoteBackup
from journal.utils.logger import logger

BACKUPS_TABLE = "backups"


class RemoteStore:
    """Upsert / fetch the backup row for one sync identifier."""

    def __init__(
        self,
        url: str,
        key: str,
        sync_id: str,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = (url or "").strip().rstrip("/")
        self.key = (key or "").strip()
        self.sync_id = (sync_id or "").strip()
        self.timeout = timeout if timeout is not None else settings.SYNC_TIMEOUT_SECONDS
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls) -> RemoteStore:
        """Build a store from the current cloud configuration."""
        return cls(settings.SUPABASE_URL, settings.SUPABASE_KEY, settings.SYNC_ID)

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key and self.sync_id)

    @property
    def _endpoint(self) -> str:
        return f"{self.url}/rest/v1/{BACKUPS_TABLE}"

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled client for this store."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
            self._owns_client = True
        return self._client

    def _require_config(self) -> None:
        if not self.is_configured:
            raise RemoteStoreError("Missing cloud configuration (url, key and sync id required)")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def upsert(self, snapshot: JournalSnapshot) -> None:
        """Insert or replace the backup row with the snapshot's trades and accounts."""
        self._require_config()
        payload = {
            "id": self.sync_id,
            "data": {
                "trades": [t.to_json_dict() for t in snapshot.trades],
                "accounts": [a.to_json_dict() for a in snapshot.accounts],
            },
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        client = self._get_client()
        try:
            resp = await client.post(
                self._endpoint,
                params={"on_conflict": "id"},
                headers={
                    **self._headers(),
                    "Prefer": "resolution=merge-duplicates,return=minimal",
                },
                json=payload,
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteStoreError(
                f"Remote upsert rejected: HTTP {exc.response.status_code} "
                f"{exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"Remote upsert failed: {exc!r}") from exc

        logger.debug(
            "[RemoteStore] Upserted %d trades, %d accounts for sync id %s",
            len(snapshot.trades), len(snapshot.accounts), self.sync_id,
        )

    async def fetch(self) -> RemoteBackup | None:
        """Return the backup row's contents, or None when no row exists."""
        self._require_config()
        client = self._get_client()
        try:
            resp = await client.get(
                self._endpoint,
                params={"id": f"eq.{self.sync_id}", "select": "*"},
                headers=self._headers(),
            )
            resp.raise_for_status()
            rows = resp.json()
        except httpx.HTTPStatusError as exc:
            raise RemoteStoreError(
                f"Remote fetch rejected: HTTP {exc.response.status_code} "
                f"{exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"Remote fetch failed: {exc!r}") from exc
        except ValueError as exc:
            raise RemoteStoreError(f"Remote fetch returned invalid JSON: {exc}") from exc

        if not isinstance(rows, list):
            raise RemoteStoreError(f"Unexpected remote response shape: {type(rows).__name__}")
        if not rows or not rows[0].get("data"):
            logger.info("[RemoteStore] No backup row for sync id %s", self.sync_id)
            return None

        row = rows[0]
        if not isinstance(row["data"], dict):
            raise RemoteStoreError("Remote backup is malformed: data is not an object")
        try:
            return RemoteBackup.model_validate(
                {**row["data"], "updated_at": row.get("updated_at")}
            )
        except ValidationError as exc:
            raise RemoteStoreError(f"Remote backup is malformed: {exc}") from exc

    async def aclose(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
