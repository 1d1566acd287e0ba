"""Application configuration — environment variables and defaults.

Cloud sync credentials live HERE. Persistent cloud settings are stored in
user_config/cloud_config.json and override the environment defaults.
"""

import json
import os
from pathlib import Path
from typing import Any


class Settings:
    """Central configuration pulled from environment with safe defaults."""

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    DATA_DIR: Path = Path(os.getenv("JOURNAL_DATA_DIR", str(BASE_DIR / "data")))
    LOGS_DIR: Path = Path(os.getenv("JOURNAL_LOGS_DIR", str(BASE_DIR / "logs")))
    USER_CONFIG_DIR: Path = Path(__file__).resolve().parent / "user_config"

    # Local store
    DB_PATH: Path = DATA_DIR / "journal.duckdb"

    # ── Cloud sync (PostgREST / Supabase backups table) ────────────
    # Defaults (overridden by cloud_config.json if present)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
    SYNC_ID: str = os.getenv("SYNC_ID", "")

    # Remote writes are coalesced inside this window
    SYNC_DEBOUNCE_SECONDS: float = float(os.getenv("SYNC_DEBOUNCE_SECONDS", "3.0"))
    SYNC_TIMEOUT_SECONDS: float = float(os.getenv("SYNC_TIMEOUT_SECONDS", "15.0"))

    # Seed account created when the journal has none
    DEFAULT_ACCOUNT_NAME: str = os.getenv("DEFAULT_ACCOUNT_NAME", "Main Account")
    DEFAULT_ACCOUNT_BALANCE: float = float(os.getenv("DEFAULT_ACCOUNT_BALANCE", "10000"))
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD")

    # Logging
    LOG_LEVEL: str = os.getenv("JOURNAL_LOG_LEVEL", "INFO")
    LOG_TO_FILE: bool = os.getenv("JOURNAL_LOG_TO_FILE", "true").lower() in ("1", "true", "yes")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # ── Cloud config JSON path ─────────────────────────────────────
    CLOUD_CONFIG_PATH: Path = USER_CONFIG_DIR / "cloud_config.json"

    def __init__(self) -> None:
        """Ensure runtime directories exist and load persisted cloud config."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        self.load_cloud_config()

    @property
    def cloud_configured(self) -> bool:
        """True when all three sync credentials are present."""
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY and self.SYNC_ID)

    # ── Persistent cloud configuration ─────────────────────────────

    def load_cloud_config(self) -> None:
        """Load cloud settings from cloud_config.json, overriding env-var defaults."""
        if not self.CLOUD_CONFIG_PATH.exists():
            return
        try:
            data = json.loads(self.CLOUD_CONFIG_PATH.read_text(encoding="utf-8"))
            self._apply_cloud_config(data)
        except (json.JSONDecodeError, OSError):
            pass  # Corrupted file, fall back to env defaults

    def _apply_cloud_config(self, data: dict[str, Any]) -> None:
        """Apply a config dict to the running settings instance."""
        if "url" in data:
            self.SUPABASE_URL = str(data["url"]).strip()
        if "key" in data:
            self.SUPABASE_KEY = str(data["key"]).strip()
        if "sync_id" in data:
            self.SYNC_ID = str(data["sync_id"]).strip()

    def update_cloud_config(self, data: dict[str, Any]) -> dict[str, Any]:
        """Write new cloud settings to disk and hot-patch the running singleton.

        Returns the saved config dict.
        """
        # Merge with existing file (so partial updates work)
        existing: dict[str, Any] = {}
        if self.CLOUD_CONFIG_PATH.exists():
            try:
                existing = json.loads(
                    self.CLOUD_CONFIG_PATH.read_text(encoding="utf-8")
                )
            except (json.JSONDecodeError, OSError):
                pass

        merged = {**existing, **{k: str(v).strip() for k, v in data.items()}}
        self.CLOUD_CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        self.CLOUD_CONFIG_PATH.write_text(
            json.dumps(merged, indent=4) + "\n", encoding="utf-8"
        )

        self._apply_cloud_config(merged)
        return merged

    def get_cloud_config(self) -> dict[str, Any]:
        """Return the current cloud configuration as a dict."""
        return {
            "url": self.SUPABASE_URL,
            "key": self.SUPABASE_KEY,
            "sync_id": self.SYNC_ID,
            "configured": self.cloud_configured,
        }


settings = Settings()
