import os
import tempfile

import pytest

# Route data, logs and cloud credentials away from the real environment
# before journal.config builds its singleton.
_test_root = tempfile.mkdtemp(prefix="journal_tests_")
os.environ["JOURNAL_DATA_DIR"] = os.path.join(_test_root, "data")
os.environ["JOURNAL_LOGS_DIR"] = os.path.join(_test_root, "logs")
for _var in ("SUPABASE_URL", "SUPABASE_KEY", "SYNC_ID"):
    os.environ.pop(_var, None)

from journal.config import settings  # noqa: E402
from journal.database import close_db, get_db  # noqa: E402


@pytest.fixture(autouse=True, scope="session")
def use_test_db(tmp_path_factory):
    # Route all database operations in tests to a temporary DuckDB file
    temp_dir = tmp_path_factory.mktemp("test_db")
    close_db()
    settings.DB_PATH = temp_dir / "test_journal.duckdb"
    settings.CLOUD_CONFIG_PATH = temp_dir / "cloud_config.json"
    settings.SUPABASE_URL = ""
    settings.SUPABASE_KEY = ""
    settings.SYNC_ID = ""

    yield

    close_db()


@pytest.fixture(autouse=True)
def clean_store():
    """Every test starts from an empty key/value store."""
    get_db().execute("DELETE FROM kv_store")
    yield
