import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from evalsheet.exceptions import StorageError

logger = logging.getLogger(__name__)


class Database:
    """
    Thin wrapper over sqlite3 for evalsheet persistence.
    Keeps schema creation and transaction handling in one place.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        One connection, one transaction. Commits on success; any sqlite error
        rolls back and surfaces as StorageError.
        """
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("Transaction rolled back", extra={"db": str(self.db_path), "error": str(exc)})
            raise StorageError(str(exc)) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self):
        with self.transaction() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    template_name TEXT NOT NULL,
                    category TEXT NOT NULL UNIQUE,
                    internal_category TEXT NOT NULL UNIQUE,
                    upload_date TEXT NOT NULL
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS responses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    template_id INTEGER NOT NULL,
                    sheet_name TEXT NOT NULL,
                    original_file_name TEXT NOT NULL,
                    last_updated TEXT NOT NULL,
                    is_reuploaded INTEGER NOT NULL DEFAULT 0,
                    UNIQUE (template_id, original_file_name, sheet_name),
                    FOREIGN KEY (template_id) REFERENCES templates(id) ON DELETE CASCADE
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS response_metadata (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    response_id INTEGER NOT NULL,
                    header_key TEXT NOT NULL,
                    header_value TEXT,
                    FOREIGN KEY (response_id) REFERENCES responses(id) ON DELETE CASCADE
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS evaluation_data (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    response_id INTEGER NOT NULL,
                    main_item TEXT NOT NULL,
                    sub_item TEXT NOT NULL DEFAULT '',
                    sub_item_rank INTEGER,
                    evaluation TEXT NOT NULL DEFAULT '',
                    comment TEXT NOT NULL DEFAULT '',
                    FOREIGN KEY (response_id) REFERENCES responses(id) ON DELETE CASCADE
                );
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_responses_template ON responses (template_id, sheet_name);")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_metadata_response ON response_metadata (response_id);")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_eval_response ON evaluation_data (response_id);")
