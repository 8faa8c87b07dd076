"""SQLite report store: connection handling and schema bootstrap."""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"
DEFAULT_DB_PATH = Path("data") / "watchdog.db"


class Database:
    """
    One SQLite file holding stored analysis reports.

    Connections are short-lived: each ``get_connection()`` block opens a
    fresh connection with ``sqlite3.Row`` rows and closes it on exit, so a
    Database can be shared by Flask request threads.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path is not None else Path.cwd() / DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._apply_schema()

    def _apply_schema(self) -> None:
        schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
        with self.get_connection() as conn:
            conn.executescript(schema_sql)
        logger.info(f"Report database ready at {self.db_path}")

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; commits on success, rolls back on error."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Database error on {self.db_path.name}: {e}")
            raise
        finally:
            conn.close()


_db_instance: Optional[Database] = None


def get_db() -> Database:
    """Process-wide Database, created on first use at the default path."""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
    return _db_instance
