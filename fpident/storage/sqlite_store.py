"""
SQLite-backed template store.

Templates are stored as serialized blobs in a single ``fingers`` table:

    id             INTEGER PRIMARY KEY AUTOINCREMENT
    user_id        TEXT NOT NULL
    finger         INTEGER NULL         Finger enum value
    template       BLOB NOT NULL        serialize_template output
    template_size  INTEGER NOT NULL     len(template), checked on load
    enrolled_at    TIMESTAMP DEFAULT CURRENT_TIMESTAMP

Each operation opens its own connection, so one store instance can be
shared between threads. ``load_all`` reads every row in one SELECT, which
SQLite runs against a single consistent view of the table.
"""

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Optional, Tuple, Union

from ..errors import MalformedTemplateError, StoreUnavailableError
from ..template.codec import deserialize_template, serialize_template
from ..template.template import EnrollmentRecord, Finger, Template
from .store import TemplateStore, check_user_id

logger = logging.getLogger(__name__)


SCHEMA = """
    CREATE TABLE IF NOT EXISTS fingers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        finger INTEGER NULL,
        template BLOB NOT NULL,
        template_size INTEGER NOT NULL,
        enrolled_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""

USER_INDEX = "CREATE INDEX IF NOT EXISTS idx_fingers_user_id ON fingers (user_id)"

SELECT_COLUMNS = "SELECT id, user_id, finger, template, template_size FROM fingers"


class SQLiteTemplateStore(TemplateStore):
    """
    Template store over a SQLite database file.

    The schema is not created implicitly; call ``create_schema()`` once
    during setup (or pass ``create_schema=True``).
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        timeout: float = 5.0,
        create_schema: bool = False
    ):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file
            timeout: Seconds to wait on a locked database
            create_schema: Create the table immediately
        """
        self.db_path = Path(db_path)
        self.timeout = timeout

        if create_schema:
            self.create_schema()

    def _get_connection(self, create: bool = False) -> sqlite3.Connection:
        """
        Open a new connection for one operation.

        Args:
            create: Allow the database file to be created

        Returns:
            SQLite connection with Row factory for dict-like access
        """
        mode = 'rwc' if create else 'rw'
        uri = f"{self.db_path.resolve().as_uri()}?mode={mode}"
        conn = sqlite3.connect(uri, uri=True, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def create_schema(self) -> None:
        """
        Create the ``fingers`` table and its user index if missing.

        Raises:
            StoreUnavailableError: The database could not be created
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with closing(self._get_connection(create=True)) as conn, conn:
                conn.execute(SCHEMA)
                conn.execute(USER_INDEX)
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailableError(
                f"Cannot create schema in {self.db_path}: {e}"
            ) from e

        logger.debug(f"Template schema ready in {self.db_path}")

    def _fetch(self, query: str, params: tuple = ()) -> list:
        try:
            with closing(self._get_connection()) as conn:
                return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot read {self.db_path}: {e}") from e

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> EnrollmentRecord:
        row_id = row["id"]
        blob = row["template"]

        if blob is None or len(blob) != row["template_size"]:
            size = None if blob is None else len(blob)
            raise MalformedTemplateError(
                f"Row {row_id}: template is {size} bytes, "
                f"template_size says {row['template_size']}"
            )

        try:
            template = deserialize_template(blob)
            finger = Finger(row["finger"]) if row["finger"] is not None else None
        except MalformedTemplateError as e:
            raise MalformedTemplateError(f"Row {row_id}: {e}") from e
        except ValueError as e:
            raise MalformedTemplateError(f"Row {row_id}: bad finger value: {e}") from e

        return EnrollmentRecord(
            user_id=row["user_id"],
            template=template,
            finger=finger,
            record_id=row_id
        )

    def load_all(self) -> Tuple[EnrollmentRecord, ...]:
        rows = self._fetch(f"{SELECT_COLUMNS} ORDER BY id")
        records = tuple(self._row_to_record(row) for row in rows)

        logger.debug(f"Loaded {len(records)} enrollment records")
        return records

    def load_user(self, user_id: str) -> Tuple[EnrollmentRecord, ...]:
        rows = self._fetch(f"{SELECT_COLUMNS} WHERE user_id = ? ORDER BY id", (user_id,))
        return tuple(self._row_to_record(row) for row in rows)

    def append(
        self,
        user_id: str,
        template: Template,
        finger: Optional[Finger] = None
    ) -> EnrollmentRecord:
        check_user_id(user_id)
        blob = serialize_template(template)

        try:
            with closing(self._get_connection()) as conn, conn:
                cursor = conn.execute(
                    """
                    INSERT INTO fingers (user_id, finger, template, template_size)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        finger.value if finger is not None else None,
                        sqlite3.Binary(blob),
                        len(blob)
                    )
                )
                record_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                f"Cannot store template for {user_id}: {e}"
            ) from e

        logger.info(
            f"Stored template for {user_id} (row={record_id}, "
            f"minutiae={len(template)}, bytes={len(blob)})"
        )

        return EnrollmentRecord(
            user_id=user_id,
            template=template,
            finger=finger,
            record_id=record_id
        )

    def delete_user(self, user_id: str) -> int:
        try:
            with closing(self._get_connection()) as conn, conn:
                removed = conn.execute(
                    "DELETE FROM fingers WHERE user_id = ?", (user_id,)
                ).rowcount
        except sqlite3.Error as e:
            raise StoreUnavailableError(
                f"Cannot delete templates of {user_id}: {e}"
            ) from e

        logger.info(f"Deleted {removed} records for user {user_id}")
        return removed

    def count(self) -> int:
        rows = self._fetch("SELECT COUNT(*) AS n FROM fingers")
        return int(rows[0]["n"])
