"""Per-thread SQLite access for the vault database."""

import logging
import sqlite3
import threading
from pathlib import Path

from .schema import SCHEMA_VERSION, get_init_schema
from ..core.exceptions import StorageError

logger = logging.getLogger("mediavault.database")


class DatabaseConnection:
    """Hands each thread its own connection to one database file.

    The file must exist on disk: ``:memory:`` would give every thread a
    separate, empty database. Statements run in autocommit mode unless wrapped
    in :meth:`get_transaction_context`.
    """

    __slots__ = ("db_path", "timeout", "_local", "_lock", "_initialized", "_connections")

    def __init__(self, db_path="./mediavault.db", timeout=10.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._local = threading.local()
        self._lock = threading.RLock()
        self._initialized = False
        self._connections = []

    def initialize(self):
        """Create tables, indexes and triggers once per process.

        Refuses a database written by a newer schema version.
        """
        with self._lock:
            if self._initialized:
                return
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = self._get_connection()
                found = self.get_version()
                if found > SCHEMA_VERSION:
                    raise StorageError(
                        f"Database {self.db_path} has schema version {found}, newer than supported {SCHEMA_VERSION}"
                    )
                for statement in get_init_schema():
                    conn.execute(statement)
            except sqlite3.Error as e:
                raise StorageError(f"Failed to initialize database {self.db_path}: {e}")
            self._initialized = True
            logger.debug("database ready at %s", self.db_path)

    def _get_connection(self):
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            return conn
        # busy timeout covers writers racing on the unique (hash, owner) slot
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout,
            check_same_thread=False,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        self._local.connection = conn
        with self._lock:
            self._connections.append(conn)
        return conn

    def get_cursor_context(self):
        return CursorContext(self._get_connection())

    def get_transaction_context(self, immediate=True):
        """Cursor inside ``BEGIN`` … ``COMMIT``; rolls back on error.

        ``immediate`` takes the write lock up front. A deferred transaction
        is enough for reads that must see one snapshot.
        """
        begin = "BEGIN IMMEDIATE" if immediate else "BEGIN DEFERRED"
        return CursorContext(self._get_connection(), begin=begin)

    def execute(self, query, params=None):
        """Run one statement and return ``rowcount``.

        ``sqlite3.IntegrityError`` is not wrapped: callers treat a constraint
        hit as a domain event (a duplicate upload, a vault set up twice).
        """
        with self.get_cursor_context() as cursor:
            cursor.execute(query, params or ())
            return cursor.rowcount

    def fetch_one(self, query, params=None):
        with self.get_cursor_context() as cursor:
            row = cursor.execute(query, params or ()).fetchone()
        return dict(row) if row else None

    def fetch_all(self, query, params=None):
        with self.get_cursor_context() as cursor:
            rows = cursor.execute(query, params or ()).fetchall()
        return [dict(r) for r in rows]

    def get_version(self):
        """Highest applied schema version, 0 if the version table is gone."""
        try:
            row = self.fetch_one("SELECT MAX(version) AS version FROM schema_version")
        except sqlite3.Error:
            return 0
        return (row or {}).get("version") or 0

    def close(self):
        """Close every connection any thread opened through this object."""
        with self._lock:
            opened, self._connections = self._connections, []
            self._local = threading.local()
        for conn in opened:
            conn.close()


class CursorContext:
    """Yields a cursor and always closes it.

    Given a ``begin`` statement the block runs in a transaction: committed on
    normal exit, rolled back if the block raises.
    """

    __slots__ = ("connection", "begin", "cursor")

    def __init__(self, connection, begin=None):
        self.connection = connection
        self.begin = begin
        self.cursor = None

    def __enter__(self):
        self.cursor = self.connection.cursor()
        if self.begin:
            self.cursor.execute(self.begin)
        return self.cursor

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if self.begin:
                self.cursor.execute("ROLLBACK" if exc_type else "COMMIT")
        finally:
            self.cursor.close()
