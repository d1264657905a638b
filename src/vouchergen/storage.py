"""SQLite database storage for issued voucher codes.

This module provisions the voucher ledger, reconciles candidate batches against
it, and persists the current code length between runs.
"""

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Protocol

# Configure logging
logger = logging.getLogger(__name__)

# Seconds a connection waits on a locked database before failing
BUSY_TIMEOUT = 30.0

CODE_LENGTH_SETTING = "code_length"


class StorageError(Exception):
    """Raised when storage operations fail."""

    pass


class UniquenessStore(Protocol):
    """A ledger that filters and records candidate codes atomically."""

    def reconcile(self, candidates: Iterable[str]) -> list[str]:
        """Persist the novel candidates and return exactly those."""
        ...

    def close(self) -> None:
        """Release the handle. Safe to call more than once."""
        ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BatchReconciler:
    """Reusable handle that reconciles candidate batches with the ledger.

    Holds one connection for its whole lifetime. Every call to
    ``reconcile`` is a single ``BEGIN IMMEDIATE`` transaction, so the write
    lock is taken before the ledger is compared against. Two reconcilers,
    even in different processes, can never both accept the same code.

    ``last_batch_id`` holds the audit tag of the most recent successful batch;
    pass it to ``CodeStorage.codes_in_batch`` to list what that batch issued.
    """

    def __init__(self, database_path: str, timeout: float = BUSY_TIMEOUT):
        """Open a connection to the ledger.

        Args:
            database_path: Path to SQLite database file
            timeout: Seconds to wait for the write lock

        Raises:
            StorageError: If the connection cannot be opened
        """
        self.database_path = Path(database_path)
        self.last_batch_id: str | None = None
        self._closed = False

        try:
            # Autocommit mode, transactions are issued explicitly
            self._conn = sqlite3.connect(
                str(self.database_path), timeout=timeout, isolation_level=None
            )
        except sqlite3.Error as e:
            logger.error(f"Failed to open ledger {self.database_path}: {e}")
            raise StorageError(f"Failed to open ledger: {e}")

    def reconcile(self, candidates: Iterable[str]) -> list[str]:
        """Record the novel candidates of a batch.

        Candidates already in the ledger are dropped, and a candidate repeated
        within the batch is accepted at most once.

        Args:
            candidates: Candidate codes for one batch

        Returns:
            The codes newly accepted by this call

        Raises:
            StorageError: If the handle is closed or the transaction fails
        """
        if self._closed:
            raise StorageError("Reconciler is closed")

        batch_id = uuid.uuid4().hex
        created_at = _now()
        rows = [(code, batch_id, created_at) for code in candidates]

        try:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                self._conn.executemany(
                    """
                    INSERT OR IGNORE INTO vouchers (code, batch_id, created_at)
                    VALUES (?, ?, ?)
                """,
                    rows,
                )
                accepted = [
                    row[0]
                    for row in self._conn.execute(
                        "SELECT code FROM vouchers WHERE batch_id = ?", (batch_id,)
                    )
                ]
                self._conn.execute("COMMIT")
            except BaseException:
                if self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            logger.error(f"Failed to reconcile batch {batch_id}: {e}")
            raise StorageError(f"Failed to reconcile batch {batch_id}: {e}")

        self.last_batch_id = batch_id
        logger.debug(
            f"Batch {batch_id}: {len(accepted)} of {len(rows)} candidates accepted"
        )
        return accepted

    def close(self) -> None:
        """Close the connection. Calling this again has no effect."""
        if self._closed:
            return

        self._conn.close()
        self._closed = True

    def __enter__(self) -> "BatchReconciler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class CodeStorage:
    """SQLite database storage for the voucher ledger.

    Stores issued codes and service settings in a SQLite database with schema:
    CREATE TABLE vouchers (
        code TEXT PRIMARY KEY,
        batch_id TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL
    )
    CREATE TABLE settings (
        name TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )

    TEXT keys compare byte-wise, so codes are case-sensitive.

    ``count`` and ``codes_in_batch`` are audit helpers for operators and tests;
    the batch id is bookkeeping only and plays no part in uniqueness.
    """

    def __init__(self, database_path: str):
        """Initialize storage with database path.

        Args:
            database_path: Path to SQLite database file

        Raises:
            StorageError: If database initialization fails
        """
        self.database_path = Path(database_path)

        # Ensure parent directory exists
        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Storage initialized at: {self.database_path}")
        except OSError as e:
            logger.error(f"Failed to create database directory: {e}")
            raise StorageError(f"Failed to create database directory: {e}")

        # Initialize database schema
        self.initialize()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.database_path), timeout=BUSY_TIMEOUT)

    def initialize(self) -> None:
        """Create database and schema if not exists.

        Raises:
            StorageError: If schema initialization fails
        """
        try:
            conn = self._connect()
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS vouchers (
                        code TEXT PRIMARY KEY,
                        batch_id TEXT NOT NULL,
                        created_at TIMESTAMP NOT NULL
                    )
                """)
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_vouchers_batch_id ON vouchers(batch_id)"
                )
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS settings (
                        name TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP NOT NULL
                    )
                """)
                conn.commit()
            finally:
                conn.close()
            logger.debug("Database schema initialized successfully")

        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database schema: {e}")
            raise StorageError(f"Failed to initialize database schema: {e}")

    def open_reconciler(self) -> BatchReconciler:
        """Open a reconciler bound to this ledger. The caller must close it."""
        return BatchReconciler(str(self.database_path))

    def exists(self, code: str) -> bool:
        """Check if a code has been issued.

        Raises:
            StorageError: If the query fails
        """
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT 1 FROM vouchers WHERE code = ? LIMIT 1", (code,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Database error checking code {code}: {e}")
            raise StorageError(f"Failed to check code {code}: {e}")

        return row is not None

    def count(self) -> int:
        """Number of codes ever issued."""
        try:
            conn = self._connect()
            try:
                (total,) = conn.execute("SELECT COUNT(*) FROM vouchers").fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Database error counting codes: {e}")
            raise StorageError(f"Failed to count codes: {e}")

        return total

    def codes_in_batch(self, batch_id: str) -> list[str]:
        """Codes accepted by one reconciliation batch."""
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    "SELECT code FROM vouchers WHERE batch_id = ?", (batch_id,)
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Database error loading batch {batch_id}: {e}")
            raise StorageError(f"Failed to load batch {batch_id}: {e}")

        return [row[0] for row in rows]

    def load_code_length(self, default: int) -> int:
        """Load the persisted code length.

        Args:
            default: Length to use when none has been persisted yet

        Returns:
            The last saved code length, or ``default``

        Raises:
            StorageError: If the query fails
        """
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT value FROM settings WHERE name = ?",
                    (CODE_LENGTH_SETTING,),
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"Database error loading code length: {e}")
            raise StorageError(f"Failed to load code length: {e}")

        if row is None:
            logger.debug(f"No code length persisted, using default {default}")
            return default

        return int(row[0])

    def save_code_length(self, code_length: int) -> None:
        """Persist the code length for the next run.

        A smaller value than the one already stored is ignored, so
        concurrent runs can only move the length forward.

        Raises:
            StorageError: If the update fails
        """
        try:
            conn = self._connect()
            try:
                conn.execute(
                    """
                    INSERT INTO settings (name, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    WHERE CAST(settings.value AS INTEGER) < CAST(excluded.value AS INTEGER)
                """,
                    (CODE_LENGTH_SETTING, str(code_length), _now()),
                )
                conn.commit()
            finally:
                conn.close()
            logger.info(f"Code length saved: {code_length}")
        except sqlite3.Error as e:
            logger.error(f"Database error saving code length {code_length}: {e}")
            raise StorageError(f"Failed to save code length {code_length}: {e}")
