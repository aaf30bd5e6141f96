"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **Duplicate emails**: create_account relies on the UNIQUE constraint on
   accounts.email with INSERT ... ON CONFLICT DO NOTHING. Two concurrent
   registrations for the same email produce exactly one row; the loser
   sees no RETURNING row and the domain reports it as already registered.

2. **Single-use tokens**: every consume_* method is one conditional
   UPDATE ... WHERE <digest matches> AND expires_at > %s RETURNING. Under
   READ COMMITTED a concurrent second UPDATE blocks on the row lock, then
   re-checks the WHERE clause against the committed row, finds the digest
   cleared and matches nothing. A token can therefore succeed only once.

3. **Time**: the comparison instant is passed in by the domain rather
   than taken from NOW(), so expiry boundaries follow the domain clock.
"""

import logging
from datetime import datetime
from pathlib import Path
from uuid import UUID

from psycopg_pool import ConnectionPool

from src.domain.ports import Account, AccountKind

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, name, email, password_hash, account_kind, is_verified, created_at,
    verification_token_hash, verification_token_expires_at,
    verification_code, verification_code_expires_at,
    reset_token_hash, reset_token_expires_at
"""

_CLEAR_VERIFICATION = """
    verification_token_hash = NULL,
    verification_token_expires_at = NULL,
    verification_code = NULL,
    verification_code_expires_at = NULL
"""


def _to_account(row: tuple | None) -> Account | None:
    if row is None:
        return None
    return Account(
        id=row[0],
        name=row[1],
        email=row[2],
        password_hash=row[3],
        kind=AccountKind(row[4]),
        is_verified=row[5],
        created_at=row[6],
        verification_token_hash=row[7],
        verification_token_expires_at=row[8],
        verification_code=row[9],
        verification_code_expires_at=row[10],
        reset_token_hash=row[11],
        reset_token_expires_at=row[12],
    )


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def _fetch_one(self, sql: str, params: tuple) -> Account | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            conn.commit()
            return _to_account(row)

    def _execute(self, sql: str, params: tuple) -> None:
        with self._pool.connection() as conn:
            conn.execute(sql, params)
            conn.commit()

    def create_account(
        self, name: str, email: str, password_hash: str, kind: AccountKind
    ) -> Account | None:
        """
        Insert a new unverified account.

        Returns:
            The created Account, or None if the email is already taken
        """
        sql = f"""
            INSERT INTO accounts (name, email, password_hash, account_kind)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING {_COLUMNS}
        """
        return self._fetch_one(sql, (name, email, password_hash, kind.value))

    def get_by_id(self, account_id: UUID) -> Account | None:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE id = %s", (account_id,))

    def get_by_email(self, email: str) -> Account | None:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE email = %s", (email,))

    def set_verification_token(
        self, account_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        sql = """
            UPDATE accounts
            SET verification_token_hash = %s, verification_token_expires_at = %s
            WHERE id = %s
        """
        self._execute(sql, (token_hash, expires_at, account_id))

    def clear_verification_token(self, account_id: UUID) -> None:
        sql = """
            UPDATE accounts
            SET verification_token_hash = NULL, verification_token_expires_at = NULL
            WHERE id = %s
        """
        self._execute(sql, (account_id,))

    def consume_verification_token(self, token_hash: str, now: datetime) -> Account | None:
        sql = f"""
            UPDATE accounts
            SET is_verified = TRUE, {_CLEAR_VERIFICATION}
            WHERE verification_token_hash = %s
              AND verification_token_expires_at > %s
            RETURNING {_COLUMNS}
        """
        return self._fetch_one(sql, (token_hash, now))

    def set_verification_code(self, account_id: UUID, code: str, expires_at: datetime) -> None:
        sql = """
            UPDATE accounts
            SET verification_code = %s, verification_code_expires_at = %s
            WHERE id = %s
        """
        self._execute(sql, (code, expires_at, account_id))

    def consume_verification_code(self, email: str, code: str, now: datetime) -> Account | None:
        sql = f"""
            UPDATE accounts
            SET is_verified = TRUE, {_CLEAR_VERIFICATION}
            WHERE email = %s
              AND verification_code = %s
              AND verification_code_expires_at > %s
            RETURNING {_COLUMNS}
        """
        return self._fetch_one(sql, (email, code, now))

    def mark_verified(self, account_id: UUID) -> Account:
        sql = f"""
            UPDATE accounts
            SET is_verified = TRUE, {_CLEAR_VERIFICATION}
            WHERE id = %s
            RETURNING {_COLUMNS}
        """
        account = self._fetch_one(sql, (account_id,))
        if account is None:
            raise LookupError(f"Account {account_id} does not exist")
        return account

    def set_reset_token(self, account_id: UUID, token_hash: str, expires_at: datetime) -> None:
        sql = """
            UPDATE accounts
            SET reset_token_hash = %s, reset_token_expires_at = %s
            WHERE id = %s
        """
        self._execute(sql, (token_hash, expires_at, account_id))

    def clear_reset_token(self, account_id: UUID) -> None:
        sql = """
            UPDATE accounts
            SET reset_token_hash = NULL, reset_token_expires_at = NULL
            WHERE id = %s
        """
        self._execute(sql, (account_id,))

    def consume_reset_token(
        self, token_hash: str, new_password_hash: str, now: datetime
    ) -> Account | None:
        sql = f"""
            UPDATE accounts
            SET password_hash = %s, reset_token_hash = NULL, reset_token_expires_at = NULL
            WHERE reset_token_hash = %s
              AND reset_token_expires_at > %s
            RETURNING {_COLUMNS}
        """
        return self._fetch_one(sql, (new_password_hash, token_hash, now))

    def update_password_hash(self, account_id: UUID, password_hash: str) -> None:
        sql = """
            UPDATE accounts
            SET password_hash = %s, reset_token_hash = NULL, reset_token_expires_at = NULL
            WHERE id = %s
        """
        self._execute(sql, (password_hash, account_id))


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
