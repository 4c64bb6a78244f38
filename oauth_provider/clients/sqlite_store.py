"""SQLite-backed storage for clients and authorizations."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from oauth_provider.core.scopes import ScopeSet
from oauth_provider.models.records import Authorization, Client, utcnow

_AUTHORIZATION_COLUMNS = frozenset(
    {
        "scopes",
        "code",
        "code_expires_at",
        "access_token",
        "access_token_expires_at",
        "refresh_token",
        "revoked",
    }
)


def _to_db(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ScopeSet):
        return str(value)
    if isinstance(value, bool):
        return int(value)
    return value


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class SQLiteStore:
    """Authorization store using one table per record type."""

    def __init__(self, db_path: str, *, timeout: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = timeout
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path,
            timeout=self._timeout,
            check_same_thread=False,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self, *, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._transaction(immediate=True) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_clients (
                    client_id TEXT PRIMARY KEY,
                    client_secret_hash TEXT NOT NULL,
                    name TEXT NOT NULL,
                    redirect_uri TEXT NOT NULL,
                    grant_types TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_authorizations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner_id TEXT,
                    client_id TEXT NOT NULL
                        REFERENCES oauth_clients (client_id) ON DELETE CASCADE,
                    scopes TEXT NOT NULL DEFAULT '',
                    code TEXT UNIQUE,
                    code_expires_at TEXT,
                    access_token TEXT UNIQUE,
                    access_token_expires_at TEXT,
                    refresh_token TEXT UNIQUE,
                    revoked INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            # One live authorization per (owner, client); NULL owners are client-only grants.
            conn.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS oauth_authorizations_live_pair
                ON oauth_authorizations (IFNULL(owner_id, ''), client_id)
                WHERE revoked = 0
                """
            )

    # Clients

    def put_client(self, client: Client) -> None:
        with self._transaction(immediate=True) as conn:
            conn.execute(
                """
                INSERT INTO oauth_clients
                    (client_id, client_secret_hash, name, redirect_uri, grant_types, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(client_id) DO UPDATE SET
                    name = excluded.name,
                    redirect_uri = excluded.redirect_uri,
                    grant_types = excluded.grant_types
                """,
                (
                    client.client_id,
                    client.client_secret_hash,
                    client.name,
                    client.redirect_uri,
                    " ".join(sorted(client.grant_types)),
                    client.created_at.isoformat(),
                ),
            )

    def get_client(self, client_id: str) -> Optional[Client]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM oauth_clients WHERE client_id = ?",
                (client_id,),
            ).fetchone()
        if not row:
            return None
        return Client(
            client_id=row["client_id"],
            client_secret_hash=row["client_secret_hash"],
            name=row["name"],
            redirect_uri=row["redirect_uri"],
            grant_types=frozenset(row["grant_types"].split()),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # Authorizations

    @staticmethod
    def _row_to_authorization(row: sqlite3.Row) -> Authorization:
        return Authorization(
            id=row["id"],
            owner_id=row["owner_id"],
            client_id=row["client_id"],
            scopes=ScopeSet.parse(row["scopes"]),
            code=row["code"],
            code_expires_at=_parse_datetime(row["code_expires_at"]),
            access_token=row["access_token"],
            access_token_expires_at=_parse_datetime(row["access_token_expires_at"]),
            refresh_token=row["refresh_token"],
            revoked=bool(row["revoked"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _find_one(self, where: str, params: tuple[Any, ...]) -> Optional[Authorization]:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT * FROM oauth_authorizations WHERE {where}", params
            ).fetchone()
        if not row:
            return None
        return self._row_to_authorization(row)

    def grant_scopes(
        self, *, owner_id: Optional[str], client_id: str, scopes: ScopeSet
    ) -> Authorization:
        now = utcnow().isoformat()
        with self._transaction(immediate=True) as conn:
            row = conn.execute(
                """
                SELECT * FROM oauth_authorizations
                WHERE owner_id IS ? AND client_id = ? AND revoked = 0
                """,
                (owner_id, client_id),
            ).fetchone()
            if row is None:
                cursor = conn.execute(
                    """
                    INSERT INTO oauth_authorizations
                        (owner_id, client_id, scopes, revoked, created_at, updated_at)
                    VALUES (?, ?, ?, 0, ?, ?)
                    """,
                    (owner_id, client_id, str(scopes), now, now),
                )
                authorization_id = cursor.lastrowid
            else:
                authorization_id = row["id"]
                merged = ScopeSet.parse(row["scopes"]).union(scopes)
                conn.execute(
                    "UPDATE oauth_authorizations SET scopes = ?, updated_at = ? WHERE id = ?",
                    (str(merged), now, authorization_id),
                )
            row = conn.execute(
                "SELECT * FROM oauth_authorizations WHERE id = ?",
                (authorization_id,),
            ).fetchone()
        return self._row_to_authorization(row)

    def find_live_authorization(
        self, *, owner_id: Optional[str], client_id: str
    ) -> Optional[Authorization]:
        return self._find_one(
            "owner_id IS ? AND client_id = ? AND revoked = 0",
            (owner_id, client_id),
        )

    def get_authorization(self, authorization_id: int) -> Optional[Authorization]:
        return self._find_one("id = ?", (authorization_id,))

    def find_by_code(self, code: str) -> Optional[Authorization]:
        return self._find_one("code = ?", (code,))

    def find_by_access_token(self, token: str) -> Optional[Authorization]:
        return self._find_one("access_token = ?", (token,))

    def find_by_refresh_token(self, token: str) -> Optional[Authorization]:
        return self._find_one("refresh_token = ?", (token,))

    def update_authorization(self, authorization_id: int, **fields: Any) -> None:
        unknown = set(fields) - _AUTHORIZATION_COLUMNS
        if unknown:
            raise ValueError(f"Unknown authorization fields: {sorted(unknown)}")
        if not fields:
            return
        assignments = ", ".join(f"{name} = ?" for name in fields)
        values = [_to_db(value) for value in fields.values()]
        with self._transaction(immediate=True) as conn:
            conn.execute(
                f"UPDATE oauth_authorizations SET {assignments}, updated_at = ? WHERE id = ?",
                (*values, utcnow().isoformat(), authorization_id),
            )

    def consume_code(self, authorization_id: int, code: str) -> bool:
        with self._transaction(immediate=True) as conn:
            cursor = conn.execute(
                """
                UPDATE oauth_authorizations
                SET code = NULL, code_expires_at = NULL, updated_at = ?
                WHERE id = ? AND code = ?
                """,
                (utcnow().isoformat(), authorization_id, code),
            )
        return cursor.rowcount == 1

    def rotate_refresh_token(
        self, authorization_id: int, current: str, replacement: str
    ) -> bool:
        with self._transaction(immediate=True) as conn:
            cursor = conn.execute(
                """
                UPDATE oauth_authorizations
                SET refresh_token = ?, updated_at = ?
                WHERE id = ? AND refresh_token = ? AND revoked = 0
                """,
                (replacement, utcnow().isoformat(), authorization_id, current),
            )
        return cursor.rowcount == 1

    def destroy_access_token(self, authorization_id: int, token: str) -> None:
        with self._transaction(immediate=True) as conn:
            conn.execute(
                """
                UPDATE oauth_authorizations
                SET access_token = NULL, access_token_expires_at = NULL, updated_at = ?
                WHERE id = ? AND access_token = ?
                """,
                (utcnow().isoformat(), authorization_id, token),
            )

    def revoke_authorization(self, authorization_id: int, *, at: datetime) -> None:
        with self._transaction(immediate=True) as conn:
            conn.execute(
                """
                UPDATE oauth_authorizations
                SET revoked = 1, code = NULL, code_expires_at = NULL, updated_at = ?
                WHERE id = ?
                """,
                (at.isoformat(), authorization_id),
            )


__all__ = ["SQLiteStore"]
