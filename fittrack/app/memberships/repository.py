"""PostgreSQL persistence for membership keys and membership records.

Expected schema (abridged)::

    membership_keys(id serial, key text unique, tier text, duration integer,
                    created_at timestamptz, used_at timestamptz, used_by integer,
                    is_revoked boolean, revoked_at timestamptz)
    memberships(id serial, user_id integer, tier text, start_date timestamptz,
                end_date timestamptz, is_active boolean, membership_key text)
    CREATE UNIQUE INDEX memberships_one_active ON memberships (user_id) WHERE is_active;
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, Tuple

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ...app_context import get_conn
from ..entitlements.models import MembershipRecord, Tier
from .models import MembershipKey, MembershipKeyDraft


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None) -> Iterator[Tuple[PgConnection, bool]]:
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_key(row: dict) -> MembershipKey:
    return MembershipKey(
        id=int(row["id"]),
        key=row["key"],
        tier=Tier(row["tier"]),
        duration_days=int(row["duration"]),
        created_at=row["created_at"],
        used_at=row.get("used_at"),
        used_by=row.get("used_by"),
        is_revoked=bool(row.get("is_revoked")),
        revoked_at=row.get("revoked_at"),
    )


def _row_to_membership(row: dict) -> MembershipRecord:
    return MembershipRecord(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        tier=Tier(row["tier"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        is_active=bool(row["is_active"]),
        membership_key=row.get("membership_key"),
    )


class PostgresMembershipRepository:
    """Concrete repository persisting membership models in PostgreSQL."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._conn) as (connection, managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                if managed:
                    connection.commit()
            except Exception:
                if managed:
                    connection.rollback()
                raise
            finally:
                cursor.close()

    def get_membership_key_by_code(self, code: str) -> Optional[MembershipKey]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM membership_keys
                WHERE key = %s
                LIMIT 1
                """,
                (code,),
            )
            row = cursor.fetchone()
            return _row_to_key(row) if row else None

    def get_membership_key(self, key_id: int) -> Optional[MembershipKey]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM membership_keys WHERE id = %s", (key_id,))
            row = cursor.fetchone()
            return _row_to_key(row) if row else None

    def list_membership_keys(self) -> List[MembershipKey]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM membership_keys ORDER BY created_at DESC, id DESC")
            rows = cursor.fetchall() or []
            return [_row_to_key(row) for row in rows]

    def apply_key(
        self,
        code: str,
        user_id: int,
        tier: Tier,
        end_date: datetime,
        *,
        allow_reassign: bool = False,
    ) -> Optional[Tuple[MembershipKey, MembershipRecord]]:
        with self._cursor() as cursor:
            # Row lock makes concurrent callers re-check the WHERE clause.
            cursor.execute(
                """
                UPDATE membership_keys
                SET used_at = CASE WHEN used_by = %(user_id)s THEN used_at ELSE NOW() END,
                    used_by = %(user_id)s
                WHERE key = %(key)s
                  AND NOT is_revoked
                  AND (used_by IS NULL OR used_by = %(user_id)s OR %(allow_reassign)s)
                RETURNING *
                """,
                {"key": code, "user_id": user_id, "allow_reassign": allow_reassign},
            )
            row = cursor.fetchone()
            if not row:
                return None
            key = _row_to_key(row)
            return key, self._supersede(cursor, user_id, tier, end_date, code)

    def set_key_revoked(self, key_id: int) -> bool:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE membership_keys
                SET is_revoked = TRUE,
                    revoked_at = COALESCE(revoked_at, NOW())
                WHERE id = %s
                """,
                (key_id,),
            )
            return cursor.rowcount > 0

    def insert_keys(self, batch: Sequence[MembershipKeyDraft]) -> List[MembershipKey]:
        if not batch:
            return []
        with self._cursor() as cursor:
            rows = psycopg2.extras.execute_values(
                cursor,
                """
                INSERT INTO membership_keys (key, tier, duration)
                VALUES %s
                RETURNING *
                """,
                [(draft.key, draft.tier.value, draft.duration_days) for draft in batch],
                fetch=True,
            )
            return [_row_to_key(row) for row in rows or []]

    def get_active_membership(self, user_id: int) -> Optional[MembershipRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM memberships
                WHERE user_id = %s AND is_active
                ORDER BY start_date DESC, id DESC
                LIMIT 1
                """,
                (user_id,),
            )
            row = cursor.fetchone()
            return _row_to_membership(row) if row else None

    def supersede_membership(
        self,
        user_id: int,
        tier: Tier,
        end_date: datetime,
        key_ref: Optional[str] = None,
    ) -> MembershipRecord:
        with self._cursor() as cursor:
            return self._supersede(cursor, user_id, tier, end_date, key_ref)

    @staticmethod
    def _supersede(
        cursor: PgCursor,
        user_id: int,
        tier: Tier,
        end_date: datetime,
        key_ref: Optional[str],
    ) -> MembershipRecord:
        # Serialize supersessions per user.
        cursor.execute("SELECT id FROM users WHERE id = %s FOR UPDATE", (user_id,))
        if cursor.fetchone() is None:
            raise LookupError(f"User {user_id} not found")
        cursor.execute(
            "UPDATE memberships SET is_active = FALSE WHERE user_id = %s AND is_active",
            (user_id,),
        )
        cursor.execute(
            """
            INSERT INTO memberships (user_id, tier, start_date, end_date, is_active, membership_key)
            VALUES (%s, %s, NOW(), GREATEST(%s, NOW()), TRUE, %s)
            RETURNING *
            """,
            (user_id, tier.value, end_date, key_ref),
        )
        row = cursor.fetchone()
        if not row:
            raise RuntimeError("Failed to persist membership")
        cursor.execute(
            """
            INSERT INTO activity_logs (user_id, activity_type, description)
            VALUES (%s, 'membership', %s)
            """,
            (user_id, f"Upgraded to {tier.value} membership"),
        )
        return _row_to_membership(row)
