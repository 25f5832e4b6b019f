"""
Remote relational store: the mirrored `orders` table and the `user_roles`
relation used for admin lookups.
"""

import logging

from psycopg.types.json import Jsonb

from .db import fetch_one, get_conn

logger = logging.getLogger(__name__)


class RemoteOrderStore:
    def __init__(self, connect=get_conn):
        self.connect = connect

    def insert(self, record: dict) -> dict:
        """Insert one order row and return it. Errors propagate to the caller."""
        with self.connect() as conn:
            try:
                row = fetch_one(conn, """
                    INSERT INTO orders(user_id, email, items, total, status, metadata, created_at)
                    VALUES (%s,%s,%s,%s,%s,%s,%s)
                    RETURNING *
                """, (
                    record["user_id"], record["email"], Jsonb(record["items"]),
                    record["total"], record["status"], Jsonb(record["metadata"]),
                    record["created_at"],
                ))
                conn.commit()
                return row
            except Exception:
                conn.rollback()
                raise

    def ping(self) -> bool:
        with self.connect() as conn:
            row = fetch_one(conn, "SELECT 1 AS ok")
            return row["ok"] == 1


class RoleDirectory:
    def __init__(self, connect=get_conn):
        self.connect = connect

    def is_admin(self, user_id: str) -> bool:
        """Lookup failures resolve to non-admin."""
        try:
            with self.connect() as conn:
                row = fetch_one(
                    conn,
                    "SELECT role FROM user_roles WHERE user_id=%s AND role='admin'",
                    (user_id,),
                )
                return row is not None
        except Exception as e:
            logger.warning("Error checking admin role for %s: %s", user_id, e)
            return False
