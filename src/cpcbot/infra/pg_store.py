"""PostgreSQL implementation of the Store interface.

Uses raw SQL with psycopg2 (no ORM). Each method runs in its own short
transaction so a dedupe receipt or rate window increment is committed before
any outbound call is made.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from psycopg2.extensions import connection as PgConnection

from cpcbot.domain.catalogue import MenuItem
from cpcbot.domain.orders import NewOrder, OrderSummary

from .db import fetchall, fetchone, txn


class PostgresStore:
    """Store backed by the schema in migrations/versions/001_initial_schema.py.

    Args:
        conn: Optional shared connection (tests). When None, every call
            opens and closes its own connection from DATABASE_URL.
    """

    def __init__(self, conn: PgConnection | None = None) -> None:
        self._conn = conn

    def claim_message(self, message_id: str, wa_id: str, message_type: str) -> bool:
        with txn(self._conn) as cur:
            cur.execute(
                """
                INSERT INTO processed_messages (message_id, wa_id, message_type)
                VALUES (%s, %s, %s)
                ON CONFLICT (message_id) DO NOTHING
                """,
                (message_id, wa_id, message_type),
            )
            return cur.rowcount == 1

    def message_exists(self, message_id: str) -> bool:
        with txn(self._conn) as cur:
            row = fetchone(
                cur,
                "SELECT 1 FROM processed_messages WHERE message_id = %s",
                (message_id,),
            )
            return row is not None

    def is_user_blocked(self, wa_id: str) -> bool:
        with txn(self._conn) as cur:
            row = fetchone(
                cur,
                "SELECT is_blocked FROM users WHERE wa_id = %s",
                (wa_id,),
            )
            return bool(row and row[0])

    def upsert_user(self, wa_id: str, phone: str, now: datetime) -> bool:
        with txn(self._conn) as cur:
            # xmax = 0 only for freshly inserted rows
            row = fetchone(
                cur,
                """
                INSERT INTO users (wa_id, phone, first_seen_at, last_active_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (wa_id) DO UPDATE
                SET last_active_at = EXCLUDED.last_active_at
                RETURNING (xmax = 0)
                """,
                (wa_id, phone, now, now),
            )
            return bool(row and row[0])

    def increment_rate_window(
        self, wa_id: str, window_start: datetime, max_requests: int
    ) -> int | None:
        with txn(self._conn) as cur:
            row = fetchone(
                cur,
                """
                INSERT INTO rate_limits (wa_id, window_start, request_count)
                VALUES (%s, %s, 1)
                ON CONFLICT (wa_id, window_start) DO UPDATE
                SET request_count = rate_limits.request_count + 1
                WHERE rate_limits.request_count < %s
                RETURNING request_count
                """,
                (wa_id, window_start, max_requests),
            )
            return int(row[0]) if row else None

    def list_menu_items(self) -> list[MenuItem]:
        with txn(self._conn) as cur:
            rows = fetchall(
                cur,
                """
                SELECT item_id, name, price, description
                FROM menu_items
                WHERE is_available = TRUE
                ORDER BY sort_order, id
                """,
            )
        return [
            MenuItem(item_id=r[0], name=r[1], price=int(r[2]), description=r[3])
            for r in rows
        ]

    def create_order(self, order: NewOrder) -> str | None:
        with txn(self._conn) as cur:
            row = fetchone(
                cur,
                """
                INSERT INTO orders (
                    user_id, wa_id, customer_phone, item_id,
                    item_name, item_price, status
                )
                VALUES (
                    (SELECT id FROM users WHERE wa_id = %s),
                    %s, %s, %s, %s, %s, %s
                )
                RETURNING order_number
                """,
                (
                    order.wa_id,
                    order.wa_id,
                    order.customer_phone,
                    order.item_id,
                    order.item_name,
                    order.item_price,
                    order.status,
                ),
            )
            return row[0] if row else None

    def list_orders(self, wa_id: str, limit: int) -> list[OrderSummary]:
        with txn(self._conn) as cur:
            rows = fetchall(
                cur,
                """
                SELECT order_number, item_name, status, created_at
                FROM orders
                WHERE wa_id = %s
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                (wa_id, limit),
            )
        return [
            OrderSummary(order_number=r[0], item_name=r[1], status=r[2], created_at=r[3])
            for r in rows
        ]

    def upsert_lead(self, wa_id: str, phone: str, source: str, now: datetime) -> bool:
        with txn(self._conn) as cur:
            row = fetchone(
                cur,
                """
                INSERT INTO leads (wa_id, phone, source, captured_at, last_interaction, status)
                VALUES (%s, %s, %s, %s, %s, 'new')
                ON CONFLICT (wa_id) DO UPDATE
                SET last_interaction = EXCLUDED.last_interaction
                RETURNING (xmax = 0)
                """,
                (wa_id, phone, source, now, now),
            )
            return bool(row and row[0])

    def insert_message_log(
        self,
        *,
        wa_id: str,
        direction: str,
        message_type: str,
        content: dict[str, Any],
        status: str,
        error_message: str | None,
    ) -> None:
        with txn(self._conn) as cur:
            cur.execute(
                """
                INSERT INTO message_logs (
                    wa_id, direction, message_type, content, status, error_message
                )
                VALUES (%s, %s, %s, %s::jsonb, %s, %s)
                """,
                (
                    wa_id,
                    direction,
                    message_type,
                    json.dumps(content, default=str),
                    status,
                    error_message,
                ),
            )

    def purge_processed_messages(self, before: datetime) -> int:
        with txn(self._conn) as cur:
            cur.execute(
                "DELETE FROM processed_messages WHERE processed_at < %s",
                (before,),
            )
            return cur.rowcount

    def purge_rate_windows(self, before: datetime) -> int:
        with txn(self._conn) as cur:
            cur.execute(
                "DELETE FROM rate_limits WHERE window_start < %s",
                (before,),
            )
            return cur.rowcount
