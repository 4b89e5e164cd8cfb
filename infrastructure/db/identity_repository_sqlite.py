from __future__ import annotations

import sqlite3
from typing import List, Optional

from domain.repositories import IdentityRepository


class SqliteIdentityRepository(IdentityRepository):
    """
    SQLite-backed implementation of `IdentityRepository`.

    Stores logged-in mappings from (provider, provider_user_id) to player IDs
    in a `player_identities` table.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS player_identities (
                    provider TEXT NOT NULL,
                    provider_user_id TEXT NOT NULL,
                    player_id TEXT NOT NULL,
                    PRIMARY KEY (provider, provider_user_id)
                )
                """
            )
            conn.commit()

    def find_player_id(
        self,
        provider: str,
        provider_user_id: str,
    ) -> Optional[str]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT player_id
                FROM player_identities
                WHERE provider = ? AND provider_user_id = ?
                """,
                (provider, provider_user_id),
            )
            row = cur.fetchone()
            if not row:
                return None
            return str(row[0])

    def set_external_identity(
        self,
        provider: str,
        provider_user_id: str,
        player_id: str,
    ) -> None:
        """
        Upsert a mapping from external identity to player ID.
        """

        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO player_identities (provider, provider_user_id, player_id)
                VALUES (?, ?, ?)
                ON CONFLICT (provider, provider_user_id)
                DO UPDATE SET player_id = excluded.player_id
                """,
                (provider, provider_user_id, player_id),
            )
            conn.commit()

    def clear_external_identity(
        self,
        provider: str,
        provider_user_id: str,
    ) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                DELETE FROM player_identities
                WHERE provider = ? AND provider_user_id = ?
                """,
                (provider, provider_user_id),
            )
            conn.commit()

    def get_external_ids_for_player(
        self,
        provider: str,
        player_id: str,
    ) -> List[str]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT provider_user_id
                FROM player_identities
                WHERE provider = ? AND player_id = ?
                """,
                (provider, player_id),
            )
            rows = cur.fetchall()
            return [str(row[0]) for row in rows]
