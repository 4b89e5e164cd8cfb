from __future__ import annotations

from typing import List, Optional

import psycopg2

from domain.repositories import IdentityRepository


class PostgresIdentityRepository(IdentityRepository):
    """
    Postgres-backed implementation of `IdentityRepository`.

    It uses a dedicated `player_identities` table to map external identities
    (provider + provider_user_id) to player IDs stored in the `players`
    table managed by `PostgresPlayerRepository`.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._ensure_table()

    def _get_connection(self):
        return psycopg2.connect(**self._db_params)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
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
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT player_id
                    FROM player_identities
                    WHERE provider = %s AND provider_user_id = %s
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
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO player_identities (provider, provider_user_id, player_id)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (provider, provider_user_id)
                    DO UPDATE SET player_id = EXCLUDED.player_id
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
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM player_identities
                    WHERE provider = %s AND provider_user_id = %s
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
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT provider_user_id
                    FROM player_identities
                    WHERE provider = %s AND player_id = %s
                    """,
                    (provider, player_id),
                )
                return [str(row[0]) for row in cur.fetchall()]
