from __future__ import annotations

from typing import List, Optional

import psycopg2

from domain.errors import StaleBalance
from domain.models import PlayerAccount
from domain.repositories import PlayerRepository

_COLUMNS = "version, player_id, nickname, email, birth_date, balance"


class PostgresPlayerRepository(PlayerRepository):
    """
    Postgres-backed implementation of `PlayerRepository`.

    Rows are translated through `PlayerAccount.from_record`, so eligibility
    is re-derived from the stored birth date on every load.
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
                    CREATE TABLE IF NOT EXISTS players (
                        player_id TEXT PRIMARY KEY,
                        version INTEGER NOT NULL,
                        nickname TEXT NOT NULL,
                        email TEXT NOT NULL UNIQUE,
                        birth_date DATE NOT NULL,
                        balance BIGINT NOT NULL CHECK (balance >= 0)
                    )
                    """
                )
                conn.commit()

    @staticmethod
    def _to_domain(row: tuple) -> PlayerAccount:
        return PlayerAccount.from_record(dict(zip(PlayerAccount.RECORD_FIELDS, row)))

    def _fetch(self, where: str, params: tuple) -> List[PlayerAccount]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM players {where}", params)
                return [self._to_domain(row) for row in cur.fetchall()]

    def get_player(self, player_id: str) -> Optional[PlayerAccount]:
        players = self._fetch("WHERE player_id = %s", (player_id,))
        return players[0] if players else None

    def get_player_by_email(self, email: str) -> Optional[PlayerAccount]:
        players = self._fetch("WHERE email = %s", (email,))
        return players[0] if players else None

    def get_all_players(self) -> List[PlayerAccount]:
        return self._fetch("ORDER BY nickname", ())

    def add_player(self, player: PlayerAccount) -> None:
        record = player.to_record()
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO players ({_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    tuple(record[name] for name in PlayerAccount.RECORD_FIELDS),
                )
                conn.commit()

    def save_player(
        self,
        player: PlayerAccount,
        expected_balance: Optional[int] = None,
    ) -> None:
        record = player.to_record()
        query = """
            UPDATE players
            SET version = %s, nickname = %s, email = %s, birth_date = %s, balance = %s
            WHERE player_id = %s
        """
        params = [
            record["version"],
            record["nickname"],
            record["email"],
            record["birth_date"],
            record["balance"],
            record["player_id"],
        ]
        if expected_balance is not None:
            query += " AND balance = %s"
            params.append(expected_balance)

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                if cur.rowcount == 0:
                    cur.execute("SELECT 1 FROM players WHERE player_id = %s", (player.player_id,))
                    if cur.fetchone() is None:
                        raise KeyError(player.player_id)
                    raise StaleBalance()
                conn.commit()
