from __future__ import annotations

import sqlite3
from typing import List, Optional

from domain.errors import StaleBalance
from domain.models import PlayerAccount
from domain.repositories import PlayerRepository

_COLUMNS = "version, player_id, nickname, email, birth_date, balance"


class SqlitePlayerRepository(PlayerRepository):
    """
    SQLite-backed implementation of `PlayerRepository`.

    This repository owns the `players` table, whose columns follow
    `PlayerAccount.RECORD_FIELDS`. It is self-initialising: the table is
    created if needed.
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
                CREATE TABLE IF NOT EXISTS players (
                    player_id TEXT PRIMARY KEY,
                    version INTEGER NOT NULL,
                    nickname TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    birth_date TEXT NOT NULL,
                    balance INTEGER NOT NULL CHECK (balance >= 0)
                )
                """
            )
            conn.commit()

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> PlayerAccount:
        return PlayerAccount.from_record(dict(zip(PlayerAccount.RECORD_FIELDS, row)))

    def get_player(self, player_id: str) -> Optional[PlayerAccount]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM players WHERE player_id = ?", (player_id,))
            row = cur.fetchone()
            if not row:
                return None
            return self._to_domain(row)

    def get_player_by_email(self, email: str) -> Optional[PlayerAccount]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM players WHERE email = ?", (email,))
            row = cur.fetchone()
            if not row:
                return None
            return self._to_domain(row)

    def get_all_players(self) -> List[PlayerAccount]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM players ORDER BY nickname")
            rows = cur.fetchall()
            return [self._to_domain(row) for row in rows]

    def add_player(self, player: PlayerAccount) -> None:
        record = player.to_record()
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO players ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?)
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
            SET version = ?, nickname = ?, email = ?, birth_date = ?, balance = ?
            WHERE player_id = ?
        """
        params = [
            record["version"],
            record["nickname"],
            record["email"],
            record["birth_date"],
            record["balance"],
            record["player_id"],
        ]
        # Balance check and write happen in one statement.
        if expected_balance is not None:
            query += " AND balance = ?"
            params.append(expected_balance)

        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(query, params)
            if cur.rowcount == 0:
                cur.execute("SELECT 1 FROM players WHERE player_id = ?", (player.player_id,))
                if cur.fetchone() is None:
                    raise KeyError(player.player_id)
                raise StaleBalance()
            conn.commit()
