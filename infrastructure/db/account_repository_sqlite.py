from __future__ import annotations

import sqlite3
from typing import Optional

from domain.models import Account
from domain.repositories import AccountRepository


class SqliteAccountRepository(AccountRepository):
    """
    SQLite-backed implementation of `AccountRepository`.

    Manages the `accounts` table, which stores login emails and password
    hashes. Account IDs are shared with the `players` table.
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
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL
                )
                """
            )
            conn.commit()

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Account:
        return Account(
            id=str(row[0]),
            email=row[1],
            password_hash=row[2],
        )

    def _fetch_one(self, column: str, value: str) -> Optional[Account]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT id, email, password_hash FROM accounts WHERE {column} = ?",
                (value,),
            )
            row = cur.fetchone()
            if not row:
                return None
            return self._to_domain(row)

    def get_by_email(self, email: str) -> Optional[Account]:
        return self._fetch_one("email", email)

    def get_by_id(self, account_id: str) -> Optional[Account]:
        return self._fetch_one("id", account_id)

    def create_account(self, account: Account) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO accounts (id, email, password_hash)
                VALUES (?, ?, ?)
                """,
                (account.id, account.email, account.password_hash),
            )
            conn.commit()

    def delete_account(self, account_id: str) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
            conn.commit()
