from __future__ import annotations

from typing import Optional

import psycopg2

from domain.models import Account
from domain.repositories import AccountRepository


class PostgresAccountRepository(AccountRepository):
    """Postgres-backed implementation of `AccountRepository`."""

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
                    CREATE TABLE IF NOT EXISTS accounts (
                        id TEXT PRIMARY KEY,
                        email TEXT NOT NULL UNIQUE,
                        password_hash TEXT NOT NULL
                    )
                    """
                )
                conn.commit()

    def _fetch_one(self, column: str, value: str) -> Optional[Account]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT id, email, password_hash FROM accounts WHERE {column} = %s",
                    (value,),
                )
                row = cur.fetchone()
                if not row:
                    return None
                return Account(id=str(row[0]), email=row[1], password_hash=row[2])

    def get_by_email(self, email: str) -> Optional[Account]:
        return self._fetch_one("email", email)

    def get_by_id(self, account_id: str) -> Optional[Account]:
        return self._fetch_one("id", account_id)

    def create_account(self, account: Account) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO accounts (id, email, password_hash)
                    VALUES (%s, %s, %s)
                    """,
                    (account.id, account.email, account.password_hash),
                )
                conn.commit()

    def delete_account(self, account_id: str) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM accounts WHERE id = %s", (account_id,))
                conn.commit()
