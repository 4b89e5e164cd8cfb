from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from domain.models import STARTING_BALANCE
from domain.repositories import AccountRepository, IdentityRepository, PlayerRepository

STORAGE_BACKENDS = ("sqlite", "postgres", "csv")


@dataclass(frozen=True)
class Settings:
    telegram_token: Optional[str]
    discord_token: Optional[str]
    storage_backend: str
    db_path: str
    csv_path: str
    pg_params: dict
    starting_balance: int
    log_level: str


@dataclass(frozen=True)
class Repositories:
    players: PlayerRepository
    accounts: AccountRepository
    identities: IdentityRepository


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read settings from the environment.

    When `environ` is not given, a `.env` file in the working directory is
    loaded first (without overriding variables that are already set).
    """

    if environ is None:
        load_dotenv()
        environ = os.environ

    backend = environ.get("STORAGE_BACKEND", "sqlite").strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise RuntimeError(
            f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got '{backend}'."
        )

    try:
        starting_balance = int(environ.get("STARTING_BALANCE", STARTING_BALANCE))
    except ValueError:
        raise RuntimeError("STARTING_BALANCE must be an integer.") from None
    if starting_balance < 0:
        raise RuntimeError("STARTING_BALANCE must not be negative.")

    return Settings(
        telegram_token=environ.get("TELEGRAM_TOKEN"),
        discord_token=environ.get("DISCORD_TOKEN"),
        storage_backend=backend,
        db_path=environ.get("DB_PATH", "slots.db"),
        csv_path=environ.get("CSV_PATH", "players.csv"),
        pg_params={
            "host": environ.get("PG_HOST", "localhost"),
            "port": environ.get("PG_PORT", "5432"),
            "dbname": environ.get("POSTGRES_DB", "slots"),
            "user": environ.get("POSTGRES_USER", "postgres"),
            "password": environ.get("POSTGRES_PASSWORD", ""),
        },
        starting_balance=starting_balance,
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
    )


def build_repositories(settings: Settings) -> Repositories:
    """Instantiate the repositories for the configured storage backend."""

    if settings.storage_backend == "postgres":
        from infrastructure.db.account_repository_postgres import PostgresAccountRepository
        from infrastructure.db.identity_repository_postgres import PostgresIdentityRepository
        from infrastructure.db.player_repository_postgres import PostgresPlayerRepository

        return Repositories(
            players=PostgresPlayerRepository(settings.pg_params),
            accounts=PostgresAccountRepository(settings.pg_params),
            identities=PostgresIdentityRepository(settings.pg_params),
        )

    from infrastructure.db.account_repository_sqlite import SqliteAccountRepository
    from infrastructure.db.identity_repository_sqlite import SqliteIdentityRepository

    if settings.storage_backend == "csv":
        from infrastructure.db.player_repository_csv import CsvPlayerRepository

        players: PlayerRepository = CsvPlayerRepository(settings.csv_path)
    else:
        from infrastructure.db.player_repository_sqlite import SqlitePlayerRepository

        players = SqlitePlayerRepository(settings.db_path)

    return Repositories(
        players=players,
        accounts=SqliteAccountRepository(settings.db_path),
        identities=SqliteIdentityRepository(settings.db_path),
    )
