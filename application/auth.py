from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from datetime import date
from typing import Callable, Dict, Optional

from passlib.hash import pbkdf2_sha256

from application.services import ExternalContext, OperationResult
from domain.models import STARTING_BALANCE, Account, PlayerAccount
from domain.repositories import AccountRepository, IdentityRepository, PlayerRepository

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return pbkdf2_sha256.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pbkdf2_sha256.verify(password, password_hash)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class LoginThrottle:
    """
    Progressive back-off after repeated failed logins for one email.

    The first `free_attempts - 1` failures are free. From the
    `free_attempts`-th consecutive failure on, every failure locks the email
    for `(failures - free_attempts + 1) * delay_seconds` seconds. A successful
    login resets the counter.
    """

    def __init__(
        self,
        free_attempts: int = 5,
        delay_seconds: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._free_attempts = free_attempts
        self._delay_seconds = delay_seconds
        self._clock = clock
        self._failures: Dict[str, int] = {}
        self._locked_until: Dict[str, float] = {}
        self._lock = threading.Lock()

    def seconds_remaining(self, key: str) -> int:
        with self._lock:
            locked_until = self._locked_until.get(key)
            if locked_until is None:
                return 0
            return max(0, math.ceil(locked_until - self._clock()))

    def record_failure(self, key: str) -> int:
        """Count a failed attempt and return the lockout it triggers, in seconds."""

        with self._lock:
            failures = self._failures.get(key, 0) + 1
            self._failures[key] = failures
            if failures < self._free_attempts:
                return 0

            delay = (failures - (self._free_attempts - 1)) * self._delay_seconds
            self._locked_until[key] = self._clock() + delay
            return delay

    def record_success(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)
            self._locked_until.pop(key, None)


_THROTTLE = LoginThrottle()


def _parse_birth_date(text: str) -> Optional[date]:
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        return None


def register_player(
    external_ctx: ExternalContext,
    email: str,
    password: str,
    birth_date_text: str,
    nickname: str,
    account_repo: AccountRepository,
    player_repo: PlayerRepository,
    identity_repo: IdentityRepository,
    starting_balance: int = STARTING_BALANCE,
    today: Optional[date] = None,
) -> OperationResult:
    """
    Create credentials and a player, then log the caller in.

    Players under 18 may register; their account is created ineligible and
    every wager they attempt is refused.
    """

    email = normalize_email(email)
    if not email or "@" not in email:
        return OperationResult(success=False, error_message="Please provide a valid email.")
    if not password:
        return OperationResult(success=False, error_message="Password must not be empty.")
    if not nickname.strip():
        return OperationResult(success=False, error_message="Nickname must not be empty.")

    birth_date = _parse_birth_date(birth_date_text)
    if birth_date is None:
        return OperationResult(
            success=False,
            error_message="Invalid birth date. Please use YYYY-MM-DD.",
        )

    if account_repo.get_by_email(email) is not None:
        return OperationResult(
            success=False,
            error_message="Email already registered. Please log in.",
        )

    player_id = uuid.uuid4().hex
    account = Account(id=player_id, email=email, password_hash=hash_password(password))
    player = PlayerAccount(
        player_id=player_id,
        nickname=nickname.strip(),
        email=email,
        birth_date=birth_date,
        balance=starting_balance,
        today=today,
    )

    account_repo.create_account(account)
    try:
        player_repo.add_player(player)
    except Exception:
        # An account never outlives a failed player insert.
        logger.exception("Could not store player %s, removing its account", player_id)
        account_repo.delete_account(player_id)
        raise
    identity_repo.set_external_identity(
        external_ctx.provider,
        external_ctx.provider_user_id,
        player_id,
    )

    logger.info(
        "Registered player %s (%s) eligible=%s via %s",
        player_id,
        email,
        player.eligible,
        external_ctx.provider,
    )
    return OperationResult(success=True, player=player)


def login(
    external_ctx: ExternalContext,
    email: str,
    password: str,
    account_repo: AccountRepository,
    player_repo: PlayerRepository,
    identity_repo: IdentityRepository,
    throttle: Optional[LoginThrottle] = None,
) -> OperationResult:
    throttle = throttle or _THROTTLE
    email = normalize_email(email)

    wait = throttle.seconds_remaining(email)
    if wait:
        logger.info("Login for %s refused, throttled for %d more seconds", email, wait)
        return OperationResult(
            success=False,
            error_message=f"Too many failed attempts. Please wait {wait} seconds.",
        )

    account = account_repo.get_by_email(email)
    if account is None:
        return OperationResult(
            success=False,
            error_message="You are not registered yet. Please register first.",
        )

    if not verify_password(password, account.password_hash):
        delay = throttle.record_failure(email)
        logger.info("Failed login for %s", email)
        message = "Incorrect password."
        if delay:
            message += f" Too many failed attempts. Please wait {delay} seconds."
        return OperationResult(success=False, error_message=message)

    player = player_repo.get_player(account.id)
    if player is None:
        logger.warning("Account %s has no player record", account.id)
        return OperationResult(success=False, error_message="Player record not found.")

    throttle.record_success(email)
    identity_repo.set_external_identity(
        external_ctx.provider,
        external_ctx.provider_user_id,
        account.id,
    )
    logger.info("Player %s logged in via %s", account.id, external_ctx.provider)
    return OperationResult(success=True, player=player)


def logout(
    external_ctx: ExternalContext,
    identity_repo: IdentityRepository,
) -> OperationResult:
    identity_repo.clear_external_identity(
        external_ctx.provider,
        external_ctx.provider_user_id,
    )
    return OperationResult(success=True)
