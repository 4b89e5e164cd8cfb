from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import Ineligible, InsufficientFunds, InvalidAmount, UnknownTier

ADULT_AGE = 18
STARTING_BALANCE = 50
MIN_WITHDRAW_BALANCE = 100


@dataclass(frozen=True)
class DifficultyTier:
    """
    Immutable configuration of one difficulty level of the slot machine.

    Tiers differ only in data (board size, wildcard budget, wager limits and
    payout), so a single value type covers all of them.
    """

    name: str
    board_size: int
    wildcard_limit: int
    min_wager: int
    max_wager: int
    payout_multiplier: int

    def __post_init__(self) -> None:
        if self.board_size < 1:
            raise ValueError(f"board_size must be positive, got {self.board_size}")
        if self.wildcard_limit < 0:
            raise ValueError(f"wildcard_limit must not be negative, got {self.wildcard_limit}")
        if self.min_wager < 1 or self.min_wager > self.max_wager:
            raise ValueError(
                f"invalid wager limits {self.min_wager}-{self.max_wager} for tier {self.name}"
            )
        if self.payout_multiplier < 1:
            raise ValueError(f"payout_multiplier must be at least 1, got {self.payout_multiplier}")

    def admits(self, wager: int) -> bool:
        return self.min_wager <= wager <= self.max_wager


EASY = DifficultyTier("easy", board_size=3, wildcard_limit=1, min_wager=1, max_wager=10, payout_multiplier=10)
MEDIUM = DifficultyTier("medium", board_size=4, wildcard_limit=2, min_wager=10, max_wager=30, payout_multiplier=50)
HARD = DifficultyTier("hard", board_size=5, wildcard_limit=3, min_wager=30, max_wager=50, payout_multiplier=100)

TIERS: Dict[str, DifficultyTier] = {tier.name: tier for tier in (EASY, MEDIUM, HARD)}


def get_tier(name: str) -> DifficultyTier:
    """Look up one of the fixed tiers by (case-insensitive) name."""

    tier = TIERS.get(name.strip().lower())
    if tier is None:
        choices = ", ".join(TIERS)
        raise UnknownTier(f"Unknown difficulty '{name}'. Choose one of: {choices}.")
    return tier


def age_on(birth_date: date, today: date) -> int:
    """Whole years elapsed between `birth_date` and `today`."""

    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def is_adult(birth_date: date, today: Optional[date] = None) -> bool:
    return age_on(birth_date, today or date.today()) >= ADULT_AGE


@dataclass
class Account:
    """
    Login credentials for a player.

    The account and the `PlayerAccount` share the same ID; credentials are
    kept apart so that the game state never carries a password hash.
    """

    id: str
    email: str
    password_hash: str


class PlayerAccount:
    """
    Financial state of a player: balance plus the betting eligibility flag.

    Eligibility is derived once from the birth date when the object is built
    and never re-evaluated afterwards. The balance can only change through
    `deposit`, `withdraw`, `place_bet` and `reward`; each of them validates
    before mutating, so a failed call leaves the account untouched.
    """

    RECORD_VERSION = 1
    RECORD_FIELDS: Tuple[str, ...] = (
        "version",
        "player_id",
        "nickname",
        "email",
        "birth_date",
        "balance",
    )

    def __init__(
        self,
        player_id: str,
        nickname: str,
        email: str,
        birth_date: date,
        balance: int = STARTING_BALANCE,
        today: Optional[date] = None,
    ) -> None:
        if balance < 0:
            raise ValueError(f"balance must not be negative, got {balance}")

        self._player_id = player_id
        self._nickname = nickname
        self._email = email
        self._birth_date = birth_date
        self._balance = balance
        self._eligible = is_adult(birth_date, today)

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def nickname(self) -> str:
        return self._nickname

    @property
    def email(self) -> str:
        return self._email

    @property
    def birth_date(self) -> date:
        return self._birth_date

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def eligible(self) -> bool:
        return self._eligible

    def deposit(self, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount("Deposit amount must be greater than zero.")
        self._balance += amount

    def withdraw(self, amount: int) -> None:
        if self._balance < MIN_WITHDRAW_BALANCE or self._balance < amount:
            raise InsufficientFunds(
                f"Insufficient funds to withdraw. A balance of at least "
                f"{MIN_WITHDRAW_BALANCE} is required."
            )
        if amount <= 0:
            raise InvalidAmount("Withdrawal amount must be greater than zero.")
        self._balance -= amount

    def place_bet(self, amount: int) -> None:
        if not self._eligible:
            raise Ineligible("Players under 18 cannot place bets.")
        if amount <= 0:
            raise InvalidAmount("Wager must be greater than zero.")
        if self._balance < amount:
            raise InsufficientFunds("Insufficient funds for this wager.")
        self._balance -= amount

    def reward(self, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount("Reward must not be negative.")
        self._balance += amount

    def to_record(self) -> Dict[str, Any]:
        """
        Serialize the persisted fields in `RECORD_FIELDS` order.

        Eligibility is not part of the record; it is re-derived from the
        birth date by `from_record`.
        """

        return {
            "version": self.RECORD_VERSION,
            "player_id": self._player_id,
            "nickname": self._nickname,
            "email": self._email,
            "birth_date": self._birth_date.isoformat(),
            "balance": self._balance,
        }

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        today: Optional[date] = None,
    ) -> "PlayerAccount":
        """Rebuild an account from a mapping produced by `to_record`."""

        missing = [name for name in cls.RECORD_FIELDS if name not in record]
        if missing:
            raise ValueError(f"Player record is missing fields: {', '.join(missing)}")

        version = int(record["version"])
        if version != cls.RECORD_VERSION:
            raise ValueError(f"Unsupported player record version: {version}")

        birth_date = record["birth_date"]
        if not isinstance(birth_date, date):
            birth_date = date.fromisoformat(str(birth_date))

        return cls(
            player_id=str(record["player_id"]),
            nickname=str(record["nickname"]),
            email=str(record["email"]),
            birth_date=birth_date,
            balance=int(record["balance"]),
            today=today,
        )

    def __repr__(self) -> str:
        return (
            f"PlayerAccount(player_id={self._player_id!r}, nickname={self._nickname!r}, "
            f"balance={self._balance}, eligible={self._eligible})"
        )
