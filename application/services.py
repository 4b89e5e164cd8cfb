from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from application.locks import PlayerLocks
from domain.errors import SlotError, StaleBalance
from domain.game import GameSession, SpinResult
from domain.models import TIERS, DifficultyTier, PlayerAccount, get_tier
from domain.repositories import IdentityRepository, PlayerRepository

logger = logging.getLogger(__name__)

NOT_LOGGED_IN = "You are not logged in. Please register or log in first."


@dataclass
class ExternalContext:
    """
    Information about the caller from a particular channel (Telegram, Discord).

    The application layer never depends on concrete SDK types; it only sees
    this small context object.
    """

    provider: str
    provider_user_id: str
    display_name: str


@dataclass
class OperationResult:
    """Generic result type for account operations."""

    success: bool
    error_message: Optional[str] = None
    player: Optional[PlayerAccount] = None


@dataclass
class PlayResult:
    """Result of playing one round."""

    success: bool
    error_message: Optional[str] = None
    player: Optional[PlayerAccount] = None
    spin: Optional[SpinResult] = None


_LOCKS = PlayerLocks()
_SESSION = GameSession()


def list_tiers() -> List[DifficultyTier]:
    return list(TIERS.values())


def tiers_for_wager(wager: int) -> List[DifficultyTier]:
    """Tiers whose wager limits admit `wager`."""

    return [tier for tier in TIERS.values() if tier.admits(wager)]


def get_balance(
    external_ctx: ExternalContext,
    identity_repo: IdentityRepository,
    player_repo: PlayerRepository,
) -> OperationResult:
    player_id = identity_repo.find_player_id(
        external_ctx.provider,
        external_ctx.provider_user_id,
    )
    player = player_repo.get_player(player_id) if player_id else None
    if player is None:
        return OperationResult(success=False, error_message=NOT_LOGGED_IN)
    return OperationResult(success=True, player=player)


def _apply_to_player(
    external_ctx: ExternalContext,
    operation: str,
    mutate: Callable[[PlayerAccount], None],
    identity_repo: IdentityRepository,
    player_repo: PlayerRepository,
    locks: Optional[PlayerLocks],
) -> OperationResult:
    """
    Load the caller's player, apply `mutate` and save it, holding the
    player's lock for the whole sequence.

    The lock only covers this process. The save is conditional on the
    balance that was loaded, so a write from another process in between
    makes this operation fail instead of overwriting it.
    """

    player_id = identity_repo.find_player_id(
        external_ctx.provider,
        external_ctx.provider_user_id,
    )
    if player_id is None:
        return OperationResult(success=False, error_message=NOT_LOGGED_IN)

    with (locks or _LOCKS).for_player(player_id):
        player = player_repo.get_player(player_id)
        if player is None:
            return OperationResult(success=False, error_message=NOT_LOGGED_IN)

        loaded_balance = player.balance
        try:
            mutate(player)
        except SlotError as exc:
            logger.info("%s rejected for player %s: %s", operation, player_id, exc.message)
            return OperationResult(success=False, error_message=exc.message, player=player)

        try:
            player_repo.save_player(player, expected_balance=loaded_balance)
        except StaleBalance as exc:
            logger.warning("%s discarded for player %s: balance changed concurrently", operation, player_id)
            return OperationResult(success=False, error_message=exc.message)

    logger.info("%s for player %s, balance now %d", operation, player_id, player.balance)
    return OperationResult(success=True, player=player)


def deposit_funds(
    external_ctx: ExternalContext,
    amount: int,
    identity_repo: IdentityRepository,
    player_repo: PlayerRepository,
    locks: Optional[PlayerLocks] = None,
) -> OperationResult:
    return _apply_to_player(
        external_ctx,
        f"Deposit of {amount}",
        lambda player: player.deposit(amount),
        identity_repo,
        player_repo,
        locks,
    )


def withdraw_funds(
    external_ctx: ExternalContext,
    amount: int,
    identity_repo: IdentityRepository,
    player_repo: PlayerRepository,
    locks: Optional[PlayerLocks] = None,
) -> OperationResult:
    return _apply_to_player(
        external_ctx,
        f"Withdrawal of {amount}",
        lambda player: player.withdraw(amount),
        identity_repo,
        player_repo,
        locks,
    )


def play_slot(
    external_ctx: ExternalContext,
    tier_name: str,
    wager: int,
    identity_repo: IdentityRepository,
    player_repo: PlayerRepository,
    session: Optional[GameSession] = None,
    locks: Optional[PlayerLocks] = None,
) -> PlayResult:
    """
    Play one round on the named tier and persist the resulting balance.

    Semantics:
    - The wager is debited before the board is drawn.
    - A win credits `wager * payout_multiplier`, a bonus refunds the wager.
    - Rejected wagers leave the stored balance unchanged.
    """

    try:
        tier = get_tier(tier_name)
    except SlotError as exc:
        return PlayResult(success=False, error_message=exc.message)

    session = session or _SESSION
    spins: List[SpinResult] = []

    result = _apply_to_player(
        external_ctx,
        f"Spin on {tier.name} with wager {wager}",
        lambda player: spins.append(session.play(player, wager, tier)),
        identity_repo,
        player_repo,
        locks,
    )
    if not result.success:
        return PlayResult(
            success=False,
            error_message=result.error_message,
            player=result.player,
        )

    spin = spins[0]
    logger.info(
        "Spin result for player %s: won=%s bonus=%s payout=%d",
        result.player.player_id,
        spin.won,
        spin.bonus,
        spin.payout,
    )
    return PlayResult(success=True, player=result.player, spin=spin)
