from __future__ import annotations

from typing import Iterable, Sequence

from domain.game import SpinResult
from domain.models import DifficultyTier, PlayerAccount


def describe_line(index: int, size: int) -> str:
    """Human name of the `index`-th line returned by `domain.board.lines`."""

    if index < size:
        return f"row {index + 1}"
    if index < 2 * size:
        return f"column {index - size + 1}"
    if index == 2 * size:
        return "main diagonal"
    return "anti-diagonal"


def render_board(board: Sequence[Sequence[str]]) -> str:
    return "\n".join(" | ".join(row) for row in board)


def render_spin(spin: SpinResult, player: PlayerAccount) -> str:
    size = spin.tier.board_size
    lines = [render_board(spin.board), ""]

    if spin.won:
        names = ", ".join(describe_line(i, size) for i in spin.outcome.winning_lines)
        lines.append(f"Congratulations! You won {spin.payout} ({names}).")
    elif spin.bonus:
        names = ", ".join(describe_line(i, size) for i in spin.outcome.bonus_lines)
        lines.append(f"Bonus! Sequence on {names}, you get {spin.payout} back.")
    else:
        lines.append("No win this time.")

    lines.append(f"Balance: {player.balance}")
    return "\n".join(lines)


def render_tier(tier: DifficultyTier) -> str:
    return (
        f"{tier.name}: {tier.board_size}x{tier.board_size} board, "
        f"up to {tier.wildcard_limit} wildcard(s), "
        f"wager {tier.min_wager}-{tier.max_wager}, pays x{tier.payout_multiplier}"
    )


def render_tiers(tiers: Iterable[DifficultyTier]) -> str:
    return "\n".join(render_tier(tier) for tier in tiers)


def render_balance(player: PlayerAccount) -> str:
    status = "" if player.eligible else " (betting disabled: under 18)"
    return f"{player.nickname}, your balance is {player.balance}{status}."


def render_help(prefix: str) -> str:
    return (
        f"{prefix}register <email> <password> <YYYY-MM-DD> <nickname> - create an account\n"
        f"{prefix}login <email> <password>  - log in\n"
        f"{prefix}logout                    - log out\n"
        f"{prefix}balance                   - show your balance\n"
        f"{prefix}deposit <amount>          - add money\n"
        f"{prefix}withdraw <amount>         - withdraw money (needs balance of 100+)\n"
        f"{prefix}tiers                     - list difficulty tiers\n"
        f"{prefix}play <tier> <wager>       - spin the slot machine\n"
    )
