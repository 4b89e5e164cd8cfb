from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .board import Board, BoardGenerator, Outcome, OutcomeEvaluator
from .errors import WagerOutOfRange
from .models import DifficultyTier, PlayerAccount


@dataclass(frozen=True)
class SpinResult:
    """Everything a presentation layer needs to show one round."""

    tier: DifficultyTier
    wager: int
    board: Board
    won: bool
    bonus: bool
    payout: int
    outcome: Outcome


class GameSession:
    """
    Plays single rounds of the slot machine against a `PlayerAccount`.

    The session is pure request/response: it never prints, prompts or
    persists. Callers save the account after each round.
    """

    def __init__(
        self,
        generator: Optional[BoardGenerator] = None,
        evaluator: Optional[OutcomeEvaluator] = None,
    ) -> None:
        self._generator = generator or BoardGenerator()
        self._evaluator = evaluator or OutcomeEvaluator()

    def play(self, account: PlayerAccount, wager: int, tier: DifficultyTier) -> SpinResult:
        if not tier.admits(wager):
            raise WagerOutOfRange(
                f"Wager must be between {tier.min_wager} and {tier.max_wager} "
                f"on {tier.name}."
            )

        account.place_bet(wager)
        board = self._generator.generate(tier)
        outcome = self._evaluator.evaluate(board)

        payout = 0
        if outcome.won:
            payout = wager * tier.payout_multiplier
        elif outcome.bonus:
            payout = wager

        if payout:
            account.reward(payout)

        return SpinResult(
            tier=tier,
            wager=wager,
            board=board,
            won=outcome.won,
            bonus=outcome.bonus,
            payout=payout,
            outcome=outcome,
        )
