from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

from .models import DifficultyTier

SYMBOLS: Tuple[str, ...] = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "T", "J", "Q", "K")
WILDCARD = "*"

Board = List[List[str]]
Line = List[str]
Cell = Tuple[int, int]


def rank_of(symbol: str) -> Optional[int]:
    """Position of `symbol` in the alphabet, or None for the wildcard / unknown symbols."""

    try:
        return SYMBOLS.index(symbol)
    except ValueError:
        return None


class BoardGenerator:
    """
    Builds random N×N boards for a tier.

    Every cell is drawn uniformly from `SYMBOLS`; afterwards exactly
    `min(wildcard_limit, N*N)` distinct cells are overwritten with the
    wildcard, spreading them over distinct columns while that is possible.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def generate(self, tier: DifficultyTier) -> Board:
        size = tier.board_size
        board = [[self._rng.choice(SYMBOLS) for _ in range(size)] for _ in range(size)]

        for row, col in self.wildcard_positions(size, tier.wildcard_limit):
            board[row][col] = WILDCARD

        return board

    def wildcard_positions(self, size: int, limit: int) -> List[Cell]:
        target = min(limit, size * size)
        cells = [(row, col) for row in range(size) for col in range(size)]
        chosen: List[Cell] = []
        used_columns: Set[int] = set()

        # First pass: at most one wildcard per column.
        while len(chosen) < target and len(used_columns) < size:
            candidates = [
                cell for cell in cells if cell[1] not in used_columns and cell not in chosen
            ]
            if not candidates:
                break
            cell = self._rng.choice(candidates)
            chosen.append(cell)
            used_columns.add(cell[1])

        while len(chosen) < target:
            candidates = [cell for cell in cells if cell not in chosen]
            chosen.append(self._rng.choice(candidates))

        return chosen


def lines(board: Sequence[Sequence[str]]) -> List[Line]:
    """
    All scoring lines of a square board.

    Order: rows top-to-bottom, columns left-to-right, main diagonal,
    anti-diagonal. An N×N board yields 2N+2 lines.
    """

    size = len(board)
    if any(len(row) != size for row in board):
        raise ValueError("Board must be square.")

    result: List[Line] = [list(row) for row in board]
    result.extend([board[row][col] for row in range(size)] for col in range(size))
    result.append([board[i][i] for i in range(size)])
    result.append([board[i][size - 1 - i] for i in range(size)])
    return result


def is_strict_sequence(ranks: Sequence[int]) -> bool:
    """True for unit-step ascending or descending runs of at least two ranks."""

    if len(ranks) < 2:
        return False
    steps = {b - a for a, b in zip(ranks, ranks[1:])}
    return steps == {1} or steps == {-1}


@dataclass(frozen=True)
class Outcome:
    won: bool
    bonus: bool
    winning_lines: Tuple[int, ...] = ()
    bonus_lines: Tuple[int, ...] = ()


class OutcomeEvaluator:
    """
    Scores a board.

    A board wins when any line holds a single symbol (wildcards standing in
    for it). It earns a bonus when it did not win and some wildcard-free line
    is a run of consecutive ranks.
    """

    @staticmethod
    def line_wins(line: Sequence[str]) -> bool:
        symbols = [s for s in line if s != WILDCARD]
        if not symbols:
            return False
        first = symbols[0]
        return all(s == first or s == WILDCARD for s in line)

    @staticmethod
    def line_is_bonus(line: Sequence[str]) -> bool:
        if WILDCARD in line:
            return False
        ranks = [rank_of(s) for s in line]
        if any(rank is None for rank in ranks):
            return False
        return is_strict_sequence(ranks)

    def winning_lines(self, board: Sequence[Sequence[str]]) -> Tuple[int, ...]:
        return tuple(i for i, line in enumerate(lines(board)) if self.line_wins(line))

    def bonus_lines(self, board: Sequence[Sequence[str]]) -> Tuple[int, ...]:
        return tuple(i for i, line in enumerate(lines(board)) if self.line_is_bonus(line))

    def won(self, board: Sequence[Sequence[str]]) -> bool:
        return any(self.line_wins(line) for line in lines(board))

    def bonus(self, board: Sequence[Sequence[str]]) -> bool:
        if self.won(board):
            return False
        return any(self.line_is_bonus(line) for line in lines(board))

    def evaluate(self, board: Sequence[Sequence[str]]) -> Outcome:
        winning = self.winning_lines(board)
        if winning:
            return Outcome(won=True, bonus=False, winning_lines=winning)

        bonus = self.bonus_lines(board)
        return Outcome(won=False, bonus=bool(bonus), bonus_lines=bonus)
