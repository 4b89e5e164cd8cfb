import os
import tempfile
import unittest
from datetime import date

from application.locks import PlayerLocks
from application.services import (
    NOT_LOGGED_IN,
    ExternalContext,
    deposit_funds,
    get_balance,
    list_tiers,
    play_slot,
    tiers_for_wager,
    withdraw_funds,
)
from domain.board import BoardGenerator
from domain.game import GameSession
from domain.models import PlayerAccount
from in_memory import InMemoryIdentityRepository, InMemoryPlayerRepository
from infrastructure.db.identity_repository_sqlite import SqliteIdentityRepository
from infrastructure.db.player_repository_sqlite import SqlitePlayerRepository


class FixedBoardGenerator(BoardGenerator):
    def __init__(self, board):
        super().__init__()
        self.board = board

    def generate(self, tier):
        return [list(row) for row in self.board]


class ApplicationServicesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.player_repo = InMemoryPlayerRepository()
        self.identity_repo = InMemoryIdentityRepository()
        self.locks = PlayerLocks()
        self.ctx = ExternalContext(
            provider="telegram",
            provider_user_id="12345",
            display_name="John Doe",
        )
        self._add_player("p1", balance=100, birth_date=date(1990, 1, 1))
        self.identity_repo.set_external_identity("telegram", "12345", "p1")

    def _add_player(self, player_id, balance, birth_date):
        self.player_repo.add_player(
            PlayerAccount(player_id, "John", f"{player_id}@example.com", birth_date, balance)
        )

    def _stored_balance(self, player_id="p1"):
        return self.player_repo.get_player(player_id).balance

    def _session(self, board):
        return GameSession(FixedBoardGenerator(board))

    def test_unknown_caller_must_log_in(self):
        stranger = ExternalContext("discord", "999", "Stranger")

        self.assertEqual(
            get_balance(stranger, self.identity_repo, self.player_repo).error_message,
            NOT_LOGGED_IN,
        )
        result = deposit_funds(stranger, 10, self.identity_repo, self.player_repo)
        self.assertFalse(result.success)
        self.assertEqual(result.error_message, NOT_LOGGED_IN)

        play = play_slot(stranger, "easy", 5, self.identity_repo, self.player_repo)
        self.assertFalse(play.success)
        self.assertEqual(play.error_message, NOT_LOGGED_IN)

    def test_get_balance_returns_stored_player(self):
        result = get_balance(self.ctx, self.identity_repo, self.player_repo)
        self.assertTrue(result.success)
        self.assertEqual(result.player.balance, 100)

    def test_deposit_persists_new_balance(self):
        result = deposit_funds(self.ctx, 40, self.identity_repo, self.player_repo, locks=self.locks)
        self.assertTrue(result.success)
        self.assertEqual(result.player.balance, 140)
        self.assertEqual(self._stored_balance(), 140)
        self.assertEqual(self.player_repo.saves, 1)

    def test_rejected_deposit_is_not_saved(self):
        result = deposit_funds(self.ctx, 0, self.identity_repo, self.player_repo, locks=self.locks)
        self.assertFalse(result.success)
        self.assertEqual(result.error_message, "Deposit amount must be greater than zero.")
        self.assertEqual(self.player_repo.saves, 0)

    def test_withdraw_applies_minimum_balance_policy(self):
        result = withdraw_funds(self.ctx, 60, self.identity_repo, self.player_repo, locks=self.locks)
        self.assertTrue(result.success)
        self.assertEqual(self._stored_balance(), 40)

        result = withdraw_funds(self.ctx, 10, self.identity_repo, self.player_repo, locks=self.locks)
        self.assertFalse(result.success)
        self.assertIn("at least 100", result.error_message)
        self.assertEqual(self._stored_balance(), 40)

    def test_play_win_is_persisted(self):
        session = self._session([["9"] * 3 for _ in range(3)])

        result = play_slot(
            self.ctx, "easy", 10, self.identity_repo, self.player_repo, session=session, locks=self.locks
        )

        self.assertTrue(result.success)
        self.assertTrue(result.spin.won)
        self.assertEqual(result.spin.payout, 100)
        self.assertEqual(result.player.balance, 190)
        self.assertEqual(self._stored_balance(), 190)

    def test_play_loss_is_persisted(self):
        session = self._session([["A", "5", "9"], ["3", "K", "2"], ["8", "Q", "6"]])

        result = play_slot(
            self.ctx, "EASY", 4, self.identity_repo, self.player_repo, session=session, locks=self.locks
        )

        self.assertTrue(result.success)
        self.assertFalse(result.spin.won)
        self.assertFalse(result.spin.bonus)
        self.assertEqual(self._stored_balance(), 96)

    def test_out_of_range_wager_leaves_balance_untouched(self):
        result = play_slot(self.ctx, "medium", 31, self.identity_repo, self.player_repo, locks=self.locks)
        self.assertFalse(result.success)
        self.assertIn("between 10 and 30", result.error_message)
        self.assertEqual(self._stored_balance(), 100)
        self.assertEqual(self.player_repo.saves, 0)

    def test_unknown_tier_is_reported(self):
        result = play_slot(self.ctx, "legendary", 5, self.identity_repo, self.player_repo)
        self.assertFalse(result.success)
        self.assertIn("Unknown difficulty", result.error_message)

    def test_minor_cannot_play(self):
        self._add_player("kid", balance=100, birth_date=date(date.today().year - 10, 1, 1))
        kid_ctx = ExternalContext("telegram", "777", "Kid")
        self.identity_repo.set_external_identity("telegram", "777", "kid")

        result = play_slot(kid_ctx, "easy", 5, self.identity_repo, self.player_repo, locks=self.locks)

        self.assertFalse(result.success)
        self.assertEqual(result.error_message, "Players under 18 cannot place bets.")
        self.assertEqual(self._stored_balance("kid"), 100)

    def test_tier_listing(self):
        self.assertEqual([t.name for t in list_tiers()], ["easy", "medium", "hard"])
        self.assertEqual([t.name for t in tiers_for_wager(10)], ["easy", "medium"])
        self.assertEqual([t.name for t in tiers_for_wager(30)], ["medium", "hard"])
        self.assertEqual([t.name for t in tiers_for_wager(11)], ["medium"])
        self.assertEqual(tiers_for_wager(60), [])


LOSING_BOARD = [["A", "2", "4"], ["5", "7", "9"], ["K", "3", "J"]]


class InterleavingGenerator(FixedBoardGenerator):
    """Runs `interleave` once, after the wager is debited but before saving."""

    def __init__(self, board, interleave):
        super().__init__(board)
        self.interleave = interleave

    def generate(self, tier):
        interleave, self.interleave = self.interleave, None
        if interleave is not None:
            interleave()
        return super().generate(tier)


class SharedDatabaseTests(unittest.TestCase):
    """Two bots with separate locks and repositories over one database file."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        db_path = os.path.join(self._tmp.name, "slots.db")
        self.telegram_players = SqlitePlayerRepository(db_path)
        self.discord_players = SqlitePlayerRepository(db_path)
        self.identities = SqliteIdentityRepository(db_path)

        self.telegram_players.add_player(
            PlayerAccount("p1", "Jane", "jane@example.com", date(1990, 1, 1), 10)
        )
        self.identities.set_external_identity("telegram", "1", "p1")
        self.identities.set_external_identity("discord", "2", "p1")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_concurrent_wagers_cannot_overdraw(self):
        other_results = []

        def discord_spin():
            other_results.append(
                play_slot(
                    ExternalContext("discord", "2", "Jane"),
                    "easy",
                    10,
                    self.identities,
                    self.discord_players,
                    session=GameSession(FixedBoardGenerator(LOSING_BOARD)),
                    locks=PlayerLocks(),
                )
            )

        result = play_slot(
            ExternalContext("telegram", "1", "Jane"),
            "easy",
            10,
            self.identities,
            self.telegram_players,
            session=GameSession(InterleavingGenerator(LOSING_BOARD, discord_spin)),
            locks=PlayerLocks(),
        )

        self.assertTrue(other_results[0].success)
        self.assertFalse(result.success)
        self.assertIn("changed in another session", result.error_message)
        self.assertEqual(self.telegram_players.get_player("p1").balance, 0)


class PlayerLocksTests(unittest.TestCase):
    def test_one_lock_per_player(self):
        locks = PlayerLocks()
        self.assertIs(locks.for_player("a"), locks.for_player("a"))
        self.assertIsNot(locks.for_player("a"), locks.for_player("b"))


if __name__ == "__main__":
    unittest.main()
