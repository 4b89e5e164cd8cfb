import threading
import unittest
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from telebot.apihelper import ApiTelegramException

from application.services import NOT_LOGGED_IN, OperationResult
from domain.board import Outcome
from domain.game import SpinResult
from domain.models import EASY, TIERS, PlayerAccount
from in_memory import (
    InMemoryAccountRepository,
    InMemoryIdentityRepository,
    InMemoryPlayerRepository,
)
from interfaces.discord.handlers import create_discord_bot
from interfaces.rendering import (
    describe_line,
    render_balance,
    render_board,
    render_spin,
    render_tiers,
)
from interfaces.telegram.callback_data import encode_tier_choice, parse_tier_choice
from interfaces.telegram.handlers import create_telegram_bot


class CallbackDataTests(unittest.TestCase):
    def test_tier_choice_round_trip(self):
        data = encode_tier_choice("medium", 25)
        self.assertEqual(data, "play:medium:25")
        self.assertEqual(parse_tier_choice(data), ("medium", 25))

    def test_invalid_tier_choice(self):
        for data in ("play:easy", "from:easy:5", "play::5", "play:easy:five"):
            with self.assertRaises(ValueError):
                parse_tier_choice(data)


class RenderingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.player = PlayerAccount("p1", "Jane", "jane@example.com", date(1990, 1, 1), 145)

    def test_describe_line_names(self):
        names = [describe_line(i, 3) for i in range(8)]
        self.assertEqual(
            names,
            [
                "row 1",
                "row 2",
                "row 3",
                "column 1",
                "column 2",
                "column 3",
                "main diagonal",
                "anti-diagonal",
            ],
        )

    def test_render_board(self):
        self.assertEqual(render_board([["A", "*"], ["K", "7"]]), "A | *\nK | 7")

    def test_render_winning_spin(self):
        board = [["7", "7", "7"], ["A", "2", "9"], ["K", "4", "J"]]
        spin = SpinResult(
            tier=EASY,
            wager=5,
            board=board,
            won=True,
            bonus=False,
            payout=50,
            outcome=Outcome(won=True, bonus=False, winning_lines=(0,)),
        )

        text = render_spin(spin, self.player)

        self.assertTrue(text.startswith("7 | 7 | 7\n"))
        self.assertIn("You won 50 (row 1)", text)
        self.assertTrue(text.endswith("Balance: 145"))

    def test_render_bonus_and_loss(self):
        board = [["A", "2", "3"], ["5", "7", "9"], ["K", "4", "J"]]
        bonus = SpinResult(EASY, 5, board, False, True, 5, Outcome(False, True, (), (0,)))
        loss = SpinResult(EASY, 5, board, False, False, 0, Outcome(False, False))

        self.assertIn("Bonus! Sequence on row 1", render_spin(bonus, self.player))
        self.assertIn("No win this time.", render_spin(loss, self.player))

    def test_render_tiers_and_balance(self):
        lines = render_tiers(TIERS.values()).splitlines()
        self.assertEqual(len(lines), 3)
        self.assertIn("wager 1-10, pays x10", lines[0])
        self.assertEqual(render_balance(self.player), "Jane, your balance is 145.")

        minor = PlayerAccount("p2", "Kid", "kid@example.com", date(2015, 1, 1), 10)
        self.assertIn("betting disabled", render_balance(minor))


class TelegramTierChoiceTests(unittest.TestCase):
    def test_undeletable_keyboard_does_not_hide_the_reply(self):
        bot = create_telegram_bot(
            "123456:TEST",
            InMemoryPlayerRepository(),
            InMemoryAccountRepository(),
            InMemoryIdentityRepository(),
        )
        handler = bot.callback_query_handlers[0]["function"]
        call = SimpleNamespace(
            id="cb1",
            data="play:easy:5",
            message=SimpleNamespace(chat=SimpleNamespace(id=10), id=20),
            from_user=SimpleNamespace(id=42, first_name="Jane", last_name=None),
        )
        gone = ApiTelegramException(
            "deleteMessage",
            None,
            {"error_code": 400, "description": "Bad Request: message to delete not found"},
        )

        with patch.object(bot, "answer_callback_query"), patch.object(
            bot, "send_message"
        ) as send_message, patch.object(bot, "delete_message", side_effect=gone) as delete_message:
            handler(call)

        send_message.assert_called_once_with(10, NOT_LOGGED_IN)
        delete_message.assert_called_once_with(10, 20)


class DiscordAuthCommandTests(unittest.IsolatedAsyncioTestCase):
    async def test_login_runs_outside_the_event_loop_thread(self):
        bot = create_discord_bot(
            InMemoryPlayerRepository(),
            InMemoryAccountRepository(),
            InMemoryIdentityRepository(),
        )
        threads = []

        def fake_login(*args, **kwargs):
            threads.append(threading.get_ident())
            return OperationResult(success=False, error_message="Incorrect password.")

        ctx = MagicMock()
        ctx.author.id = 42
        ctx.author.display_name = "Jane"
        ctx.send = AsyncMock()
        ctx.message.delete = AsyncMock()

        with patch("interfaces.discord.handlers.login", side_effect=fake_login):
            await bot.get_command("login").callback(ctx, "jane@example.com", "pw")

        self.assertEqual(len(threads), 1)
        self.assertNotEqual(threads[0], threading.get_ident())
        ctx.send.assert_awaited_once_with("Incorrect password.")
        ctx.message.delete.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()
