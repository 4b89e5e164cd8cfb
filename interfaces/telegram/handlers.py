from __future__ import annotations

import logging

import telebot
from telebot.apihelper import ApiTelegramException
from telebot.types import InlineKeyboardButton, InlineKeyboardMarkup

from application.auth import LoginThrottle, login, logout, register_player
from application.locks import PlayerLocks
from application.services import (
    ExternalContext,
    deposit_funds,
    get_balance,
    list_tiers,
    play_slot,
    tiers_for_wager,
    withdraw_funds,
)
from domain.models import STARTING_BALANCE
from domain.repositories import AccountRepository, IdentityRepository, PlayerRepository
from interfaces.rendering import (
    render_balance,
    render_help,
    render_spin,
    render_tier,
    render_tiers,
)
from interfaces.telegram.callback_data import encode_tier_choice, parse_tier_choice

logger = logging.getLogger(__name__)


def _build_external_context(user) -> ExternalContext:
    """Extract a channel-agnostic context object from a Telegram user."""

    name = " ".join(part for part in (user.first_name, user.last_name) if part)
    return ExternalContext(
        provider="telegram",
        provider_user_id=str(user.id),
        display_name=name or str(user.id),
    )


def _parse_amount(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None


def create_telegram_bot(
    bot_token: str,
    player_repo: PlayerRepository,
    account_repo: AccountRepository,
    identity_repo: IdentityRepository,
    starting_balance: int = STARTING_BALANCE,
) -> telebot.TeleBot:
    """
    Configure and return a TeleBot instance wired to the application layer.

    This module contains only Telegram-specific concerns: parsing Telegram
    messages/callbacks and mapping them to/from application services.
    """

    bot = telebot.TeleBot(bot_token)
    throttle = LoginThrottle()
    locks = PlayerLocks()

    def _discard_message(chat_id: int, message_id: int) -> None:
        try:
            bot.delete_message(chat_id, message_id)
        except ApiTelegramException as exc:
            logger.debug("Could not delete message %s: %s", message_id, exc)

    def _forget_credentials(message) -> None:
        # Messages carrying a password should not stay in the chat history.
        _discard_message(message.chat.id, message.message_id)

    @bot.message_handler(commands=["start", "hello"])
    def handle_start(message):
        bot.send_message(
            message.chat.id,
            "Welcome to the slot machine bot!\n"
            "Use /register or /login to get started.\n"
            "Type /help to see available commands.",
        )

    @bot.message_handler(commands=["help"])
    def handle_help(message):
        bot.send_message(message.chat.id, render_help("/"))

    @bot.message_handler(commands=["tiers"])
    def handle_tiers(message):
        bot.send_message(message.chat.id, render_tiers(list_tiers()))

    @bot.message_handler(commands=["register"])
    def handle_register(message):
        parts = message.text.split(maxsplit=4)
        _forget_credentials(message)
        if len(parts) < 5:
            bot.send_message(
                message.chat.id,
                "Usage: /register <email> <password> <YYYY-MM-DD> <nickname>",
            )
            return

        _, email, password, birth_date, nickname = parts
        result = register_player(
            _build_external_context(message.from_user),
            email,
            password,
            birth_date,
            nickname,
            account_repo,
            player_repo,
            identity_repo,
            starting_balance=starting_balance,
        )
        if not result.success:
            bot.send_message(message.chat.id, result.error_message)
            return

        text = f"Registration successful! Welcome, {result.player.nickname}.\n"
        text += render_balance(result.player)
        bot.send_message(message.chat.id, text)

    @bot.message_handler(commands=["login"])
    def handle_login(message):
        parts = message.text.split()
        _forget_credentials(message)
        if len(parts) != 3:
            bot.send_message(message.chat.id, "Usage: /login <email> <password>")
            return

        result = login(
            _build_external_context(message.from_user),
            parts[1],
            parts[2],
            account_repo,
            player_repo,
            identity_repo,
            throttle=throttle,
        )
        if not result.success:
            bot.send_message(message.chat.id, result.error_message)
            return

        bot.send_message(
            message.chat.id,
            f"Login successful! Welcome back, {result.player.nickname}.",
        )

    @bot.message_handler(commands=["logout"])
    def handle_logout(message):
        logout(_build_external_context(message.from_user), identity_repo)
        bot.send_message(message.chat.id, "You are logged out.")

    @bot.message_handler(commands=["balance"])
    def handle_balance(message):
        result = get_balance(_build_external_context(message.from_user), identity_repo, player_repo)
        if not result.success:
            bot.send_message(message.chat.id, result.error_message)
            return
        bot.send_message(message.chat.id, render_balance(result.player))

    @bot.message_handler(commands=["deposit", "withdraw"])
    def handle_transaction(message):
        parts = message.text.split()
        if len(parts) < 2:
            bot.send_message(message.chat.id, "Please enter an amount.")
            return

        op = parts[0][1:].split("@")[0]  # strip leading '/' and bot mention
        amount = _parse_amount(parts[1])
        if amount is None:
            bot.send_message(message.chat.id, "Amount must be a whole number.")
            return

        external_ctx = _build_external_context(message.from_user)
        if op == "deposit":
            result = deposit_funds(external_ctx, amount, identity_repo, player_repo, locks=locks)
            done = "Deposit successful!"
        else:
            result = withdraw_funds(external_ctx, amount, identity_repo, player_repo, locks=locks)
            done = "Withdrawal successful!"

        if not result.success:
            bot.send_message(message.chat.id, result.error_message)
            return
        bot.send_message(message.chat.id, f"{done} New balance: {result.player.balance}")

    def _play(chat_id: int, user, tier_name: str, wager: int) -> None:
        result = play_slot(
            _build_external_context(user),
            tier_name,
            wager,
            identity_repo,
            player_repo,
            locks=locks,
        )
        if not result.success:
            bot.send_message(chat_id, result.error_message)
            return
        bot.send_message(chat_id, render_spin(result.spin, result.player))

    @bot.message_handler(commands=["play"])
    def handle_play(message):
        parts = message.text.split()

        if len(parts) == 3:
            wager = _parse_amount(parts[2])
            if wager is None:
                bot.send_message(message.chat.id, "Wager must be a whole number.")
                return
            _play(message.chat.id, message.from_user, parts[1], wager)
            return

        if len(parts) != 2 or _parse_amount(parts[1]) is None:
            bot.send_message(message.chat.id, "Usage: /play <wager> or /play <tier> <wager>")
            return

        # Only a wager given: let the player pick among the tiers that admit it.
        wager = _parse_amount(parts[1])
        tiers = tiers_for_wager(wager)
        if not tiers:
            bot.send_message(
                message.chat.id,
                f"No difficulty accepts a wager of {wager}.\n{render_tiers(list_tiers())}",
            )
            return

        markup = InlineKeyboardMarkup(row_width=1)
        for tier in tiers:
            markup.add(
                InlineKeyboardButton(
                    render_tier(tier),
                    callback_data=encode_tier_choice(tier.name, wager),
                )
            )
        bot.send_message(message.chat.id, "Choose a difficulty", reply_markup=markup)

    @bot.callback_query_handler(func=lambda call: call.data.startswith("play:"))
    def handle_tier_choice(call):
        """
        Handle the difficulty picked from the inline keyboard.
        """

        try:
            tier_name, wager = parse_tier_choice(call.data)
        except ValueError:
            bot.answer_callback_query(call.id, "Invalid selection.")
            return

        bot.answer_callback_query(call.id)
        try:
            _play(call.message.chat.id, call.from_user, tier_name, wager)
        finally:
            _discard_message(call.message.chat.id, call.message.id)

    return bot
