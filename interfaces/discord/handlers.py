from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from application.auth import LoginThrottle, login, logout, register_player
from application.locks import PlayerLocks
from application.services import (
    ExternalContext,
    deposit_funds,
    get_balance,
    list_tiers,
    play_slot,
    withdraw_funds,
)
from domain.models import STARTING_BALANCE
from domain.repositories import AccountRepository, IdentityRepository, PlayerRepository
from interfaces.rendering import render_balance, render_help, render_spin, render_tiers

logger = logging.getLogger(__name__)


def _build_external_context(user: discord.abc.User) -> ExternalContext:
    """Create an `ExternalContext` from a Discord user."""

    return ExternalContext(
        provider="discord",
        provider_user_id=str(user.id),
        display_name=user.display_name or user.name,
    )


def create_discord_bot(
    player_repo: PlayerRepository,
    account_repo: AccountRepository,
    identity_repo: IdentityRepository,
    starting_balance: int = STARTING_BALANCE,
) -> commands.Bot:
    """
    Configure and return a Discord bot with behaviour analogous to
    the Telegram interface: register/login, balance operations and play.
    """

    intents = discord.Intents.default()
    intents.message_content = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)
    throttle = LoginThrottle()
    locks = PlayerLocks()

    async def _forget_credentials(ctx: commands.Context) -> None:
        # Messages carrying a password should not stay in the channel.
        try:
            await ctx.message.delete()
        except discord.HTTPException as exc:
            logger.debug("Could not delete credentials message: %s", exc)

    @bot.event
    async def on_ready():
        logger.info("Discord bot logged in as %s (id=%s)", bot.user, bot.user.id)

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
            await ctx.send("Invalid arguments. Type !help to see usage.")
            return
        if isinstance(error, commands.CommandNotFound):
            return
        logger.error("Command %s failed", ctx.command, exc_info=error)
        await ctx.send("Something went wrong, please try again.")

    @bot.command(name="start")
    async def start_cmd(ctx: commands.Context):
        await ctx.send(
            "Welcome to the slot machine bot (Discord)!\n"
            "Use !register or !login to get started.\n"
            "Type !help to see available commands."
        )

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(render_help("!"))

    @bot.command(name="tiers")
    async def tiers_cmd(ctx: commands.Context):
        await ctx.send(render_tiers(list_tiers()))

    @bot.command(name="register")
    async def register_cmd(
        ctx: commands.Context,
        email: str,
        password: str,
        birth_date: str,
        *,
        nickname: str,
    ):
        await _forget_credentials(ctx)
        result = await asyncio.to_thread(
            register_player,
            _build_external_context(ctx.author),
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
            await ctx.send(result.error_message)
            return

        await ctx.send(
            f"Registration successful! Welcome, {result.player.nickname}.\n"
            + render_balance(result.player)
        )

    @bot.command(name="login")
    async def login_cmd(ctx: commands.Context, email: str, password: str):
        await _forget_credentials(ctx)
        result = await asyncio.to_thread(
            login,
            _build_external_context(ctx.author),
            email,
            password,
            account_repo,
            player_repo,
            identity_repo,
            throttle=throttle,
        )
        if not result.success:
            await ctx.send(result.error_message)
            return
        await ctx.send(f"Login successful! Welcome back, {result.player.nickname}.")

    @bot.command(name="logout")
    async def logout_cmd(ctx: commands.Context):
        logout(_build_external_context(ctx.author), identity_repo)
        await ctx.send("You are logged out.")

    @bot.command(name="balance")
    async def balance_cmd(ctx: commands.Context):
        result = get_balance(_build_external_context(ctx.author), identity_repo, player_repo)
        if not result.success:
            await ctx.send(result.error_message)
            return
        await ctx.send(render_balance(result.player))

    @bot.command(name="deposit")
    async def deposit_cmd(ctx: commands.Context, amount: int):
        result = deposit_funds(
            _build_external_context(ctx.author),
            amount,
            identity_repo,
            player_repo,
            locks=locks,
        )
        if not result.success:
            await ctx.send(result.error_message)
            return
        await ctx.send(f"Deposit successful! New balance: {result.player.balance}")

    @bot.command(name="withdraw")
    async def withdraw_cmd(ctx: commands.Context, amount: int):
        result = withdraw_funds(
            _build_external_context(ctx.author),
            amount,
            identity_repo,
            player_repo,
            locks=locks,
        )
        if not result.success:
            await ctx.send(result.error_message)
            return
        await ctx.send(f"Withdrawal successful! New balance: {result.player.balance}")

    @bot.command(name="play")
    async def play_cmd(ctx: commands.Context, tier: str, wager: int):
        """
        !play <tier> <wager>   -> spin once on the given difficulty
        """

        result = play_slot(
            _build_external_context(ctx.author),
            tier,
            wager,
            identity_repo,
            player_repo,
            locks=locks,
        )
        if not result.success:
            await ctx.send(result.error_message)
            return

        # Code block keeps the board columns aligned.
        board, _, summary = render_spin(result.spin, result.player).partition("\n\n")
        await ctx.send(f"```\n{board}\n```\n{summary}")

    return bot
