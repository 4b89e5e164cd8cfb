import logging

from infrastructure.config import build_repositories, load_settings
from interfaces.discord.handlers import create_discord_bot


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.discord_token:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    repos = build_repositories(settings)
    bot = create_discord_bot(
        repos.players,
        repos.accounts,
        repos.identities,
        starting_balance=settings.starting_balance,
    )
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
