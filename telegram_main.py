import logging

from infrastructure.config import build_repositories, load_settings
from interfaces.telegram.handlers import create_telegram_bot


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.telegram_token:
        raise RuntimeError("TELEGRAM_TOKEN environment variable is not set.")

    repos = build_repositories(settings)
    bot = create_telegram_bot(
        settings.telegram_token,
        repos.players,
        repos.accounts,
        repos.identities,
        starting_balance=settings.starting_balance,
    )
    logging.getLogger(__name__).info("Telegram bot polling started")
    bot.infinity_polling()


if __name__ == "__main__":
    main()
