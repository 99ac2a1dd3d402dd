"""Run the whitelist bot: ``python -m bot``."""
from __future__ import annotations

from config.settings import settings
from observability import configure_logging
from storage.migrate import migrate

from .client import WhitelistBot


def main() -> None:
    configure_logging()
    if not settings.DISCORD_TOKEN:
        raise SystemExit("DISCORD_TOKEN is not set")
    migrate(settings.DB_PATH)
    WhitelistBot().run(settings.DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
