"""
Cogno Timeline — Entry Point.

Single entry point: `python main.py` starts the Telegram bot.
Logging is configured in src.bot.telegram_bot.main from LOG_LEVEL.
"""

from src.bot.telegram_bot import main

if __name__ == "__main__":
    main()
