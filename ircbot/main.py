#!/usr/bin/env python3
"""
Entry point for the IRC bot
"""

import asyncio
import logging
import signal
import sys

from .bot import IRCBot
from .config import ConfigStore, ConfigWatcher
from .errors.handling import log_error
from .errors.internal import ConfigMissingError, ConnectionFailure
from .logging_config import LoggerConfigurator

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIG = 2
EXIT_CONNECTION = 3

configurator = LoggerConfigurator()


def _install_signal_handlers(bot: IRCBot) -> None:  # pragma: no cover
    loop = asyncio.get_running_loop()

    def handler(signum: int) -> None:
        if not bot.running:
            return
        logging.warning(f"🛑 Signal received - initiating shutdown (signal={signum})")
        loop.create_task(bot.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handler, sig)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler.
            pass


async def main(config_file: str | None = None) -> int:
    """Load configuration, run the bot and map fatal errors to exit codes.

    Returns:
        Process exit code.
    """
    try:
        config = ConfigStore.from_file(config_file)
    except ConfigMissingError as e:
        log_error("Configuration error", e, level=logging.CRITICAL)
        return EXIT_CONFIG

    settings = config.settings
    configurator.verbose_output = settings.verbose_output
    configurator.log_file = settings.log_file
    configurator.configure()

    bot = IRCBot(config)
    watcher = ConfigWatcher(
        config, on_reload=lambda s: configurator.set_verbose_output(s.verbose_output)
    )
    watcher.start()
    _install_signal_handlers(bot)
    logging.info(f"🚀 Starting IRC bot as {settings.nickname}")
    try:
        await bot.run()
    except ConfigMissingError as e:
        log_error("Configuration error", e, level=logging.CRITICAL)
        return EXIT_CONFIG
    except ConnectionFailure as e:
        log_error("Connection failed", e, level=logging.CRITICAL)
        return EXIT_CONNECTION
    finally:
        watcher.stop()
        logging.info("✅ Application shutdown complete")
    return EXIT_OK


def run() -> None:
    """Synchronous entry point for the application.

    Raises:
        SystemExit: Always, carrying the exit code.
    """
    configurator.configure()
    try:
        code = asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
    except KeyboardInterrupt:
        code = EXIT_OK
    except Exception as e:  # noqa: BLE001
        log_error("Top-level error", e, level=logging.CRITICAL)
        code = EXIT_UNEXPECTED
    logging.shutdown()
    sys.exit(code)


if __name__ == "__main__":
    run()
