import asyncio
import signal
import sys

from core.bot import BeastieBot
from core.errors import BeastieError
from runtime.version import as_string
from shared.config.bot import load_config, redacted
from shared.logging.logger import get_logger

log = get_logger("core.app")


async def main(stop_event: asyncio.Event) -> None:
    log.info(f"{as_string()} booting")

    # --------------------------------------------------
    # CONFIG
    # --------------------------------------------------
    config = load_config()
    log.info(f"Configuration: {redacted(config)}")

    # --------------------------------------------------
    # BUILD + START
    # --------------------------------------------------
    bot = await BeastieBot.create(config)

    try:
        await bot.start()

        # --------------------------------------------------
        # DISPATCH UNTIL SHUTDOWN SIGNAL
        # --------------------------------------------------
        await bot.run(stop_event)
        log.info("Shutdown initiated")
    finally:
        # --------------------------------------------------
        # ORDERLY SHUTDOWN
        # --------------------------------------------------
        await bot.destroy()

    log.info("Beastie stopped")


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
) -> None:
    """
    Uses signal.signal + asyncio.Event so Ctrl+C unwinds through destroy().
    """

    def _handler(signum, frame):
        loop.call_soon_threadsafe(stop_event.set)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run() -> int:
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    stop_event = asyncio.Event()
    _install_signal_handlers(loop, stop_event)

    exit_code = 0
    try:
        loop.run_until_complete(main(stop_event))
    except BeastieError as e:
        log.error(f"Beastie failed to start: {e}")
        exit_code = 1
    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS (CLEANLY)
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        loop.run_until_complete(loop.shutdown_asyncgens())
        asyncio.set_event_loop(None)
        loop.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(run())
