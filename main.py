import argparse
import asyncio
import datetime as dt
import logging

from visarebook.config import Settings, load_settings
from visarebook.worker import build_client, run_forever, send_status_message

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def _parse_held_date(raw: str | None) -> str | None:
    if not raw:
        return None
    try:
        dt.date.fromisoformat(raw)
    except ValueError:
        return None
    return raw


async def _run(settings: Settings, held_date: str) -> None:
    async with build_client(settings) as client:
        # Notifications are best-effort and never stop the worker.
        try:
            await send_status_message(client, settings, text=f"visarebook started, current date {held_date}")
        except Exception:
            logger.warning("Failed to send Telegram startup message", exc_info=True)

        try:
            await run_forever(settings, held_date, client=client)
        except Exception as e:
            try:
                await send_status_message(
                    client,
                    settings,
                    text=f"visarebook crashed.\nReason: {type(e).__name__}: {e}",
                )
            except Exception:
                logger.warning("Failed to send Telegram crash message", exc_info=True)
            raise
        finally:
            try:
                await send_status_message(client, settings, text="visarebook stopped.")
            except Exception:
                logger.warning("Failed to send Telegram shutdown message", exc_info=True)


def main() -> int:
    parser = argparse.ArgumentParser(description="visarebook: move a visa appointment to an earlier date")
    parser.add_argument(
        "current_booked_date",
        nargs="?",
        help="Date of the appointment you currently hold (YYYY-MM-DD)",
    )
    args = parser.parse_args()

    _setup_logging()

    held_date = _parse_held_date(args.current_booked_date)
    if held_date is None:
        logger.error("Invalid current booked date: %s", args.current_booked_date)
        return 1

    settings = load_settings()

    try:
        asyncio.run(_run(settings, held_date))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
