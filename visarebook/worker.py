from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_never, wait_fixed

from visarebook.auth import log_in
from visarebook.availability import check_available_date, check_available_time
from visarebook.booking import book
from visarebook.config import Settings
from visarebook.domain import SessionContext, Slot
from visarebook.endpoints import build_appointment_url
from visarebook.telegram_notifier import send_telegram_message

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class PollOutcome(enum.Enum):
    NO_DATES = "no_dates"
    FURTHER = "further"
    REBOOK = "rebook"


def evaluate(held_date: str, available_date: str | None) -> PollOutcome:
    # ISO dates compare chronologically as strings.
    # An equal date is rebooked as well, so the best slot gets resubmitted every cycle.
    if not available_date:
        return PollOutcome.NO_DATES
    if available_date > held_date:
        return PollOutcome.FURTHER
    return PollOutcome.REBOOK


def build_client(settings: Settings) -> httpx.AsyncClient:
    if settings.request_timeout_seconds is None:
        return httpx.AsyncClient(follow_redirects=True)
    return httpx.AsyncClient(follow_redirects=True, timeout=settings.request_timeout_seconds)


async def _broadcast_telegram(client: httpx.AsyncClient, settings: Settings, text: str) -> None:
    errors: list[tuple[str, Exception]] = []

    for chat_id in settings.telegram_chat_ids:
        try:
            await send_telegram_message(
                client,
                bot_token=settings.telegram_bot_token or "",
                chat_id=chat_id,
                text=text,
            )
        except Exception as e:
            # Best-effort: don't stop sending to other chat_ids.
            logger.warning("Failed to send telegram message to chat_id=%s (%s: %s)", chat_id, type(e).__name__, e)
            errors.append((chat_id, e))

    if errors:
        failed = ", ".join([cid for cid, _ in errors])
        raise RuntimeError(f"Failed to send telegram message to some recipients: {failed}")


async def send_status_message(client: httpx.AsyncClient, settings: Settings, text: str) -> None:
    if not settings.notifications_enabled:
        return
    await _broadcast_telegram(client, settings, text)


class Poller:
    """Poll -> evaluate -> book state machine for one account.

    The held date lives here, outside any single authenticated epoch, so a
    reconnect resumes from the last date that was claimed.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        held_date: str,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.client = client
        self.held_date = held_date
        self.session: SessionContext | None = None
        self._sleep = sleep
        self._booking_tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_bookings(self) -> int:
        return len(self._booking_tasks)

    async def authenticate(self) -> None:
        self.session = await log_in(
            self.client,
            locale=self.settings.locale,
            email=self.settings.email,
            password=self.settings.password,
        )

    def _require_session(self) -> SessionContext:
        if self.session is None:
            raise RuntimeError("Not logged in")
        return self.session

    async def poll_once(self) -> PollOutcome:
        session = self._require_session()
        s = self.settings

        date = await check_available_date(
            self.client, session, locale=s.locale, schedule_id=s.schedule_id, facility_id=s.facility_id
        )
        outcome = evaluate(self.held_date, date)

        if outcome is PollOutcome.NO_DATES:
            logger.info("no dates available")
        elif outcome is PollOutcome.FURTHER:
            logger.info("nearest date is further than already booked (%s vs %s)", self.held_date, date)
        else:
            assert date is not None
            # Claimed before the booking is confirmed.
            self.held_date = date
            time = await check_available_time(
                self.client, session, date, locale=s.locale, schedule_id=s.schedule_id, facility_id=s.facility_id
            )
            self._spawn_booking(session, Slot(date=date, time=time))

        return outcome

    def _spawn_booking(self, session: SessionContext, slot: Slot) -> asyncio.Task[None]:
        # Not awaited; the next poll starts right away.
        task = asyncio.create_task(self._book(session, slot), name=f"book-{slot.date}")
        self._booking_tasks.add(task)
        task.add_done_callback(self._booking_tasks.discard)
        return task

    async def _book(self, session: SessionContext, slot: Slot) -> None:
        s = self.settings
        try:
            response = await book(
                self.client,
                session,
                locale=s.locale,
                schedule_id=s.schedule_id,
                facility_id=s.facility_id,
                slot=slot,
            )
        except Exception as e:
            logger.error("Booking %s %s failed (%s: %s)", slot.date, slot.time, type(e).__name__, e)
            return

        logger.info("booked time at %s %s (HTTP %s)", slot.date, slot.time, response.status_code)
        try:
            await send_status_message(
                self.client,
                s,
                text=(
                    f"Booking submitted for {slot.date} {slot.time or ''}\n"
                    f"Link: {build_appointment_url(s.locale, s.schedule_id)}"
                ),
            )
        except Exception:
            logger.warning("Failed to send telegram booking message", exc_info=True)

    async def wait_for_bookings(self) -> None:
        if self._booking_tasks:
            await asyncio.gather(*self._booking_tasks)

    async def run_epoch(self) -> None:
        """Log in, then poll until something raises."""
        await self.authenticate()
        while True:
            await self.poll_once()
            await self._sleep(self.settings.refresh_delay)


def _short_exc(retry_state: RetryCallState) -> str | None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return None
    exc = retry_state.outcome.exception()
    if exc is None:
        return None
    msg = str(exc).strip()
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def _log_after_attempt(retry_state: RetryCallState) -> None:
    reason = _short_exc(retry_state)
    if reason:
        logger.error("Session %s failed (%s)", retry_state.attempt_number, reason)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    sleep_seconds = getattr(retry_state.next_action, "sleep", 0)
    logger.info("Trying again in %.0f sec.", sleep_seconds)


async def supervise(poller: Poller, *, sleep: Sleep = asyncio.sleep) -> None:
    """Re-run ``poller.run_epoch`` forever, logging in afresh after every failure."""
    retrying = AsyncRetrying(
        stop=stop_never,
        wait=wait_fixed(poller.settings.refresh_delay),
        retry=retry_if_exception_type(Exception),
        after=_log_after_attempt,
        before_sleep=_log_before_sleep,
        sleep=sleep,
    )
    async for attempt in retrying:
        with attempt:
            logger.info("Initializing with current date %s", poller.held_date)
            await poller.run_epoch()


async def run_forever(settings: Settings, held_date: str, *, client: httpx.AsyncClient) -> None:
    logger.info("Worker started. Interval=%ss", settings.refresh_delay)
    poller = Poller(settings, client, held_date)
    await supervise(poller)
