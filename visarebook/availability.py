from __future__ import annotations

import logging
from typing import Any

import httpx

from visarebook.domain import RemoteError, SessionContext
from visarebook.endpoints import build_days_url, build_times_url

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Accept": "application/json",
    "X-Requested-With": "XMLHttpRequest",
    "Cache-Control": "no-store",
}

# Rails-style nested query parameter: appointments[expedite]=false
_NOT_EXPEDITED = {"appointments[expedite]": "false"}


def handle_errors(body: Any) -> Any:
    """Raise RemoteError when the payload carries an ``error`` message.

    This is the only failure signal checked; the HTTP status is ignored.
    """
    if isinstance(body, dict):
        message = body.get("error")
        if message:
            raise RemoteError(str(message))
    return body


async def json_request(
    client: httpx.AsyncClient,
    session: SessionContext,
    url: str,
    *,
    params: dict[str, str] | None = None,
) -> Any:
    response = await client.get(url, params=params, headers={**session.headers(), **JSON_HEADERS})
    return handle_errors(response.json())


def select_time(body: dict[str, Any]) -> str | None:
    """Business times win over general available times."""
    business_times = body.get("business_times") or []
    if business_times:
        return business_times[0]
    available_times = body.get("available_times") or []
    if available_times:
        return available_times[0]
    return None


async def check_available_date(
    client: httpx.AsyncClient,
    session: SessionContext,
    *,
    locale: str,
    schedule_id: str,
    facility_id: int,
) -> str | None:
    days = await json_request(
        client,
        session,
        build_days_url(locale, schedule_id, facility_id),
        params=dict(_NOT_EXPEDITED),
    )
    if not days:
        return None
    return days[0]["date"]


async def check_available_time(
    client: httpx.AsyncClient,
    session: SessionContext,
    date: str,
    *,
    locale: str,
    schedule_id: str,
    facility_id: int,
) -> str | None:
    body = await json_request(
        client,
        session,
        build_times_url(locale, schedule_id, facility_id),
        params={"date": date, **_NOT_EXPEDITED},
    )
    time = select_time(body)
    logger.debug("Times for %s: business=%s available=%s -> %s",
                 date, body.get("business_times"), body.get("available_times"), time)
    return time
