from __future__ import annotations

import logging

import httpx

from visarebook.domain import PageData, SessionContext, Slot
from visarebook.endpoints import build_appointment_url, build_base_uri
from visarebook.session import extract_page

logger = logging.getLogger(__name__)

BOOKING_CONTENT_TYPE = "application/x-www-form-urlencoded"


async def refresh_session(
    client: httpx.AsyncClient,
    session: SessionContext,
    *,
    locale: str,
    schedule_id: str,
) -> PageData:
    """Render the appointment page to get a token that is still valid for a POST."""
    response = await client.get(build_appointment_url(locale, schedule_id), headers=session.headers())
    return extract_page(response, referer=build_base_uri(locale))


def build_booking_form(csrf_token: str | None, facility_id: int, slot: Slot) -> dict[str, str]:
    # The ASC fields must be present even though only the consulate appointment is moved.
    return {
        "utf8": "✓",
        "authenticity_token": csrf_token or "",
        "confirmed_limit_message": "1",
        "use_consulate_appointment_capacity": "true",
        "appointments[consulate_appointment][facility_id]": str(facility_id),
        "appointments[consulate_appointment][date]": slot.date,
        "appointments[consulate_appointment][time]": slot.time or "",
        "appointments[asc_appointment][facility_id]": "",
        "appointments[asc_appointment][date]": "",
        "appointments[asc_appointment][time]": "",
    }


async def book(
    client: httpx.AsyncClient,
    session: SessionContext,
    *,
    locale: str,
    schedule_id: str,
    facility_id: int,
    slot: Slot,
) -> httpx.Response:
    """Submit the reschedule form for ``slot``.

    The response is returned as is: a 200 does not mean the slot was taken.
    Calling this twice submits twice.
    """
    page = await refresh_session(client, session, locale=locale, schedule_id=schedule_id)
    if page.facilities and str(facility_id) not in page.facilities:
        logger.warning("Facility %s is not offered on the appointment page (offered: %s)",
                       facility_id, ", ".join(page.facilities))

    logger.info("Booking %s %s at facility %s", slot.date, slot.time, facility_id)
    return await client.post(
        build_appointment_url(locale, schedule_id),
        headers={**page.session.headers(), "Content-Type": BOOKING_CONTENT_TYPE},
        data=build_booking_form(page.session.csrf_token, facility_id, slot),
        follow_redirects=True,
    )
