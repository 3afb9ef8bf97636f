from __future__ import annotations

import logging

import httpx

from visarebook.domain import SessionContext
from visarebook.endpoints import build_base_uri, build_sign_in_url
from visarebook.session import extract_session, response_cookie

logger = logging.getLogger(__name__)

ANONYMOUS_HEADERS = {
    "User-Agent": "",
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"


def build_sign_in_form(*, email: str, password: str) -> dict[str, str]:
    return {
        "utf8": "✓",
        "user[email]": email,
        "user[password]": password,
        "policy_confirmed": "1",
        "commit": "Acessar",
    }


async def log_in(client: httpx.AsyncClient, *, locale: str, email: str, password: str) -> SessionContext:
    """Sign in and return the authenticated session.

    Two round trips: an anonymous GET for the form token and cookie, then the
    credentials POST. Only the cookie of the POST response is taken over; the
    token stays the one rendered on the sign-in page.
    """
    sign_in_url = build_sign_in_url(locale)
    logger.info("Logging in")

    response = await client.get(sign_in_url, headers=ANONYMOUS_HEADERS)
    response.raise_for_status()
    anonymous = extract_session(response, referer=build_base_uri(locale))

    response = await client.post(
        sign_in_url,
        headers={**anonymous.headers(), "Content-Type": FORM_CONTENT_TYPE},
        data=build_sign_in_form(email=email, password=password),
    )
    response.raise_for_status()

    return anonymous.with_cookie(response_cookie(response))
