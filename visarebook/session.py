from __future__ import annotations

import httpx
from bs4 import BeautifulSoup

from visarebook.domain import SESSION_COOKIE_NAME, PageData, SessionContext

HTML_PARSER = "html.parser"

CONSULATE_FACILITY_SELECT_ID = "appointments_consulate_appointment_facility_id"
ASC_FACILITY_SELECT_ID = "appointments_asc_appointment_facility_id"


def parse_cookies(raw: str) -> dict[str, str | None]:
    """Split a ``Set-Cookie`` value into name -> value pairs.

    Attributes like ``HttpOnly`` have no ``=`` and map to None.
    """
    parsed: dict[str, str | None] = {}
    for part in raw.split(";"):
        part = part.strip()
        name, sep, value = part.partition("=")
        parsed[name] = value if sep else None
    return parsed


def extract_relevant_cookie(set_cookie: str | None) -> str:
    # A missing session cookie still renders as "<name>=undefined"; the server
    # then treats the request as anonymous.
    value = parse_cookies(set_cookie or "").get(SESSION_COOKIE_NAME)
    return f"{SESSION_COOKIE_NAME}={value if value is not None else 'undefined'}"


def response_cookie(response: httpx.Response) -> str:
    # Several Set-Cookie headers are joined with ";" so each cookie name stays addressable.
    return extract_relevant_cookie("; ".join(response.headers.get_list("set-cookie")))


def _csrf_token(soup: BeautifulSoup) -> str | None:
    meta = soup.find("meta", attrs={"name": "csrf-token"})
    if meta is None:
        return None
    return meta.get("content")


def _select_options(soup: BeautifulSoup, element_id: str) -> tuple[str, ...]:
    select = soup.find("select", id=element_id)
    if select is None:
        return ()
    values = (option.get("value", "").strip() for option in select.find_all("option"))
    return tuple(v for v in values if v)


def extract_csrf_token(html: str) -> str | None:
    return _csrf_token(BeautifulSoup(html, HTML_PARSER))


def parse_select_options(html: str, element_id: str) -> tuple[str, ...]:
    return _select_options(BeautifulSoup(html, HTML_PARSER), element_id)


def extract_page(response: httpx.Response, *, referer: str) -> PageData:
    """Turn a rendered page into a fresh session plus the facility lists it offers."""
    soup = BeautifulSoup(response.text, HTML_PARSER)
    session = SessionContext(
        cookie=response_cookie(response),
        csrf_token=_csrf_token(soup),
        referer=referer,
    )
    return PageData(
        session=session,
        facilities=_select_options(soup, CONSULATE_FACILITY_SELECT_ID),
        asc_facilities=_select_options(soup, ASC_FACILITY_SELECT_ID),
    )


def extract_session(response: httpx.Response, *, referer: str) -> SessionContext:
    return extract_page(response, referer=referer).session
