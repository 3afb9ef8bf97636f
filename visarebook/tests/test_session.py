from __future__ import annotations

import httpx
import pytest

from visarebook.domain import SessionContext
from visarebook.session import (
    CONSULATE_FACILITY_SELECT_ID,
    extract_csrf_token,
    extract_page,
    extract_relevant_cookie,
    parse_cookies,
    parse_select_options,
)

APPOINTMENT_PAGE = """
<html>
  <head>
    <meta name="csrf-param" content="authenticity_token">
    <meta name="csrf-token" content="XYZ">
  </head>
  <body>
    <select id="appointments_consulate_appointment_facility_id">
      <option value=""></option>
      <option value=" 54 ">Brasilia</option>
      <option value="128">Rio de Janeiro</option>
    </select>
    <select id="appointments_asc_appointment_facility_id">
      <option value="56">Brasilia ASC</option>
    </select>
  </body>
</html>
"""


def test_parse_cookies_splits_on_first_equals_only() -> None:
    parsed = parse_cookies("_yatri_session=a=b; path=/; HttpOnly")

    assert parsed == {"_yatri_session": "a=b", "path": "/", "HttpOnly": None}


def test_extract_relevant_cookie_keeps_only_session_cookie() -> None:
    assert extract_relevant_cookie("_yatri_session=abc123; path=/; HttpOnly") == "_yatri_session=abc123"


@pytest.mark.parametrize("raw", [None, "", "other=1; path=/", "_yatri_session; path=/"])
def test_extract_relevant_cookie_missing_renders_undefined(raw: str | None) -> None:
    assert extract_relevant_cookie(raw) == "_yatri_session=undefined"


def test_extract_csrf_token() -> None:
    assert extract_csrf_token('<meta name="csrf-token" content="XYZ">') == "XYZ"


@pytest.mark.parametrize("html", ["", "<html><head></head></html>", '<meta name="csrf-param" content="authenticity_token">'])
def test_extract_csrf_token_absent(html: str) -> None:
    assert extract_csrf_token(html) is None


def test_parse_select_options_skips_blank_values() -> None:
    assert parse_select_options(APPOINTMENT_PAGE, CONSULATE_FACILITY_SELECT_ID) == ("54", "128")
    assert parse_select_options(APPOINTMENT_PAGE, "missing") == ()


def test_extract_page_reads_cookie_token_and_facilities() -> None:
    response = httpx.Response(
        200,
        headers=[
            ("set-cookie", "locale=pt-BR; path=/"),
            ("set-cookie", "_yatri_session=s1; path=/; secure; HttpOnly"),
        ],
        text=APPOINTMENT_PAGE,
    )

    page = extract_page(response, referer="https://ais.usvisa-info.com/pt-br/niv")

    assert page.session == SessionContext(
        cookie="_yatri_session=s1",
        csrf_token="XYZ",
        referer="https://ais.usvisa-info.com/pt-br/niv",
    )
    assert page.facilities == ("54", "128")
    assert page.asc_facilities == ("56",)


def test_session_headers_carry_fixed_set() -> None:
    headers = SessionContext(cookie="_yatri_session=s1", csrf_token="XYZ", referer="r").headers()

    assert headers["Cookie"] == "_yatri_session=s1"
    assert headers["X-CSRF-Token"] == "XYZ"
    assert headers["Referer"] == "r"
    assert headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert headers["Cache-Control"] == "no-store"
    assert headers["Connection"] == "keep-alive"
    assert headers["User-Agent"].startswith("Mozilla/5.0")


def test_session_headers_omit_missing_token() -> None:
    headers = SessionContext(cookie="_yatri_session=undefined", csrf_token=None, referer="r").headers()

    assert "X-CSRF-Token" not in headers


def test_with_cookie_returns_new_context() -> None:
    original = SessionContext(cookie="_yatri_session=a", csrf_token="t", referer="r")

    updated = original.with_cookie("_yatri_session=b")

    assert updated is not original
    assert original.cookie == "_yatri_session=a"
    assert updated == SessionContext(cookie="_yatri_session=b", csrf_token="t", referer="r")
