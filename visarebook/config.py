from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _parse_telegram_chat_ids(raw: str) -> tuple[str, ...]:
    # TELEGRAM_CHAT_ID is optional: a single value or a comma-separated list.
    #   TELEGRAM_CHAT_ID=123456789
    #   TELEGRAM_CHAT_ID=123456789,-1001234567890
    parts = [p.strip() for p in raw.split(",")]
    parts = [p for p in parts if p]

    seen: set[str] = set()
    result: list[str] = []
    for p in parts:
        try:
            int(p)
        except ValueError as e:
            raise RuntimeError(f"Invalid TELEGRAM_CHAT_ID value: {p!r}. Expected integer chat id.") from e

        if p == "0":
            raise RuntimeError("Invalid TELEGRAM_CHAT_ID value: '0' is not a valid chat id")

        if p in seen:
            continue
        seen.add(p)
        result.append(p)

    return tuple(result)


@dataclass(frozen=True)
class Settings:
    email: str
    password: str
    schedule_id: str
    facility_id: int
    locale: str

    # Seconds between poll cycles (and between reconnect attempts)
    refresh_delay: float = 3.0

    # None keeps the httpx default
    request_timeout_seconds: float | None = None

    telegram_bot_token: str | None = None
    telegram_chat_ids: tuple[str, ...] = ()

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_ids)


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected a number of seconds.") from e


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    refresh_delay = _parse_float("REFRESH_DELAY", os.getenv("REFRESH_DELAY") or "3")
    if refresh_delay < 0:
        raise RuntimeError("REFRESH_DELAY must be >= 0")

    timeout_raw = os.getenv("REQUEST_TIMEOUT_SECONDS")
    request_timeout_seconds = _parse_float("REQUEST_TIMEOUT_SECONDS", timeout_raw) if timeout_raw else None

    facility_raw = _require("FACILITY_ID")
    try:
        facility_id = int(facility_raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid FACILITY_ID value: {facility_raw!r}. Expected integer facility id.") from e

    return Settings(
        email=_require("EMAIL"),
        password=_require("PASSWORD"),
        schedule_id=_require("SCHEDULE_ID"),
        facility_id=facility_id,
        locale=_require("LOCALE"),
        refresh_delay=refresh_delay,
        request_timeout_seconds=request_timeout_seconds,
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
        telegram_chat_ids=_parse_telegram_chat_ids(os.getenv("TELEGRAM_CHAT_ID", "")),
    )
