from __future__ import annotations

from dataclasses import dataclass, field, replace

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36"
)

SESSION_COOKIE_NAME = "_yatri_session"


@dataclass(frozen=True)
class SessionContext:
    """Cookie + anti-forgery token bundle sent with every authenticated request.

    Never mutated: a re-login or a page refresh produces a new instance.
    """

    cookie: str
    csrf_token: str | None
    referer: str

    def headers(self) -> dict[str, str]:
        headers = {
            "Cookie": self.cookie,
            "Referer": self.referer,
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "User-Agent": USER_AGENT,
            "Cache-Control": "no-store",
            "Connection": "keep-alive",
        }
        if self.csrf_token is not None:
            headers["X-CSRF-Token"] = self.csrf_token
        return headers

    def with_cookie(self, cookie: str) -> SessionContext:
        return replace(self, cookie=cookie)


@dataclass(frozen=True)
class PageData:
    session: SessionContext
    facilities: tuple[str, ...] = field(default=())
    asc_facilities: tuple[str, ...] = field(default=())


@dataclass(frozen=True, order=True)
class Slot:
    """A date/time pair picked for booking."""

    date: str  # YYYY-MM-DD
    time: str | None


class RemoteError(RuntimeError):
    """The remote JSON endpoint answered with an ``error`` field."""
