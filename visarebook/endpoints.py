from __future__ import annotations

BASE_URL = "https://ais.usvisa-info.com"


def build_base_uri(locale: str) -> str:
    # e.g. en-ca, pt-br
    return f"{BASE_URL}/{locale}/niv"


def build_sign_in_url(locale: str) -> str:
    return f"{build_base_uri(locale)}/users/sign_in"


def build_appointment_url(locale: str, schedule_id: str) -> str:
    return f"{build_base_uri(locale)}/schedule/{schedule_id}/appointment"


def build_days_url(locale: str, schedule_id: str, facility_id: int) -> str:
    return f"{build_appointment_url(locale, schedule_id)}/days/{facility_id}.json"


def build_times_url(locale: str, schedule_id: str, facility_id: int) -> str:
    return f"{build_appointment_url(locale, schedule_id)}/times/{facility_id}.json"
