"""
Input validators. Framework-agnostic pure functions.

Validators either return a bool or a list of human-readable violations; the
caller decides how to surface them. Password rules always run on the raw
password, never on a stored hash.
"""

from __future__ import annotations

import re
from functools import lru_cache
from zoneinfo import available_timezones

import pycountry
import validators as _validators

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 20
PASSWORD_SYMBOLS = "@$!%*?&"

PASSWORD_RULES = (
    f"Password must be {PASSWORD_MIN_LENGTH} to {PASSWORD_MAX_LENGTH} characters long.",
    "Password must contain at least one lowercase letter.",
    "Password must contain at least one uppercase letter.",
    "Password must contain at least one digit.",
    f"Password must contain at least one special character ({PASSWORD_SYMBOLS}).",
    f"Password may only contain letters, digits and {PASSWORD_SYMBOLS}.",
)

_ALLOWED_PASSWORD_CHARS = re.compile(r"^[A-Za-z\d" + re.escape(PASSWORD_SYMBOLS) + r"]*$")

SITE_NAME_MIN_LENGTH = 3
SITE_NAME_MAX_LENGTH = 60
SITE_DESCRIPTION_MAX_LENGTH = 300

DATE_FORMATS = (
    "YYYY-MM-DD",  # 2023-06-20
    "MM/DD/YYYY",  # 06/20/2023
    "DD-MM-YYYY",  # 20-06-2023
    "YYYY/MM/DD",  # 2023/06/20
    "DD/MM/YYYY",  # 20/06/2023
    "MM-DD-YYYY",  # 06-20-2023
    "DD MMMM, YYYY",  # 20 June, 2023
    "DD MMMM YYYY",  # 20 June 2023
    "MMMM DD, YYYY",  # June 20, 2023
    "MMMM DD YYYY",  # June 20 2023
)

TIME_FORMATS = (
    "HH:mm",  # 14:30
    "h:mm A",  # 2:30 PM
    "h:mm a",  # 2:30 pm
)

WEEKDAYS = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


def password_policy_violations(password: str) -> list[str]:
    """Return every password rule *password* breaks (empty list when valid).

    Rules:
    - 8 to 20 characters
    - at least one lowercase letter, one uppercase letter and one digit
    - at least one of ``@$!%*?&``
    - no characters outside letters, digits and those symbols
    """
    if not password:
        return ["Password is required."]

    violations = []
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        violations.append(PASSWORD_RULES[0])
    if not re.search(r"[a-z]", password):
        violations.append(PASSWORD_RULES[1])
    if not re.search(r"[A-Z]", password):
        violations.append(PASSWORD_RULES[2])
    if not re.search(r"\d", password):
        violations.append(PASSWORD_RULES[3])
    if not any(ch in PASSWORD_SYMBOLS for ch in password):
        violations.append(PASSWORD_RULES[4])
    if not _ALLOWED_PASSWORD_CHARS.match(password):
        violations.append(PASSWORD_RULES[5])
    return violations


def validate_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address."""
    return bool(_validators.email(email))


def normalize_email(email: str) -> str:
    """Lower-case and strip *email* so lookups are case-insensitive."""
    return (email or "").strip().lower()


@lru_cache(maxsize=1)
def _currency_codes() -> frozenset[str]:
    return frozenset(currency.alpha_3 for currency in pycountry.currencies)


def validate_currency(code: str) -> bool:
    """Return True if *code* is an ISO 4217 currency code."""
    return code in _currency_codes()


@lru_cache(maxsize=1)
def _timezones() -> frozenset[str]:
    return frozenset(available_timezones())


def validate_timezone(name: str) -> bool:
    """Return True if *name* is a known IANA time zone."""
    return name in _timezones()


def validate_date_format(value: str) -> bool:
    return value in DATE_FORMATS


def validate_time_format(value: str) -> bool:
    return value in TIME_FORMATS


def validate_weekday(value: str) -> bool:
    return value in WEEKDAYS
