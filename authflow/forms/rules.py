"""
Field rules
-----------
Small factories returning `Rule` objects. Every check receives the cleaned value
(stripped and normalized by its FieldDefinition) and returns a user-facing message
or None.
"""
import re
from datetime import date
from typing import Iterable, Optional

from authflow.forms.models import FormMode, Rule
from authflow.settings import settings

# Tolerant but anchored: local@domain.tld, no spaces
EMAIL_RE = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,}$", re.I)
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _modes(modes: Optional[Iterable[FormMode]]):
    return frozenset(modes) if modes is not None else None


def required(message: str = "This field is required") -> Rule:
    def check(v: str) -> Optional[str]:
        return None if v.strip() else message
    return Rule("required", check)


def min_length(n: int, *, modes: Optional[Iterable[FormMode]] = None) -> Rule:
    def check(v: str) -> Optional[str]:
        return None if len(v) >= n else f"Must contain at least {n} characters"
    return Rule(f"min_length:{n}", check, _modes(modes))


def max_length(n: int) -> Rule:
    def check(v: str) -> Optional[str]:
        return None if len(v) <= n else f"Must contain at most {n} characters"
    return Rule(f"max_length:{n}", check)


def password_length(*, modes: Optional[Iterable[FormMode]] = None) -> Rule:
    # Read at check time so the policy follows runtime configuration
    def check(v: str) -> Optional[str]:
        n = int(settings.PASSWORD_MIN_LENGTH)
        return None if len(v) >= n else f"Password must contain at least {n} characters"
    return Rule("password_length", check, _modes(modes))


def email_format() -> Rule:
    def check(v: str) -> Optional[str]:
        return None if EMAIL_RE.match(v) else "Invalid email address"
    return Rule("email", check)


def digits(min_len: int, max_len: int, what: str) -> Rule:
    pattern = re.compile(rf"^\d{{{min_len},{max_len}}}$")

    def check(v: str) -> Optional[str]:
        if pattern.match(v):
            return None
        if min_len == max_len:
            return f"{what} must be {min_len} digits"
        return f"{what} must be {min_len} to {max_len} digits"
    return Rule(f"digits:{min_len}-{max_len}", check)


def letters(exact: int, what: str) -> Rule:
    pattern = re.compile(rf"^[A-Za-z]{{{exact}}}$")

    def check(v: str) -> Optional[str]:
        return None if pattern.match(v) else f"{what} must be a {exact}-letter code"
    return Rule(f"letters:{exact}", check)


def past_iso_date() -> Rule:
    def check(v: str) -> Optional[str]:
        if not ISO_DATE_RE.match(v):
            return "Use the format YYYY-MM-DD"
        try:
            d = date.fromisoformat(v)
        except ValueError:
            return "Not a valid calendar date"
        if d > date.today():
            return "Date cannot be in the future"
        return None
    return Rule("past_iso_date", check)


def digits_only(v: str) -> str:
    return re.sub(r"[\s\-]", "", v)
