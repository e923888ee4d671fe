import re
from typing import Optional

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\(?\d{2}\)?[\s-]?\d{4,5}[\s-]?\d{4}$")
CPF_RE = re.compile(r"^\d{3}\.\d{3}\.\d{3}-\d{2}$")
CNPJ_RE = re.compile(r"^\d{2}\.\d{3}\.\d{3}/\d{4}-\d{2}$")
ZIP_RE = re.compile(r"^\d{5}-?\d{3}$")

PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")


def check_length(value: Optional[str], field: str, low: int, high: int) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    if len(stripped) < low or len(stripped) > high:
        raise ValueError(f"{field} must be {low}..{high} characters")
    return stripped


def check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip().lower()
    if not EMAIL_RE.match(cleaned):
        raise ValueError("Invalid email address")
    return cleaned


def check_phone(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if not PHONE_RE.match(value.strip()):
        raise ValueError("Invalid phone number")
    return value.strip()


def check_choice(value: Optional[str], field: str, choices) -> Optional[str]:
    if value is None:
        return None
    upper = value.strip().upper()
    if upper not in choices:
        raise ValueError(f"{field} must be one of {', '.join(choices)}")
    return upper
