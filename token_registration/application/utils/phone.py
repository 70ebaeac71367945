import re

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: str) -> str:
    """Strip everything but digits. No formatting is applied."""
    return _NON_DIGITS.sub("", phone or "")
