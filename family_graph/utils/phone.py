import re
from family_graph.core.config import settings

E164 = re.compile(r"^\+[1-9]\d{6,14}$")

def normalize_phone(phone: str, country_code: str | None = None) -> str:
    """Normalize a phone number to E.164.

    Ten-digit national numbers, ``0``-prefixed trunk numbers and numbers that
    already carry the country code without ``+`` get the default country code
    (India unless configured otherwise). Anything else is only prefixed with ``+``.
    """
    cc = country_code or settings.DEFAULT_COUNTRY_CODE
    cleaned = re.sub(r"[^\d+]", "", phone)
    has_plus = cleaned.startswith("+")
    digits = cleaned.lstrip("+")

    if has_plus:
        return f"+{digits}"
    if len(digits) == 10:
        return f"+{cc}{digits}"
    if len(digits) == 11 and digits.startswith("0"):
        return f"+{cc}{digits[1:]}"
    if len(digits) == 10 + len(cc) and digits.startswith(cc):
        return f"+{digits}"
    return f"+{digits}"

def is_valid_phone(phone: str) -> bool:
    return bool(E164.match(phone or ""))
