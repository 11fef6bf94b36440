"""Shared parser utilities — string coercion and phone normalization."""

import re


def safe_str(val):
    """Strip to string, return None for empty/nan."""
    if val is None:
        return None
    s = str(val).strip()
    if s in ('', 'nan', 'None', 'NaN', 'none', 'null'):
        return None
    return s


def normalize_phone(raw):
    """Normalize a (mostly German) phone number.

    Returns (whatsapp, display): whatsapp is digits only with country code
    (49176...), display is the same with a leading '+'. (None, None) if the
    number is unusable.
    """
    if not raw:
        return None, None
    digits = re.sub(r'\D', '', str(raw))
    if not digits:
        return None, None
    if digits.startswith('00'):
        digits = digits[2:]
    elif digits.startswith('0'):
        digits = '49' + digits[1:]
    if len(digits) < 10 or len(digits) > 15:
        return None, None
    return digits, f'+{digits}'
