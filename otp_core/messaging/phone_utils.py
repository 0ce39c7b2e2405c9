"""
Phone Utilities
===============
Functions for phone number validation, normalization and masking.
"""

import re

DEFAULT_COUNTRY_CODE = "90"

_E164_PATTERN = re.compile(r'^\+[1-9]\d{6,14}$')


def validate_e164(phone: str) -> bool:
    """
    Validate E.164 phone number format.

    Args:
        phone: Phone number

    Returns:
        True if valid E.164 format
    """
    return bool(_E164_PATTERN.match(phone or ""))


def normalize_phone(phone: str, default_country: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Normalize a phone number to E.164 format.

    Accepted forms (Turkish defaults): ``0xxxxxxxxxx``, ``90xxxxxxxxxx``,
    ``+90xxxxxxxxxx`` and bare ``5xxxxxxxxx``. Idempotent.

    Args:
        phone: Raw phone number
        default_country: Default country code (without +)

    Returns:
        E.164 formatted number
    """
    digits = re.sub(r'\D', '', str(phone or ""))

    # Trunk prefix
    if digits.startswith('0'):
        return f"+{default_country}{digits[1:]}"

    if digits.startswith(default_country):
        return f"+{digits}"

    return f"+{default_country}{digits}"


def format_phone_for_transport(phone: str, default_country: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Format a phone number for SMS gateways that expect bare digits.

    +905551234567 -> 905551234567
    """
    return normalize_phone(phone, default_country).lstrip('+')


def mask_phone(phone: str) -> str:
    """
    Mask a phone number for logging.

    Keeps the first three digits (country-code-like prefix) and the last two.

    Args:
        phone: Phone number in any format

    Returns:
        Masked number (e.g., "905*****67")
    """
    if not phone:
        return ""
    digits = re.sub(r'\D', '', str(phone))
    if len(digits) <= 4:
        return "****"
    return f"{digits[:3]}*****{digits[-2:]}"
