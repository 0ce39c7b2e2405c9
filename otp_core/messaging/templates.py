"""
SMS Templates
=============
Per-purpose OTP message templates.
"""

import math
from typing import Dict

from .encoding import to_ascii

PURPOSE_LABELS: Dict[str, str] = {
    "login": "login",
    "register": "registration",
    "password_reset": "password reset",
    "device_change": "device change",
}

DEFAULT_LABEL = "verification"

OTP_TEMPLATE = "{brand} {label} code: {code}. Valid for {minutes} min. Do not share it."


def render_otp_message(purpose: str, code: str, ttl_seconds: int, brand: str = "") -> str:
    """
    Build a transport-safe OTP message.

    Args:
        purpose: OTP purpose value
        code: Plain OTP code
        ttl_seconds: Code lifetime, rendered in whole minutes (rounded up)
        brand: Sender/app name shown at the start of the message

    Returns:
        ASCII-only message text
    """
    minutes = max(1, math.ceil(ttl_seconds / 60))
    message = OTP_TEMPLATE.format(
        brand=brand,
        label=PURPOSE_LABELS.get(purpose, DEFAULT_LABEL),
        code=code,
        minutes=minutes,
    )
    return to_ascii(message.strip())
