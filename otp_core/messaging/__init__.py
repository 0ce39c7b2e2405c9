"""
Messaging Utilities
===================
Phone number handling and transport-safe SMS text.
"""

from .encoding import is_ascii, to_ascii
from .phone_utils import (
    DEFAULT_COUNTRY_CODE,
    format_phone_for_transport,
    mask_phone,
    normalize_phone,
    validate_e164,
)
from .templates import PURPOSE_LABELS, render_otp_message

__all__ = [
    # Encoding
    "is_ascii",
    "to_ascii",
    # Phone
    "DEFAULT_COUNTRY_CODE",
    "format_phone_for_transport",
    "mask_phone",
    "normalize_phone",
    "validate_e164",
    # Templates
    "PURPOSE_LABELS",
    "render_otp_message",
]
