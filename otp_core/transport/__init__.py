"""
SMS Transports
==============
Gateways the SMS OTP provider dispatches through.
"""

from .base import DispatchResult, SMSTransport
from .netgsm import NETGSM_ERROR_MESSAGES, NetgsmTransport, describe_netgsm_error

__all__ = [
    "DispatchResult",
    "SMSTransport",
    "NETGSM_ERROR_MESSAGES",
    "NetgsmTransport",
    "describe_netgsm_error",
]
