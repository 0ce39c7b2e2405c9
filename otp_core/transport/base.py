"""
SMS Transport Interface
=======================
Boundary between the OTP provider and an SMS gateway.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class DispatchResult:
    """Result of handing a message to the gateway."""
    success: bool
    message_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    raw_response: Optional[str] = None


class SMSTransport(ABC):
    """
    Abstract base class for SMS gateways.

    ``dispatch`` must never raise for gateway or network failures; it
    returns a failed ``DispatchResult`` instead.
    """

    name: str = "base"

    @abstractmethod
    async def dispatch(self, phone_digits: str, message: str) -> DispatchResult:
        """
        Send one SMS.

        Args:
            phone_digits: Recipient as bare digits with country code (no "+")
            message: ASCII message text

        Returns:
            DispatchResult
        """

    def missing_credentials(self) -> List[str]:
        """Names of required credentials that are not configured."""
        return []

    async def close(self) -> None:
        """Release network resources."""
