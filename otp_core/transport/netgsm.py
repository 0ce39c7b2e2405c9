"""
Netgsm SMS Transport
====================
Adapter for the Netgsm HTTP GET send API.
"""

from typing import Dict, List, Optional

import httpx
import structlog

from ..messaging.phone_utils import mask_phone
from ..settings import DEFAULT_NETGSM_ENDPOINT, OTPSettings
from .base import DispatchResult, SMSTransport

logger = structlog.get_logger(__name__)

SUCCESS_PREFIX = "00"

NETGSM_ERROR_MESSAGES: Dict[str, str] = {
    "20": "Message text is invalid or too long",
    "30": "Invalid username or password, or API access is disabled",
    "40": "Message header is not approved",
    "50": "Insufficient credit",
    "60": "Invalid message header",
    "70": "Invalid request parameters",
    "80": "Gateway system error",
}


def describe_netgsm_error(response_text: str) -> str:
    """Map a Netgsm response body to a readable error."""
    code = response_text[:2]
    return NETGSM_ERROR_MESSAGES.get(code, f"Netgsm API error: {response_text}")


class NetgsmTransport(SMSTransport):
    """
    Netgsm SMS adapter.

    Success bodies look like ``"00 123456789"`` (code, then message id).
    Anything else is an error code from ``NETGSM_ERROR_MESSAGES``.
    """

    name = "netgsm"

    def __init__(
        self,
        usercode: Optional[str],
        password: Optional[str],
        msgheader: Optional[str],
        endpoint: str = DEFAULT_NETGSM_ENDPOINT,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            usercode: Netgsm account user code
            password: Netgsm API password
            msgheader: Approved sender header
            endpoint: Send endpoint URL
            timeout: Request timeout in seconds
            client: Pre-built HTTP client (tests, shared pools)
        """
        self.usercode = usercode
        self.password = password
        self.msgheader = msgheader
        self.endpoint = endpoint
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: OTPSettings) -> "NetgsmTransport":
        return cls(
            usercode=settings.netgsm_usercode,
            password=(
                settings.netgsm_password.get_secret_value()
                if settings.netgsm_password else None
            ),
            msgheader=settings.netgsm_msgheader,
            endpoint=settings.netgsm_endpoint,
            timeout=settings.transport_timeout_seconds,
        )

    def missing_credentials(self) -> List[str]:
        missing = []
        if not self.usercode:
            missing.append("NETGSM_USER")
        if not self.password:
            missing.append("NETGSM_PASS")
        if not self.msgheader:
            missing.append("NETGSM_HEADER")
        return missing

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def dispatch(self, phone_digits: str, message: str) -> DispatchResult:
        """Send SMS via Netgsm."""
        params = {
            "usercode": self.usercode or "",
            "password": self.password or "",
            "gsmno": phone_digits,
            "message": message,
            "msgheader": self.msgheader or "",
        }

        try:
            response = await self._get_client().get(
                self.endpoint,
                params=params,
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            logger.error("Netgsm request timed out", phone=mask_phone(phone_digits))
            return DispatchResult(
                success=False,
                error_code="timeout",
                error_message="SMS gateway timed out",
            )
        except httpx.HTTPError as e:
            logger.error("Netgsm request failed", phone=mask_phone(phone_digits), error=str(e))
            return DispatchResult(
                success=False,
                error_code="network_error",
                error_message="SMS gateway unreachable",
            )

        body = response.text.strip()

        if response.status_code != 200:
            logger.error(
                "Netgsm returned HTTP error",
                status_code=response.status_code,
                phone=mask_phone(phone_digits),
            )
            return DispatchResult(
                success=False,
                error_code=f"http_{response.status_code}",
                error_message=f"SMS gateway returned HTTP {response.status_code}",
                raw_response=body,
            )

        if body.startswith(SUCCESS_PREFIX):
            message_id = body[len(SUCCESS_PREFIX):].strip() or None
            logger.info("Netgsm accepted message", message_id=message_id)
            return DispatchResult(success=True, message_id=message_id, raw_response=body)

        logger.error("Netgsm rejected message", code=body[:2], phone=mask_phone(phone_digits))
        return DispatchResult(
            success=False,
            error_code=body[:2] or "empty_response",
            error_message=describe_netgsm_error(body),
            raw_response=body,
        )
