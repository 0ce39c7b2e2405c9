"""
OTP Router
==========
HTTP endpoints for sending, verifying and cancelling OTP codes.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..exceptions import ServiceNotInitializedError
from ..otp.models import OTPErrorKind, OTPResult
from ..service import OTPService
from .schemas import CancelOTPRequest, SendOTPRequest, VerifyOTPRequest

logger = structlog.get_logger(__name__)

ERROR_STATUS_CODES: Dict[OTPErrorKind, int] = {
    OTPErrorKind.INVALID_OTP: 400,
    OTPErrorKind.OTP_NOT_FOUND: 404,
    OTPErrorKind.OTP_EXPIRED: 410,
    OTPErrorKind.OTP_LOCKED: 423,
    OTPErrorKind.INVALID_PHONE: 422,
    OTPErrorKind.RATE_LIMIT_EXCEEDED: 429,
    OTPErrorKind.RESEND_COOLDOWN: 429,
    OTPErrorKind.SERVICE_ERROR: 500,
    OTPErrorKind.SMS_SEND_FAILED: 502,
    OTPErrorKind.NOT_INITIALIZED: 503,
    OTPErrorKind.CONFIGURATION_ERROR: 503,
}


def status_code_for(result: OTPResult) -> int:
    """HTTP status for an operation result."""
    if result.success:
        return 200
    return ERROR_STATUS_CODES.get(result.error, 500)


def _respond(result: OTPResult) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(result), content=result.to_dict())


def _not_initialized() -> JSONResponse:
    logger.warning("OTP request rejected, service not initialized")
    result = OTPResult.fail(OTPErrorKind.NOT_INITIALIZED, "OTP service is not initialized")
    return _respond(result)


def create_otp_router(service: OTPService, prefix: str = "/otp") -> APIRouter:
    """
    Create the OTP router bound to a service instance.

    Args:
        service: Initialized (or later initialized) OTP service
        prefix: Route prefix

    Returns:
        FastAPI router with /send, /verify, /cancel and /health endpoints
    """
    router = APIRouter(prefix=prefix, tags=["OTP"])

    @router.post("/send")
    async def send_otp(request: SendOTPRequest) -> JSONResponse:
        """Issue a code and deliver it by SMS."""
        options: Dict[str, Any] = {}
        if request.ttl_seconds is not None:
            options["ttl_seconds"] = request.ttl_seconds
        try:
            result = await service.send_otp(request.phone_number, request.purpose, **options)
        except ServiceNotInitializedError:
            return _not_initialized()
        return _respond(result)

    @router.post("/verify")
    async def verify_otp(request: VerifyOTPRequest) -> JSONResponse:
        """Verify a code. A correct code can only be used once."""
        try:
            result = await service.verify_otp(request.phone_number, request.code, request.purpose)
        except ServiceNotInitializedError:
            return _not_initialized()
        return _respond(result)

    @router.post("/cancel")
    async def cancel_otp(request: CancelOTPRequest) -> JSONResponse:
        try:
            result = await service.cancel_otp(request.phone_number, request.purpose)
        except ServiceNotInitializedError:
            return _not_initialized()
        return _respond(result)

    @router.get("/health")
    async def health_check() -> JSONResponse:
        return _respond(await service.health_check())

    return router
