"""
OTP Core Logging
================
structlog configuration for services embedding the OTP core.

Usage:
    from otp_core.logging import setup_logging

    setup_logging(service_name="auth-api")
    logger = structlog.get_logger(__name__)
    logger.info("OTP sent", phone="+905551234567")  # phone is masked
"""

import logging
import sys
from typing import Any, Dict, FrozenSet

import structlog

from .messaging.phone_utils import mask_phone

PII_KEYS: FrozenSet[str] = frozenset({"phone", "phone_number", "to", "gsmno"})


def mask_pii(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    structlog processor masking phone numbers under well-known keys.

    Values that are already masked are left as they are.
    """
    for key in PII_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and value and "*" not in value:
            event_dict[key] = mask_phone(value)
    return event_dict


def _add_service(service_name: str):
    def processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> logging.Logger:
    """
    Configure stdlib logging and structlog for a service.

    Args:
        service_name: Name attached to every log line
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines for production, console renderer otherwise

    Returns:
        Configured root logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service(service_name),
        mask_pii,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).info(
        "Logging configured", service_name=service_name, level=level.upper()
    )
    return root_logger
