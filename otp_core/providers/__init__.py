"""
OTP Providers
=============
Provider implementations and the factory that selects one by name.
"""

from typing import Any, Dict, Type

from ..exceptions import OTPConfigurationError
from ..settings import OTPSettings
from .base import OTPProvider
from .mock import MockOTPProvider
from .sms import SMSOTPProvider

PROVIDERS: Dict[str, Type[OTPProvider]] = {
    "mock": MockOTPProvider,
    "sms": SMSOTPProvider,
    "netgsm": SMSOTPProvider,
}


def create_provider(name: str, settings: OTPSettings, **kwargs: Any) -> OTPProvider:
    """
    Build a provider by registry name.

    Args:
        name: Provider name (``mock``, ``sms`` or ``netgsm``)
        settings: Validated settings passed to the provider
        **kwargs: Extra constructor arguments (store, transport, clock, ...)

    Raises:
        OTPConfigurationError: Unknown provider name or invalid configuration
    """
    key = (name or "").strip().lower()
    provider_cls = PROVIDERS.get(key)
    if provider_cls is None:
        raise OTPConfigurationError(
            f"Unknown OTP provider '{name}'. Available: {', '.join(sorted(PROVIDERS))}",
            provider=name,
        )
    return provider_cls(settings, **kwargs)


__all__ = [
    "OTPProvider",
    "MockOTPProvider",
    "SMSOTPProvider",
    "PROVIDERS",
    "create_provider",
]
