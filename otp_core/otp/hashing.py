"""
OTP Hashing Utilities
=====================
Code generation and keyed hashing for OTP codes.
"""

import hashlib
import hmac
import secrets


def generate_otp(length: int = 6) -> str:
    """
    Generate a secure random numeric OTP.

    The first digit is never zero, so a 6-digit code is in
    [100000, 999999].

    Args:
        length: Number of digits

    Returns:
        OTP string
    """
    if length < 1:
        raise ValueError("OTP length must be positive")
    lowest = 10 ** (length - 1)
    return str(lowest + secrets.randbelow(9 * lowest))


def generate_salt() -> str:
    """Generate a random salt for OTP hashing."""
    return secrets.token_hex(16)


def hash_otp(phone: str, code: str, purpose: str, salt: str, secret: str) -> str:
    """
    Compute the keyed digest of an OTP.

    HMAC-SHA256 keyed by the server secret over phone, code, purpose and salt.
    Deterministic: identical inputs give identical output across restarts.

    Args:
        phone: Normalized E.164 phone number
        code: Plain OTP
        purpose: OTP purpose value
        salt: Per-issuance salt
        secret: Server-side signing secret

    Returns:
        Hex digest
    """
    message = f"{phone}:{code}:{purpose}:{salt}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def verify_otp_hash(
    phone: str,
    code: str,
    purpose: str,
    salt: str,
    secret: str,
    stored_hash: str,
) -> bool:
    """
    Verify an OTP against its stored digest.

    Uses constant-time comparison to prevent timing attacks.

    Returns:
        True if the code matches
    """
    computed_hash = hash_otp(phone, code, purpose, salt, secret)
    return hmac.compare_digest(computed_hash, stored_hash)
