"""PII handling utilities: zero raw identifiers in application logs.

Subject identifiers are hashed before they reach any log record, and entry
text is only ever logged as a fingerprint.
"""
import hashlib
import logging
import secrets
from typing import Optional

logger = logging.getLogger(__name__)


# Loaded from the secrets store in production via configure_pii_salt()
_PII_SALT: Optional[str] = None
_EPHEMERAL_SALT: Optional[str] = None


def configure_pii_salt(salt: str) -> None:
    """Configure the PII hashing salt.

    Must be called during application startup before any PII hashing.

    Args:
        salt: Secret salt value

    Raises:
        ValueError: If salt is empty or too short
    """
    global _PII_SALT
    if not salt or len(salt) < 32:
        logger.critical(
            "PII_SALT_CONFIGURATION_FAILED",
            extra={"reason": "Salt too short or empty", "min_length": 32}
        )
        raise ValueError("PII salt must be at least 32 characters")

    _PII_SALT = salt
    logger.info("PII_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def _active_salt() -> str:
    global _EPHEMERAL_SALT
    if _PII_SALT is not None:
        return _PII_SALT
    # Hashes stay consistent within this process only
    if _EPHEMERAL_SALT is None:
        _EPHEMERAL_SALT = secrets.token_hex(32)
        logger.warning(
            "PII_SALT_EPHEMERAL",
            extra={"reason": "Salt not configured", "action": "call configure_pii_salt()"}
        )
    return _EPHEMERAL_SALT


def hash_pii(value: str) -> str:
    """Hash a PII value for safe logging.

    Uses SHA-256 with a secret salt to create a consistent,
    non-reversible hash of subject identifiers.

    Args:
        value: The PII value to hash (subject ID, email, etc.)

    Returns:
        64-char hex string safe for logging
    """
    salted = f"{_active_salt()}{value}"
    return hashlib.sha256(salted.encode()).hexdigest()


def hash_optional_pii(value: Optional[str]) -> Optional[str]:
    """hash_pii() that passes None through for anonymous entries."""
    if value is None:
        return None
    return hash_pii(value)


def hash_text_for_audit(text: str) -> str:
    """Fingerprint entry text for audit without exposing content."""
    return hashlib.sha256(text.encode()).hexdigest()
