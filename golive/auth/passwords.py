"""Event access password hashing and verification."""

import asyncio
import hmac

import bcrypt

from golive.config import settings
from golive.models.event import Event


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash an event access password using bcrypt.

    Args:
        password: Plain text password to hash
        rounds: bcrypt cost factor (defaults to the configured rounds)

    Returns:
        Bcrypt hash of the password
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        password: Plain text password to verify
        password_hash: Bcrypt hash to verify against

    Returns:
        True if the password matches the hash, False otherwise
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


async def hash_password_async(password: str) -> str:
    """Hash in a worker thread; bcrypt is deliberately slow."""
    return await asyncio.to_thread(hash_password, password)


async def verify_event_password(event: Event, submitted: str) -> bool:
    """
    Check a submitted password against an event's stored secret.

    The bcrypt hash is authoritative. A plaintext ``accessPassword`` left on a
    legacy record is only honoured when legacy plaintext passwords are
    explicitly allowed, and is compared in constant time.

    Args:
        event: Event whose password gate is being checked
        submitted: Password typed by the viewer

    Returns:
        True on match
    """
    if event.access_password_hash:
        return await asyncio.to_thread(
            check_password, submitted, event.access_password_hash
        )
    if event.access_password and settings.allow_legacy_plaintext_passwords:
        return hmac.compare_digest(
            submitted.encode("utf-8"), event.access_password.encode("utf-8")
        )
    return False
