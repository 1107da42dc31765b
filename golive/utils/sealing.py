"""Symmetric sealing of event secrets that must be recoverable for delivery."""

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from golive.config import settings
from golive.exceptions import InvariantViolationError


def _fernet(key_material: str | None = None) -> Fernet:
    # Any passphrase works; Fernet needs 32 url-safe base64 bytes
    material = (key_material or settings.event_secret_key).encode("utf-8")
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(material).digest()))


def seal(plaintext: str, key_material: str | None = None) -> str:
    """
    Encrypt a secret for storage.

    Args:
        plaintext: Secret to seal
        key_material: Override for the configured sealing key

    Returns:
        Fernet token as text
    """
    return _fernet(key_material).encrypt(plaintext.encode("utf-8")).decode("ascii")


def unseal(token: str, key_material: str | None = None) -> str:
    """
    Decrypt a sealed secret.

    Raises:
        InvariantViolationError: If the token was sealed with another key or tampered with
    """
    try:
        return _fernet(key_material).decrypt(token.encode("ascii")).decode("utf-8")
    except InvalidToken:
        raise InvariantViolationError("Sealed event secret could not be opened")
