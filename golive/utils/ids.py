"""Opaque identifier generation."""

import uuid


def new_id() -> str:
    """
    Generate a random opaque identifier.

    Returns:
        UUID4 string (122 random bits) used for events, payments and sessions
    """
    return str(uuid.uuid4())
