"""Tests for Fernet sealing of event secrets."""

import pytest

from golive.exceptions import InvariantViolationError
from golive.utils.sealing import seal, unseal


def test_sealed_secret_is_opaque_and_recoverable():
    sealed = seal("court-side")

    assert "court-side" not in sealed
    assert unseal(sealed) == "court-side"


def test_sealing_is_randomized():
    assert seal("same") != seal("same")


def test_wrong_key_cannot_unseal():
    sealed = seal("court-side", key_material="key-one")

    with pytest.raises(InvariantViolationError):
        unseal(sealed, key_material="key-two")
