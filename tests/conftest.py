"""Shared fixtures: frozen clock and in-memory stores."""

import pytest

from golive.config import settings
from golive.utils.clock import FrozenClock
from tests.fakes import (
    NOW,
    FakeEventRepository,
    FakeEventSecretRepository,
    FakeGateway,
    FakeMailer,
    FakeMedia,
    FakePaymentRepository,
    FakeProvisioner,
    FakeSessionRepository,
    FakeViewerRepository,
)


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Keep bcrypt cheap in tests."""
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def events() -> FakeEventRepository:
    return FakeEventRepository()


@pytest.fixture
def secrets() -> FakeEventSecretRepository:
    return FakeEventSecretRepository()


@pytest.fixture
def viewers() -> FakeViewerRepository:
    return FakeViewerRepository()


@pytest.fixture
def payments() -> FakePaymentRepository:
    return FakePaymentRepository()


@pytest.fixture
def sessions() -> FakeSessionRepository:
    return FakeSessionRepository()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def provisioner() -> FakeProvisioner:
    return FakeProvisioner()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def media() -> FakeMedia:
    return FakeMedia()
