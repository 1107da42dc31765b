"""Repository layer for DynamoDB operations."""

from golive.repositories.event_repository import EventRepository
from golive.repositories.event_secret_repository import EventSecretRepository
from golive.repositories.payment_repository import PaymentRepository
from golive.repositories.session_repository import SessionRepository
from golive.repositories.viewer_repository import ViewerRepository

__all__ = [
    "EventRepository",
    "EventSecretRepository",
    "PaymentRepository",
    "SessionRepository",
    "ViewerRepository",
]
