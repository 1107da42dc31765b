"""Repository for sealed event secrets, stored apart from the event record."""

from golive.config import settings
from golive.repositories.base import BaseRepository


class EventSecretRepository(BaseRepository):
    """
    Holds the Fernet-sealed access password of each password-gated event.

    The event record only carries a bcrypt hash; this table is read solely to
    build the password email sent to registered viewers.
    """

    def __init__(self) -> None:
        super().__init__(settings.dynamodb_table_event_secrets)

    async def put_sealed_password(
        self, event_id: str, sealed_password: str, updated_at: str
    ) -> None:
        await self.put_item(
            {
                "eventId": event_id,
                "sealedPassword": sealed_password,
                "updatedAt": updated_at,
            }
        )

    async def get_sealed_password(self, event_id: str) -> str | None:
        item = await self.get_item({"eventId": event_id})
        return item.get("sealedPassword") if item else None

    async def delete(self, event_id: str) -> None:
        await self.delete_item({"eventId": event_id})
