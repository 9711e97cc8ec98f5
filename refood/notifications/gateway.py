"""Remote notification endpoints."""

from typing import Any

from refood.client.http import RefoodClient
from refood.models.notification import AudienceRole, NotificationMessage

NOTIFICATIONS_PATH = "/notifiche"

AUDIENCE_PATHS = {
    AudienceRole.ADMINISTRATORS: NOTIFICATIONS_PATH + "/admin-centro/{center_id}",
    AudienceRole.OPERATORS: NOTIFICATIONS_PATH + "/operatori-centro/{center_id}",
    AudienceRole.ALL_MEMBERS: NOTIFICATIONS_PATH + "/centro/{center_id}",
}


class NotificationGateway:
    """Sends composed messages and reads unread counters."""

    def __init__(self, client: RefoodClient):
        self.client = client

    async def send(self, message: NotificationMessage) -> Any:
        """Deliver one message to its audience."""
        path = AUDIENCE_PATHS[message.audience.role].format(
            center_id=message.audience.center_id
        )
        return await self.client.post(
            path,
            json={
                "titolo": message.title,
                "messaggio": message.body,
                "tipo": "Prenotazione",
                "priorita": message.priority,
                "riferimento_id": message.reservation_id,
                "riferimento_tipo": "Prenotazione",
            },
        )

    async def unread_count(self) -> int:
        """Unread count from the dedicated endpoint."""
        body = await self.client.get(f"{NOTIFICATIONS_PATH}/conteggio")
        return int(body["count"])

    async def unread_count_from_list(self) -> int:
        """Unread count computed from the paginated list."""
        body = await self.client.get(
            NOTIFICATIONS_PATH, params={"letta": "false", "limit": "1"}
        )
        return int(body["pagination"]["total"])
