import asyncio
import json
import logging
from typing import Any, Dict

import boto3

from app.Core.config import get_settings
from app.features.presentations.schemas import NotificationMessage

logger = logging.getLogger(__name__)


def _management_endpoint(endpoint: str) -> str:
    # The management API speaks HTTPS even for a wss:// connection URL
    if endpoint.startswith("wss://"):
        return "https://" + endpoint[len("wss://"):]
    if endpoint.startswith("ws://"):
        return "http://" + endpoint[len("ws://"):]
    return endpoint


class NotificationService:
    """Best-effort pushes to a live WebSocket connection. Never raises."""

    _clients: Dict[str, Any] = {}

    @classmethod
    def _client_for(cls, endpoint: str) -> Any:
        client = cls._clients.get(endpoint)
        if client is None:
            client = boto3.client(
                "apigatewaymanagementapi",
                endpoint_url=endpoint,
                region_name=get_settings().aws_region,
            )
            cls._clients[endpoint] = client
        return client

    @classmethod
    def reset(cls) -> None:
        cls._clients = {}

    @classmethod
    async def notify_connection(cls, connection_id: str, message: NotificationMessage) -> None:
        endpoint = get_settings().websocket_api_endpoint
        if not endpoint:
            logger.warning("WEBSOCKET_API_ENDPOINT not configured - skipping notification")
            return

        data = json.dumps(message.model_dump(by_alias=True, exclude_none=True)).encode("utf-8")
        loop = asyncio.get_running_loop()

        def _send() -> None:
            client = cls._client_for(_management_endpoint(endpoint))
            client.post_to_connection(ConnectionId=connection_id, Data=data)

        try:
            await loop.run_in_executor(None, _send)
            logger.info("Sent %s notification to %s", message.type, connection_id)
        except Exception as e:
            logger.error("Notification to %s failed: %s", connection_id, e)
