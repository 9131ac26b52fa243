import json

import pytest

from app.Core.config import get_settings
from app.features.notifications import service as notifications
from app.features.notifications.service import NotificationService
from app.features.presentations.schemas import AffectedSlide, NotificationMessage

pytestmark = pytest.mark.anyio


class FakeManagementApi:
    def __init__(self, error=None):
        self.error = error
        self.posts = []

    def post_to_connection(self, ConnectionId, Data):
        if self.error is not None:
            raise self.error
        self.posts.append((ConnectionId, json.loads(Data)))


@pytest.fixture
def management_api(monkeypatch):
    monkeypatch.setenv("WEBSOCKET_API_ENDPOINT", "wss://abc.execute-api.eu-north-1.amazonaws.com/prod")
    get_settings.cache_clear()
    fake = FakeManagementApi()
    endpoints = []

    def _client_for(endpoint):
        endpoints.append(endpoint)
        return fake

    monkeypatch.setattr(NotificationService, "_client_for", _client_for)
    fake.endpoints = endpoints
    return fake


@pytest.mark.parametrize(
    "endpoint, expected",
    [
        ("wss://abc.example.com/prod", "https://abc.example.com/prod"),
        ("ws://localhost:3001", "http://localhost:3001"),
        ("https://abc.example.com/prod", "https://abc.example.com/prod"),
    ],
)
def test_management_endpoint(endpoint, expected):
    assert notifications._management_endpoint(endpoint) == expected


async def test_posts_camel_case_message(management_api):
    message = NotificationMessage(
        type="slide-updated",
        presentation_id="p1",
        affected_slides=[AffectedSlide(slide_index=2, slide={"type": "title", "title": "Hi"})],
    )

    await NotificationService.notify_connection("conn-1", message)

    assert management_api.endpoints == ["https://abc.execute-api.eu-north-1.amazonaws.com/prod"]
    assert management_api.posts == [
        (
            "conn-1",
            {
                "type": "slide-updated",
                "presentationId": "p1",
                "affectedSlides": [{"slideIndex": 2, "slide": {"type": "title", "title": "Hi"}}],
            },
        )
    ]


async def test_gone_connection_is_swallowed(management_api):
    management_api.error = RuntimeError("GoneException")

    await NotificationService.notify_connection("stale", NotificationMessage(type="presentation-completed", presentation_id="p1"))

    assert management_api.posts == []


async def test_without_endpoint_nothing_is_sent(monkeypatch):
    monkeypatch.setenv("WEBSOCKET_API_ENDPOINT", "")
    get_settings.cache_clear()

    def _unexpected(endpoint):
        raise AssertionError("no client should be built")

    monkeypatch.setattr(NotificationService, "_client_for", _unexpected)

    await NotificationService.notify_connection("conn-1", NotificationMessage(type="presentation-failed", error="x"))
