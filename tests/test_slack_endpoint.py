"""API tests for the /stats slash-command endpoint."""
from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api import slack as slack_router
from app.config import settings
from app.infra.graph_client import GraphClient
from app.main import app
from app.services.social_graph_stats_collector import VertexNotFoundError
from app.services.stats_collector import StatsCollector
from app.shared.models import MISSING_INPUT_MESSAGE, StatsStatus, not_found_response

RESPONSE_URL = "https://hooks.slack.test/commands/T1/B2"


class StubStatsCollector:
    """Records dispatches and acknowledges synchronously like the real dispatcher."""

    def __init__(self, *, error: StatsStatus | None = None, raises: Exception | None = None) -> None:
        self.error = error
        self.raises = raises
        self.calls: list[tuple[str, str, str]] = []

    def _handle(self, kind, identifier, response_url, callback):
        self.calls.append((kind, identifier, response_url))
        if self.raises:
            raise self.raises
        if self.error:
            return callback(self.error, None)
        return callback(
            None,
            StatsStatus(code=200, message=f"Collecting information about {kind} _{identifier}_ ..."),
        )

    def get_user_stats(self, user_name, response_url, callback):
        return self._handle("user", user_name, response_url, callback)

    def get_channel_stats(self, channel_name, response_url, callback):
        return self._handle("channel", channel_name, response_url, callback)

    def get_keyword_stats(self, keyword, response_url, callback):
        return self._handle("keyword", keyword, response_url, callback)


@pytest.fixture
def client_with_stub():
    stub = StubStatsCollector()
    app.dependency_overrides[slack_router.get_stats_collector] = lambda: stub
    client = TestClient(app)
    yield client, stub
    app.dependency_overrides.pop(slack_router.get_stats_collector, None)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("@alice", ("user", "alice")),
        ("#general", ("channel", "general")),
        ("  product roadmap ", ("keyword", "product roadmap")),
    ],
)
def test_slash_command_routes_by_prefix(client_with_stub, text, expected):
    client, stub = client_with_stub

    response = client.post(
        "/api/v1/slack/stats",
        data={"command": "/stats", "text": text, "response_url": RESPONSE_URL},
    )

    assert response.status_code == 200
    kind, name = expected
    assert response.json() == {
        "response_type": "ephemeral",
        "text": f"Collecting information about {kind} _{name}_ ...",
    }
    assert stub.calls == [(kind, name, RESPONSE_URL)]


def test_empty_text_returns_usage(client_with_stub):
    client, stub = client_with_stub

    response = client.post("/api/v1/slack/stats", data={"text": "  ", "response_url": RESPONSE_URL})

    assert response.status_code == 200
    assert response.json()["text"] == slack_router.USAGE_TEXT
    assert stub.calls == []


def test_missing_input_error_is_shown_to_user():
    stub = StubStatsCollector(error=StatsStatus(code=500, message=MISSING_INPUT_MESSAGE))
    app.dependency_overrides[slack_router.get_stats_collector] = lambda: stub
    try:
        response = TestClient(app).post("/api/v1/slack/stats", data={"text": "@alice"})
    finally:
        app.dependency_overrides.pop(slack_router.get_stats_collector, None)

    assert response.status_code == 200
    assert response.json() == {
        "response_type": "ephemeral",
        "text": MISSING_INPUT_MESSAGE,
        "color": "danger",
    }
    assert stub.calls == [("user", "alice", "")]


def test_dispatch_failure_maps_to_bad_gateway():
    stub = StubStatsCollector(raises=RuntimeError("no event loop"))
    app.dependency_overrides[slack_router.get_stats_collector] = lambda: stub
    try:
        response = TestClient(app).post(
            "/api/v1/slack/stats", data={"text": "#general", "response_url": RESPONSE_URL}
        )
    finally:
        app.dependency_overrides.pop(slack_router.get_stats_collector, None)

    assert response.status_code == 502
    assert "no event loop" in response.json()["detail"]


def test_verification_token_is_enforced(client_with_stub, monkeypatch):
    client, stub = client_with_stub
    monkeypatch.setattr(settings, "slack_verification_token", "s3cret")

    rejected = client.post(
        "/api/v1/slack/stats",
        data={"token": "wrong", "text": "@alice", "response_url": RESPONSE_URL},
    )
    accepted = client.post(
        "/api/v1/slack/stats",
        data={"token": "s3cret", "text": "@alice", "response_url": RESPONSE_URL},
    )

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert stub.calls == [("user", "alice", RESPONSE_URL)]


def test_index_describes_service():
    response = TestClient(app).get("/")

    assert response.status_code == 200
    assert response.json()["service"] == "graphstats-api"


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[dict, str]] = []

    async def send_response(self, payload, response_url):
        self.sent.append((dict(payload), response_url))
        return True


class MissingUserCollector:
    """Social collector whose user lookup finds nothing after ``delay`` seconds."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.lookups: list[str] = []

    async def fetch_user_info(self, user_name):
        self.lookups.append(user_name)
        await asyncio.sleep(self.delay)
        raise VertexNotFoundError("user", user_name)

    async def fetch_user_stats(self, user_info, response_url):
        raise AssertionError("statistics must not be fetched for a missing user")


def _real_dispatcher(delay: float = 0.0):
    notifier = FakeNotifier()
    social = MissingUserCollector(delay=delay)
    collector = StatsCollector(
        "graph",  # type: ignore[arg-type]
        social_collector=social,  # type: ignore[arg-type]
        notifier=notifier,  # type: ignore[arg-type]
    )
    return collector, social, notifier


def test_real_dispatcher_notifies_after_reply():
    collector, social, notifier = _real_dispatcher()
    app.dependency_overrides[slack_router.get_stats_collector] = lambda: collector
    try:
        with TestClient(app) as client:
            response = client.post(
                "/api/v1/slack/stats", data={"text": "@alice", "response_url": RESPONSE_URL}
            )
            assert response.status_code == 200
            assert response.json()["text"] == "Collecting information about user _alice_ ..."

            client.portal.call(collector.wait_pending)

            assert social.lookups == ["alice"]
            assert notifier.sent == [(not_found_response("user"), RESPONSE_URL)]
    finally:
        app.dependency_overrides.pop(slack_router.get_stats_collector, None)


def test_shutdown_waits_for_pending_lookups():
    collector, _, notifier = _real_dispatcher(delay=0.5)
    app.dependency_overrides[slack_router.get_stats_collector] = lambda: collector
    try:
        with TestClient(app) as client:
            response = client.post(
                "/api/v1/slack/stats", data={"text": "@alice", "response_url": RESPONSE_URL}
            )
            assert response.status_code == 200
            assert notifier.sent == []
    finally:
        app.dependency_overrides.pop(slack_router.get_stats_collector, None)

    assert notifier.sent == [(not_found_response("user"), RESPONSE_URL)]
    assert collector.pending == 0


@pytest.mark.parametrize(
    "graph_response, expected_status",
    [
        (httpx.Response(200, json={"gds-token": "abc"}), "healthy"),
        (httpx.Response(503, text="unavailable"), "unhealthy"),
    ],
)
def test_healthz_reports_graph_status(monkeypatch, graph_response, expected_status):
    graph = GraphClient(
        "http://graph.test/g",
        transport=httpx.MockTransport(lambda request: graph_response),
    )
    monkeypatch.setattr("app.main.get_graph_client", lambda: graph)

    response = TestClient(app).get("/healthz")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["dependencies"]["graph"]["status"] == expected_status
    assert body["dependencies"]["graph"]["endpoint"] == "http://graph.test/g"
