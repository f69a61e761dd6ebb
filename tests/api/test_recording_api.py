"""Tests for the recorder API endpoints."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from recordforge.api.recording import WS_SESSION_NOT_FOUND, get_recorder_service
from recordforge.main import create_app
from recordforge.recording.service import RecorderService


@pytest.fixture
def service(settings):
    return RecorderService(settings)


@pytest.fixture
def client(settings, service):
    """Test client whose routes share one isolated service."""
    app = create_app(settings)
    app.dependency_overrides[get_recorder_service] = lambda: service
    return TestClient(app)


def start(client, name="Checkout", **extra) -> dict:
    response = client.post("/api/recorder/sessions", json={"name": name, **extra})
    assert response.status_code == 201
    return response.json()


def click_envelope(session_id, element_id="buy", timestamp=1000) -> dict:
    return {
        "type": "EVENT",
        "sessionId": session_id,
        "timestamp": timestamp,
        "payload": {"type": "CLICK", "id": f"click-{timestamp}", "timestamp": timestamp, "element": {"id": element_id}},
    }


# =============================================================================
# Session Lifecycle
# =============================================================================


class TestSessionLifecycle:
    """Tests for starting, listing and controlling sessions."""

    def test_start_session(self, client):
        """Test a new session is ACTIVE with the default cap and channel paths."""
        body = start(client, projectId="web")

        assert body["name"] == "Checkout"
        assert body["projectId"] == "web"
        assert body["status"] == "ACTIVE"
        assert body["eventCount"] == 0
        assert body["maxEventCount"] == 1000
        assert body["sessionKey"]
        assert body["channelPath"] == f"/ws-recorder/{body['id']}"
        assert body["fallbackPath"] == f"/api/recorder/events/{body['id']}"

    def test_start_with_custom_cap(self, client):
        """Test the admission cap can be set per session."""
        assert start(client, maxEventCount=3)["maxEventCount"] == 3

    def test_start_requires_name(self, client):
        """Test an empty name is a validation error."""
        assert client.post("/api/recorder/sessions", json={"name": ""}).status_code == 422

    def test_list_and_filter(self, client):
        """Test listing sessions, optionally by project."""
        start(client, "A", projectId="web")
        start(client, "B", projectId="mobile")

        assert len(client.get("/api/recorder/sessions").json()) == 2
        filtered = client.get("/api/recorder/sessions", params={"project_id": "web"}).json()
        assert [s["name"] for s in filtered] == ["A"]

    def test_unknown_session_is_404(self, client):
        """Test lookups for unknown sessions fail with 404."""
        assert client.get("/api/recorder/sessions/nope").status_code == 404
        assert client.post("/api/recorder/sessions/nope/pause").status_code == 404
        assert client.get("/api/recorder/sessions/nope/snapshot").status_code == 404

    def test_pause_and_resume(self, client):
        """Test pause and resume report the new status."""
        session_id = start(client)["id"]

        paused = client.post(f"/api/recorder/sessions/{session_id}/pause").json()
        assert paused == {"success": True, "status": "PAUSED", "agentsNotified": 0}

        resumed = client.post(f"/api/recorder/sessions/{session_id}/resume").json()
        assert resumed["status"] == "ACTIVE"

    def test_stop_returns_snapshot(self, client):
        """Test stop completes the session and returns its tree."""
        session_id = start(client)["id"]
        client.post(f"/api/recorder/events/{session_id}", json=click_envelope(session_id))

        snapshot = client.post(f"/api/recorder/sessions/{session_id}/stop").json()
        assert snapshot["status"] == "COMPLETED"
        assert snapshot["endTime"] is not None
        assert [e["id"] for e in snapshot["events"]] == ["click-1000"]

        resumed = client.post(f"/api/recorder/sessions/{session_id}/resume").json()
        assert resumed["success"] is False
        assert resumed["status"] == "COMPLETED"


# =============================================================================
# HTTP Fallback Ingestion
# =============================================================================


class TestIngestion:
    """Tests for the HTTP fallback ingestion endpoint."""

    def test_event_is_admitted(self, client):
        """Test an EVENT envelope is admitted into the session."""
        session_id = start(client)["id"]

        body = client.post(f"/api/recorder/events/{session_id}", json=click_envelope(session_id)).json()
        assert body["outcome"] == "admitted"
        assert body["accepted"] is True
        assert body["eventId"] == "click-1000"

        summary = client.get(f"/api/recorder/sessions/{session_id}").json()
        assert summary["eventCount"] == 1

    def test_duplicate_click_is_dropped(self, client):
        """Test a repeated click inside the debounce window is suppressed."""
        session_id = start(client)["id"]
        client.post(f"/api/recorder/events/{session_id}", json=click_envelope(session_id, timestamp=1000))

        body = client.post(
            f"/api/recorder/events/{session_id}", json=click_envelope(session_id, timestamp=1100)
        ).json()
        assert body["outcome"] == "duplicate"
        assert client.get(f"/api/recorder/sessions/{session_id}").json()["eventCount"] == 1

    def test_cap_rejects_overflow(self, client):
        """Test events past the admission cap are rejected."""
        session_id = start(client, maxEventCount=1)["id"]
        client.post(f"/api/recorder/events/{session_id}", json=click_envelope(session_id, "a", 1000))

        body = client.post(
            f"/api/recorder/events/{session_id}", json=click_envelope(session_id, "b", 5000)
        ).json()
        assert body["outcome"] == "rejected"
        assert body["accepted"] is False

    def test_ping_reply_is_returned(self, client):
        """Test control replies ride along in the HTTP response."""
        session_id = start(client)["id"]

        body = client.post(
            f"/api/recorder/events/{session_id}", json={"type": "PING", "sessionId": session_id}
        ).json()
        assert body["outcome"] == "control"
        assert body["reply"]["type"] == "PONG"
        assert body["reply"]["sessionId"] == session_id

    def test_session_mismatch_is_400(self, client):
        """Test an envelope addressed to another session is refused."""
        session_id = start(client)["id"]
        response = client.post(f"/api/recorder/events/{session_id}", json=click_envelope("other"))
        assert response.status_code == 400

    def test_malformed_envelope_is_400(self, client):
        """Test envelopes without a type are refused."""
        session_id = start(client)["id"]
        response = client.post(f"/api/recorder/events/{session_id}", json={"sessionId": session_id})
        assert response.status_code == 400

    def test_unknown_event_kind_is_400(self, client):
        """Test payloads with an unknown kind are refused."""
        session_id = start(client)["id"]
        envelope = {"type": "HOVER", "sessionId": session_id, "payload": {}}
        assert client.post(f"/api/recorder/events/{session_id}", json=envelope).status_code == 400

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "CLICK", "element": "oops"},
            {"type": "LOOP", "loopConfig": 3},
        ],
    )
    def test_wrong_nested_field_type_is_400(self, client, payload):
        """Test payloads whose nested fields have the wrong JSON type are refused."""
        session_id = start(client)["id"]
        envelope = {"type": "EVENT", "sessionId": session_id, "payload": payload}

        response = client.post(f"/api/recorder/events/{session_id}", json=envelope)

        assert response.status_code == 400
        assert "Malformed" in response.json()["detail"]
        assert client.get(f"/api/recorder/sessions/{session_id}").json()["eventCount"] == 0

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "CLICK", "id": "c1", "timestamp": "abc", "element": {"id": "b1"}},
            {"type": "CLICK", "id": ["c1"], "element": {"id": "b1"}},
            {"type": "CLICK", "id": "c1", "timestamp": True, "element": {"id": "b1"}},
            {"type": "CLICK", "id": "c1", "ctrlKey": "yes", "element": {"id": "b1"}},
        ],
    )
    def test_wrong_scalar_field_type_is_400(self, client, payload):
        """Test scalar fields with the wrong JSON type are refused on every attempt."""
        session_id = start(client)["id"]
        envelope = {"type": "EVENT", "sessionId": session_id, "payload": payload}

        for _ in range(2):
            response = client.post(f"/api/recorder/events/{session_id}", json=envelope)
            assert response.status_code == 400
            assert "Malformed" in response.json()["detail"]

        assert client.get(f"/api/recorder/sessions/{session_id}").json()["eventCount"] == 0


# =============================================================================
# Duplex Channel
# =============================================================================


class TestRecorderChannel:
    """Tests for the agent WebSocket channel."""

    def test_unknown_session_closes_channel(self, client):
        """Test connecting to an unknown session closes with 4404."""
        with client.websocket_connect("/ws-recorder/nope") as ws:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()
        assert exc_info.value.code == WS_SESSION_NOT_FOUND

    def test_events_and_ping_over_channel(self, client, service):
        """Test envelopes sent over the channel are ingested and PING answered."""
        session_id = start(client)["id"]

        with client.websocket_connect(f"/ws-recorder/{session_id}") as ws:
            ws.send_json(click_envelope(session_id))
            ws.send_text("not json")
            ws.send_json({"type": "PING", "sessionId": session_id})
            reply = ws.receive_json()

        assert reply["type"] == "PONG"
        assert service.get(session_id).event_count == 1

    def test_malformed_event_keeps_channel_open(self, client, service):
        """Test an event with a wrong nested field type is dropped without closing the channel."""
        session_id = start(client)["id"]
        bad = {"type": "EVENT", "sessionId": session_id, "payload": {"type": "CLICK", "element": "oops"}}

        with client.websocket_connect(f"/ws-recorder/{session_id}") as ws:
            ws.send_json(bad)
            ws.send_json(click_envelope(session_id))
            ws.send_json({"type": "PING", "sessionId": session_id})
            reply = ws.receive_json()

        assert reply["type"] == "PONG"
        assert service.get(session_id).event_count == 1

    def test_wrong_scalar_type_keeps_channel_open(self, client, service):
        """Test events with a non-numeric timestamp are dropped without closing the channel."""
        session_id = start(client)["id"]

        with client.websocket_connect(f"/ws-recorder/{session_id}") as ws:
            for i in range(2):
                ws.send_json({
                    "type": "EVENT",
                    "sessionId": session_id,
                    "payload": {"type": "CLICK", "id": f"c{i}", "timestamp": "abc", "element": {"id": f"b{i}"}},
                })
            ws.send_json(click_envelope(session_id))
            ws.send_json({"type": "PING", "sessionId": session_id})
            reply = ws.receive_json()

        assert reply["type"] == "PONG"
        assert service.get(session_id).event_count == 1
