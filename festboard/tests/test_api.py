"""
HTTP API tests: status codes, response shapes and the error envelope.
"""
import asyncio

import pytest

from festboard.realtime.sse import PING_FRAME, decode_frames
from festboard.routes.stream import stream as stream_route


def podium(event_id, first, second, third, points=(10, 7, 5)):
    return {
        "eventId": event_id,
        "submittedBy": "stage-desk",
        "placements": [
            {"rank": 1, "studentName": "Alice", "institutionId": first, "points": points[0]},
            {"rank": 2, "studentName": "Bob", "institutionId": second, "points": points[1]},
            {"rank": 3, "studentName": "Cara", "institutionId": third, "points": points[2]},
        ],
    }


def board_events(handle):
    return decode_frames("".join(handle.drain()).split("\n"))


# =============================================================================
# Test: Results
# =============================================================================

class TestResultsAPI:

    @pytest.mark.asyncio
    async def test_submit_returns_created_id(self, client, bus, festival):
        display = bus.register()

        response = await client.post(
            "/api/results", json=podium(festival.solo_dance, festival.red, festival.blue, festival.green)
        )

        assert response.status_code == 201
        body = response.json()
        assert body["ok"] is True
        assert isinstance(body["id"], int)

        events = board_events(display)
        assert [event_type for event_type, _ in events] == ["result"]
        assert events[0][1]["id"] == body["id"]
        assert events[0][1]["eventName"] == "Solo Dance"

    @pytest.mark.asyncio
    async def test_validation_errors_use_error_envelope(self, client, festival):
        payload = podium(festival.solo_dance, festival.red, festival.blue, festival.green)
        payload["placements"][1]["points"] = 0
        payload["placements"][2]["studentName"] = "  "

        response = await client.post("/api/results", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"
        fields = {v["field"] for v in body["details"]["violations"]}
        assert fields == {"placements[1].points", "placements[2].studentName"}

    @pytest.mark.asyncio
    async def test_second_submission_is_rejected(self, client, festival):
        payload = podium(festival.solo_dance, festival.red, festival.blue, festival.green)
        first = await client.post("/api/results", json=payload)

        second = await client.post("/api/results", json=payload)

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json()["code"] == "ALREADY_SUBMITTED"
        assert second.json()["error"] == "Results already submitted for this event"

    @pytest.mark.asyncio
    async def test_unknown_event_is_not_found(self, client, festival):
        response = await client.post(
            "/api/results", json=podium(9999, festival.red, festival.blue, festival.green)
        )

        assert response.status_code == 404
        assert response.json()["code"] == "EVENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_malformed_body_is_bad_request(self, client, festival):
        response = await client.post(
            "/api/results", content="{not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_placements_must_be_a_list(self, client, festival):
        response = await client.post(
            "/api/results", json={"eventId": festival.solo_dance, "placements": "first Red"}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_delete_by_query_id(self, client, bus, festival):
        created = await client.post(
            "/api/results", json=podium(festival.live_art, festival.green, festival.red, festival.blue)
        )
        result_id = created.json()["id"]
        display = bus.register()

        response = await client.delete("/api/results", params={"id": result_id})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "deleted": result_id}
        assert board_events(display) == [
            ("result_deleted", {"id": result_id, "eventId": festival.live_art})
        ]

        board = (await client.get("/api/leaderboard")).json()
        assert board["data"] == []

    @pytest.mark.asyncio
    async def test_delete_unknown_result(self, client, festival):
        response = await client.delete("/api/results", params={"id": 12345})

        assert response.status_code == 404
        assert response.json()["code"] == "RESULT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_delete_requires_id(self, client, festival):
        response = await client.delete("/api/results")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_results_newest_first(self, client, festival):
        await client.post("/api/results", json=podium(festival.solo_dance, festival.red, festival.blue, festival.green))
        await client.post("/api/results", json=podium(festival.live_art, festival.green, festival.red, festival.blue))

        everything = (await client.get("/api/results")).json()["data"]
        higher_secondary = (await client.get("/api/results", params={"level": "higher_secondary"})).json()["data"]

        assert [row["eventName"] for row in everything] == ["Live Art", "Solo Dance"]
        assert [row["eventName"] for row in higher_secondary] == ["Live Art"]
        placement = everything[1]["placements"][0]
        assert placement == {
            "rank": 1,
            "studentName": "Alice",
            "institutionId": festival.red,
            "institutionName": "Red",
            "institutionCode": "RED",
            "points": 10.0,
        }

    @pytest.mark.asyncio
    async def test_unknown_level_is_rejected(self, client, festival):
        response = await client.get("/api/results", params={"level": "university"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"


# =============================================================================
# Test: Leaderboard
# =============================================================================

class TestLeaderboardAPI:

    @pytest.mark.asyncio
    async def test_leaderboard_shape(self, client, festival):
        await client.post("/api/results", json=podium(festival.solo_dance, festival.red, festival.blue, festival.green))

        body = (await client.get("/api/leaderboard")).json()

        assert body["updatedAt"].endswith("Z")
        assert [row["code"] for row in body["data"]] == ["RED", "BLUE", "GREEN"]
        assert body["data"][0]["totalPoints"] == 10.0

    @pytest.mark.asyncio
    async def test_leaderboard_level_filter(self, client, festival):
        await client.post("/api/results", json=podium(festival.solo_dance, festival.red, festival.blue, festival.green))
        await client.post("/api/results", json=podium(festival.live_art, festival.green, festival.red, festival.blue))

        body = (await client.get("/api/leaderboard", params={"level": "high_school"})).json()

        assert {row["code"]: row["totalPoints"] for row in body["data"]} == {"RED": 10.0, "BLUE": 7.0, "GREEN": 5.0}

    @pytest.mark.asyncio
    async def test_leaderboard_bad_level(self, client, festival):
        response = await client.get("/api/leaderboard", params={"level": "primary"})

        assert response.status_code == 400


# =============================================================================
# Test: Finalize
# =============================================================================

class TestFinalizeAPI:

    @pytest.mark.asyncio
    async def test_flag_starts_cleared(self, client, festival):
        assert (await client.get("/api/finalize")).json() == {"finalized": False}

    @pytest.mark.asyncio
    async def test_finalize_and_undo(self, client, bus, festival):
        display = bus.register()

        done = await client.post("/api/finalize", json={"action": "finalize"})
        assert done.json() == {"ok": True, "finalized": True}
        assert (await client.get("/api/finalize")).json() == {"finalized": True}

        undone = await client.post("/api/finalize", json={"action": "undo"})
        assert undone.json() == {"ok": True, "finalized": False}

        assert board_events(display) == [
            ("finalize", {"finalized": True}),
            ("finalize", {"finalized": False}),
        ]

    @pytest.mark.asyncio
    async def test_invalid_action(self, client, bus, festival):
        display = bus.register()

        response = await client.post("/api/finalize", json={"action": "celebrate"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ACTION"
        assert response.json()["error"] == "Invalid action"
        assert board_events(display) == []


# =============================================================================
# Test: Catalogue
# =============================================================================

class TestCatalogueAPI:

    @pytest.mark.asyncio
    async def test_list_events_by_level(self, client, festival):
        events = (await client.get("/api/events", params={"level": "high_school"})).json()

        assert [event["name"] for event in events] == ["Group Dance", "Solo Dance"]
        assert all(event["level"] == "high_school" for event in events)

    @pytest.mark.asyncio
    async def test_create_event_defaults_level(self, client, festival):
        response = await client.post("/api/events", json={"name": "Poetry Recital", "level": "kindergarten"})

        assert response.status_code == 201
        created_id = response.json()["id"]
        events = (await client.get("/api/events")).json()
        created = next(event for event in events if event["id"] == created_id)
        assert created["level"] == "high_school"

    @pytest.mark.asyncio
    async def test_create_event_requires_name(self, client, festival):
        response = await client.post("/api/events", json={"name": "   ", "level": "high_school"})

        assert response.status_code == 400
        assert response.json()["error"] == "name is required"

    @pytest.mark.asyncio
    async def test_list_institutions(self, client, festival):
        houses = (await client.get("/api/institutions")).json()

        assert [house["code"] for house in houses] == ["BLUE", "GREEN", "RED"]

    @pytest.mark.asyncio
    async def test_institutions_are_fixed(self, client, festival):
        response = await client.post("/api/institutions", json={"name": "Yellow"})

        assert response.status_code == 405
        assert response.json()["code"] == "METHOD_NOT_ALLOWED"


# =============================================================================
# Test: Health and Stream
# =============================================================================

@pytest.mark.asyncio
async def test_health_and_keepalive(client, bus):
    bus.register()

    for path in ("/health", "/api/keepalive"):
        body = (await client.get(path)).json()
        assert body["status"] == "healthy"
        assert body["subscribers"] == 1


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/api/scoreboard")

    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_stream_route_registers_and_greets(bus):
    response = await stream_route(bus)

    assert response.media_type == "text/event-stream"
    assert response.headers["cache-control"] == "no-cache, no-transform"
    assert bus.subscriber_count == 0

    assert await response.body_iterator.__anext__() == PING_FRAME
    assert bus.subscriber_count == 1
    await response.body_iterator.aclose()

    assert bus.subscriber_count == 0


STREAM_SCOPE = {
    "type": "http",
    "asgi": {"version": "3.0", "spec_version": "2.4"},
    "http_version": "1.1",
    "method": "GET",
    "path": "/api/stream",
    "headers": [],
}


async def wait_for_disconnect():
    await asyncio.sleep(5)
    return {"type": "http.disconnect"}


def broken_send(failing_type):
    """ASGI send that fails once the server writes a message of `failing_type`."""
    async def send(message):
        if message["type"] == failing_type:
            raise OSError("connection reset by peer")
    return send


@pytest.mark.asyncio
@pytest.mark.parametrize("failing_type", ["http.response.start", "http.response.body"])
async def test_stream_send_failure_leaves_no_subscriber(bus, failing_type):
    response = await stream_route(bus)

    with pytest.raises(Exception):
        await asyncio.wait_for(response(STREAM_SCOPE, wait_for_disconnect, broken_send(failing_type)), timeout=2.0)

    assert bus.subscriber_count == 0
