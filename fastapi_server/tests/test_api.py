"""Tests for the HTTP endpoints and the WebSocket session stream."""

import asyncio
import re
from unittest.mock import patch

import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import make_event, make_feed
from teamplanner.routers import sessions


def create_team(client, **overrides):
    body = {
        "name": "Test Football Team",
        "creator_name": "John Doe",
        "member_names": "Alice, Bob, Charlie",
        "players_needed": 11,
        "access_code": "1234",
    }
    body.update(overrides)
    response = client.post("/api/teams", json=body)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture(name="created")
def created_fixture(client):
    created = create_team(client)
    team_id = created["team"]["id"]
    headers = {"X-Access-Code": created["access_code"]}
    match = client.post(
        f"/api/teams/{team_id}/matches",
        json={"opponent": "Osterbyer SV 2", "date": "22.09.2025", "time": "18:00", "season": "2025/26"},
        headers=headers,
    ).json()
    return created, team_id, headers, match["id"]


class TestTeams:
    def test_create_team(self, client):
        created = create_team(client)
        assert re.fullmatch(r"test-football-team-[0-9a-f]{8}", created["team"]["id"])
        assert created["access_code"] == "1234"
        assert created["share_path"] == f"/team/{created['team']['id']}?code=1234"

    def test_generated_code(self, client):
        created = create_team(client, access_code=None, member_names="")
        assert re.fullmatch(r"\d{4}", created["access_code"])

    def test_create_team_validation(self, client):
        response = client.post("/api/teams", json={"name": "", "creator_name": "A"})
        assert response.status_code == 422

    def test_invalid_access_code_format(self, client):
        response = client.post("/api/teams", json={"name": "T", "creator_name": "A", "access_code": "abcd"})
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidRequest"

    def test_get_team_with_header_or_query(self, client, created):
        _, team_id, headers, _ = created
        by_header = client.get(f"/api/teams/{team_id}", headers=headers)
        by_query = client.get(f"/api/teams/{team_id}?code=1234")

        assert by_header.status_code == by_query.status_code == 200
        data = by_header.json()
        assert [m["name"] for m in data["members"]] == ["John Doe", "Alice", "Bob", "Charlie"]
        assert data["seasons"][0]["first_half"][0]["opponent"] == "Osterbyer SV 2"
        assert "access_code" not in data["team"]

    def test_team_not_found(self, client):
        response = client.get("/api/teams/fake-team-12345678?code=9999")
        assert response.status_code == 404
        assert response.json()["error"] == "TeamNotFound"

    @pytest.mark.parametrize("code", ["9999", ""])
    def test_wrong_code_never_leaks_data(self, client, created, code):
        _, team_id, _, _ = created
        response = client.get(f"/api/teams/{team_id}", headers={"X-Access-Code": code})
        assert response.status_code == 401
        assert response.json() == {
            "error": "AccessCodeRequired",
            "team_id": team_id,
            "detail": f"Access code required for team '{team_id}'",
        }

    def test_submit_access_code(self, client, created):
        _, team_id, _, _ = created
        assert client.post(f"/api/teams/{team_id}/access", json={"access_code": " 1234 "}).status_code == 200
        assert client.post(f"/api/teams/{team_id}/access", json={"access_code": "4321"}).status_code == 401

    def test_update_players_needed(self, client, created):
        _, team_id, headers, _ = created
        response = client.patch(f"/api/teams/{team_id}", json={"players_needed": 7}, headers=headers)
        assert response.json()["players_needed"] == 7


class TestMembersAndMatches:
    def test_create_member(self, client, created):
        _, team_id, headers, _ = created
        response = client.post(f"/api/teams/{team_id}/members", json={"name": "Eve"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Eve"

    def test_create_match_requires_code(self, client, created):
        _, team_id, _, _ = created
        response = client.post(f"/api/teams/{team_id}/matches", json={"opponent": "X", "date": "01.01.2026"})
        assert response.status_code == 401

    def test_availability_and_date_change(self, client, created):
        created_team, team_id, headers, match_id = created
        member_id = created_team["creator_member_id"]

        response = client.put(
            f"/api/teams/{team_id}/availability",
            json={"member_id": member_id, "match_id": match_id, "status": "available"},
            headers=headers,
        )
        assert response.json() == {"member_id": member_id, "match_id": match_id, "status": "available"}

        response = client.put(
            f"/api/teams/{team_id}/matches/{match_id}/date", json={"date": "24.09.2025"}, headers=headers
        )
        assert response.json()["date"] == "24.09.2025"
        assert response.json()["original_date"] == "22.09.2025"
        assert client.get(f"/api/teams/{team_id}", headers=headers).json()["availability"] == []

    def test_unknown_match(self, client, created):
        created_team, team_id, headers, _ = created
        response = client.put(
            f"/api/teams/{team_id}/availability",
            json={"member_id": created_team["creator_member_id"], "match_id": 999, "status": "maybe"},
            headers=headers,
        )
        assert response.status_code == 404
        assert response.json()["kind"] == "match"


class TestPredictions:
    def test_full_negotiation(self, client, created):
        created_team, team_id, headers, match_id = created
        member_id = created_team["creator_member_id"]
        base = f"/api/teams/{team_id}/matches/{match_id}/predictions"

        added = client.post(base, json={"predicted_date": "01.02.2026", "member_id": member_id}, headers=headers)
        assert added.json()["availability"] == "maybe"

        client.put(
            base,
            json={"predicted_date": "01.02.2026", "member_id": member_id, "availability": "available"},
            headers=headers,
        )
        listed = client.get(base, headers=headers).json()
        assert listed == [{"predicted_date": "01.02.2026", "votes": {str(member_id): "available"}}]

        chosen = client.post(f"{base}/choose", json={"date": "01.02.2026"}, headers=headers).json()
        assert chosen["date"] == "01.02.2026"
        assert chosen["original_date"] == "22.09.2025"
        assert client.get(base, headers=headers).json() == []

    def test_remove_prediction(self, client, created):
        created_team, team_id, headers, match_id = created
        member_id = created_team["creator_member_id"]
        base = f"/api/teams/{team_id}/matches/{match_id}/predictions"
        client.post(base, json={"predicted_date": "01.02.2026", "member_id": member_id}, headers=headers)

        response = client.delete(f"{base}/{member_id}", headers=headers)
        assert response.json() == {"match_id": match_id, "member_id": member_id, "dates": ["01.02.2026"]}
        assert client.get(base, headers=headers).json() == []


class TestCalendar:
    FEED = make_feed(
        make_event("Rendsburger TSV 4 - Osterbyer SV 2 (Kreisliga Erwachsene)", start="20250922T180000Z"),
        make_event("TSV Kropp - Rendsburger TSV 4 (Kreisliga Erwachsene)", start="20250929T190000Z"),
    )

    def test_preview_and_import(self, client, created):
        _, team_id, headers, _ = created
        preview = client.post(
            f"/api/teams/{team_id}/calendar/preview", json={"calendar_text": self.FEED}, headers=headers
        )
        candidates = preview.json()
        assert [(c["opponent"], c["is_home"]) for c in candidates] == [
            ("Osterbyer SV 2", True), ("TSV Kropp", False),
        ]

        imported = client.post(
            f"/api/teams/{team_id}/calendar/import",
            json={"season": "2025/26", "season_half": "second", "candidates": candidates},
            headers=headers,
        ).json()
        assert [(m["opponent"], m["season_half"], m["matchday"]) for m in imported] == [
            ("Osterbyer SV 2", "second", 1), ("TSV Kropp", "second", 2),
        ]

    def test_preview_from_url(self, client, created):
        _, team_id, headers, _ = created
        with patch("teamplanner.services.registry.fetch_calendar", return_value=self.FEED) as fetch:
            response = client.post(
                f"/api/teams/{team_id}/calendar/preview",
                json={"url": "https://liga.example/team.ics"},
                headers=headers,
            )
        fetch.assert_called_once_with("https://liga.example/team.ics")
        assert len(response.json()) == 2


class TestSessionStream:
    def test_rejects_wrong_code(self, client, created):
        _, team_id, _, _ = created
        with client.websocket_connect(f"/ws/teams/{team_id}?code=0000") as websocket:
            assert websocket.receive_json() == {"kind": "AccessCodeRequired", "team_id": team_id, "payload": {}}
            with pytest.raises(WebSocketDisconnect):
                websocket.receive_json()

    def test_unknown_team(self, client):
        with client.websocket_connect("/ws/teams/nope-00000000?code=1234") as websocket:
            assert websocket.receive_json()["kind"] == "TeamNotFound"

    def test_snapshot_then_deltas(self, client, created):
        created_team, team_id, headers, match_id = created
        member_id = created_team["creator_member_id"]

        with client.websocket_connect(f"/ws/teams/{team_id}?code=1234") as websocket:
            loaded = websocket.receive_json()
            assert loaded["kind"] == "TeamLoaded"
            assert loaded["payload"]["team"]["id"] == team_id

            client.put(
                f"/api/teams/{team_id}/availability",
                json={"member_id": member_id, "match_id": match_id, "status": "available"},
                headers=headers,
            )
            client.put(f"/api/teams/{team_id}/matches/{match_id}/date", json={"date": "24.09.2025"}, headers=headers)

            kinds = [websocket.receive_json()["kind"] for _ in range(4)]
            assert kinds == ["AvailabilityUpdated", "MatchOriginalDateSet", "MatchDateChanged", "PredictionsCleared"]

    def test_database_work_runs_off_the_event_loop(self, client, created):
        _, team_id, _, _ = created
        registry = sessions.registry
        in_loop = []

        def has_running_loop():
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                return False
            return True

        def authorize(*args):
            in_loop.append(has_running_loop())
            return original_authorize(*args)

        def load_team_data(*args):
            in_loop.append(has_running_loop())
            return original_load(*args)

        original_authorize, original_load = registry.authorize, registry.load_team_data
        with patch.object(registry, "authorize", side_effect=authorize), \
                patch.object(registry, "load_team_data", side_effect=load_team_data):
            with client.websocket_connect(f"/ws/teams/{team_id}?code=1234") as websocket:
                assert websocket.receive_json()["kind"] == "TeamLoaded"

        assert in_loop == [False, False]
