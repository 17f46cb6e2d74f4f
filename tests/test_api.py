"""Tests for the JSON API and its error envelopes."""

from datetime import timedelta

import pytest

from predictor_tracker.models import MatchStatus, PredictionOutcome, ResultStatus
from predictor_tracker.utils.timezone_utils import utcnow


def iso(dt):
    return dt.isoformat()


@pytest.fixture
def live_tournament(make_tournament):
    """Tournament window around the real clock, so API time checks pass."""
    now = utcnow()
    return make_tournament(
        "Live Cup", start=now - timedelta(days=10), end=now + timedelta(days=10)
    )


@pytest.fixture
def live_match(make_match, live_tournament):
    return make_match(
        tournament=live_tournament, match_time=utcnow() + timedelta(days=1)
    )


class TestEnvelope:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "OK"

    def test_unknown_route_is_json(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "error": "Route not found"}

    def test_method_not_allowed(self, client):
        response = client.patch("/api/predictors")

        assert response.status_code == 405
        assert response.get_json()["error"] == "Method not allowed"

    def test_not_found_entity(self, client):
        response = client.get("/api/predictors/nope")

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "error": "Predictor not found"}

    def test_list_has_count(self, client, make_predictor):
        make_predictor("Alice")
        make_predictor("Bob")

        body = client.get("/api/predictors").get_json()

        assert body["success"] is True
        assert body["count"] == 2
        assert [p["name"] for p in body["data"]] == ["Alice", "Bob"]


class TestPredictorRoutes:
    def test_create(self, client):
        response = client.post("/api/predictors", json={"name": "Alice"})

        assert response.status_code == 201
        body = response.get_json()
        assert body["data"]["name"] == "Alice"
        assert body["data"]["parent_predictor_id"] == ""
        assert body["message"] == "Predictor created successfully"

    def test_name_required(self, client):
        response = client.post("/api/predictors", json={})

        assert response.status_code == 400
        assert response.get_json()["error"] == "Predictor name is required"

    def test_parent_must_exist(self, client):
        response = client.post(
            "/api/predictors", json={"name": "Kid", "parent_predictor_id": "nope"}
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Parent predictor not found"

    def test_cannot_be_own_parent(self, client, make_predictor):
        predictor = make_predictor()

        response = client.put(
            f"/api/predictors/{predictor.id}",
            json={"name": "Alice", "parent_predictor_id": predictor.id},
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Predictor cannot be its own parent"

    def test_ancestor_cycle_rejected(self, client, make_predictor):
        grandparent = make_predictor("Grandparent")
        parent = make_predictor("Parent", parent=grandparent)
        child = make_predictor("Child", parent=parent)

        response = client.put(
            f"/api/predictors/{grandparent.id}",
            json={"name": "Grandparent", "parent_predictor_id": child.id},
        )

        assert response.status_code == 400

    def test_update_with_stale_version(self, client, make_predictor):
        predictor = make_predictor()
        client.put(f"/api/predictors/{predictor.id}", json={"name": "Second"})

        response = client.put(
            f"/api/predictors/{predictor.id}", json={"name": "Third", "version": 1}
        )

        assert response.status_code == 409
        assert response.get_json()["success"] is False

    def test_delete_with_children_conflicts(self, client, make_predictor):
        parent = make_predictor("Parent")
        make_predictor("Child", parent=parent)

        response = client.delete(f"/api/predictors/{parent.id}")

        assert response.status_code == 400
        assert response.get_json()["error"].startswith(
            "Cannot delete predictor with children"
        )

    def test_delete_with_predictions_conflicts(
        self, client, make_predictor, make_match, make_prediction
    ):
        predictor = make_predictor()
        make_prediction(make_match(), predictor, "Red")

        response = client.delete(f"/api/predictors/{predictor.id}")

        assert response.status_code == 400
        assert response.get_json()["error"] == "Cannot delete predictor with existing predictions"

    def test_delete(self, client, store, make_predictor):
        predictor = make_predictor()

        response = client.delete(f"/api/predictors/{predictor.id}")

        assert response.status_code == 200
        assert store.get_by_id("predictors", predictor.id) is None

    def test_stats(self, client, make_predictor):
        predictor = make_predictor()

        body = client.get(f"/api/predictors/{predictor.id}/stats").get_json()

        assert body["data"]["stats"]["accuracy"] == 0
        assert body["data"]["total_predictions"] == 0


class TestTournamentRoutes:
    def test_create(self, client):
        now = utcnow()
        response = client.post(
            "/api/tournaments",
            json={
                "name": "Cup",
                "start_date": iso(now + timedelta(days=1)),
                "end_date": iso(now + timedelta(days=20)),
            },
        )

        assert response.status_code == 201
        assert response.get_json()["data"]["name"] == "Cup"

    @pytest.mark.parametrize(
        "payload, error",
        [
            ({"start_date": "2030-01-01", "end_date": "2030-02-01"}, "Tournament name is required"),
            ({"name": "Cup", "end_date": "2030-02-01"}, "Tournament start date is required"),
            ({"name": "Cup", "start_date": "2030-01-01"}, "Tournament end date is required"),
            ({"name": "Cup", "start_date": "soon", "end_date": "2030-02-01"}, "Invalid date format"),
            ({"name": "Cup", "start_date": "2030-02-01", "end_date": "2030-01-01"}, "Start date must be before end date"),
            ({"name": "Cup", "start_date": "2001-01-01", "end_date": "2030-01-01"}, "Start date cannot be in the past"),
        ],
    )
    def test_validation(self, client, payload, error):
        response = client.post("/api/tournaments", json=payload)

        assert response.status_code == 400
        assert response.get_json()["error"] == error

    def test_active(self, client, live_tournament, make_tournament):
        now = utcnow()
        make_tournament("Old", start=now - timedelta(days=60), end=now - timedelta(days=30))
        make_tournament("Soon", start=now + timedelta(days=3), end=now + timedelta(days=30))
        make_tournament("Later", start=now + timedelta(days=30), end=now + timedelta(days=60))

        body = client.get("/api/tournaments/active").get_json()

        assert sorted(t["name"] for t in body["data"]) == ["Live Cup", "Soon"]

    def test_update_must_keep_matches_inside(self, client, live_tournament, live_match):
        response = client.put(
            f"/api/tournaments/{live_tournament.id}",
            json={"name": "Live Cup", "end_date": iso(utcnow())},
        )

        assert response.status_code == 400
        assert "outside the new tournament period" in response.get_json()["error"]

    def test_detail_includes_matches(self, client, live_tournament, live_match):
        body = client.get(f"/api/tournaments/{live_tournament.id}").get_json()

        assert [m["id"] for m in body["data"]["matches"]] == [live_match.id]

    def test_delete_with_matches_conflicts(self, client, live_tournament, live_match):
        response = client.delete(f"/api/tournaments/{live_tournament.id}")

        assert response.status_code == 400
        assert response.get_json()["error"].startswith(
            "Cannot delete tournament with existing matches"
        )

    def test_stats(self, client, live_tournament, live_match):
        body = client.get(f"/api/tournaments/{live_tournament.id}/stats").get_json()

        assert body["data"]["stats"]["total_matches"] == 1
        assert body["data"]["stats"]["average_accuracy"] == 0


class TestMatchRoutes:
    def test_create(self, client, live_tournament):
        response = client.post(
            "/api/matches",
            json={
                "tournament_id": live_tournament.id,
                "team_a": "Red",
                "team_b": "Blue",
                "match_time": iso(utcnow() + timedelta(days=2)),
            },
        )

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["status"] == "scheduled"
        assert data["winner"] == ""

    def test_tournament_must_exist(self, client):
        response = client.post(
            "/api/matches",
            json={
                "tournament_id": "nope",
                "team_a": "Red",
                "team_b": "Blue",
                "match_time": iso(utcnow() + timedelta(days=2)),
            },
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Tournament not found"

    def test_both_teams_required(self, client, live_tournament):
        response = client.post(
            "/api/matches",
            json={"tournament_id": live_tournament.id, "team_a": "Red"},
        )

        assert response.get_json()["error"] == "Both teams are required"

    def test_time_outside_tournament(self, client, live_tournament):
        response = client.post(
            "/api/matches",
            json={
                "tournament_id": live_tournament.id,
                "team_a": "Red",
                "team_b": "Blue",
                "match_time": iso(utcnow() + timedelta(days=40)),
            },
        )

        assert response.get_json()["error"] == "Match time must be within tournament period"

    def test_time_in_past(self, client, live_tournament):
        response = client.post(
            "/api/matches",
            json={
                "tournament_id": live_tournament.id,
                "team_a": "Red",
                "team_b": "Blue",
                "match_time": iso(utcnow() - timedelta(days=1)),
            },
        )

        assert response.get_json()["error"] == "Match time must be in the future"

    def test_list_has_tournament_name(self, client, live_match):
        body = client.get("/api/matches").get_json()

        assert body["data"][0]["tournament_name"] == "Live Cup"

    def test_invalid_status(self, client, live_match):
        response = client.put(f"/api/matches/{live_match.id}", json={"status": "paused"})

        assert response.status_code == 400
        assert response.get_json()["error"].startswith("Invalid status")

    def test_update_status(self, client, live_match):
        response = client.put(
            f"/api/matches/{live_match.id}", json={"status": "in_progress"}
        )

        assert response.get_json()["data"]["status"] == "in_progress"

    def test_move_to_tournament_outside_match_time(
        self, client, store, live_match, make_tournament
    ):
        now = utcnow()
        later = make_tournament(
            "Late Cup", start=now + timedelta(days=100), end=now + timedelta(days=120)
        )

        response = client.put(
            f"/api/matches/{live_match.id}", json={"tournament_id": later.id}
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Match time must be within tournament period"
        assert store.get_by_id("matches", live_match.id).tournament_id != later.id

    def test_move_to_tournament_covering_match_time(
        self, client, live_match, make_tournament
    ):
        now = utcnow()
        other = make_tournament(
            "Other Cup", start=now - timedelta(days=5), end=now + timedelta(days=5)
        )

        response = client.put(
            f"/api/matches/{live_match.id}", json={"tournament_id": other.id}
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["tournament_id"] == other.id

    def test_rename_winning_team_rejected(self, client, store, live_match):
        client.put(f"/api/matches/{live_match.id}/winner", json={"winner": "Red"})

        response = client.put(f"/api/matches/{live_match.id}", json={"team_a": "Green"})

        assert response.status_code == 400
        stored = store.get_by_id("matches", live_match.id)
        assert stored.team_a == "Red"
        assert stored.has_team(stored.winner)

    def test_rename_losing_team_after_result(self, client, live_match):
        client.put(f"/api/matches/{live_match.id}/winner", json={"winner": "Red"})

        response = client.put(f"/api/matches/{live_match.id}", json={"team_b": "Navy"})

        assert response.status_code == 200
        assert response.get_json()["data"]["team_b"] == "Navy"

    def test_set_winner(self, client, store, live_match, make_predictor, make_prediction):
        prediction = make_prediction(live_match, make_predictor(), "Red")

        response = client.put(f"/api/matches/{live_match.id}/winner", json={"winner": "Red"})

        assert response.status_code == 200
        body = response.get_json()
        assert body["data"]["status"] == "completed"
        assert body["data"]["predictions_updated"] == 1
        assert store.get_by_id("predictions", prediction.id).outcome == PredictionOutcome.CORRECT

    def test_winner_required(self, client, live_match):
        response = client.put(f"/api/matches/{live_match.id}/winner", json={})

        assert response.get_json()["error"] == "Winner is required"

    def test_invalid_winner(self, client, live_match):
        response = client.put(
            f"/api/matches/{live_match.id}/winner", json={"winner": "Green"}
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Winner must be either Red or Blue"

    def test_winner_for_unknown_match(self, client):
        response = client.put("/api/matches/nope/winner", json={"winner": "Red"})

        assert response.status_code == 404

    def test_correct_result(self, client, live_match):
        client.put(f"/api/matches/{live_match.id}/winner", json={"winner": "Red"})

        response = client.put(f"/api/matches/{live_match.id}/result", json={"winner": "Blue"})

        data = response.get_json()["data"]
        assert data["winner"] == "Blue"
        assert data["previous_winner"] == "Red"

    def test_correct_result_requires_completed(self, client, live_match):
        response = client.put(f"/api/matches/{live_match.id}/result", json={"winner": "Blue"})

        assert response.status_code == 400

    def test_detail_has_predictor_names(
        self, client, live_match, make_predictor, make_prediction
    ):
        make_prediction(live_match, make_predictor("Alice"), "Red")

        data = client.get(f"/api/matches/{live_match.id}").get_json()["data"]

        assert data["tournament"]["name"] == "Live Cup"
        assert data["predictions"][0]["predictor_name"] == "Alice"

    def test_delete_with_predictions_conflicts(
        self, client, live_match, make_predictor, make_prediction
    ):
        make_prediction(live_match, make_predictor(), "Red")

        response = client.delete(f"/api/matches/{live_match.id}")

        assert response.get_json()["error"] == "Cannot delete match with existing predictions"

    def test_completed_list(self, client, make_match):
        done = make_match(status=MatchStatus.COMPLETED, winner="Red")
        make_match()

        body = client.get("/api/matches/completed").get_json()

        assert [m["id"] for m in body["data"]] == [done.id]


class TestPredictionRoutes:
    def test_create(self, client, live_match, make_predictor):
        predictor = make_predictor()

        response = client.post(
            "/api/predictions",
            json={
                "match_id": live_match.id,
                "predictor_id": predictor.id,
                "predicted_winner": "Blue",
            },
        )

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["predicted_winner"] == "Blue"
        assert data["result_status"] == "⏳ Pending"
        assert data["is_correct"] == ""

    def test_fills_placeholder(self, client, store, live_match, make_predictor, make_prediction):
        predictor = make_predictor()
        placeholder = make_prediction(
            live_match, predictor, "", result_status=ResultStatus.AWAITING_PICK
        )

        response = client.post(
            "/api/predictions",
            json={
                "match_id": live_match.id,
                "predictor_id": predictor.id,
                "predicted_winner": "Red",
            },
        )

        assert response.status_code == 201
        assert response.get_json()["data"]["id"] == placeholder.id
        assert len(store.predictions_for_match(live_match.id)) == 1

    def test_duplicate_rejected(self, client, live_match, make_predictor, make_prediction):
        predictor = make_predictor()
        make_prediction(live_match, predictor, "Red")

        response = client.post(
            "/api/predictions",
            json={
                "match_id": live_match.id,
                "predictor_id": predictor.id,
                "predicted_winner": "Blue",
            },
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Prediction already exists for this match and predictor"

    def test_completed_match_rejected(self, client, make_match, make_predictor):
        match = make_match(status=MatchStatus.COMPLETED, winner="Red")

        response = client.post(
            "/api/predictions",
            json={
                "match_id": match.id,
                "predictor_id": make_predictor().id,
                "predicted_winner": "Red",
            },
        )

        assert response.get_json()["error"] == "Cannot predict on completed match"

    def test_pick_must_be_a_team(self, client, live_match, make_predictor):
        response = client.post(
            "/api/predictions",
            json={
                "match_id": live_match.id,
                "predictor_id": make_predictor().id,
                "predicted_winner": "Green",
            },
        )

        assert response.get_json()["error"] == "Predicted winner must be either Red or Blue"

    def test_update_resets_to_pending(self, client, make_predictor, make_prediction, live_match):
        prediction = make_prediction(live_match, make_predictor(), "Red")

        response = client.put(
            f"/api/predictions/{prediction.id}", json={"predicted_winner": "Blue"}
        )

        data = response.get_json()["data"]
        assert data["predicted_winner"] == "Blue"
        assert data["outcome"] == "unresolved"
        assert data["result_status"] == "⏳ Pending"

    def test_cannot_delete_on_completed_match(
        self, client, make_match, make_predictor, make_prediction
    ):
        match = make_match(status=MatchStatus.COMPLETED, winner="Red")
        prediction = make_prediction(match, make_predictor(), "Red")

        response = client.delete(f"/api/predictions/{prediction.id}")

        assert response.get_json()["error"] == "Cannot delete prediction on completed match"

    def test_by_match(self, client, live_match, make_predictor, make_prediction):
        make_prediction(live_match, make_predictor("Alice"), "Red")

        body = client.get(f"/api/predictions/match/{live_match.id}").get_json()

        assert body["count"] == 1
        assert body["data"]["predictions"][0]["predictor"]["name"] == "Alice"

    def test_list_has_summaries(self, client, live_match, make_predictor, make_prediction):
        make_prediction(live_match, make_predictor("Alice"), "Red")

        row = client.get("/api/predictions").get_json()["data"][0]

        assert row["match"]["team_a"] == "Red"
        assert row["predictor"]["name"] == "Alice"


class TestDashboardRoutes:
    def test_leaderboard_limit(self, client, make_predictor):
        for name in ("A", "B", "C"):
            make_predictor(name)

        body = client.get("/api/dashboard/leaderboard?limit=2").get_json()

        assert body["count"] == 2
        assert body["data"][0]["rank"] == 1

    def test_leaderboard_bad_limit(self, client):
        response = client.get("/api/dashboard/leaderboard?limit=abc")

        assert response.status_code == 400

    def test_leaderboard_unknown_tournament(self, client):
        response = client.get("/api/dashboard/leaderboard?tournament_id=nope")

        assert response.status_code == 404

    def test_stats(self, client, live_match):
        body = client.get("/api/dashboard/stats").get_json()

        assert body["data"]["stats"]["total_matches"] == 1
        assert len(body["data"]["upcoming_matches"]) == 1

    def test_trends(self, client, live_match, make_predictor, make_prediction):
        make_prediction(live_match, make_predictor(), "Red", prediction_time=utcnow())

        body = client.get("/api/dashboard/trends?days=7").get_json()

        assert body["count"] == 1
        assert body["data"][0]["total"] == 1

    def test_predictor_performance_unknown(self, client):
        response = client.get("/api/dashboard/predictor-performance/nope")

        assert response.status_code == 404


class TestAdminRoutes:
    def test_status(self, client):
        body = client.get("/api/admin/scheduler").get_json()

        assert body["success"] is True
        assert "jobs" in body["data"]
        assert body["data"]["cache"]["type"] == "NullCache"

    def test_unknown_action(self, client):
        response = client.post("/api/admin/scheduler", json={"action": "explode"})

        assert response.status_code == 400
        assert response.get_json()["error"] == "Unknown action"
