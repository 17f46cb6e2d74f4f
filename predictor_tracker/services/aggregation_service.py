"""
Aggregation service for the prediction tracker

Derives predictor, tournament and dashboard statistics, leaderboards and
trend series from the current contents of the entity store. Nothing is
persisted: every call recomputes from the store, so two calls with the same
data and the same ``now`` return the same result.
"""

import logging
from datetime import timedelta

from flask import current_app, has_app_context

from predictor_tracker.utils.statistics import (
    accuracy,
    daily_series,
    most_recent,
    rank_by_accuracy,
    streaks,
    tally,
)
from predictor_tracker.utils.timezone_utils import as_utc, get_app_timezone, utcnow

logger = logging.getLogger(__name__)


def _setting(name, default):
    if has_app_context():
        return current_app.config.get(name, default)
    return default


class AggregationEngine:
    """Read-side statistics over an EntityStore"""

    def __init__(self, store, tz=None):
        self.store = store
        self.tz = tz or get_app_timezone()

    # Predictors

    def compute_predictor_stats(self, predictor_id):
        """Totals, accuracy and streaks for one predictor"""
        predictor = self.store.get_or_404("predictors", predictor_id)
        predictions = self.store.predictions_for_predictor(predictor.id)

        counts = tally(predictions)
        current_streak, max_streak = streaks(predictions)

        return {
            "predictor": predictor.to_dict(),
            "stats": {
                "total": counts["total"],
                "correct": counts["correct"],
                "wrong": counts["wrong"],
                "not_predicted": counts["not_predicted"],
                "accuracy": counts["accuracy"],
                "current_streak": current_streak,
                "max_streak": max_streak,
            },
            "recent_predictions": [p.to_dict() for p in most_recent(predictions)],
            "total_predictions": len(predictions),
        }

    def compute_all_predictor_stats(self):
        """Every predictor with its totals, best accuracy first"""
        rows = self._predictor_rows(self.store.list("predictions"))
        return sorted(rows, key=lambda row: float(row["accuracy"]), reverse=True)

    def _predictor_rows(self, predictions, skip_inactive=False):
        by_predictor = {}
        for prediction in predictions:
            by_predictor.setdefault(prediction.predictor_id, []).append(prediction)

        rows = []
        for predictor in self.store.list("predictors"):
            counts = tally(by_predictor.get(predictor.id, []))
            if skip_inactive and counts["total"] == 0:
                continue
            row = predictor.to_dict()
            row.update(
                total=counts["total"],
                correct=counts["correct"],
                wrong=counts["wrong"],
                not_predicted=counts["not_predicted"],
                accuracy=counts["accuracy"],
            )
            rows.append(row)
        return rows

    # Leaderboard

    def compute_leaderboard(self, tournament_id=None, limit=None):
        """
        Rank predictors by accuracy.

        Scoped to a tournament, only predictions on that tournament's matches
        count and predictors without any are left out. The global board lists
        every predictor.
        """
        if limit is None:
            limit = _setting("LEADERBOARD_DEFAULT_LIMIT", 20)

        if tournament_id:
            tournament = self.store.get_or_404("tournaments", tournament_id)
            match_ids = [m.id for m in self.store.matches_for_tournament(tournament.id)]
            predictions = self.store.predictions_for_matches(match_ids)
            rows = self._predictor_rows(predictions, skip_inactive=True)
        else:
            rows = self._predictor_rows(self.store.list("predictions"))

        leaderboard = rank_by_accuracy(rows, limit)
        logger.debug(f"Leaderboard computed: {len(leaderboard)} entries (tournament={tournament_id})")
        return leaderboard

    # Tournaments

    @staticmethod
    def _tournament_block(matches, predictions):
        counts = tally(predictions)
        completed = sum(1 for m in matches if m.is_completed)
        return {
            "total_matches": len(matches),
            "completed_matches": completed,
            "upcoming_matches": len(matches) - completed,
            "total_predictions": counts["total"],
            "correct_predictions": counts["correct"],
            "wrong_predictions": counts["wrong"],
            "not_predicted": counts["not_predicted"],
        }

    def compute_tournament_stats(self, tournament_id):
        tournament = self.store.get_or_404("tournaments", tournament_id)
        matches = self.store.matches_for_tournament(tournament.id)
        predictions = self.store.predictions_for_matches(m.id for m in matches)

        stats = self._tournament_block(matches, predictions)
        stats["average_accuracy"] = accuracy(
            stats["correct_predictions"], stats["wrong_predictions"]
        )

        return {
            "tournament": tournament.to_dict(),
            "stats": stats,
            "matches": [m.to_dict() for m in matches],
        }

    def compute_tournament_comparison(self):
        matches = self.store.list("matches")
        predictions = self.store.list("predictions")

        comparison = []
        for tournament in self.store.list("tournaments"):
            tournament_matches = [m for m in matches if m.tournament_id == tournament.id]
            match_ids = {m.id for m in tournament_matches}
            tournament_predictions = [p for p in predictions if p.match_id in match_ids]

            stats = self._tournament_block(tournament_matches, tournament_predictions)
            stats["accuracy"] = accuracy(
                stats["correct_predictions"], stats["wrong_predictions"]
            )
            comparison.append(dict(tournament.to_dict(), stats=stats))
        return comparison

    # Dashboard

    def compute_dashboard_stats(self, now=None):
        now = now or utcnow()
        predictors = self.store.list("predictors")
        tournaments = self.store.list("tournaments")
        matches = self.store.list("matches")
        predictions = self.store.list("predictions")

        counts = tally(predictions)
        completed = sum(1 for m in matches if m.is_completed)
        stats = {
            "total_predictors": len(predictors),
            "total_tournaments": len(tournaments),
            "total_matches": len(matches),
            "total_predictions": counts["total"],
            "completed_matches": completed,
            "upcoming_matches": len(matches) - completed,
            "correct_predictions": counts["correct"],
            "wrong_predictions": counts["wrong"],
            "pending_predictions": counts["pending"],
            "not_predicted": counts["not_predicted"],
            "overall_accuracy": counts["accuracy"],
        }

        recent_matches = sorted(
            matches, key=lambda m: as_utc(m.match_time), reverse=True
        )[:5]

        predictor_names = {p.id: p.name for p in predictors}
        matches_by_id = {m.id: m for m in matches}
        recent_predictions = []
        for prediction in most_recent(predictions, limit=10):
            match = matches_by_id.get(prediction.match_id)
            entry = prediction.to_dict()
            entry["predictor_name"] = predictor_names.get(
                prediction.predictor_id, "Unknown Predictor"
            )
            entry["match_details"] = match.label if match else "Unknown Match"
            recent_predictions.append(entry)

        horizon = timedelta(days=_setting("DASHBOARD_UPCOMING_DAYS", 7))
        upcoming = [
            m for m in matches if not m.is_completed and m.starts_within(now, horizon)
        ]

        logger.debug(
            f"Dashboard stats: {stats['total_predictions']} predictions, "
            f"{len(upcoming)} upcoming matches"
        )
        return {
            "stats": stats,
            "recent_matches": [m.to_dict() for m in recent_matches],
            "recent_predictions": recent_predictions,
            "upcoming_matches": [m.to_dict() for m in upcoming],
        }

    def compute_prediction_stats(self):
        predictions = self.store.list("predictions")
        counts = tally(predictions)
        return {
            "stats": counts,
            "recent_predictions": [p.to_dict() for p in most_recent(predictions)],
        }

    # Trends

    def compute_trends(self, days=None, now=None):
        """Per-day totals and accuracy for predictions made in the last ``days``"""
        return self._series(self.store.list("predictions"), days, now)

    def compute_predictor_performance(self, predictor_id, days=None, now=None):
        predictor = self.store.get_or_404("predictors", predictor_id)
        performance = self._series(
            self.store.predictions_for_predictor(predictor.id), days, now
        )
        return {
            "predictor": predictor.to_dict(),
            "performance": performance,
            "count": len(performance),
        }

    def _series(self, predictions, days, now):
        now = now or utcnow()
        if days is None:
            days = _setting("TRENDS_DEFAULT_DAYS", 30)
        start = now - timedelta(days=int(days))
        return daily_series(predictions, start, now, self.tz)
