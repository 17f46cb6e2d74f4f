"""
Prediction lifecycle sweeps

Two periodic sweeps keep the prediction table in step with the match
schedule:

* sweep_upcoming seeds empty placeholder predictions for every predictor on
  matches that start within the next hour.
* sweep_missing marks predictions that are still empty a couple of hours
  after kick-off as "not predicted".

Both sweeps are fire-and-forget. A failure on one match is logged, rolled
back and skipped; the sweep never raises.
"""

import logging
from datetime import timedelta

from predictor_tracker.models import PredictionOutcome, ResultStatus
from predictor_tracker.utils.logging_config import ContextualLogger
from predictor_tracker.utils.timezone_utils import utcnow

logger = logging.getLogger(__name__)


class LifecyclePolicy:
    def __init__(self, store, upcoming_window=None, missing_grace=None):
        self.store = store
        self.upcoming_window = upcoming_window or timedelta(hours=1)
        self.missing_grace = missing_grace or timedelta(hours=2)

    @classmethod
    def from_config(cls, store, app_config):
        return cls(
            store,
            upcoming_window=timedelta(
                minutes=app_config.get("UPCOMING_WINDOW_MINUTES", 60)
            ),
            missing_grace=timedelta(hours=app_config.get("MISSING_GRACE_HOURS", 2)),
        )

    def upcoming_matches(self, now=None):
        """Open matches starting in (now, now + upcoming_window]"""
        now = now or utcnow()
        return [
            match
            for match in self.store.list("matches")
            if not match.is_completed and match.starts_within(now, self.upcoming_window)
        ]

    def sweep_upcoming(self, now=None):
        """
        Create placeholder predictions for predictors who have no row yet on a
        match that is about to start.

        Returns:
            int: number of placeholders created
        """
        now = now or utcnow()
        try:
            matches = self.upcoming_matches(now)
        except Exception as e:
            self.store.rollback()
            logger.error(f"Error checking upcoming matches: {e}", exc_info=True)
            return 0

        if matches:
            logger.info(f"Found {len(matches)} upcoming match(es) within {self.upcoming_window}")

        created = 0
        for match in matches:
            match_id = match.id
            try:
                created += self._seed_placeholders(match, now)
            except Exception as e:
                self.store.rollback()
                logger.error(
                    f"Error creating placeholders for match {match_id}: {e}",
                    exc_info=True,
                )
        return created

    def _seed_placeholders(self, match, now):
        log = ContextualLogger(__name__, {"match": match.id})
        log.info(f"Prediction request for {match.label} at {match.match_time}")

        existing = {p.predictor_id for p in self.store.predictions_for_match(match.id)}

        created = 0
        for predictor in self.store.list("predictors"):
            if predictor.id in existing:
                continue
            self.store.create(
                "predictions",
                commit=False,
                match_id=match.id,
                predictor_id=predictor.id,
                predicted_winner="",
                prediction_time=now,
                outcome=PredictionOutcome.UNRESOLVED,
                result_status=ResultStatus.AWAITING_PICK,
            )
            created += 1
            log.info(f"Created prediction placeholder for predictor {predictor.name}")

        self.store.commit("matches", match.id)
        return created

    def sweep_missing(self, now=None):
        """
        Mark predictions still empty ``missing_grace`` after match start as
        not predicted.

        Returns:
            int: number of predictions marked
        """
        now = now or utcnow()
        try:
            matches = [m for m in self.store.list("matches") if not m.is_completed]
        except Exception as e:
            self.store.rollback()
            logger.error(f"Error checking missing predictions: {e}", exc_info=True)
            return 0

        marked = 0
        for match in matches:
            if not match.started_at_least(now, self.missing_grace):
                continue
            match_id = match.id
            try:
                marked += self._mark_missing(match, now)
            except Exception as e:
                self.store.rollback()
                logger.error(
                    f"Error marking missing predictions for match {match_id}: {e}",
                    exc_info=True,
                )
        return marked

    def _mark_missing(self, match, now):
        marked = 0
        for prediction in self.store.predictions_for_match(match.id):
            if prediction.has_pick:
                continue
            if (
                prediction.outcome == PredictionOutcome.NOT_PREDICTED
                and prediction.result_status == ResultStatus.NOT_PREDICTED
                and prediction.prediction_time is not None
            ):
                continue

            fields = {
                "outcome": PredictionOutcome.NOT_PREDICTED,
                "result_status": ResultStatus.NOT_PREDICTED,
            }
            # Backfill so the row sorts as recent instead of undated
            if prediction.prediction_time is None:
                fields["prediction_time"] = now

            self.store.update("predictions", prediction.id, commit=False, **fields)
            marked += 1
            logger.info(
                f"Marked prediction {prediction.id} as not predicted for match {match.id}"
            )

        if marked:
            self.store.commit("matches", match.id)
        return marked

    def daily_report(self, now=None):
        """Snapshot of store counts, logged once a day"""
        now = now or utcnow()
        matches = self.store.list("matches")
        report = {
            "date": now.date().isoformat(),
            "total_predictors": len(self.store.list("predictors")),
            "total_tournaments": len(self.store.list("tournaments")),
            "total_matches": len(matches),
            "total_predictions": len(self.store.list("predictions")),
            "completed_matches": sum(1 for m in matches if m.is_completed),
            "upcoming_matches": len(self.upcoming_matches(now)),
            "timestamp": now.isoformat(),
        }
        logger.info(f"Daily report: {report}")
        return report
