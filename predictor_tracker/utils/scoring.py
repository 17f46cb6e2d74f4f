"""
Scoring Engine for the prediction tracker

Propagates a match result into every prediction on that match. For aggregated
statistics and leaderboards, see predictor_tracker/services/aggregation_service.py
"""

import logging
from collections import namedtuple

from predictor_tracker.errors import InvalidWinner, ValidationError
from predictor_tracker.models import MatchStatus, PredictionOutcome, ResultStatus
from predictor_tracker.utils.logging_config import ContextualLogger

logger = logging.getLogger(__name__)

ScoringResult = namedtuple("ScoringResult", ["match", "updated", "previous_winner"])


def score_prediction(prediction, winner):
    """
    Work out the scored fields of a single prediction.

    Returns:
        dict of fields to write. A prediction without a pick keeps its outcome
        and only has its result status set to "awaiting pick".
    """
    if not prediction.predicted_winner:
        return {"result_status": ResultStatus.AWAITING_PICK}

    is_correct = prediction.predicted_winner == winner
    return {
        "outcome": PredictionOutcome.from_bool(is_correct),
        "result_status": ResultStatus.CORRECT if is_correct else ResultStatus.WRONG,
    }


class ScoringEngine:
    """Sets match winners and re-scores the predictions that reference them"""

    def __init__(self, store):
        self.store = store

    def set_match_winner(self, match_id, winner):
        """
        Record the winner of a match and score all of its predictions.

        Calling this again on a completed match re-scores every prediction
        against the new winner (last write wins).
        """
        match = self.store.get_or_404("matches", match_id)
        if not match.has_team(winner):
            raise InvalidWinner(match, winner)

        if match.is_completed:
            logger.warning(
                f"Re-scoring completed match {match.id}: winner {match.winner!r} -> {winner!r}"
            )
        return self._apply_winner(match, winner)

    def correct_match_result(self, match_id, winner):
        """Explicitly replace the winner of an already completed match"""
        match = self.store.get_or_404("matches", match_id)
        if not match.is_completed:
            raise ValidationError("Only completed matches can have their result corrected")
        if not match.has_team(winner):
            raise InvalidWinner(match, winner)

        logger.info(
            f"Correcting result of match {match.id} ({match.label}): "
            f"{match.winner!r} -> {winner!r}"
        )
        return self._apply_winner(match, winner)

    def _apply_winner(self, match, winner):
        log = ContextualLogger(__name__, {"match": match.id})
        previous_winner = match.winner or ""

        # Match and predictions are written in one transaction
        self.store.update(
            "matches",
            match.id,
            commit=False,
            winner=winner,
            status=MatchStatus.COMPLETED,
        )

        updated = 0
        for prediction in self.store.predictions_for_match(match.id):
            self.store.update(
                "predictions",
                prediction.id,
                commit=False,
                **score_prediction(prediction, winner),
            )
            updated += 1

        self.store.commit("matches", match.id)
        log.info(f"Winner set to {winner}, {updated} predictions scored")

        return ScoringResult(match=match, updated=updated, previous_winner=previous_winner)
