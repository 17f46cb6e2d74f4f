from enum import Enum


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls):
        return [status.value for status in cls]


class PredictionOutcome(str, Enum):
    """Scoring state of a prediction.

    Only CORRECT and INCORRECT are *resolved*: they are the only outcomes that
    enter an accuracy denominator.
    """

    UNRESOLVED = "unresolved"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    NOT_PREDICTED = "not_predicted"

    @property
    def is_resolved(self):
        return self in (PredictionOutcome.CORRECT, PredictionOutcome.INCORRECT)

    @property
    def legacy_value(self):
        """String form used by exports ("", "true", "false", "Not Predicted")"""
        return _LEGACY_OUTCOMES[self]

    @classmethod
    def from_bool(cls, is_correct):
        return cls.CORRECT if is_correct else cls.INCORRECT


_LEGACY_OUTCOMES = {
    PredictionOutcome.UNRESOLVED: "",
    PredictionOutcome.CORRECT: "true",
    PredictionOutcome.INCORRECT: "false",
    PredictionOutcome.NOT_PREDICTED: "Not Predicted",
}


class ResultStatus(str, Enum):
    PENDING = "pending"
    CORRECT = "correct"
    WRONG = "wrong"
    AWAITING_PICK = "awaiting_pick"
    NOT_PREDICTED = "not_predicted"

    @property
    def label(self):
        return _RESULT_LABELS[self]


_RESULT_LABELS = {
    ResultStatus.PENDING: "⏳ Pending",
    ResultStatus.CORRECT: "✅ Correct",
    ResultStatus.WRONG: "❌ Wrong",
    ResultStatus.AWAITING_PICK: "⏳ Not Predicted",
    ResultStatus.NOT_PREDICTED: "❌ Not Predicted",
}


def enum_values(enum_cls):
    """values_callable for db.Enum so the column stores the lowercase values"""
    return [member.value for member in enum_cls]
