from predictor_tracker import db  # noqa: F401 - imported for model imports

from .enums import MatchStatus, PredictionOutcome, ResultStatus
from .match import Match
from .prediction import Prediction
from .predictor import Predictor
from .tournament import Tournament

__all__ = [
    "Predictor",
    "Tournament",
    "Match",
    "Prediction",
    "MatchStatus",
    "PredictionOutcome",
    "ResultStatus",
]
