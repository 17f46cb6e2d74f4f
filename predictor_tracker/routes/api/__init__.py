from flask import Blueprint

bp = Blueprint("api", __name__)

from predictor_tracker.routes.api import (  # noqa: F401, E402
    admin,
    dashboard,
    matches,
    predictions,
    predictors,
    tournaments,
)
