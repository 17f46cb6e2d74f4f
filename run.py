from predictor_tracker import create_app, db
from predictor_tracker.models import Match, Prediction, Predictor, Tournament
from predictor_tracker.store import get_store

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "store": get_store(),
        "Predictor": Predictor,
        "Tournament": Tournament,
        "Match": Match,
        "Prediction": Prediction,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
