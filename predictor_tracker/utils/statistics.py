"""
Pure statistics helpers used by the aggregation service

Nothing in here touches the database: every function takes lists of model
instances (or plain dicts) and returns plain data.
"""

from predictor_tracker.utils.timezone_utils import as_utc, local_date


def accuracy(correct, wrong):
    """
    Percentage of resolved predictions that were correct.

    Pending and unpredicted entries never enter the denominator, so the result
    is 0 when nothing has been resolved yet.
    """
    resolved = correct + wrong
    if resolved == 0:
        return 0
    return round(correct / resolved * 100, 2)


def tally(predictions):
    """Count predictions by outcome"""
    counts = {
        "total": 0,
        "correct": 0,
        "wrong": 0,
        "pending": 0,
        "not_predicted": 0,
    }
    for prediction in predictions:
        counts["total"] += 1
        if prediction.is_correct:
            counts["correct"] += 1
        elif prediction.is_wrong:
            counts["wrong"] += 1
        if not prediction.has_pick:
            counts["not_predicted"] += 1
        elif prediction.is_pending:
            counts["pending"] += 1

    counts["accuracy"] = accuracy(counts["correct"], counts["wrong"])
    return counts


def chronological(predictions):
    """Dated predictions, oldest first (undated ones are dropped)"""
    dated = [p for p in predictions if p.prediction_time is not None]
    return sorted(dated, key=lambda p: as_utc(p.prediction_time))


def most_recent(predictions, limit=10):
    dated = [p for p in predictions if p.prediction_time is not None]
    dated.sort(key=lambda p: as_utc(p.prediction_time), reverse=True)
    return dated[:limit]


def streaks(predictions):
    """
    Calculate (current_streak, max_streak) of correct predictions.

    Predictions are walked in prediction-time order; anything that is not
    correct (wrong, pending, not predicted) breaks a run.
    """
    ordered = chronological(predictions)

    max_streak = 0
    run = 0
    for prediction in ordered:
        if prediction.is_correct:
            run += 1
            max_streak = max(max_streak, run)
        else:
            run = 0

    current_streak = 0
    for prediction in reversed(ordered):
        if not prediction.is_correct:
            break
        current_streak += 1

    return current_streak, max_streak


def daily_series(predictions, start, end, tz=None):
    """
    Group predictions made in [start, end] by calendar day.

    Days without predictions are left out. Returns entries sorted by date.
    """
    days = {}
    for prediction in predictions:
        if prediction.prediction_time is None:
            continue
        made_at = as_utc(prediction.prediction_time)
        if made_at < start or made_at > end:
            continue

        day = local_date(made_at, tz)
        entry = days.setdefault(day, {"correct": 0, "wrong": 0, "total": 0})
        entry["total"] += 1
        if prediction.is_correct:
            entry["correct"] += 1
        elif prediction.is_wrong:
            entry["wrong"] += 1

    return [
        {
            "date": day.isoformat(),
            "total": entry["total"],
            "correct": entry["correct"],
            "wrong": entry["wrong"],
            "accuracy": accuracy(entry["correct"], entry["wrong"]),
        }
        for day, entry in sorted(days.items())
    ]


def rank_by_accuracy(rows, limit=None):
    """
    Sort rows by accuracy (highest first) and number them from 1.

    The sort is stable, so rows with equal accuracy keep their input order.
    """
    ordered = sorted(rows, key=lambda row: float(row["accuracy"]), reverse=True)
    if limit is not None:
        ordered = ordered[: max(int(limit), 0)]
    return [dict(row, rank=position) for position, row in enumerate(ordered, start=1)]
