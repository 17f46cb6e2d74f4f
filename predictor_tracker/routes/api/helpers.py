"""Request parsing and response envelope shared by the API routes"""

from flask import request

from predictor_tracker.errors import ValidationError
from predictor_tracker.utils.timezone_utils import parse_datetime


def ok(data=None, message=None, count=None):
    """Success envelope; views return it as a dict and Flask serialises it"""
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if count is not None:
        body["count"] = count
    if message:
        body["message"] = message
    return body


def listing(items):
    return ok(items, count=len(items))


def get_payload():
    """JSON body of the request, an empty dict when absent or malformed"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {}
    return data


def parse_time(value, message):
    try:
        return parse_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(message) from None


def expected_version(data):
    """Optional ``version`` field of an update body"""
    version = data.get("version")
    if version is None or version == "":
        return None
    try:
        return int(version)
    except (TypeError, ValueError):
        raise ValidationError("Version must be an integer") from None


def int_arg(name, default=None, minimum=1):
    """Positive integer query argument"""
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer") from None
    if value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return value
