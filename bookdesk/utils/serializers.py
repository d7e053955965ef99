import datetime
import json
from decimal import Decimal


def iso(value):
    if value is None:
        return None
    if isinstance(value, datetime.time):
        return value.strftime("%H:%M")
    return value.isoformat()


def money(value):
    if value is None:
        return None
    return float(value)


def to_decimal(value, default="0"):
    if value is None or value == "":
        return Decimal(default)
    return Decimal(str(value))


def to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def as_date(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value)[:10])


def load_json_list(value):
    if not value:
        return []
    try:
        loaded = json.loads(value)
    except (TypeError, ValueError):
        return []
    return loaded if isinstance(loaded, list) else []


def dump_json_list(values):
    if not values:
        return None
    return json.dumps(list(values))
