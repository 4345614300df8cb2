from datetime import datetime, timezone

from bson import ObjectId


def new_id() -> str:
    # ObjectId hex sorts by creation time, then by a per-process counter
    return str(ObjectId())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
