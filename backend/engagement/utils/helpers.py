import json
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    # DB에는 naive UTC로 저장한다 (SQLite는 tz 정보를 보존하지 않음).
    return datetime.now(timezone.utc).replace(tzinfo=None)


def dump_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


def load_json(raw: str | None) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None
