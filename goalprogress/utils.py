import hashlib, json
from datetime import datetime, timezone

def sha256_json(obj) -> str:
    return hashlib.sha256(json.dumps(obj, sort_keys=True, default=str).encode()).hexdigest()

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def coerce_int(val):
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val
    if isinstance(val, float):
        return int(val) if val == val and val not in (float("inf"), float("-inf")) else None
    try:
        return int(str(val).strip())
    except (TypeError, ValueError):
        return None
