from typing import Tuple, List

SERIES_KEYS = ["timestamp", "value"]

WINDOW_KEYS = ["window_label", "timestamp", "value"]

def _missing(point: dict, keys: List[str]) -> List[str]:
    return [key for key in keys if point.get(key) is None]

def _is_int(val) -> bool:
    return isinstance(val, int) and not isinstance(val, bool)

def validate_cumulative_series(points: list, keys: List[str] | None = None) -> Tuple[bool, List[str]]:
    reasons = []
    if not isinstance(points, list):
        return False, ["series is not a list"]
    if not points:
        return True, reasons
    if points[0].get("value") != 0:
        reasons.append("series does not start at 0")
    prev_ts = prev_val = None
    for idx, point in enumerate(points):
        missing = _missing(point, keys or SERIES_KEYS)
        if missing:
            reasons.append(f"point {idx} missing {','.join(missing)}")
            continue
        ts, val = point["timestamp"], point["value"]
        if not _is_int(val) or val < 0:
            reasons.append(f"point {idx} value {val!r} is not a non-negative int")
        if prev_ts is not None and ts < prev_ts:
            reasons.append(f"point {idx} timestamp goes backwards")
        if prev_val is not None and _is_int(val) and val < prev_val:
            reasons.append(f"point {idx} value decreases {prev_val} -> {val}")
        prev_ts, prev_val = ts, val
    return (len(reasons) == 0), reasons

def validate_window_series(points: list, expected_count: int, monotonic: bool = True) -> Tuple[bool, List[str]]:
    reasons = []
    if not isinstance(points, list):
        return False, ["windows is not a list"]
    if len(points) != expected_count:
        reasons.append(f"expected {expected_count} windows, got {len(points)}")
    labels = [p.get("window_label") for p in points]
    if len(set(labels)) != len(labels):
        reasons.append("duplicate window labels")
    prev = None
    for idx, point in enumerate(points):
        missing = _missing(point, WINDOW_KEYS)
        if missing:
            reasons.append(f"window {idx} missing {','.join(missing)}")
            continue
        if prev is not None and point["timestamp"] <= prev["timestamp"]:
            reasons.append(f"window {idx} out of order")
        if monotonic and prev is not None and point["value"] < prev["value"]:
            reasons.append(f"window {idx} value decreases")
        prev = point
    return (len(reasons) == 0), reasons
