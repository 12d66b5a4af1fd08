from datetime import date, datetime, timezone
from typing import Any, Optional


def try_parse_date(value):
    if not value:
        return None

    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def to_epoch_seconds(value: Any) -> Optional[float]:
    """
    Normaliza un timestamp del almacén o un valor tipo fecha a segundos epoch.
    Datetimes sin zona se asumen UTC; números mayores a 1e11 se toman como ms.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp()
    if isinstance(value, (int, float)):
        return value / 1000.0 if abs(value) > 1e11 else float(value)
    if isinstance(value, dict) and "seconds" in value:
        return float(value["seconds"]) + float(value.get("nanoseconds", 0)) / 1e9
    if isinstance(value, str):
        parsed = try_parse_date(value.strip())
        return to_epoch_seconds(parsed) if parsed else None
    return None
