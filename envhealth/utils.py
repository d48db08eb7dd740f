#file: envhealth/utils.py

import math
from datetime import datetime, timedelta
import pytz

from envhealth.errors import ConfigurationError

EARTH_RADIUS_KM = 6371.0088


def get_current_time() -> datetime:
    """Get current UTC time as an aware datetime."""
    return datetime.now(pytz.utc)


def get_timezone(name: str) -> pytz.BaseTzInfo:
    """Resolve a timezone name, raising ConfigurationError for unknown names."""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ConfigurationError(f"Unknown timezone: {name}")


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return pytz.utc.localize(moment)
    return moment


def truncate_to_hour(moment: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Start of the calendar hour containing `moment`, as seen in `tz`."""
    local = ensure_aware(moment).astimezone(tz)
    return local.replace(minute=0, second=0, microsecond=0)


def truncate_to_minute(moment: datetime) -> datetime:
    return ensure_aware(moment).replace(second=0, microsecond=0)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    return (now or get_current_time()) - timedelta(days=days)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two WGS84 points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def as_number(value) -> float | None:
    """Finite JSON numbers as float; booleans, strings, nulls, NaN and infinities as None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)
