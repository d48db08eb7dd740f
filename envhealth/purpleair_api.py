# file: envhealth/purpleair_api.py

import logging
import math
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Union

import aiohttp
from pydantic import ValidationError

from envhealth.config import PURPLEAIR_API_KEY, PURPLEAIR_URL, SENSOR_MAX_AGE_SECONDS, SENSOR_SEARCH_RADIUS_DEG
from envhealth.errors import ConfigurationError, NoDataError, ProviderError
from envhealth.http_client import fetch_json
from envhealth.models import Coordinate, Sensor
from envhealth.utils import get_current_time, haversine_km

PROVIDER = "PurpleAir"

SEARCH_FIELDS = [
    "sensor_index", "name", "location_type", "latitude", "longitude", "altitude", "last_seen",
    "pm2.5", "pm2.5_10minute", "pm2.5_30minute", "pm2.5_60minute", "temperature", "humidity",
]
DETAIL_FIELDS = ["pm2.5", "pm2.5_10minute", "pm10.0", "pm10.0_10minute", "stats"]


class CellKind(Enum):
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    NULL = "null"


class Cell(NamedTuple):
    """One value of a search-result row, tagged with the JSON type it arrived as."""

    kind: CellKind
    value: Union[int, float, str, None]

    @classmethod
    def decode(cls, raw: Any) -> "Cell":
        if raw is None:
            return cls(CellKind.NULL, None)
        if isinstance(raw, bool):
            raise ValueError(f"unexpected boolean cell {raw!r}")
        if isinstance(raw, int):
            return cls(CellKind.INT, raw)
        if isinstance(raw, float):
            return cls(CellKind.FLOAT, raw)
        if isinstance(raw, str):
            return cls(CellKind.STRING, raw)
        raise ValueError(f"unsupported cell {raw!r}")

    def as_int(self) -> Optional[int]:
        if self.kind == CellKind.INT:
            return self.value
        if self.kind == CellKind.FLOAT:
            return int(self.value) if math.isfinite(self.value) else None
        if self.kind == CellKind.NULL:
            return None
        raise ValueError(f"expected a number, got {self.value!r}")

    def as_float(self) -> Optional[float]:
        # NaN and infinities read as missing
        if self.kind == CellKind.FLOAT and not math.isfinite(self.value):
            return None
        if self.kind in (CellKind.INT, CellKind.FLOAT):
            return float(self.value)
        if self.kind == CellKind.NULL:
            return None
        raise ValueError(f"expected a number, got {self.value!r}")

    def as_str(self) -> Optional[str]:
        if self.kind == CellKind.STRING:
            return self.value
        if self.kind == CellKind.NULL:
            return None
        raise ValueError(f"expected a string, got {self.value!r}")


# Sensor attribute -> (provider column, converter, required)
SENSOR_COLUMNS: List[Tuple[str, str, Callable[[Cell], Any], bool]] = [
    ("sensor_index", "sensor_index", Cell.as_int, True),
    ("name", "name", Cell.as_str, False),
    ("location_type", "location_type", Cell.as_int, False),
    ("lat", "latitude", Cell.as_float, True),
    ("lon", "longitude", Cell.as_float, True),
    ("altitude", "altitude", Cell.as_int, False),
    ("last_seen", "last_seen", Cell.as_int, True),
    ("pm2_5", "pm2.5", Cell.as_float, False),
    ("pm2_5_10minute", "pm2.5_10minute", Cell.as_float, False),
    ("pm2_5_30minute", "pm2.5_30minute", Cell.as_float, False),
    ("pm2_5_60minute", "pm2.5_60minute", Cell.as_float, False),
    ("temperature", "temperature", Cell.as_float, False),
    ("humidity", "humidity", Cell.as_float, False),
]
_CONVERTERS = {attr: (convert, required) for attr, _, convert, required in SENSOR_COLUMNS}


def bounding_box(center: Coordinate, radius_deg: float) -> Dict[str, str]:
    return {
        "nwlat": str(center.lat + radius_deg),
        "nwlng": str(center.lon - radius_deg),
        "selat": str(center.lat - radius_deg),
        "selng": str(center.lon + radius_deg),
    }


def build_column_map(fields: List[str]) -> Dict[str, int]:
    """Map each known sensor attribute to its column in the response rows."""
    index_of = {name: i for i, name in enumerate(fields)}
    missing = [column for _, column, _, required in SENSOR_COLUMNS if required and column not in index_of]
    if missing:
        raise ProviderError(PROVIDER, f"search response is missing fields: {', '.join(missing)}")
    return {attr: index_of[column] for attr, column, _, _ in SENSOR_COLUMNS if column in index_of}


def decode_row(row: List[Any], column_map: Dict[str, int]) -> Sensor:
    values = {}
    for attr, index in column_map.items():
        convert, required = _CONVERTERS[attr]
        value = convert(Cell.decode(row[index]))
        if value is None:
            if required:
                raise ValueError(f"{attr} is null")
            continue
        values[attr] = value
    return Sensor(**values)


def parse_sensor_rows(payload: Dict[str, Any], center: Coordinate,
                      max_age_seconds: float = SENSOR_MAX_AGE_SECONDS, now=None) -> List[Sensor]:
    """Turn a bounding-box search response into recent outdoor sensors sorted by distance."""
    fields = payload.get("fields")
    rows = payload.get("data") or []
    if not isinstance(fields, list) or not isinstance(rows, list):
        raise ProviderError(PROVIDER, "search response has no field list")

    column_map = build_column_map(fields)
    now = now or get_current_time()
    sensors = []
    for row in rows:
        try:
            sensor = decode_row(row, column_map)
        except (IndexError, KeyError, OverflowError, TypeError, ValueError, ValidationError) as e:
            logging.warning(f"Skipping malformed {PROVIDER} row {row!r}: {e}")
            continue
        if not sensor.is_outdoor or now.timestamp() - sensor.last_seen >= max_age_seconds:
            continue
        sensor.distance_km = haversine_km(center.lat, center.lon, sensor.lat, sensor.lon)
        sensors.append(sensor)

    sensors.sort(key=lambda s: (s.distance_km, s.sensor_index))
    return sensors


def _headers(api_key: Optional[str]) -> Dict[str, str]:
    if not api_key:
        raise ConfigurationError("PURPLEAIR_API_KEY is not set")
    return {"X-API-Key": api_key}


async def locate(session: aiohttp.ClientSession, center: Coordinate,
                 radius_deg: float = SENSOR_SEARCH_RADIUS_DEG,
                 api_key: Optional[str] = PURPLEAIR_API_KEY,
                 base_url: str = PURPLEAIR_URL) -> List[Sensor]:
    """Find recent outdoor sensors within ±radius_deg of center, nearest first."""
    params = {
        "fields": ",".join(SEARCH_FIELDS),
        "location_type": "0",
        "max_age": str(int(SENSOR_MAX_AGE_SECONDS)),
        **bounding_box(center, radius_deg),
    }
    payload = await fetch_json(session, PROVIDER, f"{base_url}/sensors", params=params, headers=_headers(api_key))
    if not isinstance(payload, dict):
        raise ProviderError(PROVIDER, "search response is not an object")
    sensors = parse_sensor_rows(payload, center)
    logging.info(f"Found {len(sensors)} nearby {PROVIDER} sensors around ({center.lat}, {center.lon})")
    return sensors


async def nearest_sensor_id(session: aiohttp.ClientSession, center: Coordinate, **kwargs) -> Optional[int]:
    sensors = await locate(session, center, **kwargs)
    if not sensors:
        return None
    nearest = sensors[0]
    logging.info(f"Nearest sensor {nearest.sensor_index} at {nearest.distance_km:.2f} km")
    return nearest.sensor_index


async def fetch_sensor_detail(session: aiohttp.ClientSession, sensor_id: int,
                              api_key: Optional[str] = PURPLEAIR_API_KEY,
                              base_url: str = PURPLEAIR_URL) -> Dict[str, Any]:
    """Raw pollutant fields of one sensor, keyed exactly as the provider sends them."""
    params = {"fields": ",".join(DETAIL_FIELDS)}
    payload = await fetch_json(session, PROVIDER, f"{base_url}/sensors/{sensor_id}",
                               params=params, headers=_headers(api_key))
    sensor = payload.get("sensor") if isinstance(payload, dict) else None
    if not isinstance(sensor, dict):
        raise NoDataError(PROVIDER, f"sensor {sensor_id} returned no data")
    return sensor
