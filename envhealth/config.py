# file: envhealth/config.py

import os
from dotenv import load_dotenv

from envhealth.errors import ConfigurationError

load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


PURPLEAIR_API_KEY = os.getenv("PURPLEAIR_API_KEY")
PURPLEAIR_URL = os.getenv("PURPLEAIR_URL", "https://api.purpleair.com/v1")

OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY")
OPENWEATHER_URL = os.getenv("OPENWEATHER_URL", "https://api.openweathermap.org/data/2.5")
OPEN_METEO_URL = os.getenv("OPEN_METEO_URL", "https://api.open-meteo.com/v1")

WAQI_URL = os.getenv("WAQI_URL", "https://api.waqi.info")
WAQI_TOKEN = os.getenv("WAQI_TOKEN", "demo")

RECORDS_FILE = os.getenv("RECORDS_FILE", "data/records.json")
HOUR_BUCKET_TIMEZONE = os.getenv("HOUR_BUCKET_TIMEZONE", "UTC")

# 0.9 degrees per axis is roughly 100 km
SENSOR_SEARCH_RADIUS_DEG = _float_env("SENSOR_SEARCH_RADIUS_DEG", 0.9)
SENSOR_MAX_AGE_SECONDS = _float_env("SENSOR_MAX_AGE_SECONDS", 3600)
HTTP_TIMEOUT_SECONDS = _float_env("HTTP_TIMEOUT_SECONDS", 15)
HISTORY_FETCH_TIMEOUT_SECONDS = _float_env("HISTORY_FETCH_TIMEOUT_SECONDS", 30)
