# file: envhealth/weather.py

import logging
from typing import Any, Optional

import aiohttp

from envhealth.config import OPEN_METEO_URL, OPENWEATHER_API_KEY, OPENWEATHER_URL
from envhealth.errors import ConfigurationError, NoDataError, ProviderError
from envhealth.http_client import fetch_json
from envhealth.models import Coordinate, WeatherReading
from envhealth.utils import as_number

OPENWEATHER_PROVIDER = "OpenWeatherMap"
OPEN_METEO_PROVIDER = "Open-Meteo"
UNKNOWN_CONDITION = "Unknown"

# WMO weather interpretation codes used by Open-Meteo
WEATHER_CODES = [
    ((0,), "Clear sky"),
    ((1, 2, 3), "Partly cloudy"),
    ((45, 48), "Fog"),
    ((51, 53, 55), "Drizzle"),
    ((56, 57), "Freezing drizzle"),
    ((61, 63, 65), "Rain"),
    ((66, 67), "Freezing rain"),
    ((71, 73, 75), "Snow"),
    ((77,), "Snow grains"),
    ((80, 81, 82), "Rain showers"),
    ((85, 86), "Snow showers"),
    ((95,), "Thunderstorm"),
    ((96, 99), "Thunderstorm with hail"),
]


def weather_code_to_description(code: int) -> str:
    for codes, description in WEATHER_CODES:
        if code in codes:
            return description
    return UNKNOWN_CONDITION


def reading_from_openweather(payload: Any) -> WeatherReading:
    main = payload.get("main") if isinstance(payload, dict) else None
    temperature = as_number(main.get("temp")) if isinstance(main, dict) else None
    if temperature is None:
        raise NoDataError(OPENWEATHER_PROVIDER, "response has no temperature")
    condition = None
    weather = payload.get("weather")
    if isinstance(weather, list) and weather and isinstance(weather[0], dict):
        description = weather[0].get("description") or weather[0].get("main")
        if isinstance(description, str) and description:
            condition = description[0].upper() + description[1:]
    return WeatherReading(temperature_c=temperature, condition=condition, source=OPENWEATHER_PROVIDER)


def reading_from_open_meteo(payload: Any) -> WeatherReading:
    current = payload.get("current") if isinstance(payload, dict) else None
    if not isinstance(current, dict):
        raise NoDataError(OPEN_METEO_PROVIDER, "response has no current conditions")
    temperature = as_number(current.get("temperature_2m"))
    code = as_number(current.get("weather_code"))
    if temperature is None or code is None:
        raise NoDataError(OPEN_METEO_PROVIDER, "current conditions are incomplete")
    return WeatherReading(temperature_c=temperature, condition=weather_code_to_description(int(code)),
                          source=OPEN_METEO_PROVIDER)


class WeatherResolver:
    """Current conditions from OpenWeatherMap, falling back to the key-less Open-Meteo API."""

    def __init__(self, session: aiohttp.ClientSession, api_key: Optional[str] = OPENWEATHER_API_KEY,
                 openweather_url: str = OPENWEATHER_URL, open_meteo_url: str = OPEN_METEO_URL):
        self.session = session
        self.api_key = api_key
        self.openweather_url = openweather_url
        self.open_meteo_url = open_meteo_url

    async def fetch_primary(self, center: Coordinate) -> WeatherReading:
        if not self.api_key:
            raise ProviderError(OPENWEATHER_PROVIDER, "no API key configured")
        params = {"lat": str(center.lat), "lon": str(center.lon), "units": "metric", "appid": self.api_key}
        payload = await fetch_json(self.session, OPENWEATHER_PROVIDER, f"{self.openweather_url}/weather", params=params)
        return reading_from_openweather(payload)

    async def fetch_secondary(self, center: Coordinate) -> WeatherReading:
        params = {
            "latitude": str(center.lat),
            "longitude": str(center.lon),
            "current": "temperature_2m,weather_code",
            "timezone": "auto",
        }
        payload = await fetch_json(self.session, OPEN_METEO_PROVIDER, f"{self.open_meteo_url}/forecast", params=params)
        return reading_from_open_meteo(payload)

    async def resolve(self, center: Coordinate) -> Optional[WeatherReading]:
        for fetch in (self.fetch_primary, self.fetch_secondary):
            try:
                reading = await fetch(center)
                logging.info(f"Weather updated via {reading.source}: {reading.temperature_c}°C, {reading.condition}")
                return reading
            except ConfigurationError as e:
                logging.error(f"Weather request could not be built: {e}")
            except (ProviderError, NoDataError) as e:
                logging.warning(f"Weather provider failed: {e}")
            except Exception as e:
                logging.error(f"Unexpected error from weather provider: {e!r}")
        logging.error("All weather services failed")
        return None
