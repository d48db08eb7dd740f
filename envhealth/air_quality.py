# file: envhealth/air_quality.py

import logging
from typing import Any, Dict, Optional

import aiohttp

from envhealth import purpleair_api
from envhealth.aqi import pm25_to_index
from envhealth.config import PURPLEAIR_API_KEY, PURPLEAIR_URL, WAQI_TOKEN, WAQI_URL
from envhealth.errors import ConfigurationError, NoDataError, ProviderError
from envhealth.http_client import fetch_json
from envhealth.models import AirQualityReading, Coordinate
from envhealth.utils import as_number

WAQI_PROVIDER = "WAQI"

# Each granularity is looked up on the sensor first, then in its "stats" object.
PM25_PRECEDENCE = [("pm2.5_10minute", False), ("pm2.5_10minute", True), ("pm2.5", False), ("pm2.5", True)]
PM10_PRECEDENCE = [("pm10.0_10minute", False), ("pm10.0_10minute", True), ("pm10.0", False), ("pm10.0", True)]


def pick_concentration(sensor: Dict[str, Any], precedence) -> Optional[float]:
    stats = sensor.get("stats")
    stats = stats if isinstance(stats, dict) else {}
    for key, nested in precedence:
        value = as_number((stats if nested else sensor).get(key))
        if value is not None:
            return value
    return None


def reading_from_sensor(sensor: Dict[str, Any]) -> AirQualityReading:
    pm25 = pick_concentration(sensor, PM25_PRECEDENCE)
    if pm25 is None or pm25 < 0:
        raise NoDataError(purpleair_api.PROVIDER, "no PM2.5 value in sensor response")
    pm10 = pick_concentration(sensor, PM10_PRECEDENCE)
    if pm10 is not None and pm10 < 0:
        pm10 = None
    return AirQualityReading(aqi=pm25_to_index(pm25), pm25=pm25, pm10=pm10, source=purpleair_api.PROVIDER)


class AirQualityResolver:
    """Air quality from the PurpleAir sensor network.

    The preferred sensor is passed per call; without one the nearest recent
    outdoor sensor is used. Every failure is logged and reported as None so
    the caller can move on to the secondary provider.
    """

    def __init__(self, session: aiohttp.ClientSession, api_key: Optional[str] = PURPLEAIR_API_KEY,
                 base_url: str = PURPLEAIR_URL):
        self.session = session
        self.api_key = api_key
        self.base_url = base_url

    async def resolve(self, center: Coordinate, preferred_sensor_id: Optional[int] = None) -> Optional[AirQualityReading]:
        try:
            return await self._resolve(center, preferred_sensor_id)
        except ConfigurationError as e:
            logging.error(f"Air quality request could not be built: {e}")
        except NoDataError as e:
            logging.warning(f"No air quality data: {e}")
        except ProviderError as e:
            logging.warning(f"Air quality fetch failed (non-critical): {e}")
        except Exception as e:
            logging.error(f"Unexpected error resolving air quality: {e!r}")
        return None

    async def _resolve(self, center: Coordinate, preferred_sensor_id: Optional[int]) -> Optional[AirQualityReading]:
        if preferred_sensor_id is not None:
            sensor_id = preferred_sensor_id
            logging.info(f"Using user-selected sensor: {sensor_id}")
        else:
            sensor_id = await purpleair_api.nearest_sensor_id(
                self.session, center, api_key=self.api_key, base_url=self.base_url)
            if sensor_id is None:
                logging.info("No nearby PurpleAir sensors found")
                return None

        sensor = await purpleair_api.fetch_sensor_detail(
            self.session, sensor_id, api_key=self.api_key, base_url=self.base_url)
        reading = reading_from_sensor(sensor)
        logging.info(f"Calculated AQI {reading.aqi:.0f} from PM2.5 {reading.pm25} (sensor {sensor_id})")
        return reading


def reading_from_waqi(payload: Any) -> AirQualityReading:
    if not isinstance(payload, dict) or payload.get("status") != "ok":
        raise NoDataError(WAQI_PROVIDER, f"status {payload.get('status') if isinstance(payload, dict) else None!r}")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise NoDataError(WAQI_PROVIDER, "response has no data")
    # WAQI reports "-" when the nearest station has no index
    aqi = as_number(data.get("aqi"))
    if aqi is None or aqi < 0:
        raise NoDataError(WAQI_PROVIDER, f"no index in response ({data.get('aqi')!r})")

    iaqi = data.get("iaqi") if isinstance(data.get("iaqi"), dict) else {}

    def component(name: str) -> Optional[float]:
        entry = iaqi.get(name)
        value = as_number(entry.get("v")) if isinstance(entry, dict) else None
        return value if value is not None and value >= 0 else None

    return AirQualityReading(aqi=aqi, pm25=component("pm25"), pm10=component("pm10"), source=WAQI_PROVIDER)


async def fetch_waqi(session: aiohttp.ClientSession, center: Coordinate,
                     token: str = WAQI_TOKEN, base_url: str = WAQI_URL) -> AirQualityReading:
    """Secondary provider: community index keyed only by coordinate."""
    if not token:
        raise ConfigurationError("WAQI_TOKEN is not set")
    payload = await fetch_json(session, WAQI_PROVIDER, f"{base_url}/feed/geo:{center.lat};{center.lon}/",
                               params={"token": token})
    return reading_from_waqi(payload)


async def resolve_air_quality(resolver: AirQualityResolver, center: Coordinate,
                              preferred_sensor_id: Optional[int] = None,
                              waqi_token: str = WAQI_TOKEN, waqi_url: str = WAQI_URL) -> Optional[AirQualityReading]:
    """PurpleAir first, WAQI when the sensor network yields nothing. Never raises."""
    reading = await resolver.resolve(center, preferred_sensor_id)
    if reading is not None:
        return reading

    try:
        reading = await fetch_waqi(resolver.session, center, token=waqi_token, base_url=waqi_url)
        logging.info(f"Air quality updated via fallback API - AQI: {reading.aqi}, PM2.5: {reading.pm25}")
        return reading
    except ConfigurationError as e:
        logging.error(f"Fallback air quality request could not be built: {e}")
    except NoDataError as e:
        logging.warning(f"No air quality data from fallback: {e}")
    except ProviderError as e:
        logging.warning(f"All air quality services failed: {e}")
    except Exception as e:
        logging.error(f"Unexpected error from fallback air quality provider: {e!r}")
    return None
