# file: envhealth/snapshot.py

import asyncio
import logging
from typing import Optional

import aiohttp

from envhealth.air_quality import AirQualityResolver, resolve_air_quality
from envhealth.config import WAQI_TOKEN, WAQI_URL
from envhealth.models import Coordinate, Record, RecordInput, Snapshot, SnapshotStatus
from envhealth.weather import WeatherResolver


class SnapshotBuilder:
    """Resolves weather and air quality for one coordinate concurrently."""

    def __init__(self, weather: WeatherResolver, air: AirQualityResolver,
                 waqi_token: str = WAQI_TOKEN, waqi_url: str = WAQI_URL):
        self.weather = weather
        self.air = air
        self.waqi_token = waqi_token
        self.waqi_url = waqi_url

    @classmethod
    def from_session(cls, session: aiohttp.ClientSession) -> "SnapshotBuilder":
        return cls(WeatherResolver(session), AirQualityResolver(session))

    async def build(self, center: Coordinate, preferred_sensor_id: Optional[int] = None) -> Snapshot:
        # return_exceptions keeps one branch's failure from cancelling the other
        weather, air = await asyncio.gather(
            self.weather.resolve(center),
            resolve_air_quality(self.air, center, preferred_sensor_id,
                                waqi_token=self.waqi_token, waqi_url=self.waqi_url),
            return_exceptions=True,
        )
        if isinstance(weather, BaseException):
            logging.error(f"Unexpected weather failure: {weather!r}")
            weather = None
        if isinstance(air, BaseException):
            logging.error(f"Unexpected air quality failure: {air!r}")
            air = None

        snapshot = Snapshot(weather=weather, air=air)
        if snapshot.status == SnapshotStatus.BOTH_FAILED:
            logging.error(f"No environmental data for ({center.lat}, {center.lon})")
        else:
            logging.info(f"Snapshot {snapshot.status.value}: {snapshot.summary()}")
        return snapshot


def record_from_snapshot(snapshot: Snapshot, center: Optional[Coordinate],
                         data: Optional[RecordInput] = None) -> Record:
    """Combine on-device metrics with a resolved snapshot into a new record."""
    data = data or RecordInput()
    values = data.model_dump()
    if snapshot.weather is not None:
        values["temperature_c"] = snapshot.weather.temperature_c
        values["conditions"] = snapshot.weather.condition
    if snapshot.air is not None:
        values["aqi"] = snapshot.air.aqi
        values["pm25"] = snapshot.air.pm25
        values["pm10"] = snapshot.air.pm10
    if center is not None:
        values["lat"] = center.lat
        values["lon"] = center.lon
    return Record(**values)
