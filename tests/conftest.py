# file: tests/conftest.py

import time
from datetime import datetime, timezone

import aiohttp
import pytest
from aiohttp import web

from envhealth.models import Coordinate, Record

CENTER = Coordinate(lat=37.7749, lon=-122.4194)

SEARCH_FIELDS = [
    "sensor_index", "name", "location_type", "latitude", "longitude", "altitude", "last_seen",
    "pm2.5", "pm2.5_10minute", "pm2.5_30minute", "pm2.5_60minute", "temperature", "humidity",
]


def sensor_row(sensor_index, lat, lon, location_type=0, age=60, name="", pm25=10.0):
    """One search-result row in the column order of SEARCH_FIELDS."""
    return [sensor_index, name, location_type, lat, lon, 52, int(time.time()) - age,
            pm25, pm25, pm25, pm25, 71, 40]


def at(hour, minute=0, day=1):
    return datetime(2025, 3, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    def _make(timestamp=None, **fields):
        return Record(timestamp=timestamp or at(9), **fields)
    return _make


class FakeProviders:
    """Canned responses for every upstream API, served by one aiohttp app.

    A response set to an int is returned as that HTTP error status.
    """

    def __init__(self):
        self.search = {"fields": SEARCH_FIELDS, "data": []}
        self.details = {}
        self.waqi = {"status": "error", "data": "Unknown station"}
        self.openweather = 401
        self.open_meteo = 500
        self.requests = []

    def _log(self, kind, request):
        self.requests.append((kind, {
            "query": dict(request.query),
            "headers": request.headers.copy(),
            "match": dict(request.match_info),
        }))

    def _respond(self, body):
        if isinstance(body, int):
            return web.json_response({"error": "fake failure"}, status=body)
        return web.json_response(body)

    async def handle_search(self, request):
        self._log("search", request)
        return self._respond(self.search)

    async def handle_detail(self, request):
        self._log("detail", request)
        sensor_id = int(request.match_info["sensor_id"])
        return self._respond(self.details.get(sensor_id, 404))

    async def handle_waqi(self, request):
        self._log("waqi", request)
        return self._respond(self.waqi)

    async def handle_openweather(self, request):
        self._log("openweather", request)
        return self._respond(self.openweather)

    async def handle_open_meteo(self, request):
        self._log("open_meteo", request)
        return self._respond(self.open_meteo)

    def calls(self, kind):
        return [request for name, request in self.requests if name == kind]

    def app(self):
        app = web.Application()
        app.router.add_get("/purpleair/sensors", self.handle_search)
        app.router.add_get("/purpleair/sensors/{sensor_id}", self.handle_detail)
        app.router.add_get("/waqi/feed/{geo}/", self.handle_waqi)
        app.router.add_get("/owm/weather", self.handle_openweather)
        app.router.add_get("/meteo/forecast", self.handle_open_meteo)
        return app


@pytest.fixture
def providers():
    return FakeProviders()


@pytest.fixture
async def provider_url(aiohttp_server, providers):
    server = await aiohttp_server(providers.app())
    return f"http://{server.host}:{server.port}"


@pytest.fixture
async def session():
    async with aiohttp.ClientSession() as client_session:
        yield client_session
