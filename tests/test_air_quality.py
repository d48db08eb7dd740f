import pytest

from envhealth import purpleair_api
from envhealth.air_quality import (AirQualityResolver, reading_from_sensor, reading_from_waqi,
                                   resolve_air_quality)
from envhealth.aqi import pm25_to_index
from envhealth.errors import NoDataError
from tests.conftest import CENTER, SEARCH_FIELDS, sensor_row


def test_ten_minute_average_preferred_over_instant():
    reading = reading_from_sensor({"pm2.5_10minute": 20.0, "pm2.5": 80.0, "pm10.0": 30.0})
    assert reading.pm25 == 20.0
    assert reading.aqi == pytest.approx(pm25_to_index(20.0))
    assert reading.pm10 == 30.0


def test_flat_then_nested_for_each_granularity():
    sensor = {"pm2.5": 80.0, "stats": {"pm2.5_10minute": 15.0, "pm2.5": 90.0}}
    assert reading_from_sensor(sensor).pm25 == 15.0

    sensor = {"stats": {"pm2.5": 9.0, "pm10.0_10minute": 11.0}}
    reading = reading_from_sensor(sensor)
    assert reading.pm25 == 9.0
    assert reading.pm10 == 11.0


def test_pm10_is_optional():
    assert reading_from_sensor({"pm2.5": 5.0}).pm10 is None


def test_missing_pm25_is_no_data():
    with pytest.raises(NoDataError):
        reading_from_sensor({"pm10.0": 12.0, "stats": {"pm10.0": 13.0}})
    with pytest.raises(NoDataError):
        reading_from_sensor({"pm2.5": None, "pm2.5_10minute": "n/a"})


def test_waqi_reading():
    reading = reading_from_waqi({"status": "ok", "data": {"aqi": 57, "iaqi": {"pm25": {"v": 57}, "pm10": {"v": 21}}}})
    assert (reading.aqi, reading.pm25, reading.pm10, reading.source) == (57.0, 57.0, 21.0, "WAQI")


def test_waqi_without_index_is_no_data():
    with pytest.raises(NoDataError):
        reading_from_waqi({"status": "ok", "data": {"aqi": "-", "iaqi": {}}})
    with pytest.raises(NoDataError):
        reading_from_waqi({"status": "error", "data": "Unknown station"})


def test_waqi_components_optional():
    reading = reading_from_waqi({"status": "ok", "data": {"aqi": 30}})
    assert reading.pm25 is None and reading.pm10 is None


@pytest.fixture
def resolver(session, provider_url):
    return AirQualityResolver(session, api_key="key", base_url=f"{provider_url}/purpleair")


async def test_nearest_sensor_used_without_preference(providers, resolver):
    providers.search = {"fields": SEARCH_FIELDS, "data": [
        sensor_row(2, 38.2, -122.4), sensor_row(1, 37.78, -122.42)]}
    providers.details = {1: {"sensor": {"pm2.5_10minute": 12.0}}, 2: {"sensor": {"pm2.5": 300.0}}}
    reading = await resolver.resolve(CENTER)
    assert reading.pm25 == 12.0
    assert reading.aqi == pytest.approx(50)
    assert providers.calls("detail")[0]["match"]["sensor_id"] == "1"


async def test_preferred_sensor_skips_search(providers, resolver):
    providers.details = {42: {"sensor": {"pm2.5": 35.4}}}
    reading = await resolver.resolve(CENTER, preferred_sensor_id=42)
    assert reading.aqi == pytest.approx(100)
    assert providers.calls("search") == []


async def test_no_sensors_in_range_gives_none(providers, resolver):
    assert await resolver.resolve(CENTER) is None
    assert providers.calls("detail") == []


async def test_failures_never_escape_resolver(providers, resolver, session):
    providers.search = 500
    assert await resolver.resolve(CENTER) is None
    assert await resolver.resolve(CENTER, preferred_sensor_id=404) is None
    keyless = AirQualityResolver(session, api_key=None, base_url="http://unused")
    assert await keyless.resolve(CENTER) is None


async def test_fallback_to_waqi_when_sensor_network_empty(providers, resolver, provider_url):
    providers.waqi = {"status": "ok", "data": {"aqi": 61, "iaqi": {"pm25": {"v": 61}}}}
    reading = await resolve_air_quality(resolver, CENTER, waqi_token="demo", waqi_url=f"{provider_url}/waqi")
    assert reading.source == "WAQI"
    assert reading.aqi == 61
    call = providers.calls("waqi")[0]
    assert call["query"]["token"] == "demo"
    assert call["match"]["geo"] == f"geo:{CENTER.lat};{CENTER.lon}"


async def test_fallback_not_called_when_primary_succeeds(providers, resolver, provider_url):
    providers.details = {3: {"sensor": {"pm2.5": 4.0}}}
    reading = await resolve_air_quality(resolver, CENTER, 3, waqi_url=f"{provider_url}/waqi")
    assert reading.source == "PurpleAir"
    assert providers.calls("waqi") == []


async def test_all_air_sources_failing_gives_none(providers, resolver, provider_url):
    providers.waqi = 502
    assert await resolve_air_quality(resolver, CENTER, waqi_url=f"{provider_url}/waqi") is None


async def test_object_row_in_search_does_not_fail_the_batch(providers, resolver):
    providers.search = {"fields": SEARCH_FIELDS, "data": [{"sensor_index": 9}, sensor_row(1, 37.78, -122.42)]}
    providers.details = {1: {"sensor": {"pm2.5": 12.0}}}
    reading = await resolver.resolve(CENTER)
    assert reading.aqi == pytest.approx(50)


async def test_nan_concentration_falls_back_to_waqi(providers, resolver, provider_url):
    providers.details = {7: {"sensor": {"pm2.5": float("nan"), "pm2.5_10minute": float("nan")}}}
    providers.waqi = {"status": "ok", "data": {"aqi": 61}}
    reading = await resolve_air_quality(resolver, CENTER, 7, waqi_url=f"{provider_url}/waqi")
    assert reading.source == "WAQI"
    assert len(providers.calls("waqi")) == 1


async def test_unexpected_error_still_reaches_waqi(providers, resolver, provider_url, monkeypatch):
    async def broken_detail(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(purpleair_api, "fetch_sensor_detail", broken_detail)
    providers.waqi = {"status": "ok", "data": {"aqi": 33}}
    assert await resolver.resolve(CENTER, preferred_sensor_id=1) is None
    reading = await resolve_air_quality(resolver, CENTER, 1, waqi_url=f"{provider_url}/waqi")
    assert reading.aqi == 33
