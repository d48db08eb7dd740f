import time

import pytest

from envhealth import purpleair_api
from envhealth.errors import ConfigurationError, ProviderError
from envhealth.purpleair_api import Cell, CellKind, parse_sensor_rows
from tests.conftest import CENTER, SEARCH_FIELDS, sensor_row


def payload(*rows, fields=SEARCH_FIELDS):
    return {"fields": fields, "data": list(rows)}


def test_cell_decoding_is_tagged():
    assert Cell.decode(3) == Cell(CellKind.INT, 3)
    assert Cell.decode(3.5) == Cell(CellKind.FLOAT, 3.5)
    assert Cell.decode("x") == Cell(CellKind.STRING, "x")
    assert Cell.decode(None) == Cell(CellKind.NULL, None)
    assert Cell.decode(7).as_float() == 7.0
    assert Cell.decode(7.9).as_int() == 7
    with pytest.raises(ValueError):
        Cell.decode("7").as_float()
    with pytest.raises(ValueError):
        Cell.decode(True)


def test_all_stale_sensors_give_empty_list():
    rows = [sensor_row(1, 37.78, -122.42, age=3700), sensor_row(2, 37.70, -122.40, age=7200)]
    assert parse_sensor_rows(payload(*rows), CENTER) == []


def test_only_recent_outdoor_sensors_sorted_by_distance():
    rows = [
        sensor_row(10, 38.2, -122.4),               # ~47 km
        sensor_row(11, 37.78, -122.42, location_type=1),
        sensor_row(12, 37.78, -122.42),             # <1 km
        sensor_row(13, 37.9, -122.3, age=4000),
        sensor_row(14, 37.5, -122.2),               # ~36 km
    ]
    sensors = parse_sensor_rows(payload(*rows), CENTER)
    assert [s.sensor_index for s in sensors] == [12, 14, 10]
    distances = [s.distance_km for s in sensors]
    assert distances == sorted(distances)
    assert distances[0] < 1


def test_equal_distances_break_ties_by_sensor_index():
    rows = [sensor_row(30, 37.8, -122.4), sensor_row(20, 37.8, -122.4)]
    assert [s.sensor_index for s in parse_sensor_rows(payload(*rows), CENTER)] == [20, 30]


def test_malformed_rows_are_skipped():
    good = sensor_row(1, 37.78, -122.42, name="Mission")
    wrong_type = sensor_row(2, 37.78, -122.42)
    wrong_type[3] = "37.78"
    null_required = sensor_row(3, 37.78, -122.42)
    null_required[0] = None
    short = [4, "short"]
    sensors = parse_sensor_rows(payload(good, wrong_type, null_required, short), CENTER)
    assert [s.sensor_index for s in sensors] == [1]
    assert sensors[0].display_name == "Mission"


def test_mixed_cell_types_are_converted():
    row = sensor_row(5, 37.78, -122.42)
    row[2] = None          # location_type missing -> outdoor
    row[5] = 12.0          # altitude as float
    row[7] = 8             # pm2.5 as int
    row[1] = None
    sensor = parse_sensor_rows(payload(row), CENTER)[0]
    assert sensor.is_outdoor
    assert sensor.altitude == 12
    assert sensor.pm2_5 == 8.0
    assert sensor.display_name == "Sensor #5"


def test_columns_follow_field_list_order():
    fields = ["latitude", "sensor_index", "longitude", "last_seen"]
    row = [37.78, 99, -122.42, int(time.time())]
    sensors = parse_sensor_rows({"fields": fields, "data": [row]}, CENTER)
    assert sensors[0].sensor_index == 99
    assert sensors[0].pm2_5 is None


def test_missing_required_column_is_a_provider_error():
    with pytest.raises(ProviderError):
        parse_sensor_rows({"fields": ["sensor_index", "latitude"], "data": []}, CENTER)


async def test_locate_queries_bounding_box(providers, provider_url, session):
    providers.search = payload(sensor_row(7, 37.78, -122.42))
    sensors = await purpleair_api.locate(session, CENTER, radius_deg=0.9, api_key="key",
                                         base_url=f"{provider_url}/purpleair")
    assert [s.sensor_index for s in sensors] == [7]
    call = providers.calls("search")[0]
    assert call["headers"]["X-API-Key"] == "key"
    assert float(call["query"]["nwlat"]) == pytest.approx(CENTER.lat + 0.9)
    assert float(call["query"]["selng"]) == pytest.approx(CENTER.lon + 0.9)
    assert call["query"]["location_type"] == "0"
    assert "pm2.5_10minute" in call["query"]["fields"].split(",")


async def test_locate_http_error_is_provider_error(providers, provider_url, session):
    providers.search = 403
    with pytest.raises(ProviderError):
        await purpleair_api.locate(session, CENTER, api_key="key", base_url=f"{provider_url}/purpleair")


async def test_locate_without_key_is_configuration_error(session):
    with pytest.raises(ConfigurationError):
        await purpleair_api.locate(session, CENTER, api_key=None, base_url="http://unused")


def test_object_rows_and_non_finite_cells_are_skipped():
    good = sensor_row(1, 37.78, -122.42)
    nan_lat = sensor_row(2, 37.78, -122.42)
    nan_lat[3] = float("nan")
    infinite_index = sensor_row(3, 37.78, -122.42)
    infinite_index[0] = float("inf")
    sensors = parse_sensor_rows(payload({"sensor_index": 4}, nan_lat, infinite_index, good), CENTER)
    assert [s.sensor_index for s in sensors] == [1]
