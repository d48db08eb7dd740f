# file: envhealth/main.py

import logging
from contextlib import asynccontextmanager
from typing import List, Optional
from uuid import UUID

import aiohttp
import uvicorn
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from envhealth import purpleair_api
from envhealth.aggregation import aggregate
from envhealth.config import RECORDS_FILE, SENSOR_SEARCH_RADIUS_DEG
from envhealth.errors import ConfigurationError, ProviderError, StorageError
from envhealth.export import records_to_csv
from envhealth.http_client import create_session
from envhealth.models import Coordinate, Record, RecordInput, Sensor, Snapshot, SnapshotStatus
from envhealth.record_log import RecordLog
from envhealth.snapshot import SnapshotBuilder, record_from_snapshot

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


class SnapshotResponse(BaseModel):
    snapshot: Snapshot
    message: str
    actionable_error: bool


class SnapshotRecordResponse(SnapshotResponse):
    record: Record


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared HTTP session and load the record log on startup."""
    session = create_session()
    record_log = RecordLog(RECORDS_FILE)
    try:
        record_log.load()
    except StorageError as e:
        logging.error(f"Starting with an empty record log: {e}")
    app.state.session = session
    app.state.record_log = record_log
    app.state.snapshot_builder = SnapshotBuilder.from_session(session)
    yield
    await session.close()


app = FastAPI(
    title="ENVHealth",
    description="Health log enriched with weather and air quality from PurpleAir, WAQI, OpenWeatherMap and Open-Meteo.",
    version="0.1",
    lifespan=lifespan
)


def get_session(request: Request) -> aiohttp.ClientSession:
    return request.app.state.session


def get_record_log(request: Request) -> RecordLog:
    return request.app.state.record_log


def get_snapshot_builder(request: Request) -> SnapshotBuilder:
    return request.app.state.snapshot_builder


def _coordinate(lat: float, lon: float) -> Coordinate:
    try:
        return Coordinate(lat=lat, lon=lon)
    except ValueError:
        raise HTTPException(status_code=422, detail="Invalid coordinate")


def _snapshot_response(snapshot: Snapshot) -> dict:
    return {
        "snapshot": snapshot,
        "message": snapshot.summary(),
        "actionable_error": snapshot.status == SnapshotStatus.BOTH_FAILED,
    }


@app.get("/sensors", response_model=List[Sensor])
async def sensors(
    lat: float = Query(..., description="Latitude of the search center"),
    lon: float = Query(..., description="Longitude of the search center"),
    radius: float = Query(SENSOR_SEARCH_RADIUS_DEG, gt=0, le=5, description="Half-width of the search box in degrees"),
    session: aiohttp.ClientSession = Depends(get_session),
):
    """Recent outdoor PurpleAir sensors around a coordinate, nearest first."""
    try:
        return await purpleair_api.locate(session, _coordinate(lat, lon), radius_deg=radius)
    except ConfigurationError as e:
        logging.error(f"Sensor search could not be built: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    except ProviderError as e:
        logging.warning(f"Sensor search failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/snapshot", response_model=SnapshotResponse)
async def snapshot(
    lat: float = Query(..., description="Latitude"),
    lon: float = Query(..., description="Longitude"),
    sensor_id: Optional[int] = Query(None, description="Preferred PurpleAir sensor; nearest when omitted"),
    builder: SnapshotBuilder = Depends(get_snapshot_builder),
):
    """Current weather and air quality for a coordinate."""
    result = await builder.build(_coordinate(lat, lon), sensor_id)
    return _snapshot_response(result)


@app.get("/records", response_model=List[Record])
async def list_records(record_log: RecordLog = Depends(get_record_log)):
    return record_log.snapshot()


@app.post("/records", response_model=Record)
async def add_record(data: RecordInput, record_log: RecordLog = Depends(get_record_log)):
    """Append a record; the server assigns its id."""
    try:
        return record_log.append(Record.create(data))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/records/from_snapshot", response_model=SnapshotRecordResponse)
async def add_record_from_snapshot(
    lat: float = Query(..., description="Latitude"),
    lon: float = Query(..., description="Longitude"),
    sensor_id: Optional[int] = Query(None, description="Preferred PurpleAir sensor"),
    data: Optional[RecordInput] = Body(None),
    builder: SnapshotBuilder = Depends(get_snapshot_builder),
    record_log: RecordLog = Depends(get_record_log),
):
    """Fetch a snapshot and log it together with the submitted on-device metrics."""
    center = _coordinate(lat, lon)
    result = await builder.build(center, sensor_id)
    record = record_from_snapshot(result, center, data)
    try:
        record_log.append(record)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {**_snapshot_response(result), "record": record}


@app.put("/records/{record_id}", response_model=Record)
async def edit_record(record_id: UUID, data: RecordInput, record_log: RecordLog = Depends(get_record_log)):
    try:
        return record_log.replace(record_log.get(record_id).replaced_by(data))
    except KeyError:
        raise HTTPException(status_code=404, detail="Record not found")
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/records/{record_id}", response_model=Record)
async def delete_record(record_id: UUID, record_log: RecordLog = Depends(get_record_log)):
    try:
        return record_log.remove(record_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Record not found")
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/records/hourly", response_model=List[Record])
async def hourly_records(record_log: RecordLog = Depends(get_record_log)):
    """One record per hour: the most complete one."""
    return aggregate(record_log.snapshot())


@app.get("/export.csv", response_class=PlainTextResponse)
async def export_csv(
    hourly: bool = Query(True, description="Keep only the most complete record per hour"),
    days: Optional[int] = Query(None, gt=0, description="Only export the last N days"),
    columns: Optional[List[str]] = Query(None, description="Column groups to include, e.g. systolic, aqi, note, location"),
    record_log: RecordLog = Depends(get_record_log),
):
    try:
        csv_text = records_to_csv(record_log.snapshot(), hourly=hourly, days=days, columns=columns)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PlainTextResponse(csv_text, media_type="text/csv")


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
