#file: envhealth/models.py

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from envhealth.aqi import aqi_category
from envhealth.utils import ensure_aware, get_current_time


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees (WGS84)")
    lon: float = Field(..., ge=-180, le=180, description="Longitude in degrees (WGS84)")


class Sensor(BaseModel):
    """One PurpleAir station as returned by a bounding-box search."""

    sensor_index: int = Field(..., description="Provider-assigned sensor id")
    name: str = Field("", description="Display name chosen by the sensor owner")
    location_type: int = Field(0, description="0 = outdoor, 1 = indoor")
    lat: float = Field(..., description="Sensor latitude")
    lon: float = Field(..., description="Sensor longitude")
    altitude: Optional[int] = Field(None, description="Altitude in feet")
    last_seen: int = Field(..., description="Last report time, unix seconds")
    pm2_5: Optional[float] = Field(None, description="Instant PM2.5 (µg/m³)")
    pm2_5_10minute: Optional[float] = Field(None, description="10-minute average PM2.5 (µg/m³)")
    pm2_5_30minute: Optional[float] = Field(None, description="30-minute average PM2.5 (µg/m³)")
    pm2_5_60minute: Optional[float] = Field(None, description="60-minute average PM2.5 (µg/m³)")
    temperature: Optional[float] = Field(None, description="Sensor temperature (°F)")
    humidity: Optional[float] = Field(None, description="Relative humidity (%)")
    distance_km: Optional[float] = Field(None, description="Distance from the search center, set by locate")

    @property
    def is_outdoor(self) -> bool:
        return self.location_type == 0

    @property
    def display_name(self) -> str:
        return self.name or f"Sensor #{self.sensor_index}"


class AirQualityReading(BaseModel):
    aqi: float = Field(..., ge=0, description="US EPA AQI")
    pm25: Optional[float] = Field(None, ge=0, description="PM2.5 concentration (µg/m³)")
    pm10: Optional[float] = Field(None, ge=0, description="PM10 concentration (µg/m³)")
    source: str = Field(..., description="Provider that produced the reading")


class WeatherReading(BaseModel):
    temperature_c: Optional[float] = Field(None, description="Ambient temperature (°C)")
    condition: Optional[str] = Field(None, description="Condition description")
    source: str = Field(..., description="Provider that produced the reading")


class SnapshotStatus(str, Enum):
    BOTH_SUCCEEDED = "both_succeeded"
    PARTIAL = "partial"
    BOTH_FAILED = "both_failed"


class Snapshot(BaseModel):
    """Weather and air quality resolved for one coordinate at one point in time."""

    weather: Optional[WeatherReading] = None
    air: Optional[AirQualityReading] = None
    fetched_at: datetime = Field(default_factory=get_current_time)

    @computed_field
    @property
    def status(self) -> SnapshotStatus:
        if self.weather is not None and self.air is not None:
            return SnapshotStatus.BOTH_SUCCEEDED
        if self.weather is None and self.air is None:
            return SnapshotStatus.BOTH_FAILED
        return SnapshotStatus.PARTIAL

    def summary(self) -> str:
        if self.status == SnapshotStatus.BOTH_FAILED:
            return "Weather and air quality services unavailable. Please try again later."
        parts = []
        if self.weather is not None and self.weather.temperature_c is not None:
            parts.append(f"Weather: {self.weather.temperature_c:.1f}°C")
        elif self.weather is not None:
            parts.append(f"Weather: {self.weather.condition}")
        else:
            parts.append("Weather unavailable")
        if self.air is not None:
            pm25 = f", PM2.5: {self.air.pm25:.1f}" if self.air.pm25 is not None else ""
            parts.append(f"AQI: {int(self.air.aqi)} ({aqi_category(self.air.aqi)}){pm25}")
        else:
            parts.append("No air quality data available")
        return "Updated: " + ", ".join(parts)


class Symptom(str, Enum):
    SHORTNESS_OF_BREATH = "Shortness of Breath"
    CHEST_TIGHTNESS = "Chest Tightness"
    LIGHT_HEADED = "Light Headed"
    DIZZY = "Dizzy"
    HEADACHE = "Headache"
    CHEST_PAIN = "Chest Pain"
    OTHER = "Other"


class RecordInput(BaseModel):
    """Record payload as submitted by a client; the server assigns the id."""

    timestamp: datetime = Field(default_factory=get_current_time, description="Time of the reading")
    systolic: Optional[float] = Field(None, ge=0, description="Systolic pressure (mmHg)")
    diastolic: Optional[float] = Field(None, ge=0, description="Diastolic pressure (mmHg)")
    pulse: Optional[float] = Field(None, ge=0, description="Pulse (bpm)")
    spo2: Optional[float] = Field(None, ge=0, le=100, description="Oxygen saturation (%)")
    body_temperature: Optional[float] = Field(None, description="Body temperature (°C)")
    respiratory_rate: Optional[float] = Field(None, ge=0, description="Breaths per minute")
    hrv_sdnn: Optional[float] = Field(None, ge=0, description="Heart rate variability SDNN (ms)")
    resting_heart_rate: Optional[float] = Field(None, ge=0, description="Resting heart rate (bpm)")
    walking_heart_rate: Optional[float] = Field(None, ge=0, description="Walking heart rate average (bpm)")
    temperature_c: Optional[float] = Field(None, description="Weather temperature (°C)")
    conditions: Optional[str] = Field(None, description="Weather conditions")
    aqi: Optional[float] = Field(None, ge=0, description="US EPA AQI")
    pm25: Optional[float] = Field(None, ge=0, description="PM2.5 concentration (µg/m³)")
    pm10: Optional[float] = Field(None, ge=0, description="PM10 concentration (µg/m³)")
    note: str = Field("", description="Free-text note")
    symptoms: List[Symptom] = Field(default_factory=list, description="Reported symptoms")
    other_symptom: Optional[str] = Field(None, description="Free text for the Other symptom")
    lat: Optional[float] = Field(None, ge=-90, le=90, description="Latitude where the record was taken")
    lon: Optional[float] = Field(None, ge=-180, le=180, description="Longitude where the record was taken")

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @field_validator("symptoms")
    @classmethod
    def _unique_symptoms(cls, value: List[Symptom]) -> List[Symptom]:
        return list(dict.fromkeys(value))

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if self.lat is None or self.lon is None:
            return None
        return Coordinate(lat=self.lat, lon=self.lon)


class Record(RecordInput):
    id: UUID = Field(default_factory=uuid4, description="Opaque identity, never reused")

    @classmethod
    def create(cls, data: RecordInput) -> "Record":
        return cls(**data.model_dump(exclude={"id"}))

    def replaced_by(self, data: RecordInput) -> "Record":
        """A new record with `data`'s content and this record's identity.

        A timestamp left out of `data` keeps the stored one.
        """
        values = data.model_dump(exclude={"id"})
        if "timestamp" not in data.model_fields_set:
            values["timestamp"] = self.timestamp
        return Record(id=self.id, **values)


class HealthKind(str, Enum):
    SYSTOLIC = "systolic"
    DIASTOLIC = "diastolic"
    HEART_RATE = "heart_rate"
    SPO2 = "spo2"
    BODY_TEMPERATURE = "body_temperature"
    RESPIRATORY_RATE = "respiratory_rate"
    HRV = "hrv"
    RESTING_HEART_RATE = "resting_heart_rate"
    WALKING_HEART_RATE = "walking_heart_rate"


class HealthSample(BaseModel):
    kind: HealthKind
    timestamp: datetime
    value: float


class HealthDataPoint(BaseModel):
    """Samples of several kinds merged onto one minute."""

    timestamp: datetime
    systolic: Optional[float] = None
    diastolic: Optional[float] = None
    heart_rate: Optional[float] = None
    spo2: Optional[float] = None
    body_temperature: Optional[float] = None
    respiratory_rate: Optional[float] = None
    hrv: Optional[float] = None
    resting_heart_rate: Optional[float] = None
    walking_heart_rate: Optional[float] = None
