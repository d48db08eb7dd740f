# file: envhealth/export.py

from typing import Dict, Iterable, List, Optional

import pandas as pd

from envhealth.aggregation import aggregate
from envhealth.models import Record, Symptom
from envhealth.utils import days_ago

CSV_COLUMNS = [
    ("Systolic (mmHg)", "systolic"),
    ("Diastolic (mmHg)", "diastolic"),
    ("Pulse (bpm)", "pulse"),
    ("SpO2 (%)", "spo2"),
    ("Body Temp (°C)", "body_temperature"),
    ("Respiratory Rate (bpm)", "respiratory_rate"),
    ("HRV SDNN (ms)", "hrv_sdnn"),
    ("Resting HR (bpm)", "resting_heart_rate"),
    ("Walking HR (bpm)", "walking_heart_rate"),
    ("Weather Temp (°C)", "temperature_c"),
    ("Weather Conditions", "conditions"),
    ("AQI", "aqi"),
    ("PM2.5 (µg/m³)", "pm25"),
    ("PM10 (µg/m³)", "pm10"),
]
HEADERS = ["Date", "Time"] + [header for header, _ in CSV_COLUMNS] + ["Notes", "Symptoms", "Latitude", "Longitude"]

# Groups a client can pick for a custom export; Date and Time are always written.
OPTIONAL_COLUMNS: Dict[str, List[str]] = {field: [header] for header, field in CSV_COLUMNS}
OPTIONAL_COLUMNS.update({
    "note": ["Notes"],
    "symptoms": ["Symptoms"],
    "location": ["Latitude", "Longitude"],
})


def select_headers(columns: Optional[Iterable[str]] = None) -> List[str]:
    """Headers for the chosen column groups, in the standard order."""
    if columns is None:
        return HEADERS
    chosen = set(columns)
    unknown = chosen - OPTIONAL_COLUMNS.keys()
    if unknown:
        raise ValueError(f"Unknown export columns: {', '.join(sorted(unknown))}")
    wanted = {header for name in chosen for header in OPTIONAL_COLUMNS[name]}
    return [header for header in HEADERS if header in ("Date", "Time") or header in wanted]


def _symptoms_text(record: Record) -> str:
    labels = []
    for symptom in record.symptoms:
        if symptom == Symptom.OTHER and record.other_symptom:
            labels.append(f"Other: {record.other_symptom}")
        else:
            labels.append(symptom.value)
    return "; ".join(labels)


def records_to_frame(records: Iterable[Record]) -> pd.DataFrame:
    rows = []
    for record in records:
        row = {"Date": record.timestamp.date().isoformat(), "Time": record.timestamp.strftime("%H:%M:%S")}
        row.update({header: getattr(record, field) for header, field in CSV_COLUMNS})
        row.update({
            "Notes": record.note.replace("\n", " "),
            "Symptoms": _symptoms_text(record),
            "Latitude": record.lat,
            "Longitude": record.lon,
        })
        rows.append(row)
    return pd.DataFrame(rows, columns=HEADERS)


def records_to_csv(records: List[Record], hourly: bool = True, days: Optional[int] = None,
                   columns: Optional[Iterable[str]] = None) -> str:
    """CSV of the log, optionally limited to the last `days` and reduced to one record per hour.

    `columns` names the groups of OPTIONAL_COLUMNS to write; all of them when omitted.
    """
    headers = select_headers(columns)
    if days is not None:
        since = days_ago(days)
        records = [record for record in records if record.timestamp >= since]
    if hourly:
        records = aggregate(records)
    else:
        records = sorted(records, key=lambda record: (record.timestamp, str(record.id)))
    return records_to_frame(records)[headers].to_csv(index=False)
