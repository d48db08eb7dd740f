# file: envhealth/completeness.py

from typing import List, Tuple

from envhealth.models import RecordInput

# Health metrics weigh more than environmental data; symptoms weigh most.
FIELD_WEIGHTS: List[Tuple[str, int]] = [
    ("systolic", 3),
    ("diastolic", 3),
    ("pulse", 3),
    ("spo2", 3),
    ("body_temperature", 2),
    ("respiratory_rate", 2),
    ("hrv_sdnn", 2),
    ("resting_heart_rate", 2),
    ("walking_heart_rate", 2),
    ("temperature_c", 2),
    ("conditions", 1),
    ("aqi", 2),
    ("pm25", 2),
    ("pm10", 1),
]
SYMPTOMS_WEIGHT = 4
NOTE_WEIGHT = 3
LOCATION_WEIGHT = 1


def score(record: RecordInput) -> int:
    """How much usable data a record carries."""
    total = sum(weight for field, weight in FIELD_WEIGHTS if getattr(record, field) is not None)
    if record.symptoms:
        total += SYMPTOMS_WEIGHT
    if record.note.strip():
        total += NOTE_WEIGHT
    if record.coordinate is not None:
        total += LOCATION_WEIGHT
    return total
