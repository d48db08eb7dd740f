from envhealth.completeness import score
from envhealth.models import Record, Symptom


def test_empty_record_scores_zero():
    assert score(Record()) == 0


def test_vitals_and_symptoms():
    record = Record(systolic=120, diastolic=80, pulse=70, spo2=98,
                    symptoms=[Symptom.HEADACHE, Symptom.DIZZY])
    assert score(record) == 16


def test_blank_note_does_not_count():
    assert score(Record(note="   \n")) == 0
    assert score(Record(note=" slept badly ")) == 3


def test_location_needs_both_coordinates():
    assert score(Record(lat=37.7)) == 0
    assert score(Record(lat=37.7, lon=-122.4)) == 1


def test_every_field_present():
    record = Record(
        systolic=120, diastolic=80, pulse=70, spo2=98, body_temperature=36.8,
        respiratory_rate=14, hrv_sdnn=45, resting_heart_rate=60, walking_heart_rate=95,
        temperature_c=18.5, conditions="Fog", aqi=42, pm25=10.1, pm10=14.0,
        symptoms=[Symptom.OTHER], other_symptom="itchy eyes", note="after run",
        lat=37.7, lon=-122.4,
    )
    assert score(record) == 3 * 4 + 2 * 5 + 2 + 1 + 2 + 2 + 1 + 4 + 3 + 1


def test_zero_values_still_count_as_present():
    assert score(Record(aqi=0, pm25=0.0)) == 4
