#file: envhealth/aqi.py

import math
from typing import List, Tuple

# (conc_low, conc_high, index_low, index_high), PM2.5 in µg/m³, US EPA.
# Ranges share their end points so the table has no gaps; first match wins.
PM25_BREAKPOINTS: List[Tuple[float, float, float, float]] = [
    (0.0, 12.0, 0, 50),
    (12.0, 35.4, 50, 100),
    (35.4, 55.4, 100, 150),
    (55.4, 150.4, 150, 200),
    (150.4, 250.4, 200, 300),
    (250.4, 350.4, 300, 400),
    (350.4, 500.4, 400, 500),
]
MAX_INDEX = 500.0

AQI_CATEGORIES: List[Tuple[float, str]] = [
    (50, "Good"),
    (100, "Moderate"),
    (150, "Unhealthy for Sensitive Groups"),
    (200, "Unhealthy"),
    (300, "Very Unhealthy"),
]


def pm25_to_index(concentration: float) -> float:
    """Convert a PM2.5 concentration to the US EPA AQI by breakpoint interpolation.

    Concentrations above the table are clamped to 500.
    """
    if math.isnan(concentration) or concentration < 0:
        raise ValueError(f"PM2.5 concentration must be a non-negative number, got {concentration}")

    for conc_low, conc_high, index_low, index_high in PM25_BREAKPOINTS:
        if conc_low <= concentration <= conc_high:
            return index_low + (index_high - index_low) / (conc_high - conc_low) * (concentration - conc_low)
    return MAX_INDEX


def aqi_category(index: float) -> str:
    for upper, label in AQI_CATEGORIES:
        if index <= upper:
            return label
    return "Hazardous"
