# file: envhealth/history.py

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Mapping

from envhealth.config import HISTORY_FETCH_TIMEOUT_SECONDS
from envhealth.models import HealthDataPoint, HealthKind, HealthSample
from envhealth.utils import truncate_to_minute

SampleFetcher = Callable[[], Awaitable[List[HealthSample]]]


async def _fetch_kind(kind: HealthKind, fetcher: SampleFetcher, timeout: float) -> List[HealthSample]:
    try:
        return await asyncio.wait_for(fetcher(), timeout=timeout)
    except asyncio.TimeoutError:
        logging.warning(f"Timed out fetching {kind.value} after {timeout}s, skipping it")
    except Exception as e:
        logging.error(f"Error fetching {kind.value}: {e}")
    return []


def merge_samples(samples: List[HealthSample]) -> List[HealthDataPoint]:
    """Fold samples of every kind into one point per minute, oldest first."""
    points: Dict[datetime, HealthDataPoint] = {}
    for sample in samples:
        minute = truncate_to_minute(sample.timestamp)
        point = points.setdefault(minute, HealthDataPoint(timestamp=minute))
        setattr(point, sample.kind.value, sample.value)
    return [points[minute] for minute in sorted(points)]


async def fetch_history(fetchers: Mapping[HealthKind, SampleFetcher],
                        timeout: float = HISTORY_FETCH_TIMEOUT_SECONDS) -> List[HealthDataPoint]:
    """Run one fetcher per data type concurrently, each under its own timeout.

    A type that times out or fails is dropped; the others are still merged.
    """
    kinds = list(fetchers)
    results = await asyncio.gather(*(_fetch_kind(kind, fetchers[kind], timeout) for kind in kinds))
    samples = []
    for kind, kind_samples in zip(kinds, results):
        logging.info(f"Fetched {len(kind_samples)} {kind.value} samples")
        samples.extend(kind_samples)
    return merge_samples(samples)
