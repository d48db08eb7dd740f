# file: envhealth/aggregation.py

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pytz

from envhealth.completeness import score
from envhealth.config import HOUR_BUCKET_TIMEZONE
from envhealth.models import Record
from envhealth.utils import get_timezone, truncate_to_hour


def _most_complete(bucket: List[Record]) -> Record:
    if len(bucket) == 1:
        return bucket[0]
    # ties go to the latest record, then to the greatest id
    return max(bucket, key=lambda record: (score(record), record.timestamp, str(record.id)))


def aggregate(records: Iterable[Record], tz: Optional[pytz.BaseTzInfo] = None) -> List[Record]:
    """Keep the most complete record of every calendar hour, oldest hour first.

    Hours are computed in `tz` (HOUR_BUCKET_TIMEZONE by default). The result
    depends only on the multiset of input records, not on their order.
    """
    tz = tz or get_timezone(HOUR_BUCKET_TIMEZONE)
    buckets: Dict[datetime, List[Record]] = defaultdict(list)
    for record in records:
        buckets[truncate_to_hour(record.timestamp, tz)].append(record)

    selected = [_most_complete(bucket) for bucket in buckets.values()]
    return sorted(selected, key=lambda record: (record.timestamp, str(record.id)))
