"""
Time buckets appended to index names.
"""

import math
from typing import Optional

# A bucket is kept for one full interval after it stops receiving records.
RETENTION_INTERVALS = 2


def bucketed_name(base: str, interval_sec: int, now: float) -> str:
    """Return ``base`` suffixed with the bucket containing ``now``."""
    if not interval_sec:
        return base
    return f"{base}-{math.floor(now / interval_sec)}"


def bucket_of(name: str) -> Optional[int]:
    head, sep, suffix = name.rpartition("-")
    if not sep or not head or not suffix.isdigit():
        return None
    return int(suffix)


def obsolescence_time(
    name: str, interval_sec: int, created: float
) -> Optional[float]:
    """
    Compute when a destination may be dropped from memory.

    Args:
        name: Effective index name, possibly bucket-suffixed
        interval_sec: Bucket width, 0 when bucketing is disabled
        created: Time the destination entry is created

    Returns:
        Epoch seconds after which the entry is obsolete, or None when it
        never expires
    """
    if not interval_sec:
        return None
    bucket = bucket_of(name)
    if bucket is None:
        return created + RETENTION_INTERVALS * interval_sec
    return float((bucket + RETENTION_INTERVALS) * interval_sec)
