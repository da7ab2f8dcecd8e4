"""
Compute logic for aggregating historical metric samples into baseline statistics (mean, sample standard deviation, min/max, median and tail percentiles), with hour-of-day and day-of-week filters for seasonal buckets.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np

from engine.models import SampleStats


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def hour_of_day(ts: datetime) -> int:
    return _utc(ts).hour


def day_of_week(ts: datetime) -> int:
    # 0 = Sunday, matching PostgreSQL EXTRACT(DOW)
    return (_utc(ts).weekday() + 1) % 7


def seasonal_filter(
    ts: Sequence[datetime],
    vals: Sequence[float],
    hour: Optional[int] = None,
    day: Optional[int] = None,
) -> tuple[List[datetime], List[float]]:
    out_ts: List[datetime] = []
    out_vals: List[float] = []
    for t, v in zip(ts, vals):
        if hour is not None and hour_of_day(t) != hour:
            continue
        if day is not None and day_of_week(t) != day:
            continue
        out_ts.append(t)
        out_vals.append(v)
    return out_ts, out_vals


def compute(ts: Sequence[datetime], vals: Sequence[float]) -> Optional[SampleStats]:
    arr_raw = np.array(vals, dtype=float)
    finite = np.isfinite(arr_raw)
    arr = arr_raw[finite]
    n = int(arr.size)
    if n == 0:
        return None

    kept_ts = [t for t, ok in zip(ts, finite) if ok]
    std = float(np.std(arr, ddof=1)) if n > 1 else 0.0
    # np.percentile's default linear interpolation matches PERCENTILE_CONT
    median, p95, p99 = (float(p) for p in np.percentile(arr, [50.0, 95.0, 99.0]))

    return SampleStats(
        mean=float(np.mean(arr)),
        stddev=std,
        min=float(np.min(arr)),
        max=float(np.max(arr)),
        median=median,
        p95=p95,
        p99=p99,
        count=n,
        period_start=min(kept_ts) if kept_ts else None,
        period_end=max(kept_ts) if kept_ts else None,
    )
