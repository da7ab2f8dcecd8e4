"""
Co-occurrence scan: other catalog metrics that deviate from their own baselines at the same moment. This is simultaneous-deviation reporting, not causal attribution.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Awaitable, Callable, List, Mapping, Optional

from engine.anomaly.scoring import DEFAULT_SEVERITY_TABLE, SeverityTable, anomaly_threshold, percent_change, sigma
from engine.catalog import Catalog
from engine.enums import Direction
from engine.models import CorrelatedMetric, MetricBaseline

BaselineLookup = Callable[[str], Awaitable[Optional[MetricBaseline]]]


async def find_correlated(
    current_values: Mapping[str, float],
    catalog: Catalog,
    exclude: str,
    lookup: BaselineLookup,
    table: SeverityTable = DEFAULT_SEVERITY_TABLE,
) -> List[CorrelatedMetric]:
    threshold = anomaly_threshold(table)
    correlated: List[CorrelatedMetric] = []

    for metric in catalog:
        if metric.name == exclude:
            continue
        value = current_values.get(metric.name)
        if value is None:
            continue
        baseline = await lookup(metric.name)
        if baseline is None:
            continue
        s = sigma(value, baseline)
        if s is None or abs(s) < threshold:
            continue
        correlated.append(CorrelatedMetric(
            metric_name=metric.name,
            percent_change=percent_change(value, baseline.mean),
            direction=Direction.from_sigma(s),
        ))

    return correlated
