"""
Deviation scoring: sigma against a baseline, severity from an ordered threshold table, and direction.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from config import SEVERITY_THRESHOLDS
from engine.enums import Direction, Severity
from engine.models import MetricBaseline

SeverityTable = Tuple[Tuple[float, Severity], ...]


def build_severity_table(pairs: Iterable[Tuple[float, Union[str, Severity]]]) -> SeverityTable:
    table = []
    for threshold, sev in pairs:
        severity = sev if isinstance(sev, Severity) else Severity(str(sev).upper())
        table.append((float(threshold), severity))
    if not table:
        raise ValueError("severity table must not be empty")
    return tuple(sorted(table, key=lambda pair: pair[0], reverse=True))


DEFAULT_SEVERITY_TABLE: SeverityTable = build_severity_table(SEVERITY_THRESHOLDS)


def anomaly_threshold(table: SeverityTable = DEFAULT_SEVERITY_TABLE) -> float:
    """Smallest |sigma| that counts as anomalous."""
    return table[-1][0]


def classify(sigma: float, table: SeverityTable = DEFAULT_SEVERITY_TABLE) -> Optional[Severity]:
    magnitude = abs(sigma)
    for threshold, severity in table:
        if magnitude >= threshold:
            return severity
    return None


def sigma(value: float, baseline: MetricBaseline) -> Optional[float]:
    # a flat baseline cannot produce a meaningful z-score
    if baseline.stddev == 0:
        return None
    return (value - baseline.mean) / baseline.stddev


def percent_change(value: float, mean: float) -> float:
    if mean == 0:
        return 0.0
    return (value - mean) / mean * 100.0


@dataclass(frozen=True)
class Score:
    sigma: float
    severity: Severity
    direction: Direction


def score(
    value: float,
    baseline: MetricBaseline,
    table: SeverityTable = DEFAULT_SEVERITY_TABLE,
) -> Optional[Score]:
    """Score ``value`` against ``baseline``; None when it is not anomalous."""
    s = sigma(value, baseline)
    if s is None:
        return None
    severity = classify(s, table)
    if severity is None:
        return None
    return Score(sigma=s, severity=severity, direction=Direction.from_sigma(s))
