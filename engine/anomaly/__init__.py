"""
Anomaly detection: sigma scoring, co-deviation scan, root-cause hints and the detection pass.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.anomaly.scoring import DEFAULT_SEVERITY_TABLE, Score, SeverityTable, build_severity_table, classify, score
from engine.anomaly.correlation import find_correlated
from engine.anomaly.root_cause import RootCauseTable
from engine.anomaly.detector import AnomalyDetector

__all__ = [
    "DEFAULT_SEVERITY_TABLE", "Score", "SeverityTable", "build_severity_table", "classify", "score",
    "find_correlated", "RootCauseTable", "AnomalyDetector",
]
