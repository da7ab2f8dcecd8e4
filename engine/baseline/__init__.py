"""
Baseline learning: sample aggregation, per-bucket calculation and best-match resolution.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.baseline.compute import compute, day_of_week, hour_of_day, seasonal_filter
from engine.baseline.calculator import BaselineCalculator, BaselineRunReport
from engine.baseline.resolver import BaselineResolver

__all__ = [
    "compute", "day_of_week", "hour_of_day", "seasonal_filter",
    "BaselineCalculator", "BaselineRunReport", "BaselineResolver",
]
