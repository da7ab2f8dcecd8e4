"""
Enumerations for Severity, Anomaly Types, Directions, States and Baseline Categories

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from config import SEVERITY_RANKS


def _lookup(cls: Any, raw: Any) -> Optional[Any]:
    if isinstance(raw, cls):
        return raw
    if raw is None:
        return None
    text = str(raw).strip()
    for candidate in (text, text.upper(), text.lower()):
        if candidate in cls._value2member_map_:
            return cls(candidate)
    return None


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def parse(cls, raw: Any) -> Severity:
        # rows written by older versions may carry anything; never raise here
        return _lookup(cls, raw) or cls.LOW

    def rank(self) -> int:
        return SEVERITY_RANKS[self.value]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class AnomalyType(str, Enum):
    # only spikes are detected today; a level-shift type needs its own detection logic
    SPIKE = "SPIKE"

    @classmethod
    def parse(cls, raw: Any) -> AnomalyType:
        return _lookup(cls, raw) or cls.SPIKE


class Direction(str, Enum):
    ABOVE = "ABOVE"
    BELOW = "BELOW"

    @classmethod
    def parse(cls, raw: Any) -> Direction:
        return _lookup(cls, raw) or cls.ABOVE

    @classmethod
    def from_sigma(cls, sigma: float) -> Direction:
        return cls.ABOVE if sigma > 0 else cls.BELOW

    @property
    def display_name(self) -> str:
        return "Above Baseline" if self is Direction.ABOVE else "Below Baseline"


class AnomalyState(str, Enum):
    DETECTED = "DETECTED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"
