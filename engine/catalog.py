"""
Catalog of monitored metrics. The catalog is plain data so callers (and tests) can
hand a reduced or extended list to any engine component.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from config import DEFAULT_MONITORED_METRICS


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    category: str
    description: str = ""


Catalog = Tuple[MetricDefinition, ...]


def build_catalog(entries: Iterable[object]) -> Catalog:
    """Build a catalog from dicts, pydantic models or existing definitions."""
    out = []
    seen = set()
    for entry in entries:
        if isinstance(entry, MetricDefinition):
            definition = entry
        elif isinstance(entry, dict):
            definition = MetricDefinition(
                name=str(entry["name"]),
                category=str(entry.get("category") or "system"),
                description=str(entry.get("description") or ""),
            )
        else:
            definition = MetricDefinition(
                name=str(getattr(entry, "name")),
                category=str(getattr(entry, "category", "system") or "system"),
                description=str(getattr(entry, "description", "") or ""),
            )
        if definition.name in seen:
            continue
        seen.add(definition.name)
        out.append(definition)
    return tuple(out)


DEFAULT_CATALOG: Catalog = build_catalog(DEFAULT_MONITORED_METRICS)

