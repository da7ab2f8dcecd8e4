"""
Root-cause hints keyed by (metric, direction). The table is data handed to the detector, so new metrics get hints without code changes.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple, Union

from config import DEFAULT_ROOT_CAUSE_TEMPLATE, ROOT_CAUSE_HINTS
from engine.enums import Direction


class RootCauseTable:
    def __init__(
        self,
        hints: Optional[Mapping[Tuple[str, Union[str, Direction]], str]] = None,
        default_template: str = DEFAULT_ROOT_CAUSE_TEMPLATE,
    ) -> None:
        self._hints: Dict[Tuple[str, Direction], str] = {}
        self._default_template = default_template
        for (metric, direction), text in (ROOT_CAUSE_HINTS if hints is None else hints).items():
            self._hints[(metric, Direction(direction))] = text

    def suggest(self, metric_name: str, direction: Union[str, Direction]) -> str:
        hint = self._hints.get((metric_name, Direction(direction)))
        if hint is not None:
            return hint
        return self._default_template.format(metric=metric_name)

