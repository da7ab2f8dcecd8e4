"""
Base interface for metric sample sources

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from engine.models import SampleStats


class SampleSource(ABC):
    """Historical and latest metric samples for monitored instances."""

    @abstractmethod
    async def get_samples(
        self,
        instance: str,
        metric: str,
        since_days: int,
        hour_filter: Optional[int] = None,
        day_filter: Optional[int] = None,
    ) -> Optional[SampleStats]: ...

    @abstractmethod
    async def get_latest_values(self, instance: str) -> Dict[str, float]: ...

    async def aclose(self) -> None:
        return None
