"""
Request models for API endpoints.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class SampleIngestRequest(BaseModel):
    instance: str = Field(min_length=1)
    values: Dict[str, float] = Field(min_length=1)
    sampled_at: Optional[datetime] = None


class CalculateBaselinesRequest(BaseModel):
    instance: str = Field(min_length=1)
    training_days: Optional[int] = Field(default=None, ge=1, le=365)


class ResolveRequest(BaseModel):
    instance: str = Field(min_length=1)
    notes: Optional[str] = Field(default=None, max_length=4000)
