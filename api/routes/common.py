"""
Shared helpers for API route modules: access to the wired anomaly service and
404 translation for lookups that come back empty.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Optional, TypeVar

from fastapi import HTTPException, status

from services.anomaly_service import AnomalyService, anomaly_service

_T = TypeVar("_T")


def get_service() -> AnomalyService:
    return anomaly_service


def require_found(value: Optional[_T], detail: str) -> _T:
    if value is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return value
