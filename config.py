"""
Constants and configuration for pgbaseline.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings


DATABASE_URL: str = os.getenv("PGBASELINE_DATABASE_URL", "sqlite:///./pgbaseline.db")
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# a seasonal bucket below this many samples is never acted on
MIN_SAMPLES: int = 10
HISTORY_LIMIT: int = 100
HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7

ALERT_SOURCE = "pg-console"

# severity weights used when ordering open anomalies (higher first)
SEVERITY_RANKS: Dict[str, int] = {
    "LOW": 1,
    "MEDIUM": 2,
    "HIGH": 3,
    "CRITICAL": 4,
}

# (min |sigma|, severity), evaluated high to low
SEVERITY_THRESHOLDS: List[Tuple[float, str]] = [
    (4.0, "CRITICAL"),
    (3.0, "HIGH"),
    (2.5, "MEDIUM"),
    (2.0, "LOW"),
]

# (metric, direction) -> hint. Direction is ABOVE or BELOW.
ROOT_CAUSE_HINTS: Dict[Tuple[str, str], str] = {
    ("total_connections", "ABOVE"): (
        "High connection count. Check for connection leaks, long-running transactions, "
        "or consider connection pooling."
    ),
    ("total_connections", "BELOW"): (
        "Low connection count may indicate application issues or network problems."
    ),
    ("active_queries", "ABOVE"): (
        "Unusually high number of active queries. Check for slow queries, blocking, or increased load."
    ),
    ("active_queries", "BELOW"): (
        "Very few active queries may indicate application downtime or connection issues."
    ),
    ("blocked_queries", "ABOVE"): (
        "Blocked queries detected. Check for lock contention, long-running transactions, or deadlocks."
    ),
    ("blocked_queries", "BELOW"): "Blocked queries have decreased, which is normal.",
    ("cache_hit_ratio", "ABOVE"): "Cache hit ratio is unusually high (this is typically good).",
    ("cache_hit_ratio", "BELOW"): (
        "Low cache hit ratio. Consider increasing shared_buffers or investigating access patterns."
    ),
    ("longest_query_seconds", "ABOVE"): (
        "Very long-running query detected. Consider query optimisation or timeout settings."
    ),
    ("longest_query_seconds", "BELOW"): "Query times are shorter than expected (this is typically good).",
    ("total_database_size_bytes", "ABOVE"): (
        "Rapid database growth. Check for large data imports, excessive logging, or bloat."
    ),
    ("total_database_size_bytes", "BELOW"): "Database size decreased, possibly from vacuum or data deletion.",
}

DEFAULT_ROOT_CAUSE_TEMPLATE = "Anomaly detected in {metric}. Investigate recent changes."


class MetricDefinitionConfig(BaseModel):
    name: str
    category: str = "system"
    description: str = ""


DEFAULT_MONITORED_METRICS: List[Dict[str, str]] = [
    {"name": "total_connections", "category": "system", "description": "Total database connections"},
    {"name": "active_queries", "category": "system", "description": "Active running queries"},
    {"name": "blocked_queries", "category": "system", "description": "Blocked queries"},
    {"name": "cache_hit_ratio", "category": "system", "description": "Buffer cache hit ratio"},
    {"name": "longest_query_seconds", "category": "system", "description": "Longest running query duration"},
    {"name": "total_database_size_bytes", "category": "system", "description": "Total database size"},
]


class Settings(BaseSettings):
    database_url: str = DATABASE_URL
    redis_url: str = REDIS_URL

    # instances visited by the scheduler
    instances: List[str] = ["default"]

    # baseline computation defaults
    training_days: int = int(os.getenv("PGBASELINE_TRAINING_DAYS", "7"))
    baseline_min_samples: int = MIN_SAMPLES
    history_limit: int = HISTORY_LIMIT
    history_max_hours: int = 720

    # anomaly detection thresholds
    severity_thresholds: List[Tuple[float, str]] = SEVERITY_THRESHOLDS
    alert_severities: List[str] = ["CRITICAL", "HIGH"]

    monitored_metrics: List[MetricDefinitionConfig] = [
        MetricDefinitionConfig(**m) for m in DEFAULT_MONITORED_METRICS
    ]

    # alerting
    alert_webhook_url: Optional[str] = os.getenv("PGBASELINE_ALERT_WEBHOOK_URL") or None
    alert_cooldown_seconds: int = 300
    alert_timeout_seconds: int = 30

    # scheduling; 0 disables the loop
    baseline_interval_seconds: float = 86400.0
    detection_interval_seconds: float = 300.0

    # store
    store_redis_retry_cooldown_seconds: float = 10.0
    store_fallback_max_items: int = 10_000

    host: str = "0.0.0.0"
    port: int = 4323

    @field_validator("alert_webhook_url", mode="before")
    @classmethod
    def blank_as_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return str(v).strip()

    @field_validator("severity_thresholds")
    @classmethod
    def order_thresholds(cls, v: List[Tuple[float, str]]) -> List[Tuple[float, str]]:
        return sorted(v, key=lambda pair: pair[0], reverse=True)

    model_config = {
        "env_prefix": "PGBASELINE_",
        "extra": "ignore",
    }


settings = Settings()
