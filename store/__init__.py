"""
Persistence layer: SQL stores for baselines and anomalies, plus the Redis client used for alert cooldowns.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from store.base import AnomalyStore, BaselineStore
from store.baseline import SqlBaselineStore
from store.anomalies import SqlAnomalyStore
from store.exceptions import PersistenceError, StoreError

__all__ = [
    "AnomalyStore", "BaselineStore", "SqlBaselineStore", "SqlAnomalyStore",
    "PersistenceError", "StoreError",
]
