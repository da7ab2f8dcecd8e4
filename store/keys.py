"""
Key builders for the Redis-backed alert cooldown marks.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import hashlib


def _slug(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()[:32]


def alert_cooldown(instance: str, alert_key: str) -> str:
    return f"pgb:{_slug(instance)}:alert:{_slug(alert_key)}"
