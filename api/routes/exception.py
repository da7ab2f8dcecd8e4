"""
Centralized exception handling decorator for API route functions.

:func:`handle_exceptions` wraps an endpoint handler and converts uncaught
exceptions into :class:`fastapi.HTTPException` responses. HTTPExceptions raised
by the handler propagate untouched. Invalid arguments (``ValueError`` and
:class:`~datasources.exceptions.InvalidQuery`) become ``400``, an unavailable
sample source or store becomes ``503``, and anything else becomes ``500`` with
the exception message as the detail.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import inspect
import logging
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from fastapi import HTTPException

from datasources.exceptions import DataSourceUnavailable, InvalidQuery
from store.exceptions import StoreError

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _translate(func: Callable[..., Any], exc: Exception) -> HTTPException:
    if isinstance(exc, (InvalidQuery, ValueError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, (DataSourceUnavailable, StoreError)):
        log.warning("%s: backend unavailable: %s", func.__qualname__, exc)
        return HTTPException(status_code=503, detail=str(exc))
    log.exception("Unhandled error in %s", func.__qualname__)
    return HTTPException(status_code=500, detail=str(exc))


def handle_exceptions(func: F) -> F:
    """Decorator that converts uncaught exceptions to HTTP errors.

    Works with both regular and async functions.
    """

    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as exc:
                raise _translate(func, exc) from exc

        return cast(F, async_wrapper)

    @wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except HTTPException:
            raise
        except Exception as exc:
            raise _translate(func, exc) from exc

    return cast(F, sync_wrapper)
