"""
Conversion-service dependency for FastAPI routes.

One ConversionService (and therefore one bounded worker pool) is shared by
every request.  Tests override ``get_conversion_service`` through
``app.dependency_overrides``.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from lexdoc.services.conversion import ConversionService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_conversion_service() -> ConversionService:
    """Return the process-wide ConversionService, creating it on first use."""
    service = ConversionService()
    logger.info(
        "Conversion service ready (workers=%d, timeout=%.1fs, fallback=%s)",
        service.workers,
        service.timeout,
        service.enable_fallback,
    )
    return service


def shutdown_conversion_service() -> None:
    """Stop the worker pool if it was ever started."""
    if get_conversion_service.cache_info().currsize:
        get_conversion_service().shutdown()
        get_conversion_service.cache_clear()
