"""
Shared fixtures for the Lexdoc test suite.

API tests talk to the FastAPI app in-process through httpx's ASGITransport.
The conversion-service dependency is overridden per test so every test gets
its own small worker pool, shut down afterwards.
"""
from __future__ import annotations

import base64
import io
from datetime import datetime
from typing import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from lexdoc.dependencies.conversion import get_conversion_service
from lexdoc.main import app
from lexdoc.models.document_model import DocumentMetadata
from lexdoc.services.conversion import ConversionService


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def conversion_service() -> Iterator[ConversionService]:
    """A ConversionService with its own two-worker pool."""
    service = ConversionService(workers=2, timeout=30.0, enable_fallback=True)
    yield service
    service.shutdown()


@pytest_asyncio.fixture
async def client(conversion_service: ConversionService) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the conversion service
    dependency overridden to use the per-test service.
    """
    app.dependency_overrides[get_conversion_service] = lambda: conversion_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def metadata() -> DocumentMetadata:
    return DocumentMetadata(
        title="Services Agreement",
        author="Jane Doe",
        created_at=datetime(2024, 1, 1, 9, 0, 0),
        updated_at=datetime(2024, 1, 2, 17, 30, 0),
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG, standing in for a captured signature."""
    buf = io.BytesIO()
    Image.new("RGB", (40, 12), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_data_uri(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

LONG_TEXT = (
    "This Services Agreement is entered into by and between the parties named "
    "below. The Provider agrees to deliver the services described in Schedule A "
    "and the Client agrees to pay the fees set out in Schedule B."
)
