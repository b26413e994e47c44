"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from structbits import BitWriter


@pytest.fixture
def writer() -> BitWriter:
    """Empty bit writer."""
    return BitWriter()


@pytest.fixture
def record_stream() -> bytes:
    """Three back-to-back command records: two by id, one catch-all."""
    return bytes([0x01, 0xFF, 0x02, 0xAB, 0xEF, 0xBE, 0xFF])
