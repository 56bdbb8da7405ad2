"""
Shared pytest fixtures for fifi tests.

Builders and collaborator fakes live in ``tests._support.fakes``; this
module isolates the global event bus between tests.
"""

from __future__ import annotations

import pytest

from fifi.core.events import set_event_bus


@pytest.fixture(autouse=True)
def isolated_event_bus():
    """Give every test a fresh global event bus."""
    set_event_bus(None)
    yield
    set_event_bus(None)
