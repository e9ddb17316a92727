"""
Unit test configuration for the carpool service.

Overrides fixtures from the parent conftest so unit tests never touch PostgreSQL.
"""

from collections.abc import AsyncGenerator

import pytest


@pytest.fixture(autouse=True, scope='function')
async def clean_database() -> AsyncGenerator[None, None]:
    """No-op override for unit tests - no real database needed"""
    yield
