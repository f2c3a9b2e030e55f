"""
Pytest Configuration and Fixtures
"""

import pytest

from weft.runtime import InMemorySessionService, Session


@pytest.fixture
def session_service() -> InMemorySessionService:
    """Returns a fresh in-memory session service."""
    return InMemorySessionService()


@pytest.fixture
async def session(session_service: InMemorySessionService) -> Session:
    return await session_service.create_session(app_name="weft", user_id="u1")
