"""
Pytest configuration and fixtures for Warden tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import (  # noqa: E402
    ADMIN_ROLE_ID,
    MODERATOR_ROLE_ID,
    OWNER_ID,
    TRIAL_MODERATOR_ROLE_ID,
    FakeAuditEmitter,
    FakePlatform,
)
from warden.configuration.app_configuration import ModerationSettings  # noqa: E402
from warden.database.database import Database  # noqa: E402
from warden.moderation.orchestrator import ModerationContext, ModerationOrchestrator  # noqa: E402
from warden.moderation.permissions import StaffRoles  # noqa: E402


@pytest.fixture
def staff_roles() -> StaffRoles:
    return StaffRoles.from_iterables(
        owner_ids=[OWNER_ID],
        administrator_role_ids=[ADMIN_ROLE_ID],
        moderator_role_ids=[MODERATOR_ROLE_ID],
        trial_moderator_role_ids=[TRIAL_MODERATOR_ROLE_ID],
    )


@pytest.fixture
def settings(staff_roles: StaffRoles, tmp_path: Path) -> ModerationSettings:
    return ModerationSettings(
        staff_roles=staff_roles,
        audit_channel_id="500000000000000001",
        mods_channel_id="500000000000000002",
        platform_timeout_seconds=0.5,
        database_path=tmp_path / "warden.db",
    )


@pytest.fixture
async def store(settings: ModerationSettings):
    """A real case store on a temporary SQLite file."""
    database = Database(settings.database_path)
    assert await database.initialize()
    yield database
    await database.shutdown()


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def audit() -> FakeAuditEmitter:
    return FakeAuditEmitter()


@pytest.fixture
def orchestrator(store, platform, audit, settings) -> ModerationOrchestrator:
    return ModerationOrchestrator(
        ModerationContext(store=store, platform=platform, audit=audit, settings=settings)
    )
