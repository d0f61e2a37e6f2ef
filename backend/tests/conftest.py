from __future__ import annotations

from typing import Dict

import pytest

from expo_grading.models import GroupDraft, StudentGroup, User, UserRole
from expo_grading.repositories import InMemoryGradingRepository
from expo_grading.telemetry import clear_listeners


@pytest.fixture(autouse=True)
def _reset_telemetry():
    yield
    clear_listeners()


@pytest.fixture
def memory_repository() -> InMemoryGradingRepository:
    return InMemoryGradingRepository()


@pytest.fixture
def panel_users(memory_repository: InMemoryGradingRepository) -> Dict[str, User]:
    users = {
        "chair": User(id="p1", name="Ada Chair", email="ada@example.com", role=UserRole.PANEL),
        "internal": User(id="p2", name="Ben Internal", email="ben@example.com", role=UserRole.PANEL),
        "external": User(id="x1", name="Cy External", email="cy@example.com", role=UserRole.EXTERNAL_PANEL),
        "admin": User(id="a1", name="Dee Admin", email="dee@example.com", role=UserRole.ADMIN),
    }
    for user in users.values():
        memory_repository.add_user(user)
    return users


@pytest.fixture
def two_panel_group(memory_repository: InMemoryGradingRepository, panel_users: Dict[str, User]) -> StudentGroup:
    return memory_repository.create_group(
        GroupDraft(name="Group Alpha", project_title="Smart Irrigation", panel1_id="p1", panel2_id="p2")
    )
