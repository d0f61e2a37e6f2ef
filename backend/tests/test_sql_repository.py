from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Iterator

import pytest
from sqlalchemy import select

from expo_grading.config import get_settings
from expo_grading.db import dispose_engine, get_engine, session_scope
from expo_grading.db.base import Base
from expo_grading.db.models import PanelGradeModel
from expo_grading.errors import (
    GroupNotFoundError,
    NotAssignedError,
    PanelAssignmentError,
    UserInUseError,
    UserNotFoundError,
)
from expo_grading.grading import GradingService
from expo_grading.group_management import GroupService
from expo_grading.maintenance import MaintenanceService
from expo_grading.user_management import UserService
from expo_grading.models import GradingStatus, GroupDraft, GroupUpdate, User, UserRole, UserUpdate
from expo_grading.repositories import SqlGradingRepository
from score_helpers import PRESENTER_80, PRESENTER_90, THESIS_60, THESIS_70


@pytest.fixture
def sql_repository(monkeypatch, tmp_path) -> Iterator[SqlGradingRepository]:
    monkeypatch.setenv("EXPO_DATABASE_URL", f"sqlite:///{tmp_path / 'grades.sqlite'}")
    get_settings.cache_clear()
    dispose_engine()
    Base.metadata.create_all(get_engine())

    repository = SqlGradingRepository()
    for user in (
        User(id="p1", name="Ada Chair", email="ada@example.com", role=UserRole.PANEL),
        User(id="p2", name="Ben Internal", email="ben@example.com", role=UserRole.PANEL),
        User(id="x1", name="Cy External", email="cy@example.com", role=UserRole.EXTERNAL_PANEL),
    ):
        repository.add_user(user)
    yield repository

    dispose_engine()
    get_settings.cache_clear()


def _grade_rows() -> int:
    with session_scope(commit=False) as session:
        return len(session.execute(select(PanelGradeModel)).scalars().all())


def test_submission_round_trip(sql_repository: SqlGradingRepository) -> None:
    group = sql_repository.create_group(GroupDraft(name="Group Alpha", panel1_id="p1", panel2_id="p2"))
    service = GradingService(sql_repository)

    in_progress = service.submit_grade(group.id, "p1", PRESENTER_80, THESIS_70)
    assert in_progress.status == GradingStatus.IN_PROGRESS

    service.submit_grade(group.id, "p1", PRESENTER_90, THESIS_60)
    completed = service.submit_grade(group.id, "p2", PRESENTER_90, THESIS_60)

    assert completed.status == GradingStatus.COMPLETED
    assert _grade_rows() == 2
    assert completed.grade_for("p1").presenter_scores["speaks_clearly"] == 30.0


def test_rejected_submission_writes_nothing(sql_repository: SqlGradingRepository) -> None:
    group = sql_repository.create_group(GroupDraft(name="Group Alpha", panel1_id="p1"))
    service = GradingService(sql_repository)

    with pytest.raises(NotAssignedError):
        service.submit_grade(group.id, "p2", PRESENTER_80, THESIS_70)
    with pytest.raises(GroupNotFoundError):
        service.submit_grade("missing", "p1", PRESENTER_80, THESIS_70)

    assert _grade_rows() == 0
    assert sql_repository.fetch_group(group.id).status == GradingStatus.NOT_STARTED


def test_reassignment_hides_and_restores_grades(sql_repository: SqlGradingRepository) -> None:
    group = sql_repository.create_group(GroupDraft(name="Group Alpha", panel1_id="p1", panel2_id="p2"))
    service = GradingService(sql_repository)
    service.submit_grade(group.id, "p1", PRESENTER_80, THESIS_70)
    service.submit_grade(group.id, "p2", PRESENTER_90, THESIS_60)
    groups = GroupService(sql_repository)

    swapped = groups.update_group(group.id, GroupUpdate(panel2_id="x1"))
    assert swapped.status == GradingStatus.IN_PROGRESS
    assert [grade.panelist_id for grade in swapped.grades] == ["p1"]
    assert _grade_rows() == 2

    restored = groups.update_group(group.id, GroupUpdate(panel2_id="p2"))
    assert restored.status == GradingStatus.COMPLETED


def test_name_checks_are_case_insensitive(sql_repository: SqlGradingRepository) -> None:
    group = sql_repository.create_group(GroupDraft(name="Group Alpha"))
    assert sql_repository.group_name_exists("group alpha")
    assert not sql_repository.group_name_exists("GROUP ALPHA", exclude_id=group.id)
    assert not sql_repository.group_name_exists("Group Beta")


def test_delete_cascades_to_grades(sql_repository: SqlGradingRepository) -> None:
    group = sql_repository.create_group(GroupDraft(name="Group Alpha", panel1_id="p1"))
    GradingService(sql_repository).submit_grade(group.id, "p1", PRESENTER_80, THESIS_70)
    sql_repository.create_group(GroupDraft(name="Group Beta"))

    sql_repository.delete_group(group.id)
    assert _grade_rows() == 0
    with pytest.raises(GroupNotFoundError):
        sql_repository.fetch_group(group.id)

    assert sql_repository.delete_all_groups() == 1
    assert sql_repository.fetch_groups() == []


def test_backup_and_restore_round_trip(sql_repository: SqlGradingRepository) -> None:
    group = sql_repository.create_group(GroupDraft(name="Group Alpha", panel1_id="p1", panel2_id="p2"))
    GradingService(sql_repository).submit_grade(group.id, "p1", PRESENTER_80, THESIS_70)
    maintenance = MaintenanceService(sql_repository)

    snapshot = maintenance.backup()
    sql_repository.delete_all_groups()
    maintenance.restore(snapshot)

    restored = sql_repository.fetch_group(group.id)
    assert restored.status == GradingStatus.IN_PROGRESS
    assert [grade.panelist_id for grade in restored.grades] == ["p1"]
    assert [user.id for user in sql_repository.fetch_users()] == ["p1", "p2", "x1"]


def test_unregistered_panelist_is_rejected_before_insert(sql_repository: SqlGradingRepository) -> None:
    groups = GroupService(sql_repository)
    with pytest.raises(PanelAssignmentError, match="not a registered panelist"):
        groups.create_group(GroupDraft(name="Group Alpha", panel1_id="ghost"))

    group = groups.create_group(GroupDraft(name="Group Alpha", panel1_id="p1"))
    with pytest.raises(PanelAssignmentError):
        groups.update_group(group.id, GroupUpdate(panel2_id="ghost"))
    assert sql_repository.fetch_group(group.id).panel2_id is None
    assert [group.name for group in sql_repository.fetch_groups()] == ["Group Alpha"]


def test_concurrent_submissions_are_serialized(sql_repository: SqlGradingRepository) -> None:
    group = sql_repository.create_group(
        GroupDraft(name="Group Alpha", panel1_id="p1", panel2_id="p2", external_panel_id="x1")
    )
    service = GradingService(sql_repository)

    def submit(panelist_id: str) -> None:
        service.submit_grade(group.id, panelist_id, PRESENTER_80, THESIS_70)

    with ThreadPoolExecutor(max_workers=3) as pool:
        list(pool.map(submit, ["p1", "p2", "x1"] * 3))

    final = sql_repository.fetch_group(group.id)
    assert _grade_rows() == 3
    assert sorted(grade.panelist_id for grade in final.grades) == ["p1", "p2", "x1"]
    assert final.status == GradingStatus.COMPLETED


def test_delete_user_clears_slots_and_keeps_grades_safe(sql_repository: SqlGradingRepository) -> None:
    group = sql_repository.create_group(
        GroupDraft(name="Group Alpha", panel1_id="p1", panel2_id="p2", external_panel_id="x1")
    )
    service = GradingService(sql_repository)
    service.submit_grade(group.id, "p1", PRESENTER_80, THESIS_70)
    service.submit_grade(group.id, "p2", PRESENTER_90, THESIS_60)
    users = UserService(sql_repository)

    with pytest.raises(UserInUseError):
        users.delete_user("p1")
    assert _grade_rows() == 2

    assert users.delete_user("x1") == [group.id]
    updated = sql_repository.fetch_group(group.id)
    assert updated.external_panel_id is None
    assert updated.status == GradingStatus.COMPLETED
    assert [user.id for user in sql_repository.fetch_users()] == ["p1", "p2"]

    with pytest.raises(UserNotFoundError):
        users.delete_user("x1")


def test_update_user_persists_changes(sql_repository: SqlGradingRepository) -> None:
    users = UserService(sql_repository)
    updated = users.update_user("x1", UserUpdate(email=" cy@expo.example ", role=UserRole.PANEL))
    assert (updated.email, updated.role) == ("cy@expo.example", UserRole.PANEL)
    assert sql_repository.fetch_user("x1").role == UserRole.PANEL
