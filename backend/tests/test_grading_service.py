from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List

import pytest

from expo_grading.errors import (
    GradingConflictError,
    GroupNotFoundError,
    IncompleteRubricError,
    InvalidScoreError,
    NotAssignedError,
)
from expo_grading.grading import GradingService
from expo_grading.group_management import GroupService
from expo_grading.models import GradingStatus, GroupDraft, GroupUpdate, StudentGroup, SystemSnapshot, User
from expo_grading.repositories import InMemoryGradingRepository
from expo_grading.rubrics import PRESENTER_RUBRIC, THESIS_RUBRIC
from expo_grading.telemetry import TelemetryEvent, register_listener
from score_helpers import PRESENTER_80, PRESENTER_90, THESIS_60, THESIS_70, full_marks


@pytest.fixture
def service(memory_repository: InMemoryGradingRepository) -> GradingService:
    return GradingService(memory_repository)


@pytest.fixture
def events() -> List[TelemetryEvent]:
    captured: List[TelemetryEvent] = []
    register_listener(captured.append)
    return captured


def test_first_submission_moves_group_in_progress(
    service: GradingService, two_panel_group: StudentGroup, events: List[TelemetryEvent]
) -> None:
    group = service.submit_grade(two_panel_group.id, "p1", PRESENTER_80, THESIS_70)

    assert group.status == GradingStatus.IN_PROGRESS
    assert [grade.panelist_id for grade in group.grades] == ["p1"]
    assert group.grades[0].submitted is True
    assert [event.name for event in events] == ["grade_submitted", "group_status_changed"]
    assert events[0].payload == {
        "group_id": two_panel_group.id,
        "panelist_id": "p1",
        "replaced": False,
        "status": "In Progress",
    }


def test_all_assigned_panelists_complete_the_group(
    service: GradingService, two_panel_group: StudentGroup
) -> None:
    service.submit_grade(two_panel_group.id, "p1", PRESENTER_80, THESIS_70)
    group = service.submit_grade(two_panel_group.id, "p2", PRESENTER_90, THESIS_60)

    assert group.status == GradingStatus.COMPLETED
    assert {grade.panelist_id for grade in group.grades} == {"p1", "p2"}


def test_resubmission_replaces_previous_grade(
    service: GradingService, two_panel_group: StudentGroup, events: List[TelemetryEvent]
) -> None:
    service.submit_grade(two_panel_group.id, "p1", PRESENTER_80, THESIS_70)
    events.clear()
    group = service.submit_grade(two_panel_group.id, "p1", PRESENTER_90, THESIS_60)

    assert len(group.grades) == 1
    assert group.grades[0].presenter_scores == {key: float(value) for key, value in PRESENTER_90.items()}
    assert group.status == GradingStatus.IN_PROGRESS
    assert [event.name for event in events] == ["grade_submitted"]
    assert events[0].payload["replaced"] is True


def test_identical_resubmission_is_idempotent(
    service: GradingService, memory_repository: InMemoryGradingRepository, two_panel_group: StudentGroup
) -> None:
    first = service.submit_grade(two_panel_group.id, "p1", PRESENTER_80, THESIS_70)
    second = service.submit_grade(two_panel_group.id, "p1", PRESENTER_80, THESIS_70)
    assert first == second == memory_repository.fetch_group(two_panel_group.id)


def test_unassigned_panelist_is_rejected_without_changes(
    service: GradingService,
    memory_repository: InMemoryGradingRepository,
    two_panel_group: StudentGroup,
    events: List[TelemetryEvent],
) -> None:
    with pytest.raises(NotAssignedError) as excinfo:
        service.submit_grade(two_panel_group.id, "x1", PRESENTER_80, THESIS_70)

    assert excinfo.value.panelist_id == "x1"
    stored = memory_repository.fetch_group(two_panel_group.id)
    assert stored.grades == []
    assert stored.status == GradingStatus.NOT_STARTED
    assert events == []


def test_unknown_group_is_rejected(service: GradingService, panel_users: Dict[str, User]) -> None:
    with pytest.raises(GroupNotFoundError):
        service.submit_grade("missing", "p1", PRESENTER_80, THESIS_70)


def test_incomplete_rubric_is_rejected_before_write(
    service: GradingService, memory_repository: InMemoryGradingRepository, two_panel_group: StudentGroup
) -> None:
    partial = dict(THESIS_70)
    partial.pop("analysis")
    with pytest.raises(IncompleteRubricError) as excinfo:
        service.submit_grade(two_panel_group.id, "p1", PRESENTER_80, partial)

    assert excinfo.value.category == "thesis"
    assert memory_repository.fetch_group(two_panel_group.id).grades == []


def test_out_of_range_score_is_rejected(service: GradingService, two_panel_group: StudentGroup) -> None:
    scores = dict(full_marks(PRESENTER_RUBRIC), stays_on_topic=11)
    with pytest.raises(InvalidScoreError):
        service.submit_grade(two_panel_group.id, "p1", scores, full_marks(THESIS_RUBRIC))


def test_failed_transaction_leaves_group_untouched(
    memory_repository: InMemoryGradingRepository, two_panel_group: StudentGroup
) -> None:
    with pytest.raises(RuntimeError):
        with memory_repository.grading_transaction(two_panel_group.id) as unit:
            unit.persist_grade_upsert("p1", PRESENTER_80, THESIS_70)
            unit.persist_group_status(GradingStatus.IN_PROGRESS)
            raise RuntimeError("storage failure")

    group = memory_repository.fetch_group(two_panel_group.id)
    assert group.grades == []
    assert group.status == GradingStatus.NOT_STARTED


def test_adding_a_panelist_regresses_completed_group(
    service: GradingService,
    memory_repository: InMemoryGradingRepository,
    two_panel_group: StudentGroup,
    events: List[TelemetryEvent],
) -> None:
    service.submit_grade(two_panel_group.id, "p1", PRESENTER_80, THESIS_70)
    service.submit_grade(two_panel_group.id, "p2", PRESENTER_90, THESIS_60)
    events.clear()

    groups = GroupService(memory_repository)
    updated = groups.update_group(two_panel_group.id, GroupUpdate(external_panel_id="x1"))

    assert updated.status == GradingStatus.IN_PROGRESS
    assert [event.name for event in events] == ["group_status_changed"]
    assert events[0].payload["previous"] == "Completed"

    completed = service.submit_grade(two_panel_group.id, "x1", PRESENTER_90, THESIS_70)
    assert completed.status == GradingStatus.COMPLETED


def test_reassigned_panelist_grade_is_hidden_then_restored(
    service: GradingService, memory_repository: InMemoryGradingRepository, two_panel_group: StudentGroup
) -> None:
    service.submit_grade(two_panel_group.id, "p1", PRESENTER_80, THESIS_70)
    service.submit_grade(two_panel_group.id, "p2", PRESENTER_90, THESIS_60)
    groups = GroupService(memory_repository)

    swapped = groups.update_group(two_panel_group.id, GroupUpdate(panel2_id="x1"))
    assert [grade.panelist_id for grade in swapped.grades] == ["p1"]
    assert swapped.status == GradingStatus.IN_PROGRESS

    with pytest.raises(NotAssignedError):
        service.submit_grade(two_panel_group.id, "p2", PRESENTER_90, THESIS_60)

    restored = groups.update_group(two_panel_group.id, GroupUpdate(panel2_id="p2"))
    assert {grade.panelist_id for grade in restored.grades} == {"p1", "p2"}
    assert restored.status == GradingStatus.COMPLETED


def test_concurrent_submissions_are_all_recorded(
    service: GradingService, memory_repository: InMemoryGradingRepository, panel_users: Dict[str, User]
) -> None:
    group = memory_repository.create_group(
        GroupDraft(name="Group Beta", panel1_id="p1", panel2_id="p2", external_panel_id="x1")
    )
    panelists = ["p1", "p2", "x1"] * 10

    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(lambda pid: service.submit_grade(group.id, pid, PRESENTER_80, THESIS_70), panelists))

    final = memory_repository.fetch_group(group.id)
    assert sorted(grade.panelist_id for grade in final.grades) == ["p1", "p2", "x1"]
    assert final.status == GradingStatus.COMPLETED


def test_non_finite_scores_never_complete_a_group(
    service: GradingService, memory_repository: InMemoryGradingRepository, two_panel_group: StudentGroup
) -> None:
    poisoned = dict(PRESENTER_80, preparedness=float("nan"))
    for panelist_id in ("p1", "p2"):
        with pytest.raises(InvalidScoreError):
            service.submit_grade(two_panel_group.id, panelist_id, poisoned, THESIS_70)

    group = memory_repository.fetch_group(two_panel_group.id)
    assert group.grades == []
    assert group.status == GradingStatus.NOT_STARTED


def test_restore_during_open_transaction_wins(
    memory_repository: InMemoryGradingRepository, two_panel_group: StudentGroup
) -> None:
    snapshot = memory_repository.export_snapshot()
    snapshot.groups[0].project_title = "RESTORED"

    with pytest.raises(GradingConflictError):
        with memory_repository.grading_transaction(two_panel_group.id) as unit:
            unit.persist_grade_upsert("p1", PRESENTER_80, THESIS_70)
            unit.persist_group_status(GradingStatus.IN_PROGRESS)
            memory_repository.replace_all(snapshot)

    group = memory_repository.fetch_group(two_panel_group.id)
    assert group.project_title == "RESTORED"
    assert group.grades == []
    assert group.status == GradingStatus.NOT_STARTED


def test_delete_all_during_open_transaction_is_not_undone(
    memory_repository: InMemoryGradingRepository, two_panel_group: StudentGroup
) -> None:
    with pytest.raises(GroupNotFoundError):
        with memory_repository.grading_transaction(two_panel_group.id) as unit:
            unit.persist_grade_upsert("p1", PRESENTER_80, THESIS_70)
            assert memory_repository.delete_all_groups() == 1

    assert memory_repository.fetch_groups() == []


def test_restore_racing_submissions_never_resurrects_groups(
    service: GradingService, memory_repository: InMemoryGradingRepository, panel_users: Dict[str, User]
) -> None:
    group = memory_repository.create_group(
        GroupDraft(name="Group Beta", panel1_id="p1", panel2_id="p2", external_panel_id="x1")
    )
    empty = SystemSnapshot(users=list(panel_users.values()), groups=[])

    def submit(panelist_id: str) -> str:
        try:
            service.submit_grade(group.id, panelist_id, PRESENTER_80, THESIS_70)
        except (GroupNotFoundError, GradingConflictError) as exc:
            return type(exc).__name__
        return "stored"

    with ThreadPoolExecutor(max_workers=6) as pool:
        pending = [pool.submit(submit, panelist_id) for panelist_id in ["p1", "p2", "x1"] * 10]
        restore = pool.submit(memory_repository.replace_all, empty)
        pending += [pool.submit(submit, panelist_id) for panelist_id in ["p1", "p2", "x1"] * 10]
        restore.result()
        outcomes = [future.result() for future in pending]

    assert set(outcomes) <= {"stored", "GroupNotFoundError", "GradingConflictError"}
    assert memory_repository.fetch_groups() == []
