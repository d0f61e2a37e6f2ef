"""Derive a group's grading status from its panel assignment and grades."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List

from .models import GradingStatus, PanelGrade, StoredGroup, StudentGroup


def compute_status(assigned_panelist_ids: AbstractSet[str], grades: Iterable[PanelGrade]) -> GradingStatus:
    """Return COMPLETED once every assigned panelist has submitted.

    A group with no assigned panelists is never COMPLETED; it is IN_PROGRESS
    as soon as any grade is submitted and NOT_STARTED otherwise.
    """
    assigned = {panelist_id for panelist_id in assigned_panelist_ids if panelist_id}
    submitted = {grade.panelist_id for grade in grades if grade.submitted}

    if assigned and assigned <= submitted:
        return GradingStatus.COMPLETED
    if submitted:
        return GradingStatus.IN_PROGRESS
    return GradingStatus.NOT_STARTED


def active_grades(assigned_panelist_ids: AbstractSet[str], grades: Iterable[PanelGrade]) -> List[PanelGrade]:
    """Grades whose panelist still holds a slot on the group."""
    return [grade for grade in grades if grade.panelist_id in assigned_panelist_ids]


def group_status(group: StudentGroup) -> GradingStatus:
    return compute_status(group.assigned_panelist_ids(), group.grades)


def view_of(stored: StoredGroup) -> StudentGroup:
    """Build the group view: orphaned grades dropped, status derived from live data."""
    assigned = stored.assigned_panelist_ids()
    grades = [grade.model_copy(deep=True) for grade in active_grades(assigned, stored.grades)]
    return StudentGroup(
        id=stored.id,
        name=stored.name,
        project_title=stored.project_title,
        members=list(stored.members),
        panel1_id=stored.panel1_id,
        panel2_id=stored.panel2_id,
        external_panel_id=stored.external_panel_id,
        status=compute_status(assigned, grades),
        grades=grades,
    )


__all__ = ["active_grades", "compute_status", "group_status", "view_of"]
