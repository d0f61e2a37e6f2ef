"""Score aggregation for rubric submissions.

Two aggregation paths exist and are kept apart on purpose:

* ``group_final_score`` folds the presenter and thesis percentages of every
  panelist into one number. It drives the dashboard pass/fail remark.
* ``category_average`` averages one category across panelists. It drives the
  masterlist columns and the award rankings.
"""

from __future__ import annotations

from typing import Literal, Mapping

from .models import GradingStatus, PanelGrade, StudentGroup
from .rubrics import PRESENTER_RUBRIC, THESIS_RUBRIC, Rubric, RubricCategory

PASSING_SCORE = 75.0

Remark = Literal["Passed", "Failed"]


def percentage_for(rubric: Rubric, scores: Mapping[str, float]) -> float:
    """Percentage of the rubric's maximum awarded by ``scores``.

    Only the rubric's own criteria are read; a missing criterion counts as 0.
    """
    maximum = sum(item.weight for item in rubric)
    if maximum <= 0:
        raise ValueError("Rubric must contain at least one weighted criterion.")
    raw = sum(float(scores.get(item.id, 0) or 0) for item in rubric)
    return raw * 100 / maximum


def grade_percentages(grade: PanelGrade) -> tuple[float, float]:
    """Presenter and thesis percentages for a single panelist's grade."""
    return (
        percentage_for(PRESENTER_RUBRIC, grade.presenter_scores),
        percentage_for(THESIS_RUBRIC, grade.thesis_scores),
    )


def is_scorable(group: StudentGroup) -> bool:
    return group.status == GradingStatus.COMPLETED and bool(group.grades)


def group_final_score(group: StudentGroup) -> float:
    """Unweighted mean of every panelist's presenter and thesis percentages.

    Returns 0.0 unless the group is COMPLETED with at least one grade.
    """
    if not is_scorable(group):
        return 0.0
    total = 0.0
    for grade in group.grades:
        presenter_pct, thesis_pct = grade_percentages(grade)
        total += presenter_pct + thesis_pct
    return total / (len(group.grades) * 2)


def remark_for(score: float) -> Remark:
    return "Passed" if score >= PASSING_SCORE else "Failed"


def category_scores(grade: PanelGrade, category: RubricCategory) -> Mapping[str, float]:
    if category == "presenter":
        return grade.presenter_scores
    return grade.thesis_scores


def category_average(group: StudentGroup, rubric: Rubric, category: RubricCategory) -> float:
    """Mean percentage for one rubric category across the group's grades."""
    if not group.grades:
        return 0.0
    total = sum(percentage_for(rubric, category_scores(grade, category)) for grade in group.grades)
    return total / len(group.grades)


def presenter_average(group: StudentGroup) -> float:
    return category_average(group, PRESENTER_RUBRIC, "presenter")


def thesis_average(group: StudentGroup) -> float:
    return category_average(group, THESIS_RUBRIC, "thesis")


__all__ = [
    "PASSING_SCORE",
    "Remark",
    "category_average",
    "category_scores",
    "grade_percentages",
    "group_final_score",
    "is_scorable",
    "percentage_for",
    "presenter_average",
    "remark_for",
    "thesis_average",
]
