"""Best Presenter / Best Thesis award rankings."""

from __future__ import annotations

import logging
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field

from .models import GradingStatus, StudentGroup
from .scoring import presenter_average, thesis_average

logger = logging.getLogger(__name__)

DEFAULT_AWARD_SLOTS = 3


class AwardEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_id: str = Field(alias="groupId")
    group_name: str = Field(alias="groupName")
    project_title: str = Field(alias="projectTitle")
    score: float


class AwardRanking(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    top_presenters: List[AwardEntry] = Field(default_factory=list, alias="topPresenters")
    top_theses: List[AwardEntry] = Field(default_factory=list, alias="topTheses")


def _entry(group: StudentGroup, score: float) -> AwardEntry:
    return AwardEntry(
        group_id=group.id,
        group_name=group.name,
        project_title=group.project_title,
        score=score,
    )


def rank_awards(groups: Iterable[StudentGroup], limit: int = DEFAULT_AWARD_SLOTS) -> AwardRanking:
    """Rank completed groups by their presenter and thesis category averages.

    Groups that are not COMPLETED or have no grades are left out entirely.
    Sorting is stable, so equal scores keep the order of ``groups``.
    """
    if limit < 0:
        raise ValueError("Award limit cannot be negative.")

    presenters: List[AwardEntry] = []
    theses: List[AwardEntry] = []
    for group in groups:
        if group.status != GradingStatus.COMPLETED or not group.grades:
            continue
        presenters.append(_entry(group, presenter_average(group)))
        theses.append(_entry(group, thesis_average(group)))

    presenters.sort(key=lambda entry: entry.score, reverse=True)
    theses.sort(key=lambda entry: entry.score, reverse=True)
    logger.debug("Ranked %d completed groups for awards", len(presenters))
    return AwardRanking(top_presenters=presenters[:limit], top_theses=theses[:limit])


__all__ = ["AwardEntry", "AwardRanking", "DEFAULT_AWARD_SLOTS", "rank_awards"]
