"""Grade submission: validate, upsert and recompute group status in one transaction."""

from __future__ import annotations

import logging
from typing import Mapping

from .completion import compute_status
from .errors import NotAssignedError
from .models import StudentGroup
from .repositories.base import GradingRepository
from .rubrics import PRESENTER_RUBRIC, THESIS_RUBRIC, validate_scores
from .telemetry import record_grade_submitted, record_status_change

logger = logging.getLogger(__name__)


class GradingService:
    def __init__(self, repository: GradingRepository) -> None:
        self._repository = repository

    def submit_grade(
        self,
        group_id: str,
        panelist_id: str,
        presenter_scores: Mapping[str, object],
        thesis_scores: Mapping[str, object],
    ) -> StudentGroup:
        """Record ``panelist_id``'s rubric scores for a group and return the group.

        Submitting again replaces the earlier scores; there is never more than
        one grade per panelist and group. Incomplete or out-of-range scores,
        unknown groups and unassigned panelists are rejected before anything
        is written.
        """
        presenter = validate_scores(PRESENTER_RUBRIC, presenter_scores, "presenter")
        thesis = validate_scores(THESIS_RUBRIC, thesis_scores, "thesis")

        with self._repository.grading_transaction(group_id) as unit:
            group = unit.load_group()
            if not group.is_assigned(panelist_id):
                logger.warning("Rejected grade from %s for group %s: not assigned", panelist_id, group_id)
                raise NotAssignedError(group_id, panelist_id)

            previous_status = group.status
            replaced = group.grade_for(panelist_id) is not None
            unit.persist_grade_upsert(panelist_id, presenter, thesis)

            refreshed = unit.load_group()
            status = compute_status(refreshed.assigned_panelist_ids(), refreshed.grades)
            unit.persist_group_status(status)

        logger.info(
            "Stored grade from %s for group %s (%s -> %s)",
            panelist_id,
            group_id,
            previous_status.value,
            status.value,
        )
        record_grade_submitted(group_id, panelist_id, replaced=replaced, status=status)
        record_status_change(group_id, previous_status, status, cause="grade_submission")
        return self._repository.fetch_group(group_id)


__all__ = ["GradingService"]
