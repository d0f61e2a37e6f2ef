"""Grade submission, award and report endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from .awards import AwardRanking, rank_awards
from .config import Settings, get_settings
from .dependencies import get_grading_service, get_repository
from .errors import GradingConflictError, GroupNotFoundError, NotAssignedError, RubricValidationError
from .grading import GradingService
from .models import GradingStatus, StudentGroup
from .reports import DashboardRow, MasterlistRow, dashboard_rows, masterlist_rows
from .repositories import GradingRepository
from .rubrics import RUBRICS, RubricItem

router = APIRouter(prefix="/api", tags=["grading"])
logger = logging.getLogger(__name__)


class GradeSubmissionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    panelist_id: str = Field(..., min_length=1, alias="panelistId")
    presenter_scores: Dict[str, Any] = Field(default_factory=dict, alias="presenterScores")
    thesis_scores: Dict[str, Any] = Field(default_factory=dict, alias="thesisScores")


@router.post("/grades/{group_id}", response_model=StudentGroup)
def submit_grade(
    group_id: str,
    payload: GradeSubmissionRequest,
    service: GradingService = Depends(get_grading_service),
) -> StudentGroup:
    try:
        return service.submit_grade(
            group_id,
            payload.panelist_id,
            payload.presenter_scores,
            payload.thesis_scores,
        )
    except GroupNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except NotAssignedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except GradingConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RubricValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


@router.get("/awards", response_model=AwardRanking)
def get_awards(
    repository: GradingRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> AwardRanking:
    return rank_awards(repository.fetch_groups(), limit=settings.award_slots)


@router.get("/rubrics", response_model=Dict[str, List[RubricItem]])
def get_rubrics() -> Dict[str, List[RubricItem]]:
    return {category: list(rubric) for category, rubric in RUBRICS.items()}


@router.get("/dashboard", response_model=List[DashboardRow])
def get_dashboard(
    viewer_id: Optional[str] = Query(default=None),
    status_filter: Optional[GradingStatus] = Query(default=None, alias="status"),
    repository: GradingRepository = Depends(get_repository),
) -> List[DashboardRow]:
    users = repository.fetch_users()
    viewer = None
    if viewer_id:
        viewer = next((user for user in users if user.id == viewer_id), None)
        if viewer is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"User '{viewer_id}' was not found.",
            )
    return dashboard_rows(repository.fetch_groups(), users, viewer=viewer, status=status_filter)


@router.get("/masterlist", response_model=List[MasterlistRow])
def get_masterlist(repository: GradingRepository = Depends(get_repository)) -> List[MasterlistRow]:
    return masterlist_rows(repository.fetch_groups(), repository.fetch_users())


__all__ = ["GradeSubmissionRequest", "router"]
