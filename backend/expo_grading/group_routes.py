"""Group endpoints used by the administrator screens."""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from .dependencies import get_group_service, get_repository
from .errors import DuplicateGroupNameError, GroupNotFoundError, PanelAssignmentError
from .group_management import BulkCreateResult, BulkGroupEntry, GroupService
from .models import GroupDraft, GroupUpdate, StudentGroup
from .repositories import GradingRepository

router = APIRouter(prefix="/api", tags=["groups"])
logger = logging.getLogger(__name__)


@router.get("/groups", response_model=List[StudentGroup])
def list_groups(repository: GradingRepository = Depends(get_repository)) -> List[StudentGroup]:
    return repository.fetch_groups()


@router.get("/groups/{group_id}", response_model=StudentGroup)
def get_group(group_id: str, repository: GradingRepository = Depends(get_repository)) -> StudentGroup:
    try:
        return repository.fetch_group(group_id)
    except GroupNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/groups", response_model=StudentGroup, status_code=status.HTTP_201_CREATED)
def create_group(draft: GroupDraft, service: GroupService = Depends(get_group_service)) -> StudentGroup:
    try:
        return service.create_group(draft)
    except DuplicateGroupNameError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.put("/groups/{group_id}", response_model=StudentGroup)
def update_group(
    group_id: str,
    update: GroupUpdate,
    service: GroupService = Depends(get_group_service),
) -> StudentGroup:
    try:
        return service.update_group(group_id, update)
    except GroupNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DuplicateGroupNameError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except (PanelAssignmentError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.delete("/groups/all")
def delete_all_groups(service: GroupService = Depends(get_group_service)) -> Dict[str, object]:
    deleted = service.delete_all_groups()
    return {"success": True, "deleted": deleted}


@router.delete("/groups/{group_id}")
def delete_group(group_id: str, service: GroupService = Depends(get_group_service)) -> Dict[str, bool]:
    try:
        service.delete_group(group_id)
    except GroupNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"success": True}


@router.post("/groups/bulk-create", response_model=BulkCreateResult)
def bulk_create_groups(
    entries: List[BulkGroupEntry],
    service: GroupService = Depends(get_group_service),
) -> BulkCreateResult:
    return service.bulk_create_groups(entries)


__all__ = ["router"]
