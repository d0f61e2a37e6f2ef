"""User account endpoints used by the administrator screens."""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from .dependencies import get_repository, get_user_service
from .errors import DuplicateEmailError, UserInUseError, UserNotFoundError
from .models import User, UserDraft, UserUpdate
from .repositories import GradingRepository
from .user_management import (
    BulkEmailUpdateResult,
    BulkUserCreateResult,
    BulkUserEntry,
    EmailUpdate,
    UserService,
)

router = APIRouter(prefix="/api", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/users", response_model=List[User])
def list_users(repository: GradingRepository = Depends(get_repository)) -> List[User]:
    return repository.fetch_users()


@router.post("/users", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(draft: UserDraft, service: UserService = Depends(get_user_service)) -> User:
    try:
        return service.create_user(draft)
    except DuplicateEmailError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/users/bulk-create", response_model=BulkUserCreateResult)
def bulk_create_users(
    entries: List[BulkUserEntry],
    service: UserService = Depends(get_user_service),
) -> BulkUserCreateResult:
    return service.bulk_create_users(entries)


@router.post("/users/bulk-update-emails", response_model=BulkEmailUpdateResult)
def bulk_update_emails(
    updates: List[EmailUpdate],
    service: UserService = Depends(get_user_service),
) -> BulkEmailUpdateResult:
    try:
        return service.bulk_update_emails(updates)
    except DuplicateEmailError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.put("/users/{user_id}", response_model=User)
def update_user(
    user_id: str,
    update: UserUpdate,
    service: UserService = Depends(get_user_service),
) -> User:
    try:
        return service.update_user(user_id, update)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DuplicateEmailError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.delete("/users/{user_id}")
def delete_user(user_id: str, service: UserService = Depends(get_user_service)) -> Dict[str, object]:
    try:
        affected = service.delete_user(user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except UserInUseError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return {"success": True, "unassignedGroups": affected}


__all__ = ["router"]
