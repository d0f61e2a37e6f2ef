"""FastAPI dependency providers for the repository and services."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends

from .config import get_settings
from .grading import GradingService
from .group_management import GroupService
from .maintenance import MaintenanceService
from .repositories import GradingRepository, InMemoryGradingRepository, SqlGradingRepository
from .user_management import UserService

logger = logging.getLogger(__name__)

_repository: Optional[GradingRepository] = None


def get_repository() -> GradingRepository:
    global _repository
    if _repository is None:
        mode = get_settings().persistence_mode
        if mode == "memory":
            _repository = InMemoryGradingRepository()
        else:
            _repository = SqlGradingRepository()
        logger.info("Using %s grade repository", mode)
    return _repository


def reset_repository() -> None:
    global _repository
    _repository = None


def get_grading_service(repository: GradingRepository = Depends(get_repository)) -> GradingService:
    return GradingService(repository)


def get_group_service(repository: GradingRepository = Depends(get_repository)) -> GroupService:
    return GroupService(repository)


def get_user_service(repository: GradingRepository = Depends(get_repository)) -> UserService:
    return UserService(repository)


def get_maintenance_service(repository: GradingRepository = Depends(get_repository)) -> MaintenanceService:
    return MaintenanceService(repository)


__all__ = [
    "get_grading_service",
    "get_group_service",
    "get_maintenance_service",
    "get_repository",
    "get_user_service",
    "reset_repository",
]
