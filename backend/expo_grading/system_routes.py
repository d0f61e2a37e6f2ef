"""Backup and restore endpoints for the maintenance screen."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status

from .dependencies import get_maintenance_service
from .maintenance import MaintenanceService
from .models import SystemSnapshot

router = APIRouter(prefix="/api/system", tags=["system"])
logger = logging.getLogger(__name__)


@router.get("/backup", response_model=SystemSnapshot)
def backup(service: MaintenanceService = Depends(get_maintenance_service)) -> SystemSnapshot:
    return service.backup()


@router.post("/restore")
def restore(
    snapshot: SystemSnapshot,
    service: MaintenanceService = Depends(get_maintenance_service),
) -> Dict[str, bool]:
    try:
        service.restore(snapshot)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    logger.info("System restore completed")
    return {"success": True}


__all__ = ["router"]
