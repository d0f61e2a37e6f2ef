"""Full-system backup and restore."""

from __future__ import annotations

import logging

from .models import SystemSnapshot
from .repositories.base import GradingRepository
from .telemetry import record_restore

logger = logging.getLogger(__name__)


class MaintenanceService:
    def __init__(self, repository: GradingRepository) -> None:
        self._repository = repository

    def backup(self) -> SystemSnapshot:
        """Every user and group, with all stored grades (including orphaned ones)."""
        snapshot = self._repository.export_snapshot()
        logger.info("Exported backup with %d users and %d groups", len(snapshot.users), len(snapshot.groups))
        return snapshot

    def restore(self, snapshot: SystemSnapshot) -> None:
        """Replace all users, groups and grades with ``snapshot``.

        Cached statuses in the snapshot are ignored and recomputed.
        """
        group_ids = [group.id for group in snapshot.groups]
        if len(group_ids) != len(set(group_ids)):
            raise ValueError("Backup contains duplicate group ids.")
        names = [group.name.strip().lower() for group in snapshot.groups]
        if len(names) != len(set(names)):
            raise ValueError("Backup contains duplicate group names.")
        for group in snapshot.groups:
            panelists = [grade.panelist_id for grade in group.grades]
            if len(panelists) != len(set(panelists)):
                raise ValueError(f"Backup group '{group.name}' has more than one grade per panelist.")

        self._repository.replace_all(snapshot)
        record_restore(len(snapshot.users), len(snapshot.groups))


__all__ = ["MaintenanceService"]
