"""Administrator operations on student groups and their panel assignments."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from .errors import DuplicateGroupNameError, PanelAssignmentError
from .models import PANELIST_ROLES, GroupDraft, GroupUpdate, StudentGroup, User, UserRole
from .repositories.base import GradingRepository, normalize_panel_id
from .telemetry import record_status_change

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_TITLE = "TBA"
_SLOT_LABELS = {
    "panel1_id": "Chair Panel",
    "panel2_id": "Internal Panel",
    "external_panel_id": "External Panel",
}


class BulkGroupEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    project_title: Optional[str] = Field(None, alias="projectTitle")


class BulkCreateResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    added_count: int = Field(0, alias="addedCount")
    skipped_count: int = Field(0, alias="skippedCount")
    groups: List[StudentGroup] = Field(default_factory=list)


def _check_distinct_panelists(slots: Mapping[str, Optional[str]]) -> None:
    seen: dict[str, str] = {}
    for slot, panelist_id in slots.items():
        if not panelist_id:
            continue
        if panelist_id in seen:
            raise PanelAssignmentError(
                f"{_SLOT_LABELS[seen[panelist_id]]} and {_SLOT_LABELS[slot]} cannot be the same person."
            )
        seen[panelist_id] = slot


def _check_registered_panelists(slots: Mapping[str, Optional[str]], users: Iterable[User]) -> None:
    """Every filled slot must name an existing Panel or External Panel user."""
    roles: Dict[str, UserRole] = {user.id: user.role for user in users}
    for slot, panelist_id in slots.items():
        if not panelist_id:
            continue
        if roles.get(panelist_id) not in PANELIST_ROLES:
            raise PanelAssignmentError(f"{_SLOT_LABELS[slot]} '{panelist_id}' is not a registered panelist.")


class GroupService:
    def __init__(self, repository: GradingRepository) -> None:
        self._repository = repository

    def create_group(self, draft: GroupDraft) -> StudentGroup:
        name = draft.name.strip()
        if not name:
            raise ValueError("Group name cannot be empty.")
        if self._repository.group_name_exists(name):
            raise DuplicateGroupNameError(name)
        slots = {
            "panel1_id": normalize_panel_id(draft.panel1_id),
            "panel2_id": normalize_panel_id(draft.panel2_id),
            "external_panel_id": normalize_panel_id(draft.external_panel_id),
        }
        _check_distinct_panelists(slots)
        if any(slots.values()):
            _check_registered_panelists(slots, self._repository.fetch_users())
        group = self._repository.create_group(draft.model_copy(update={"name": name}))
        logger.info("Created group %s", group.name)
        return group

    def update_group(self, group_id: str, update: GroupUpdate) -> StudentGroup:
        """Apply the explicitly set fields of ``update``.

        Reassigning panelists recomputes the group's status in the same write,
        so a COMPLETED group can fall back to IN_PROGRESS or NOT_STARTED.
        """
        changes = update.model_dump(exclude_unset=True)
        current = self._repository.fetch_group(group_id)

        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValueError("Group name cannot be empty.")
            if self._repository.group_name_exists(name, exclude_id=group_id):
                raise DuplicateGroupNameError(name)
            changes["name"] = name

        slots = {
            slot: normalize_panel_id(changes[slot]) if slot in changes else getattr(current, slot)
            for slot in _SLOT_LABELS
        }
        _check_distinct_panelists(slots)
        reassigned = {
            slot: panelist_id
            for slot, panelist_id in slots.items()
            if slot in changes and panelist_id != getattr(current, slot)
        }
        if any(reassigned.values()):
            _check_registered_panelists(reassigned, self._repository.fetch_users())

        updated = self._repository.update_group(group_id, changes)
        if record_status_change(group_id, current.status, updated.status, cause="panel_reassignment"):
            logger.info(
                "Group %s status moved %s -> %s after update",
                group_id,
                current.status.value,
                updated.status.value,
            )
        return updated

    def delete_group(self, group_id: str) -> None:
        self._repository.delete_group(group_id)

    def delete_all_groups(self) -> int:
        count = self._repository.delete_all_groups()
        logger.warning("Deleted all %d groups and their grades", count)
        return count

    def bulk_create_groups(self, entries: Iterable[BulkGroupEntry]) -> BulkCreateResult:
        """Create groups by name, skipping blanks and names that already exist."""
        result = BulkCreateResult()
        seen: Set[str] = set()
        for entry in entries:
            name = entry.name.strip()
            key = name.lower()
            if not name or key in seen or self._repository.group_name_exists(name):
                result.skipped_count += 1
                continue
            seen.add(key)
            title = (entry.project_title or "").strip() or DEFAULT_PROJECT_TITLE
            group = self._repository.create_group(GroupDraft(name=name, project_title=title))
            result.groups.append(group)
            result.added_count += 1
        logger.info("Bulk group import: %d added, %d skipped", result.added_count, result.skipped_count)
        return result


__all__ = [
    "BulkCreateResult",
    "BulkGroupEntry",
    "DEFAULT_PROJECT_TITLE",
    "GroupService",
]
