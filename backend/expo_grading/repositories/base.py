"""Storage contract consumed by the grading services."""

from __future__ import annotations

from typing import Any, ContextManager, List, Mapping, Optional, Protocol

from ..models import GradingStatus, GroupDraft, StudentGroup, SystemSnapshot, User

PANEL_SLOTS = ("panel1_id", "panel2_id", "external_panel_id")

# Attributes ``update_group`` may change; panel slots accept ``None`` to unassign.
UPDATABLE_GROUP_FIELDS = frozenset({"name", "project_title", "members", *PANEL_SLOTS})
UPDATABLE_USER_FIELDS = frozenset({"name", "email", "role"})


class GradingUnitOfWork(Protocol):
    """Writes against one group inside a single grading transaction."""

    def load_group(self) -> StudentGroup:  # pragma: no cover - protocol definition
        ...

    def persist_grade_upsert(
        self,
        panelist_id: str,
        presenter_scores: Mapping[str, float],
        thesis_scores: Mapping[str, float],
    ) -> None:  # pragma: no cover - protocol definition
        ...

    def persist_group_status(self, status: GradingStatus) -> None:  # pragma: no cover - protocol definition
        ...


class GradingRepository(Protocol):
    """Groups, grades and users as the grading core sees them.

    Groups returned by the read methods carry only grades of currently assigned
    panelists and a status derived from that live data.
    """

    def fetch_group(self, group_id: str) -> StudentGroup:  # pragma: no cover - protocol definition
        ...

    def fetch_groups(self) -> List[StudentGroup]:  # pragma: no cover - protocol definition
        ...

    def fetch_users(self) -> List[User]:  # pragma: no cover - protocol definition
        ...

    def grading_transaction(self, group_id: str) -> ContextManager[GradingUnitOfWork]:  # pragma: no cover
        ...

    def fetch_user(self, user_id: str) -> User:  # pragma: no cover - protocol definition
        ...

    def add_user(self, user: User) -> User:  # pragma: no cover - protocol definition
        ...

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> User:  # pragma: no cover
        ...

    def delete_user(self, user_id: str) -> List[str]:  # pragma: no cover - protocol definition
        ...

    def group_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:  # pragma: no cover
        ...

    def create_group(self, draft: GroupDraft) -> StudentGroup:  # pragma: no cover - protocol definition
        ...

    def update_group(self, group_id: str, changes: Mapping[str, Any]) -> StudentGroup:  # pragma: no cover
        ...

    def delete_group(self, group_id: str) -> None:  # pragma: no cover - protocol definition
        ...

    def delete_all_groups(self) -> int:  # pragma: no cover - protocol definition
        ...

    def export_snapshot(self) -> SystemSnapshot:  # pragma: no cover - protocol definition
        ...

    def replace_all(self, snapshot: SystemSnapshot) -> None:  # pragma: no cover - protocol definition
        ...


def normalize_panel_id(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def clean_group_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - UPDATABLE_GROUP_FIELDS
    if unknown:
        raise ValueError(f"Unsupported group fields: {', '.join(sorted(unknown))}")
    cleaned = dict(changes)
    for slot in PANEL_SLOTS:
        if slot in cleaned:
            cleaned[slot] = normalize_panel_id(cleaned[slot])
    if "members" in cleaned:
        cleaned["members"] = list(cleaned["members"] or [])
    return cleaned


def clean_user_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - UPDATABLE_USER_FIELDS
    if unknown:
        raise ValueError(f"Unsupported user fields: {', '.join(sorted(unknown))}")
    cleaned = dict(changes)
    for field in ("name", "email"):
        if field in cleaned:
            cleaned[field] = (cleaned[field] or "").strip()
    return cleaned


__all__ = [
    "GradingRepository",
    "GradingUnitOfWork",
    "PANEL_SLOTS",
    "UPDATABLE_GROUP_FIELDS",
    "UPDATABLE_USER_FIELDS",
    "clean_group_changes",
    "clean_user_changes",
    "normalize_panel_id",
]
