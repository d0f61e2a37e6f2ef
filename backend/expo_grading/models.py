"""Domain models shared by the grading services, repositories and routes.

Field aliases follow the camelCase shape used by the web client and by backup
files (``panelistId``, ``presenterScores``, ``panel1Id`` ...). Models accept
either the alias or the attribute name on input.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field


class GradingStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class UserRole(str, Enum):
    ADMIN = "Admin"
    COURSE_ADVISER = "Course Adviser"
    PANEL = "Panel"
    EXTERNAL_PANEL = "External Panel"


PANELIST_ROLES = frozenset({UserRole.PANEL, UserRole.EXTERNAL_PANEL})


class _ExpoModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class User(_ExpoModel):
    id: str
    name: str
    email: str
    role: UserRole


class UserDraft(_ExpoModel):
    """Fields an administrator supplies when registering a user."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    role: UserRole


class UserUpdate(_ExpoModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=3)
    role: Optional[UserRole] = None


class PanelGrade(_ExpoModel):
    """One panelist's evaluation of one group."""

    panelist_id: str = Field(alias="panelistId")
    presenter_scores: Dict[str, float] = Field(default_factory=dict, alias="presenterScores")
    thesis_scores: Dict[str, float] = Field(default_factory=dict, alias="thesisScores")
    submitted: bool = False


class StudentGroup(_ExpoModel):
    id: str
    name: str
    project_title: str = Field("", alias="projectTitle")
    members: List[str] = Field(default_factory=list)
    panel1_id: Optional[str] = Field(None, alias="panel1Id")
    panel2_id: Optional[str] = Field(None, alias="panel2Id")
    external_panel_id: Optional[str] = Field(None, alias="externalPanelId")
    status: GradingStatus = GradingStatus.NOT_STARTED
    grades: List[PanelGrade] = Field(default_factory=list)

    def panel_slots(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """Chair, internal and external panelist ids in that order."""
        return (self.panel1_id, self.panel2_id, self.external_panel_id)

    def assigned_panelist_ids(self) -> Set[str]:
        return {panelist_id for panelist_id in self.panel_slots() if panelist_id}

    def is_assigned(self, panelist_id: str) -> bool:
        return bool(panelist_id) and panelist_id in self.assigned_panelist_ids()

    def grade_for(self, panelist_id: str) -> Optional[PanelGrade]:
        for grade in self.grades:
            if grade.panelist_id == panelist_id:
                return grade
        return None


class GroupDraft(_ExpoModel):
    """Fields an administrator supplies when creating a group."""

    name: str = Field(..., min_length=1)
    project_title: str = Field("TBA", alias="projectTitle")
    members: List[str] = Field(default_factory=list)
    panel1_id: Optional[str] = Field(None, alias="panel1Id")
    panel2_id: Optional[str] = Field(None, alias="panel2Id")
    external_panel_id: Optional[str] = Field(None, alias="externalPanelId")


class GroupUpdate(_ExpoModel):
    """Partial update; only fields explicitly set are applied.

    Setting a panel slot to ``None`` (or an empty string) unassigns it.
    """

    name: Optional[str] = Field(None, min_length=1)
    project_title: Optional[str] = Field(None, alias="projectTitle")
    members: Optional[List[str]] = None
    panel1_id: Optional[str] = Field(None, alias="panel1Id")
    panel2_id: Optional[str] = Field(None, alias="panel2Id")
    external_panel_id: Optional[str] = Field(None, alias="externalPanelId")


class StoredGroup(StudentGroup):
    """A group exactly as persisted, including grades of unassigned panelists."""


class SystemSnapshot(_ExpoModel):
    users: List[User] = Field(default_factory=list)
    groups: List[StoredGroup] = Field(default_factory=list)


__all__ = [
    "GradingStatus",
    "GroupDraft",
    "GroupUpdate",
    "PANELIST_ROLES",
    "PanelGrade",
    "StoredGroup",
    "StudentGroup",
    "SystemSnapshot",
    "User",
    "UserDraft",
    "UserRole",
    "UserUpdate",
]
