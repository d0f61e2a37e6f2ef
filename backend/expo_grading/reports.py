"""Dashboard and masterlist rows built from groups and users."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import PANELIST_ROLES, GradingStatus, StudentGroup, User
from .scoring import group_final_score, is_scorable, presenter_average, remark_for, thesis_average

NOT_AVAILABLE = "N/A"


class DashboardRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_id: str = Field(alias="groupId")
    group_name: str = Field(alias="groupName")
    project_title: str = Field(alias="projectTitle")
    panel1: str
    panel2: str
    external_panel: str = Field(alias="externalPanel")
    status: GradingStatus
    final_score: Optional[float] = Field(None, alias="finalScore")
    remark: str = NOT_AVAILABLE


class MasterlistRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_id: str = Field(alias="groupId")
    group_name: str = Field(alias="groupName")
    project_title: str = Field(alias="projectTitle")
    external_panel: str = Field(alias="externalPanel")
    chair_panel: str = Field(alias="chairPanel")
    internal_panel: str = Field(alias="internalPanel")
    presenter_score: str = Field(alias="presenterScore")
    thesis_score: str = Field(alias="thesisScore")


def _names(users: Iterable[User]) -> Dict[str, str]:
    return {user.id: user.name for user in users}


def _name(names: Dict[str, str], user_id: Optional[str]) -> str:
    if not user_id:
        return NOT_AVAILABLE
    return names.get(user_id, NOT_AVAILABLE)


def visible_groups(groups: Iterable[StudentGroup], viewer: Optional[User]) -> List[StudentGroup]:
    """Panelists only see the groups they sit on; everyone else sees all."""
    if viewer is None or viewer.role not in PANELIST_ROLES:
        return list(groups)
    return [group for group in groups if group.is_assigned(viewer.id)]


def dashboard_rows(
    groups: Iterable[StudentGroup],
    users: Iterable[User],
    viewer: Optional[User] = None,
    status: Optional[GradingStatus] = None,
) -> List[DashboardRow]:
    names = _names(users)
    rows: List[DashboardRow] = []
    for group in visible_groups(groups, viewer):
        if status is not None and group.status != status:
            continue
        final_score: Optional[float] = None
        remark = NOT_AVAILABLE
        if group.status == GradingStatus.COMPLETED:
            final_score = group_final_score(group)
            remark = remark_for(final_score)
        rows.append(
            DashboardRow(
                group_id=group.id,
                group_name=group.name,
                project_title=group.project_title,
                panel1=_name(names, group.panel1_id),
                panel2=_name(names, group.panel2_id),
                external_panel=_name(names, group.external_panel_id),
                status=group.status,
                final_score=final_score,
                remark=remark,
            )
        )
    return rows


def format_percentage(value: float) -> str:
    return f"{value:.2f}%"


def masterlist_rows(groups: Iterable[StudentGroup], users: Iterable[User]) -> List[MasterlistRow]:
    names = _names(users)
    rows: List[MasterlistRow] = []
    for group in groups:
        if is_scorable(group):
            presenter = format_percentage(presenter_average(group))
            thesis = format_percentage(thesis_average(group))
        else:
            presenter = thesis = NOT_AVAILABLE
        rows.append(
            MasterlistRow(
                group_id=group.id,
                group_name=group.name,
                project_title=group.project_title,
                external_panel=_name(names, group.external_panel_id),
                chair_panel=_name(names, group.panel1_id),
                internal_panel=_name(names, group.panel2_id),
                presenter_score=presenter,
                thesis_score=thesis,
            )
        )
    return rows


__all__ = [
    "DashboardRow",
    "MasterlistRow",
    "NOT_AVAILABLE",
    "dashboard_rows",
    "format_percentage",
    "masterlist_rows",
    "visible_groups",
]
