"""SQLAlchemy-backed grade store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, ContextManager, Generator, List, Mapping, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, selectinload

from ..completion import view_of
from ..db.models import PanelGradeModel, StudentGroupModel, UserModel
from ..db.session import session_scope
from ..errors import GroupNotFoundError, UserInUseError, UserNotFoundError
from ..models import (
    GradingStatus,
    GroupDraft,
    PanelGrade,
    StoredGroup,
    StudentGroup,
    SystemSnapshot,
    User,
    UserRole,
)
from .base import PANEL_SLOTS, clean_group_changes, clean_user_changes, normalize_panel_id

logger = logging.getLogger(__name__)

ScopeFactory = Callable[..., ContextManager[Session]]


def _to_stored(model: StudentGroupModel) -> StoredGroup:
    return StoredGroup(
        id=model.id,
        name=model.name,
        project_title=model.project_title or "",
        members=list(model.members or []),
        panel1_id=model.panel1_id,
        panel2_id=model.panel2_id,
        external_panel_id=model.external_panel_id,
        status=GradingStatus(model.status) if model.status else GradingStatus.NOT_STARTED,
        grades=[
            PanelGrade(
                panelist_id=grade.panelist_id,
                presenter_scores=dict(grade.presenter_scores or {}),
                thesis_scores=dict(grade.thesis_scores or {}),
                submitted=grade.submitted,
            )
            for grade in model.grades
        ],
    )


def _to_user(model: UserModel) -> User:
    return User(id=model.id, name=model.name, email=model.email, role=UserRole(model.role))


def _refresh_status(model: StudentGroupModel) -> StudentGroup:
    view = view_of(_to_stored(model))
    model.status = view.status.value
    return view


class _SqlUnitOfWork:
    def __init__(self, session: Session, model: StudentGroupModel) -> None:
        self._session = session
        self._model = model

    def load_group(self) -> StudentGroup:
        return view_of(_to_stored(self._model))

    def persist_grade_upsert(
        self,
        panelist_id: str,
        presenter_scores: Mapping[str, float],
        thesis_scores: Mapping[str, float],
    ) -> None:
        existing = next((grade for grade in self._model.grades if grade.panelist_id == panelist_id), None)
        if existing is None:
            self._model.grades.append(
                PanelGradeModel(
                    panelist_id=panelist_id,
                    presenter_scores=dict(presenter_scores),
                    thesis_scores=dict(thesis_scores),
                    submitted=True,
                )
            )
        else:
            existing.presenter_scores = dict(presenter_scores)
            existing.thesis_scores = dict(thesis_scores)
            existing.submitted = True
        self._session.flush()

    def persist_group_status(self, status: GradingStatus) -> None:
        self._model.status = status.value
        self._session.flush()


class SqlGradingRepository:
    """Relational store; every write runs inside one ``session_scope``."""

    def __init__(self, scope: ScopeFactory = session_scope) -> None:
        self._scope = scope

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch_group(self, group_id: str) -> StudentGroup:
        with self._scope(commit=False) as session:
            model = self._get_group(session, group_id)
            return view_of(_to_stored(model))

    def fetch_groups(self) -> List[StudentGroup]:
        with self._scope(commit=False) as session:
            stmt = (
                select(StudentGroupModel)
                .options(selectinload(StudentGroupModel.grades))
                .order_by(StudentGroupModel.name)
            )
            rows = session.execute(stmt).scalars().all()
            return [view_of(_to_stored(row)) for row in rows]

    def fetch_users(self) -> List[User]:
        with self._scope(commit=False) as session:
            rows = session.execute(select(UserModel).order_by(UserModel.name)).scalars().all()
            return [_to_user(row) for row in rows]

    def fetch_user(self, user_id: str) -> User:
        with self._scope(commit=False) as session:
            return _to_user(self._get_user(session, user_id))

    # ------------------------------------------------------------------
    # Grading
    # ------------------------------------------------------------------

    @contextmanager
    def grading_transaction(self, group_id: str) -> Generator[_SqlUnitOfWork, None, None]:
        with self._scope() as session:
            # Row lock serializes concurrent submissions against the same group.
            model = self._get_group(session, group_id, for_update=True)
            yield _SqlUnitOfWork(session, model)

    # ------------------------------------------------------------------
    # Users and groups
    # ------------------------------------------------------------------

    def add_user(self, user: User) -> User:
        with self._scope() as session:
            session.add(UserModel(id=user.id, name=user.name, email=user.email, role=user.role.value))
        return user

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> User:
        cleaned = clean_user_changes(changes)
        with self._scope() as session:
            model = self._get_user(session, user_id)
            for field, value in cleaned.items():
                setattr(model, field, value.value if isinstance(value, UserRole) else value)
            session.flush()
            return _to_user(model)

    def delete_user(self, user_id: str) -> List[str]:
        with self._scope() as session:
            user = self._get_user(session, user_id)
            graded = session.execute(
                select(PanelGradeModel.id).where(PanelGradeModel.panelist_id == user_id).limit(1)
            ).first()
            if graded is not None:
                raise UserInUseError(user_id)

            stmt = (
                select(StudentGroupModel)
                .options(selectinload(StudentGroupModel.grades))
                .where(
                    or_(
                        StudentGroupModel.panel1_id == user_id,
                        StudentGroupModel.panel2_id == user_id,
                        StudentGroupModel.external_panel_id == user_id,
                    )
                )
                .with_for_update()
            )
            affected: List[str] = []
            for model in session.execute(stmt).scalars().all():
                for slot in PANEL_SLOTS:
                    if getattr(model, slot) == user_id:
                        setattr(model, slot, None)
                _refresh_status(model)
                affected.append(model.id)
            session.flush()
            session.delete(user)
            logger.info("Deleted user %s (unassigned from %d groups)", user_id, len(affected))
            return affected

    def group_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        with self._scope(commit=False) as session:
            stmt = select(StudentGroupModel.id).where(
                func.lower(StudentGroupModel.name) == name.strip().lower()
            )
            if exclude_id is not None:
                stmt = stmt.where(StudentGroupModel.id != exclude_id)
            return session.execute(stmt.limit(1)).first() is not None

    def create_group(self, draft: GroupDraft) -> StudentGroup:
        with self._scope() as session:
            model = StudentGroupModel(
                name=draft.name.strip(),
                project_title=draft.project_title,
                members=list(draft.members),
                panel1_id=normalize_panel_id(draft.panel1_id),
                panel2_id=normalize_panel_id(draft.panel2_id),
                external_panel_id=normalize_panel_id(draft.external_panel_id),
                status=GradingStatus.NOT_STARTED.value,
            )
            session.add(model)
            session.flush()
            logger.info("Created group %s (%s)", model.name, model.id)
            return view_of(_to_stored(model))

    def update_group(self, group_id: str, changes: Mapping[str, Any]) -> StudentGroup:
        cleaned = clean_group_changes(changes)
        with self._scope() as session:
            model = self._get_group(session, group_id, for_update=True)
            for field, value in cleaned.items():
                setattr(model, field, value)
            view = _refresh_status(model)
            session.flush()
            return view

    def delete_group(self, group_id: str) -> None:
        with self._scope() as session:
            model = self._get_group(session, group_id)
            session.delete(model)
            logger.info("Deleted group %s", group_id)

    def delete_all_groups(self) -> int:
        with self._scope() as session:
            session.execute(delete(PanelGradeModel))
            result = session.execute(delete(StudentGroupModel))
            count = result.rowcount or 0
            logger.info("Deleted %d groups", count)
            return count

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def export_snapshot(self) -> SystemSnapshot:
        with self._scope(commit=False) as session:
            users = session.execute(select(UserModel).order_by(UserModel.name)).scalars().all()
            groups = (
                session.execute(
                    select(StudentGroupModel)
                    .options(selectinload(StudentGroupModel.grades))
                    .order_by(StudentGroupModel.name)
                )
                .scalars()
                .all()
            )
            return SystemSnapshot(
                users=[_to_user(user) for user in users],
                groups=[_to_stored(group) for group in groups],
            )

    def replace_all(self, snapshot: SystemSnapshot) -> None:
        with self._scope() as session:
            session.execute(delete(PanelGradeModel))
            session.execute(delete(StudentGroupModel))
            session.execute(delete(UserModel))

            session.add_all(
                UserModel(id=user.id, name=user.name, email=user.email, role=user.role.value)
                for user in snapshot.users
            )
            session.flush()

            for group in snapshot.groups:
                model = StudentGroupModel(
                    id=group.id,
                    name=group.name,
                    project_title=group.project_title,
                    members=list(group.members),
                    panel1_id=group.panel1_id,
                    panel2_id=group.panel2_id,
                    external_panel_id=group.external_panel_id,
                    grades=[
                        PanelGradeModel(
                            panelist_id=grade.panelist_id,
                            presenter_scores=dict(grade.presenter_scores),
                            thesis_scores=dict(grade.thesis_scores),
                            submitted=grade.submitted,
                        )
                        for grade in group.grades
                    ],
                )
                _refresh_status(model)
                session.add(model)
            session.flush()
            logger.info(
                "Restored %d users and %d groups", len(snapshot.users), len(snapshot.groups)
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_user(self, session: Session, user_id: str) -> UserModel:
        model = session.get(UserModel, user_id)
        if model is None:
            raise UserNotFoundError(user_id)
        return model

    def _get_group(self, session: Session, group_id: str, for_update: bool = False) -> StudentGroupModel:
        stmt = (
            select(StudentGroupModel)
            .options(selectinload(StudentGroupModel.grades))
            .where(StudentGroupModel.id == group_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise GroupNotFoundError(group_id)
        return model


__all__ = ["SqlGradingRepository"]
