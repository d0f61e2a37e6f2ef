"""Process-local repository used by tests and the ``memory`` persistence mode."""

from __future__ import annotations

import logging
import uuid
from contextlib import ExitStack, contextmanager
from threading import RLock
from typing import Any, Dict, Generator, List, Mapping, Optional

from ..completion import view_of
from ..errors import GradingConflictError, GroupNotFoundError, UserInUseError, UserNotFoundError
from ..models import GradingStatus, GroupDraft, PanelGrade, StoredGroup, StudentGroup, SystemSnapshot, User
from .base import PANEL_SLOTS, clean_group_changes, clean_user_changes, normalize_panel_id

logger = logging.getLogger(__name__)


class _MemoryUnitOfWork:
    def __init__(self, working: StoredGroup) -> None:
        self.working = working

    def load_group(self) -> StudentGroup:
        return view_of(self.working)

    def persist_grade_upsert(
        self,
        panelist_id: str,
        presenter_scores: Mapping[str, float],
        thesis_scores: Mapping[str, float],
    ) -> None:
        replacement = PanelGrade(
            panelist_id=panelist_id,
            presenter_scores=dict(presenter_scores),
            thesis_scores=dict(thesis_scores),
            submitted=True,
        )
        for index, grade in enumerate(self.working.grades):
            if grade.panelist_id == panelist_id:
                self.working.grades[index] = replacement
                return
        self.working.grades.append(replacement)

    def persist_group_status(self, status: GradingStatus) -> None:
        self.working.status = status


class InMemoryGradingRepository:
    """Dictionary-backed store with a lock per group.

    A grading transaction works on a private copy of the group and swaps it in
    only when the block finishes without raising, so readers never observe a
    half-applied submission. The swap is refused when the stored record was
    replaced in the meantime (restore, panel change, delete), so a stale copy
    can never overwrite newer data.

    Lock order is group lock(s) first, then the registry lock.
    """

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._groups: Dict[str, StoredGroup] = {}
        self._registry_lock = RLock()
        self._group_locks: Dict[str, RLock] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch_group(self, group_id: str) -> StudentGroup:
        with self._registry_lock:
            stored = self._groups.get(group_id)
            if stored is None:
                raise GroupNotFoundError(group_id)
            return view_of(stored)

    def fetch_groups(self) -> List[StudentGroup]:
        with self._registry_lock:
            stored_groups = sorted(self._groups.values(), key=lambda group: group.name)
            return [view_of(group) for group in stored_groups]

    def fetch_users(self) -> List[User]:
        with self._registry_lock:
            return [user.model_copy() for user in sorted(self._users.values(), key=lambda user: user.name)]

    def fetch_user(self, user_id: str) -> User:
        with self._registry_lock:
            user = self._users.get(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            return user.model_copy()

    # ------------------------------------------------------------------
    # Grading
    # ------------------------------------------------------------------

    @contextmanager
    def grading_transaction(self, group_id: str) -> Generator[_MemoryUnitOfWork, None, None]:
        with self._lock_for(group_id):
            with self._registry_lock:
                stored = self._groups.get(group_id)
                if stored is None:
                    raise GroupNotFoundError(group_id)
                working = stored.model_copy(deep=True)
            unit = _MemoryUnitOfWork(working)
            yield unit
            with self._registry_lock:
                current = self._groups.get(group_id)
                if current is None:
                    raise GroupNotFoundError(group_id)
                if current is not stored:
                    logger.warning("Discarded stale grading transaction for group %s", group_id)
                    raise GradingConflictError(group_id)
                self._groups[group_id] = unit.working

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def add_user(self, user: User) -> User:
        with self._registry_lock:
            self._users[user.id] = user.model_copy()
        return user

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> User:
        cleaned = clean_user_changes(changes)
        with self._registry_lock:
            user = self._users.get(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            updated = user.model_copy(update=cleaned)
            self._users[user_id] = updated
            return updated.model_copy()

    def delete_user(self, user_id: str) -> List[str]:
        """Remove a user without stored grades and clear the slots they held.

        Returns the ids of the groups that lost a panelist.
        """
        with self._all_group_locks(), self._registry_lock:
            if user_id not in self._users:
                raise UserNotFoundError(user_id)
            if any(grade.panelist_id == user_id for group in self._groups.values() for grade in group.grades):
                raise UserInUseError(user_id)

            affected: List[str] = []
            for group_id, stored in list(self._groups.items()):
                cleared = {slot: None for slot in PANEL_SLOTS if getattr(stored, slot) == user_id}
                if not cleared:
                    continue
                updated = stored.model_copy(update=cleared, deep=True)
                updated.status = view_of(updated).status
                self._groups[group_id] = updated
                affected.append(group_id)
            del self._users[user_id]
        return affected

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def group_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        target = name.strip().lower()
        with self._registry_lock:
            return any(
                group.name.strip().lower() == target and group.id != exclude_id
                for group in self._groups.values()
            )

    def create_group(self, draft: GroupDraft) -> StudentGroup:
        stored = StoredGroup(
            id=str(uuid.uuid4()),
            name=draft.name.strip(),
            project_title=draft.project_title,
            members=list(draft.members),
            panel1_id=normalize_panel_id(draft.panel1_id),
            panel2_id=normalize_panel_id(draft.panel2_id),
            external_panel_id=normalize_panel_id(draft.external_panel_id),
            status=GradingStatus.NOT_STARTED,
        )
        with self._registry_lock:
            self._groups[stored.id] = stored
        return view_of(stored)

    def update_group(self, group_id: str, changes: Mapping[str, Any]) -> StudentGroup:
        cleaned = clean_group_changes(changes)
        with self._lock_for(group_id), self._registry_lock:
            stored = self._groups.get(group_id)
            if stored is None:
                raise GroupNotFoundError(group_id)
            updated = stored.model_copy(update=cleaned, deep=True)
            updated.status = view_of(updated).status
            self._groups[group_id] = updated
            return view_of(updated)

    def delete_group(self, group_id: str) -> None:
        with self._lock_for(group_id), self._registry_lock:
            if self._groups.pop(group_id, None) is None:
                raise GroupNotFoundError(group_id)
            self._group_locks.pop(group_id, None)

    def delete_all_groups(self) -> int:
        with self._all_group_locks(), self._registry_lock:
            count = len(self._groups)
            self._groups.clear()
            self._group_locks.clear()
        return count

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def export_snapshot(self) -> SystemSnapshot:
        with self._registry_lock:
            return SystemSnapshot(
                users=[user.model_copy() for user in self._users.values()],
                groups=[group.model_copy(deep=True) for group in sorted(self._groups.values(), key=lambda g: g.name)],
            )

    def replace_all(self, snapshot: SystemSnapshot) -> None:
        users = {user.id: user.model_copy() for user in snapshot.users}
        groups: Dict[str, StoredGroup] = {}
        for group in snapshot.groups:
            stored = group.model_copy(deep=True)
            stored.status = view_of(stored).status
            groups[stored.id] = stored
        with self._all_group_locks(), self._registry_lock:
            self._users = users
            self._groups = groups
            self._group_locks.clear()
        logger.info("Replaced in-memory store with %d users and %d groups", len(users), len(groups))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_for(self, group_id: str) -> RLock:
        with self._registry_lock:
            lock = self._group_locks.get(group_id)
            if lock is None:
                lock = RLock()
                self._group_locks[group_id] = lock
            return lock

    def _all_group_locks(self) -> ExitStack:
        """Hold every current group lock, acquired in id order."""
        with self._registry_lock:
            group_ids = sorted(self._groups)
        stack = ExitStack()
        try:
            for group_id in group_ids:
                stack.enter_context(self._lock_for(group_id))
        except BaseException:
            stack.close()
            raise
        return stack


__all__ = ["InMemoryGradingRepository"]
