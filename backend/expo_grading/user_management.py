"""Administrator operations on user accounts."""

from __future__ import annotations

import logging
import uuid
from typing import Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from .errors import DuplicateEmailError
from .models import User, UserDraft, UserRole, UserUpdate
from .repositories.base import GradingRepository
from .telemetry import record_status_change, record_user_deleted

logger = logging.getLogger(__name__)


class BulkUserEntry(BaseModel):
    name: str = ""
    email: str = ""
    role: UserRole


class BulkUserCreateResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    added_count: int = Field(0, alias="addedCount")
    skipped_count: int = Field(0, alias="skippedCount")
    users: List[User] = Field(default_factory=list)


class EmailUpdate(BaseModel):
    name: str
    email: str


class BulkEmailUpdateResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    updated_count: int = Field(0, alias="updatedCount")
    not_found_count: int = Field(0, alias="notFoundCount")


def _key(value: str) -> str:
    return value.strip().lower()


class UserService:
    def __init__(self, repository: GradingRepository) -> None:
        self._repository = repository

    def create_user(self, draft: UserDraft) -> User:
        name = draft.name.strip()
        email = draft.email.strip()
        if not name or not email:
            raise ValueError("User name and email cannot be empty.")
        if self._email_owner(email) is not None:
            raise DuplicateEmailError(email)
        user = self._repository.add_user(User(id=str(uuid.uuid4()), name=name, email=email, role=draft.role))
        logger.info("Created %s user %s", user.role.value, user.name)
        return user

    def update_user(self, user_id: str, update: UserUpdate) -> User:
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        self._repository.fetch_user(user_id)
        for field in ("name", "email"):
            if field in changes:
                changes[field] = changes[field].strip()
                if not changes[field]:
                    raise ValueError(f"User {field} cannot be empty.")
        if "email" in changes:
            owner = self._email_owner(changes["email"])
            if owner is not None and owner != user_id:
                raise DuplicateEmailError(changes["email"])
        return self._repository.update_user(user_id, changes)

    def delete_user(self, user_id: str) -> List[str]:
        """Delete a user who has not submitted any grades.

        Panel slots the user held are cleared and the affected groups'
        statuses recomputed. Users with stored grades raise
        ``UserInUseError``; reassign their groups and keep the account.
        """
        before = {
            group.id: group.status for group in self._repository.fetch_groups() if group.is_assigned(user_id)
        }
        affected = self._repository.delete_user(user_id)
        logger.warning("Deleted user %s; unassigned from %d group(s)", user_id, len(affected))
        record_user_deleted(user_id, affected)
        for group_id in affected:
            previous = before.get(group_id)
            if previous is not None:
                status = self._repository.fetch_group(group_id).status
                record_status_change(group_id, previous, status, cause="user_deleted")
        return affected

    def bulk_create_users(self, entries: Iterable[BulkUserEntry]) -> BulkUserCreateResult:
        """Create users, skipping blanks and entries whose name or email is taken."""
        existing = self._repository.fetch_users()
        names: Set[str] = {_key(user.name) for user in existing}
        emails: Set[str] = {_key(user.email) for user in existing}
        result = BulkUserCreateResult()
        for entry in entries:
            name = entry.name.strip()
            email = entry.email.strip()
            if not name or not email or _key(name) in names or _key(email) in emails:
                result.skipped_count += 1
                continue
            names.add(_key(name))
            emails.add(_key(email))
            user = self._repository.add_user(User(id=str(uuid.uuid4()), name=name, email=email, role=entry.role))
            result.users.append(user)
            result.added_count += 1
        logger.info("Bulk user import: %d added, %d skipped", result.added_count, result.skipped_count)
        return result

    def bulk_update_emails(self, updates: Iterable[EmailUpdate]) -> BulkEmailUpdateResult:
        """Set emails by user name (case-insensitive).

        Every collision is checked before anything is written, so a rejected
        batch leaves all emails unchanged. An email still held by another user
        counts as taken even if the same batch moves that user elsewhere.
        """
        users = self._repository.fetch_users()
        by_name: Dict[str, User] = {_key(user.name): user for user in users}
        owners: Dict[str, str] = {_key(user.email): user.id for user in users}

        planned: Dict[str, str] = {}
        not_found = 0
        for update in updates:
            user = by_name.get(_key(update.name))
            if user is None:
                not_found += 1
                continue
            email = update.email.strip()
            if not email:
                raise ValueError(f"Email for '{update.name}' cannot be empty.")
            planned[user.id] = email

        for user_id, email in planned.items():
            owner = owners.get(_key(email))
            if owner is not None and owner != user_id:
                raise DuplicateEmailError(email)
            owners[_key(email)] = user_id

        for user_id, email in planned.items():
            self._repository.update_user(user_id, {"email": email})
        logger.info("Bulk email update: %d updated, %d not found", len(planned), not_found)
        return BulkEmailUpdateResult(updated_count=len(planned), not_found_count=not_found)

    def _email_owner(self, email: str) -> Optional[str]:
        target = _key(email)
        for user in self._repository.fetch_users():
            if _key(user.email) == target:
                return user.id
        return None


__all__ = [
    "BulkEmailUpdateResult",
    "BulkUserCreateResult",
    "BulkUserEntry",
    "EmailUpdate",
    "UserService",
]
