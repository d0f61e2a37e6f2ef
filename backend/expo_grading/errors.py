"""Exceptions raised by the grading services."""

from __future__ import annotations

from typing import Iterable


class GradingError(Exception):
    """Base class for rejected grading or group operations."""


class GroupNotFoundError(GradingError, LookupError):
    def __init__(self, group_id: str) -> None:
        super().__init__(f"Group '{group_id}' was not found.")
        self.group_id = group_id


class NotAssignedError(GradingError):
    def __init__(self, group_id: str, panelist_id: str) -> None:
        super().__init__(f"Panelist '{panelist_id}' is not assigned to group '{group_id}'.")
        self.group_id = group_id
        self.panelist_id = panelist_id


class RubricValidationError(GradingError, ValueError):
    def __init__(self, category: str, message: str) -> None:
        super().__init__(f"Invalid {category} scores: {message}")
        self.category = category


class IncompleteRubricError(RubricValidationError):
    def __init__(self, category: str, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(category, f"missing criteria: {', '.join(self.missing)}")


class InvalidScoreError(RubricValidationError):
    pass


class DuplicateGroupNameError(GradingError):
    def __init__(self, name: str) -> None:
        super().__init__(f"A group named '{name}' already exists.")
        self.name = name


class PanelAssignmentError(GradingError, ValueError):
    pass


class GradingConflictError(GradingError):
    """The group was replaced while a grading transaction held a copy of it."""

    def __init__(self, group_id: str) -> None:
        super().__init__(f"Group '{group_id}' changed during the submission; retry it.")
        self.group_id = group_id


class UserNotFoundError(GradingError, LookupError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User '{user_id}' was not found.")
        self.user_id = user_id


class DuplicateEmailError(GradingError):
    def __init__(self, email: str) -> None:
        super().__init__(f"A user with email '{email}' already exists.")
        self.email = email


class UserInUseError(GradingError):
    """Deleting the user would discard grades they submitted."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User '{user_id}' has submitted grades and cannot be deleted.")
        self.user_id = user_id


__all__ = [
    "DuplicateEmailError",
    "DuplicateGroupNameError",
    "GradingConflictError",
    "GradingError",
    "GroupNotFoundError",
    "IncompleteRubricError",
    "InvalidScoreError",
    "NotAssignedError",
    "PanelAssignmentError",
    "RubricValidationError",
    "UserInUseError",
    "UserNotFoundError",
]
