"""Storage backends for groups, grades and users."""

from .base import GradingRepository, GradingUnitOfWork
from .memory import InMemoryGradingRepository
from .sql import SqlGradingRepository

__all__ = [
    "GradingRepository",
    "GradingUnitOfWork",
    "InMemoryGradingRepository",
    "SqlGradingRepository",
]
