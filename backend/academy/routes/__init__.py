"""Aggregate import for all API route modules."""

from . import badges, levels, quizzes

__all__ = ["badges", "levels", "quizzes"]
