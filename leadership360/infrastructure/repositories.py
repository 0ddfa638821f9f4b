"""
Repository classes for the leadership assessment store.

Each entity repository lives in its own module; this module re-exports them
so callers can write ``from leadership360.infrastructure.repositories import ScoreRepo``.
"""

from __future__ import annotations

from .repositories_base import BaseRepository
from .repositories_request import RequestRepo
from .repositories_score import ScoreRepo
from .repositories_user import UserRepo

__all__ = [
    "BaseRepository",
    "UserRepo",
    "ScoreRepo",
    "RequestRepo",
]
