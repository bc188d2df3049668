"""
Session Management Use Cases
"""

from .manage_sessions_use_case import ManageSessionsUseCase
from .prune_sessions_use_case import PruneSessionsUseCase

__all__ = ["ManageSessionsUseCase", "PruneSessionsUseCase"]
