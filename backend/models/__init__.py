"""
Core data models for the Agenta backend.

This module provides Pydantic models for all core entities used across the system.
These models are FastAPI-compatible and support validation, serialization, and type safety.
"""

from .core_models import (
    Role,
    ImportanceLevel,
    AssignmentStatus,
    NotificationType,
    IMPORTANCE_ELO,
    PersonRecord,
    EmployeeProfile,
    ManagerRecord,
    ProjectAssignment,
    NewProjectRequest,
    Notification,
    MediatorTaskInput,
    MediatorCandidate,
    RankedSuggestion,
)

__all__ = [
    "Role",
    "ImportanceLevel",
    "AssignmentStatus",
    "NotificationType",
    "IMPORTANCE_ELO",
    "PersonRecord",
    "EmployeeProfile",
    "ManagerRecord",
    "ProjectAssignment",
    "NewProjectRequest",
    "Notification",
    "MediatorTaskInput",
    "MediatorCandidate",
    "RankedSuggestion",
]
