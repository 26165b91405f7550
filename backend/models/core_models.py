"""
Core Data Models for the Agenta backend

This module defines Pydantic models for all core entities used across the system.
These models are FastAPI-compatible and provide:
- Type safety and validation
- Serialization/deserialization (camelCase aliases match Firestore documents)
- Default values and optional fields
- Clear field documentation

Models:
- PersonRecord / EmployeeProfile / ManagerRecord: people who receive tasks
- ProjectAssignment: a task assigned to one person
- NewProjectRequest: manager input before the mediator picks an assignee
- MediatorTaskInput / MediatorCandidate / RankedSuggestion: mediator I/O
- Notification: in-app notification

Timestamps are Unix milliseconds, as stored by the web client.
"""

from typing import Any, Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field, model_validator


# ============================================================================
# Enums for Type Safety
# ============================================================================

class Role(str, Enum):
    """User role types."""
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class ImportanceLevel(str, Enum):
    """Task importance; doubles as the task's difficulty for skill ratings."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AssignmentStatus(str, Enum):
    """Assignment lifecycle: pending -> in_progress -> completed."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class NotificationType(str, Enum):
    """In-app notification kinds."""
    WORK_DONE = "work_done"
    HELP_REQUEST = "help_request"
    ASSIGNMENT_SENT = "assignment_sent"
    GLOBAL = "global"
    UPDATE = "update"


# Importance level mapped to "opponent" Elo for skill updates (higher = harder task)
IMPORTANCE_ELO: Dict[str, int] = {
    ImportanceLevel.LOW.value: 1400,
    ImportanceLevel.MEDIUM.value: 1500,
    ImportanceLevel.HIGH.value: 1600,
    ImportanceLevel.CRITICAL.value: 1700,
}


class _CamelModel(BaseModel):
    class Config:
        populate_by_name = True
        use_enum_values = True


# ============================================================================
# People
# ============================================================================

class PersonRecord(_CamelModel):
    """
    Shared fields for managers and employees.

    skill_ratings holds one Elo rating per skill name (key as stored, case-sensitive).
    Ratings are only written by the skill rating updater when a task completes.
    """
    uid: str = Field(..., description="Firebase UID")
    email: str = Field("", description="Email address")
    display_name: str = Field("", alias="displayName", description="Display name")
    role: Role = Field(Role.EMPLOYEE, description="User role")
    position: Optional[str] = Field(None, description="Job title")
    department: Optional[str] = Field(None, description="Department")
    bio: Optional[str] = Field(None, description="Short professional summary")
    skills: List[str] = Field(default_factory=list, description="Flat skill list from profile/CV")
    skill_ratings: Dict[str, int] = Field(default_factory=dict, alias="skillRatings", description="Elo rating per skill")
    last_agent_trained_at: Optional[int] = Field(None, alias="lastAgentTrainedAt", description="Last rating update (ms)")
    created_at: Optional[int] = Field(None, alias="createdAt", description="Creation timestamp (ms)")


class EmployeeProfile(PersonRecord):
    """Employee profile (employeeProfiles collection)."""
    role: Role = Field(Role.EMPLOYEE, description="User role")
    manager_id: str = Field("", alias="managerId", description="UID of the managing manager")
    experience: Optional[str] = Field(None, description="Experience summary")
    work_ex: Optional[str] = Field(None, alias="workEx", description="Work history")
    goals: Optional[str] = Field(None, description="Career/work goals")
    preferences: Optional[str] = Field(None, description="Work preferences")
    favorite_companies: List[str] = Field(default_factory=list, alias="favoriteCompanies")
    awards: List[str] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list, description="Past or side projects")
    updated_at: Optional[int] = Field(None, alias="updatedAt")


class ManagerRecord(PersonRecord):
    """Manager record (managers collection). Managers can receive tasks from their own manager."""
    role: Role = Field(Role.MANAGER, description="User role")
    reports_to: Optional[str] = Field(None, alias="reportsTo", description="UID of the manager this manager reports to")


# ============================================================================
# Assignments
# ============================================================================

class ProjectAssignment(_CamelModel):
    """
    A task assigned to a single person.

    importance is kept as the raw stored string; unknown values rate like "medium".
    skills_used is filled at completion and drives the rating update.
    """
    id: str = Field("", description="Assignment identifier")
    title: str = Field(..., description="Task title")
    description: str = Field("", description="Task description")
    importance: str = Field(ImportanceLevel.MEDIUM.value, description="low | medium | high | critical")
    timeline: str = Field("ASAP", description="Free-text timeline, e.g. '2025-02-14' or 'ASAP'")
    deadline: Optional[int] = Field(None, description="Deadline (ms)")
    skills_required: List[str] = Field(default_factory=list, alias="skillsRequired")
    skills_used: List[str] = Field(default_factory=list, alias="skillsUsed")
    training_for_lower_level: bool = Field(False, alias="trainingForLowerLevel")
    assigned_by: str = Field("", alias="assignedBy", description="Manager UID who assigned")
    assigned_by_name: str = Field("", alias="assignedByName")
    assigned_to: str = Field("", alias="assignedTo", description="Assignee UID (employee or manager)")
    assigned_to_name: str = Field("", alias="assignedToName")
    status: AssignmentStatus = Field(AssignmentStatus.PENDING, description="Lifecycle status")
    created_at: int = Field(0, alias="createdAt")
    updated_at: int = Field(0, alias="updatedAt")
    completed_at: Optional[int] = Field(None, alias="completedAt")


class NewProjectRequest(_CamelModel):
    """Manager input when creating a task. assigned_to is optional: the mediator picks one."""
    title: str = Field(..., min_length=1)
    description: str = Field("")
    importance: ImportanceLevel = Field(ImportanceLevel.MEDIUM)
    timeline: str = Field("")
    deadline: Optional[int] = Field(None)
    skills_required: List[str] = Field(default_factory=list, alias="skillsRequired")
    training_for_lower_level: bool = Field(False, alias="trainingForLowerLevel")
    manager_id: str = Field(..., alias="managerId")
    manager_name: str = Field("", alias="managerName")
    assigned_to: Optional[str] = Field(None, alias="assignedTo")


class Notification(_CamelModel):
    """In-app notification for a user."""
    id: str = Field("")
    user_id: str = Field(..., alias="userId")
    type: NotificationType = Field(NotificationType.UPDATE)
    title: str = Field("")
    body: str = Field("")
    read: bool = Field(False)
    created_at: int = Field(0, alias="createdAt")
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Mediator I/O
# ============================================================================

class MediatorTaskInput(_CamelModel):
    """Task summary handed to the mediator."""
    title: str = Field(..., min_length=1)
    description: str = Field("")
    importance: str = Field(ImportanceLevel.MEDIUM.value)
    timeline: str = Field("ASAP")
    skills_required: List[str] = Field(default_factory=list, alias="skillsRequired")
    training_for_lower_level: bool = Field(False, alias="trainingForLowerLevel")


class MediatorCandidate(_CamelModel):
    """
    Candidate bundle sent to the mediator: profile plus live metadata.

    Every derived field has a documented default so the bundle is valid
    for people with no skills, ratings or history.
    """
    employee_id: str = Field(..., alias="employeeId")
    display_name: str = Field("", alias="displayName")
    skills: List[str] = Field(default_factory=list)
    skill_ratings: Dict[str, int] = Field(default_factory=dict, alias="skillRatings")
    bio: Optional[str] = Field(None)
    experience: Optional[str] = Field(None)
    work_ex: Optional[str] = Field(None, alias="workEx")
    past_completed_titles: List[str] = Field(default_factory=list, alias="pastCompletedTitles")
    current_workload: int = Field(0, ge=0, alias="currentWorkload", description="Non-completed assignments")
    capacity_score: float = Field(1.0, gt=0, le=1, alias="capacityScore", description="1 / (1 + currentWorkload)")
    total_completed_count: int = Field(0, ge=0, alias="totalCompletedCount")
    diversity_of_tasks: int = Field(0, ge=0, alias="diversityOfTasks", description="Distinct completed titles")
    last_completed_at: Optional[int] = Field(None, alias="lastCompletedAt")
    last_agent_trained_at: Optional[int] = Field(None, alias="lastAgentTrainedAt")
    task_skill_match_count: int = Field(0, ge=0, alias="taskSkillMatchCount")
    matched_task_skills: List[str] = Field(default_factory=list, alias="matchedTaskSkills")
    task_skill_rating_avg: Optional[float] = Field(None, alias="taskSkillRatingAvg", description="None when no skill matched")
    goals: Optional[str] = Field(None)
    preferences: Optional[str] = Field(None)
    favorite_companies: List[str] = Field(default_factory=list, alias="favoriteCompanies")
    awards: List[str] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _derive_capacity(self):
        # Omitted capacityScore follows the workload
        if "capacity_score" not in self.model_fields_set:
            self.capacity_score = 1.0 / (1 + self.current_workload)
        return self


class RankedSuggestion(_CamelModel):
    """One ranked suggestion from the mediator."""
    employee_id: str = Field(..., alias="employeeId")
    reason: str = Field("")
