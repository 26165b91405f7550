"""
Assignment Workflow Service for Agenta

Drives an assignment through its lifecycle and keeps skill ratings current:

    pending -> in_progress -> completed

- create_assignment: fills required skills, lets the mediator pick an assignee
  when the manager did not, stores the task and notifies the assignee
- start_assignment: pending -> in_progress
- complete_assignment: resolves the skills used, applies the Elo update to the
  assignee's ratings, marks the task completed and notifies the assigner
- suggest_assignees: assembles candidate metadata for a manager's team and ranks it
- describe_assignment / assignment_aid: LLM support text for the assignee

Transitions are one-directional. Re-applying the current status is a no-op;
there is no way back to pending.
"""

from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from config import LLMConfig
from models.core_models import (
    AssignmentStatus,
    MediatorCandidate,
    MediatorTaskInput,
    NewProjectRequest,
    Notification,
    NotificationType,
    ProjectAssignment,
    RankedSuggestion,
)
from services.assignment_store import AssignmentStore, now_ms
from services.candidate_metadata import build_candidates
from services.ranking import RankingStrategy, build_ranking_strategy, rank_candidates
from services.skill_analyzer import (
    analyze_task_skills,
    expand_task_description,
    get_skills_from_description,
    get_task_aid,
    resolve_completion_skills,
)
from services.skill_elo import update_skill_ratings_for_completion


class AssignmentNotFoundError(Exception):
    """No assignment with the given id."""


class PersonNotFoundError(Exception):
    """No employee or manager record for the given uid, or no candidates at all."""


class InvalidTransitionError(Exception):
    """Requested status change is not allowed from the current status."""


# Allowed forward moves; pending -> completed is the edge the web client uses
ALLOWED_TRANSITIONS = {
    AssignmentStatus.PENDING.value: {AssignmentStatus.IN_PROGRESS.value, AssignmentStatus.COMPLETED.value},
    AssignmentStatus.IN_PROGRESS.value: {AssignmentStatus.COMPLETED.value},
    AssignmentStatus.COMPLETED.value: set(),
}


class SuggestionResult(BaseModel):
    """Candidates assembled for a task and the mediator's ordering of them."""
    candidates: List[MediatorCandidate] = Field(default_factory=list)
    suggestions: List[RankedSuggestion] = Field(default_factory=list)


class CompletionResult(BaseModel):
    """Outcome of completing an assignment."""
    assignment: ProjectAssignment
    skills_applied: List[str] = Field(default_factory=list, alias="skillsApplied")
    previous_ratings: Dict[str, int] = Field(default_factory=dict, alias="previousRatings")
    skill_ratings: Dict[str, int] = Field(default_factory=dict, alias="skillRatings")
    already_completed: bool = Field(False, alias="alreadyCompleted")

    class Config:
        populate_by_name = True


def _status_value(status) -> str:
    return getattr(status, "value", status)


def can_transition(current, target) -> bool:
    """True when target is the current status (no-op) or an allowed forward move."""
    current, target = _status_value(current), _status_value(target)
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, set())


def _require_assignment(store: AssignmentStore, assignment_id: str) -> ProjectAssignment:
    assignment = store.get_assignment(assignment_id)
    if assignment is None:
        raise AssignmentNotFoundError(f"Assignment not found: {assignment_id}")
    return assignment


def suggest_assignees(
    store: AssignmentStore,
    manager_id: str,
    task: MediatorTaskInput,
    config: Optional[LLMConfig] = None,
    strategy: Optional[RankingStrategy] = None
) -> SuggestionResult:
    """
    Rank a manager's team for a task.

    Args:
        store (AssignmentStore): Person and task history provider
        manager_id (str): Manager whose employees (and reporting managers) are candidates
        task (MediatorTaskInput): Task being assigned
        config (Optional[LLMConfig]): Used to pick a strategy when none is given
        strategy (Optional[RankingStrategy]): Explicit ranking strategy

    Returns:
        SuggestionResult: Candidate bundles and their ordering
    """
    team = store.list_team(manager_id)
    history = {person.uid: store.list_assignments_for(person.uid) for person in team}
    candidates = build_candidates(task, team, history)

    if strategy is None:
        strategy = build_ranking_strategy(config)

    suggestions = rank_candidates(task, candidates, strategy)
    print(f"[Assignments] Ranked {len(suggestions)} candidates for '{task.title}' (manager {manager_id})")
    return SuggestionResult(candidates=candidates, suggestions=suggestions)


def create_assignment(
    store: AssignmentStore,
    request: NewProjectRequest,
    config: LLMConfig,
    strategy: Optional[RankingStrategy] = None,
    now: Optional[int] = None,
    complete: Optional[Callable] = None
) -> ProjectAssignment:
    """
    Create a pending assignment.

    When request.assigned_to is empty the mediator's top suggestion receives the task.
    When no required skills are given they are inferred from the title and description.

    Raises:
        PersonNotFoundError: Unknown assignee, or a team with no candidates
    """
    now = now if now is not None else now_ms()

    skills_required = [s.strip() for s in request.skills_required if s and s.strip()]
    if not skills_required and request.title and request.description:
        skills_required = get_skills_from_description(config, request.title, request.description, complete=complete)

    if request.assigned_to:
        assignee = store.get_person(request.assigned_to)
        if assignee is None:
            raise PersonNotFoundError(f"Assignee not found: {request.assigned_to}")
    else:
        task = MediatorTaskInput(
            title=request.title,
            description=request.description,
            importance=_status_value(request.importance),
            timeline=request.timeline.strip() or "ASAP",
            skills_required=skills_required,
            training_for_lower_level=request.training_for_lower_level,
        )
        result = suggest_assignees(store, request.manager_id, task, config, strategy)
        if not result.suggestions:
            raise PersonNotFoundError(f"No candidates in the team of manager {request.manager_id}")
        assignee = store.get_person(result.suggestions[0].employee_id)
        if assignee is None:
            raise PersonNotFoundError(f"Chosen employee not found: {result.suggestions[0].employee_id}")

    assignment = ProjectAssignment(
        title=request.title,
        description=request.description,
        importance=_status_value(request.importance),
        timeline=request.timeline.strip() or "ASAP",
        deadline=request.deadline,
        skills_required=skills_required,
        training_for_lower_level=request.training_for_lower_level,
        assigned_by=request.manager_id,
        assigned_by_name=request.manager_name,
        assigned_to=assignee.uid,
        assigned_to_name=assignee.display_name,
        status=AssignmentStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    assignment.id = store.create_assignment(assignment)
    print(f"[Assignments] ✅ Created assignment {assignment.id} for {assignee.uid}")

    _notify(store, Notification(
        user_id=assignee.uid,
        type=NotificationType.ASSIGNMENT_SENT,
        title="New assignment",
        body=request.title,
        created_at=now,
        metadata={
            "assignmentId": assignment.id,
            "fromUserId": request.manager_id,
            "fromUserName": request.manager_name,
        },
    ))
    return assignment


def start_assignment(store: AssignmentStore, assignment_id: str, now: Optional[int] = None) -> ProjectAssignment:
    """
    Move an assignment to in_progress.

    Raises:
        AssignmentNotFoundError: Unknown id
        InvalidTransitionError: Assignment already completed
    """
    assignment = _require_assignment(store, assignment_id)
    target = AssignmentStatus.IN_PROGRESS.value

    if not can_transition(assignment.status, target):
        raise InvalidTransitionError(f"Cannot move assignment {assignment_id} from {assignment.status} to {target}")
    if assignment.status == target:
        return assignment

    now = now if now is not None else now_ms()
    store.update_assignment(assignment_id, {"status": target, "updatedAt": now})
    return _require_assignment(store, assignment_id)


def complete_assignment(
    store: AssignmentStore,
    assignment_id: str,
    config: LLMConfig,
    skills_used: Optional[Sequence[str]] = None,
    now: Optional[int] = None,
    complete: Optional[Callable] = None
) -> CompletionResult:
    """
    Complete an assignment and update the assignee's skill ratings.

    Skills used are, in order of preference: the explicit skills_used argument,
    LLM analysis of the task (when a provider is configured), the assignment's
    stored skillsUsed, its skillsRequired, keyword rules.

    Completing an already completed assignment changes nothing.

    Raises:
        AssignmentNotFoundError: Unknown id
    """
    assignment = _require_assignment(store, assignment_id)
    person = store.get_person(assignment.assigned_to) if assignment.assigned_to else None
    current_ratings = dict(person.skill_ratings) if person else {}

    if assignment.status == AssignmentStatus.COMPLETED.value:
        return CompletionResult(
            assignment=assignment,
            skills_applied=list(assignment.skills_used),
            previous_ratings=current_ratings,
            skill_ratings=current_ratings,
            already_completed=True,
        )

    now = now if now is not None else now_ms()

    explicit = [s for s in (skills_used or []) if isinstance(s, str) and s.strip()]
    if explicit:
        skills = explicit
    else:
        analyzed = None
        if config.is_enabled or complete is not None:
            analyzed = analyze_task_skills(
                config,
                assignment.title,
                assignment.description,
                existing_skills=person.skills if person else [],
                complete=complete,
            )
        skills = resolve_completion_skills(analyzed, assignment)

    new_ratings = update_skill_ratings_for_completion(current_ratings, skills, assignment.importance)

    # Assignment is marked completed before ratings are written: a retry after a
    # failed write must never apply the same completion twice.
    store.update_assignment(assignment_id, {
        "status": AssignmentStatus.COMPLETED.value,
        "skillsUsed": skills,
        "completedAt": now,
        "updatedAt": now,
    })

    if person is not None:
        try:
            store.update_skill_ratings(person.uid, new_ratings, now)
        except Exception:
            _reopen(store, assignment)
            raise
        print(f"[Skill Elo] ✅ Updated {len(skills)} skill ratings for {person.uid}")
    else:
        print(f"[Skill Elo] ⚠️  No person record for {assignment.assigned_to}, ratings not saved")

    if assignment.assigned_by:
        _notify(store, Notification(
            user_id=assignment.assigned_by,
            type=NotificationType.WORK_DONE,
            title="Work completed",
            body=(
                f"{assignment.assigned_to_name} completed: {assignment.title}. "
                f"Skill ratings updated for: {', '.join(skills)}."
            ),
            created_at=now,
            metadata={
                "assignmentId": assignment_id,
                "fromUserId": assignment.assigned_to,
                "fromUserName": assignment.assigned_to_name,
            },
        ))

    return CompletionResult(
        assignment=_require_assignment(store, assignment_id),
        skills_applied=skills,
        previous_ratings=current_ratings,
        skill_ratings=new_ratings,
    )


def _reopen(store: AssignmentStore, assignment: ProjectAssignment) -> None:
    """Restore an assignment's pre-completion fields after the ratings write failed."""
    try:
        store.update_assignment(assignment.id, {
            "status": assignment.status,
            "skillsUsed": list(assignment.skills_used),
            "completedAt": assignment.completed_at,
            "updatedAt": assignment.updated_at,
        })
        print(f"[Assignments] ⚠️  Ratings write failed, assignment {assignment.id} reopened")
    except Exception as e:
        print(f"[Assignments] ❌ Failed to reopen assignment {assignment.id}: {e}")


def _notify(store: AssignmentStore, notification: Notification) -> None:
    """Notifications are best-effort: failures are logged, never raised."""
    try:
        store.create_notification(notification)
    except Exception as e:
        print(f"[Assignments] ⚠️  Failed to create notification for {notification.user_id}: {e}")


class TaskSupportText(BaseModel):
    """Assignee-facing text for an assignment; generated is False when no LLM produced it."""
    assignment_id: str = Field(..., alias="assignmentId")
    text: Optional[str] = None
    generated: bool = False

    class Config:
        populate_by_name = True


def describe_assignment(
    store: AssignmentStore,
    assignment_id: str,
    config: LLMConfig,
    complete: Optional[Callable] = None
) -> TaskSupportText:
    """
    Expanded description for the assignee view.

    Falls back to the stored description when the LLM is unavailable.

    Raises:
        AssignmentNotFoundError: Unknown id
    """
    assignment = _require_assignment(store, assignment_id)
    text = expand_task_description(config, assignment.title, assignment.description, complete=complete)
    if text is None:
        return TaskSupportText(assignment_id=assignment_id, text=assignment.description or None)
    return TaskSupportText(assignment_id=assignment_id, text=text, generated=True)


def assignment_aid(
    store: AssignmentStore,
    assignment_id: str,
    config: LLMConfig,
    complete: Optional[Callable] = None
) -> TaskSupportText:
    """
    Practical guidance for the assignee; text is None when the LLM is unavailable.

    Raises:
        AssignmentNotFoundError: Unknown id
    """
    assignment = _require_assignment(store, assignment_id)
    text = get_task_aid(config, assignment.title, assignment.description, complete=complete)
    return TaskSupportText(assignment_id=assignment_id, text=text, generated=text is not None)
