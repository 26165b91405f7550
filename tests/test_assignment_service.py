"""
Tests for the assignment lifecycle against the in-memory store.
"""
import pytest

from models.core_models import (
    AssignmentStatus,
    MediatorTaskInput,
    NewProjectRequest,
    NotificationType,
    ProjectAssignment,
    RankedSuggestion,
)
from services.assignment_service import (
    AssignmentNotFoundError,
    InvalidTransitionError,
    PersonNotFoundError,
    assignment_aid,
    can_transition,
    complete_assignment,
    create_assignment,
    describe_assignment,
    start_assignment,
    suggest_assignees,
)
from services.assignment_store import InMemoryAssignmentStore, StoreError
from services.ranking import RankingStrategy
from services.skill_elo import elo_update


MANAGER_ID = "mgr-1"


class PickLast(RankingStrategy):
    """Ranks candidates in reverse profile order."""
    name = "pick_last"

    def rank(self, task, candidates):
        return [RankedSuggestion(employee_id=c.employee_id, reason="reverse") for c in reversed(candidates)]


def _notifications_for(store, uid):
    return [n for n in store.notifications.values() if n["userId"] == uid]


@pytest.mark.parametrize("current, target, allowed", [
    ("pending", "in_progress", True),
    ("pending", "completed", True),
    ("in_progress", "completed", True),
    ("in_progress", "in_progress", True),
    ("completed", "completed", True),
    ("completed", "pending", False),
    ("completed", "in_progress", False),
    ("in_progress", "pending", False),
    (AssignmentStatus.PENDING, AssignmentStatus.IN_PROGRESS, True),
])
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_suggest_assignees_covers_team(store, task, mock_config):
    result = suggest_assignees(store, MANAGER_ID, task, mock_config)

    assert [c.employee_id for c in result.candidates] == ["emp-1", "emp-2", "mgr-2"]
    assert [s.employee_id for s in result.suggestions] == ["emp-1", "emp-2", "mgr-2"]

    alex = result.candidates[0]
    assert alex.current_workload == 1
    assert alex.total_completed_count == 1
    assert alex.past_completed_titles == ["Landing page"]
    assert alex.matched_task_skills == ["React"]
    assert alex.task_skill_rating_avg == pytest.approx(1560.0)

    sam = result.candidates[2]
    assert sam.matched_task_skills == ["TypeScript"]


def test_suggest_assignees_with_llm_ranking(store, task, mock_config):
    result = suggest_assignees(store, MANAGER_ID, task, mock_config, strategy=PickLast())
    assert [s.employee_id for s in result.suggestions] == ["mgr-2", "emp-2", "emp-1"]


def test_suggest_for_empty_team(task, mock_config):
    result = suggest_assignees(InMemoryAssignmentStore(), "nobody", task, mock_config)
    assert result.candidates == []
    assert result.suggestions == []


def test_create_assignment_for_named_assignee(store, mock_config):
    request = NewProjectRequest(
        title="Migrate orders table",
        description="Move to the new schema",
        importance="critical",
        skills_required=["PostgreSQL"],
        manager_id=MANAGER_ID,
        manager_name="Morgan",
        assigned_to="emp-2",
    )
    assignment = create_assignment(store, request, mock_config, now=5000)

    assert assignment.id in store.assignments
    assert assignment.assigned_to == "emp-2"
    assert assignment.assigned_to_name == "Blair"
    assert assignment.status == "pending"
    assert assignment.importance == "critical"
    assert assignment.timeline == "ASAP"
    assert assignment.created_at == 5000

    notes = _notifications_for(store, "emp-2")
    assert len(notes) == 1
    assert notes[0]["type"] == NotificationType.ASSIGNMENT_SENT.value
    assert notes[0]["metadata"]["assignmentId"] == assignment.id


def test_create_assignment_lets_mediator_choose(store, mock_config):
    request = NewProjectRequest(title="Anything", manager_id=MANAGER_ID)
    assignment = create_assignment(store, request, mock_config, strategy=PickLast(), now=5000)

    assert assignment.assigned_to == "mgr-2"
    assert assignment.assigned_to_name == "Sam"


def test_create_assignment_prefills_required_skills(store, mock_config):
    request = NewProjectRequest(
        title="Security audit",
        description="Review the login flow",
        manager_id=MANAGER_ID,
        assigned_to="emp-1",
    )
    assignment = create_assignment(store, request, mock_config, now=5000)
    assert assignment.skills_required == ["Security audit", "Authentication"]


def test_create_assignment_unknown_assignee(store, mock_config):
    request = NewProjectRequest(title="X", manager_id=MANAGER_ID, assigned_to="ghost")
    with pytest.raises(PersonNotFoundError):
        create_assignment(store, request, mock_config)


def test_create_assignment_without_team(mock_config):
    request = NewProjectRequest(title="X", manager_id="lonely")
    with pytest.raises(PersonNotFoundError):
        create_assignment(InMemoryAssignmentStore(), request, mock_config)


def test_start_assignment(store):
    started = start_assignment(store, "open-1", now=4000)
    assert started.status == "in_progress"
    assert started.updated_at == 4000

    again = start_assignment(store, "open-1", now=9000)
    assert again.updated_at == 4000


def test_start_completed_assignment_is_rejected(store):
    with pytest.raises(InvalidTransitionError):
        start_assignment(store, "done-1")


def test_start_unknown_assignment(store):
    with pytest.raises(AssignmentNotFoundError):
        start_assignment(store, "missing")


def test_complete_assignment_updates_ratings(store, mock_config):
    store.update_assignment("open-1", {"skillsRequired": ["React", "CSS"], "importance": "high"})

    result = complete_assignment(store, "open-1", mock_config, now=7000)

    assert result.skills_applied == ["React", "CSS"]
    assert result.previous_ratings == {"React": 1560}
    assert result.skill_ratings == {
        "React": elo_update(1560, 1600, 1),
        "CSS": elo_update(1500, 1600, 1),
    }
    assert result.assignment.status == "completed"
    assert result.assignment.completed_at == 7000
    assert result.assignment.skills_used == ["React", "CSS"]

    person = store.get_person("emp-1")
    assert person.skill_ratings == result.skill_ratings
    assert person.last_agent_trained_at == 7000

    notes = _notifications_for(store, MANAGER_ID)
    assert len(notes) == 1
    assert notes[0]["type"] == NotificationType.WORK_DONE.value
    assert "React, CSS" in notes[0]["body"]


def test_complete_prefers_reported_skills(store, mock_config):
    store.update_assignment("open-1", {"skillsRequired": ["React"]})
    result = complete_assignment(store, "open-1", mock_config, skills_used=["Go", " "], now=7000)
    assert result.skills_applied == ["Go"]
    assert result.skill_ratings["Go"] == 1512
    assert result.skill_ratings["React"] == 1560


def test_complete_uses_llm_analysis_when_available(store, mock_config):
    result = complete_assignment(
        store, "open-1", mock_config, now=7000, complete=lambda messages: '["Accessibility"]',
    )
    assert result.skills_applied == ["Accessibility"]


def test_complete_twice_changes_nothing(store, mock_config):
    first = complete_assignment(store, "open-1", mock_config, skills_used=["React"], now=7000)
    second = complete_assignment(store, "open-1", mock_config, skills_used=["React"], now=8000)

    assert second.already_completed is True
    assert second.skill_ratings == first.skill_ratings
    assert second.assignment.completed_at == 7000
    assert store.get_person("emp-1").skill_ratings == first.skill_ratings
    assert len(_notifications_for(store, MANAGER_ID)) == 1


def test_completed_assignment_stays_in_history(store, task, mock_config):
    complete_assignment(store, "open-1", mock_config, skills_used=["React"], now=7000)
    result = suggest_assignees(store, MANAGER_ID, task, mock_config)

    alex = result.candidates[0]
    assert alex.current_workload == 0
    assert alex.total_completed_count == 2
    assert alex.last_completed_at == 7000
    assert alex.past_completed_titles == ["Fix navbar", "Landing page"]


def test_complete_for_manager_assignee(store, mock_config):
    store.create_assignment(ProjectAssignment(
        id="mgr-task", title="Quarterly plan", assigned_by=MANAGER_ID, assigned_to="mgr-2",
    ))
    result = complete_assignment(store, "mgr-task", mock_config, skills_used=["Planning"], now=7000)

    assert result.skill_ratings == {"Planning": 1512}
    assert store.get_person("mgr-2").skill_ratings == {"Planning": 1512}


def test_notification_failure_does_not_block_completion(store, mock_config, monkeypatch):
    def broken(notification):
        raise RuntimeError("notifications down")

    monkeypatch.setattr(store, "create_notification", broken)
    result = complete_assignment(store, "open-1", mock_config, skills_used=["React"], now=7000)
    assert result.assignment.status == "completed"


def test_complete_unknown_assignment(store, mock_config):
    with pytest.raises(AssignmentNotFoundError):
        complete_assignment(store, "missing", mock_config)


class FlakyStore(InMemoryAssignmentStore):
    """In-memory store whose next completion or ratings write can be made to fail once."""

    def __init__(self, source):
        super().__init__()
        self.employees = source.employees
        self.managers = source.managers
        self.assignments = source.assignments
        self.notifications = source.notifications
        self.fail_completion_write = False
        self.fail_ratings_write = False

    def update_assignment(self, assignment_id, fields):
        if self.fail_completion_write and fields.get("status") == "completed":
            self.fail_completion_write = False
            raise StoreError("write timed out")
        super().update_assignment(assignment_id, fields)

    def update_skill_ratings(self, uid, skill_ratings, trained_at):
        if self.fail_ratings_write:
            self.fail_ratings_write = False
            raise StoreError("write timed out")
        super().update_skill_ratings(uid, skill_ratings, trained_at)


def test_failed_completion_write_leaves_ratings_untouched(store, mock_config):
    flaky = FlakyStore(store)
    flaky.fail_completion_write = True

    with pytest.raises(StoreError):
        complete_assignment(flaky, "open-1", mock_config, skills_used=["React"], now=7000)
    assert flaky.get_person("emp-1").skill_ratings == {"React": 1560}
    assert flaky.get_assignment("open-1").status == "pending"

    result = complete_assignment(flaky, "open-1", mock_config, skills_used=["React"], now=8000)
    assert result.skill_ratings == {"React": elo_update(1560, 1500, 1)}
    assert flaky.get_person("emp-1").skill_ratings == {"React": elo_update(1560, 1500, 1)}


def test_failed_ratings_write_reopens_assignment(store, mock_config):
    flaky = FlakyStore(store)
    flaky.fail_ratings_write = True

    with pytest.raises(StoreError):
        complete_assignment(flaky, "open-1", mock_config, skills_used=["React"], now=7000)

    reopened = flaky.get_assignment("open-1")
    assert reopened.status == "pending"
    assert reopened.completed_at is None
    assert reopened.skills_used == []
    assert flaky.get_person("emp-1").skill_ratings == {"React": 1560}

    result = complete_assignment(flaky, "open-1", mock_config, skills_used=["React"], now=8000)
    assert result.already_completed is False
    assert flaky.get_person("emp-1").skill_ratings == {"React": elo_update(1560, 1500, 1)}


def test_describe_assignment_uses_generated_text(store, mock_config):
    result = describe_assignment(store, "open-1", mock_config, complete=lambda messages: "Make the navbar responsive.")
    assert result.assignment_id == "open-1"
    assert result.text == "Make the navbar responsive."
    assert result.generated is True


def test_describe_assignment_falls_back_to_stored_description(store, mock_config):
    store.update_assignment("open-1", {"description": "Menu overlaps the logo"})
    result = describe_assignment(store, "open-1", mock_config)
    assert result.text == "Menu overlaps the logo"
    assert result.generated is False


def test_assignment_aid(store, mock_config):
    assert assignment_aid(store, "open-1", mock_config).text is None

    result = assignment_aid(store, "open-1", mock_config, complete=lambda messages: "- Check Safari first")
    assert result.text == "- Check Safari first"
    assert result.generated is True


def test_support_text_for_unknown_assignment(store, mock_config):
    with pytest.raises(AssignmentNotFoundError):
        describe_assignment(store, "missing", mock_config)
    with pytest.raises(AssignmentNotFoundError):
        assignment_aid(store, "missing", mock_config)
