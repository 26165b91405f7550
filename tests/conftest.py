"""
Shared fixtures for the Agenta backend tests.

Everything runs against InMemoryAssignmentStore and a mock LLMConfig.
No Firebase project or LLM key is needed; LLM responses are injected as
plain callables (messages -> text).
"""
import pytest

from config import LLMConfig
from models.core_models import (
    AssignmentStatus,
    EmployeeProfile,
    ManagerRecord,
    MediatorCandidate,
    MediatorTaskInput,
    ProjectAssignment,
)
from services.assignment_store import InMemoryAssignmentStore


MANAGER_ID = "mgr-1"


@pytest.fixture
def mock_config():
    return LLMConfig(provider="mock")


@pytest.fixture
def groq_config():
    """Provider selected with a key; tests never let it reach the network."""
    return LLMConfig(provider="groq", groq_api_key="test-key")


@pytest.fixture
def task():
    return MediatorTaskInput(
        title="Build admin dashboard",
        description="React dashboard for the admin team",
        importance="high",
        timeline="ASAP",
        skills_required=["React", "TypeScript"],
    )


@pytest.fixture
def candidates():
    return [
        MediatorCandidate(employee_id="A", display_name="Alex"),
        MediatorCandidate(employee_id="B", display_name="Blair"),
        MediatorCandidate(employee_id="C", display_name="Casey"),
    ]


@pytest.fixture
def store():
    """
    Manager mgr-1 with two employees and one reporting manager.

    emp-1 has React history and one open task; emp-2 is idle with no ratings.
    """
    s = InMemoryAssignmentStore()
    s.add_person(ManagerRecord(uid=MANAGER_ID, display_name="Morgan", email="morgan@example.com"))
    s.add_person(EmployeeProfile(
        uid="emp-1",
        display_name="Alex",
        manager_id=MANAGER_ID,
        skills=["React", "CSS"],
        skill_ratings={"React": 1560},
    ))
    s.add_person(EmployeeProfile(
        uid="emp-2",
        display_name="Blair",
        manager_id=MANAGER_ID,
        skills=["SQL"],
    ))
    s.add_person(ManagerRecord(
        uid="mgr-2",
        display_name="Sam",
        reports_to=MANAGER_ID,
        skills=["typescript"],
    ))
    s.create_assignment(ProjectAssignment(
        id="done-1",
        title="Landing page",
        assigned_by=MANAGER_ID,
        assigned_to="emp-1",
        status=AssignmentStatus.COMPLETED,
        created_at=1000,
        updated_at=2000,
        completed_at=2000,
    ))
    s.create_assignment(ProjectAssignment(
        id="open-1",
        title="Fix navbar",
        assigned_by=MANAGER_ID,
        assigned_to="emp-1",
        status=AssignmentStatus.PENDING,
        created_at=3000,
        updated_at=3000,
    ))
    return s
