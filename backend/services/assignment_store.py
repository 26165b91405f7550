"""
Assignment Store

Record access used by the assignment workflow and the mediator:
- person records (employeeProfiles, then managers) and their skill ratings
- assignments (task history per assignee)
- notifications

Two implementations share the AssignmentStore interface:
- FirestoreAssignmentStore: Firestore collections, camelCase documents
- InMemoryAssignmentStore: dict-backed, for tests and local runs
"""

import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from models.core_models import (
    EmployeeProfile,
    ManagerRecord,
    Notification,
    PersonRecord,
    ProjectAssignment,
)


EMPLOYEE_PROFILES = "employeeProfiles"
MANAGERS = "managers"
ASSIGNMENTS = "assignments"
NOTIFICATIONS = "notifications"


class StoreError(Exception):
    """Raised when the backing store cannot complete a read or write."""


def now_ms() -> int:
    """Current time as Unix milliseconds."""
    return int(time.time() * 1000)


def to_document(model) -> Dict[str, Any]:
    """Serialize a model to a camelCase Firestore document (None fields dropped)."""
    return model.model_dump(by_alias=True, exclude_none=True, mode="json")


class AssignmentStore(ABC):
    """Records the assignment workflow reads and writes."""

    @abstractmethod
    def get_person(self, uid: str) -> Optional[PersonRecord]:
        """Employee profile if one exists, otherwise the manager record, otherwise None."""

    @abstractmethod
    def update_skill_ratings(self, uid: str, skill_ratings: Dict[str, int], trained_at: int) -> None:
        """Write back skillRatings and lastAgentTrainedAt for a person."""

    @abstractmethod
    def list_team(self, manager_id: str) -> List[PersonRecord]:
        """Employees managed by manager_id, then managers reporting to manager_id."""

    @abstractmethod
    def list_assignments_for(self, uid: str) -> List[ProjectAssignment]:
        """All assignments held by uid, any status."""

    @abstractmethod
    def get_assignment(self, assignment_id: str) -> Optional[ProjectAssignment]:
        """Single assignment or None."""

    @abstractmethod
    def create_assignment(self, assignment: ProjectAssignment) -> str:
        """Persist a new assignment; returns its id."""

    @abstractmethod
    def update_assignment(self, assignment_id: str, fields: Dict[str, Any]) -> None:
        """Merge camelCase fields into an assignment."""

    @abstractmethod
    def create_notification(self, notification: Notification) -> str:
        """Persist a notification; returns its id."""


class InMemoryAssignmentStore(AssignmentStore):
    """Dict-backed store. Records are kept as camelCase documents, like Firestore."""

    def __init__(self):
        self.employees: Dict[str, Dict[str, Any]] = {}
        self.managers: Dict[str, Dict[str, Any]] = {}
        self.assignments: Dict[str, Dict[str, Any]] = {}
        self.notifications: Dict[str, Dict[str, Any]] = {}

    def add_person(self, person: PersonRecord) -> None:
        target = self.managers if isinstance(person, ManagerRecord) else self.employees
        target[person.uid] = to_document(person)

    def get_person(self, uid):
        if uid in self.employees:
            return EmployeeProfile(**self.employees[uid])
        if uid in self.managers:
            return ManagerRecord(**self.managers[uid])
        return None

    def update_skill_ratings(self, uid, skill_ratings, trained_at):
        target = self.employees if uid in self.employees else self.managers
        if uid not in target:
            raise StoreError(f"No person record for {uid}")
        target[uid]["skillRatings"] = dict(skill_ratings)
        target[uid]["lastAgentTrainedAt"] = trained_at

    def list_team(self, manager_id):
        team: List[PersonRecord] = [
            EmployeeProfile(**doc) for doc in self.employees.values() if doc.get("managerId") == manager_id
        ]
        team.extend(
            ManagerRecord(**doc) for doc in self.managers.values() if doc.get("reportsTo") == manager_id
        )
        return team

    def list_assignments_for(self, uid):
        return [
            ProjectAssignment(**doc) for doc in self.assignments.values() if doc.get("assignedTo") == uid
        ]

    def get_assignment(self, assignment_id):
        doc = self.assignments.get(assignment_id)
        return ProjectAssignment(**doc) if doc else None

    def create_assignment(self, assignment):
        assignment_id = assignment.id or uuid.uuid4().hex
        doc = to_document(assignment)
        doc["id"] = assignment_id
        self.assignments[assignment_id] = doc
        return assignment_id

    def update_assignment(self, assignment_id, fields):
        if assignment_id not in self.assignments:
            raise StoreError(f"No assignment {assignment_id}")
        self.assignments[assignment_id].update(fields)

    def create_notification(self, notification):
        notification_id = notification.id or uuid.uuid4().hex
        doc = to_document(notification)
        doc["id"] = notification_id
        self.notifications[notification_id] = doc
        return notification_id


class FirestoreAssignmentStore(AssignmentStore):
    """
    Firestore-backed store.

    Args:
        db: firestore.Client from firebase_init.init_firebase()
    """

    def __init__(self, db):
        self.db = db

    def _get_doc(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            snap = self.db.collection(collection).document(doc_id).get()
        except Exception as e:
            raise StoreError(f"Failed to read {collection}/{doc_id}: {e}") from e
        if not snap.exists:
            return None
        data = snap.to_dict() or {}
        if collection == ASSIGNMENTS:
            data["id"] = doc_id
        else:
            data.setdefault("uid", doc_id)
        return data

    def _query(self, collection: str, field: str, value: str) -> List[Dict[str, Any]]:
        try:
            snaps = list(self.db.collection(collection).where(field, "==", value).stream())
        except Exception as e:
            raise StoreError(f"Failed to query {collection} by {field}: {e}") from e
        docs = []
        for snap in snaps:
            data = snap.to_dict() or {}
            if collection == ASSIGNMENTS:
                data["id"] = snap.id
            else:
                data.setdefault("uid", snap.id)
            docs.append(data)
        return docs

    def get_person(self, uid):
        data = self._get_doc(EMPLOYEE_PROFILES, uid)
        if data is not None:
            return EmployeeProfile(**data)
        data = self._get_doc(MANAGERS, uid)
        if data is not None:
            return ManagerRecord(**data)
        return None

    def update_skill_ratings(self, uid, skill_ratings, trained_at):
        collection = EMPLOYEE_PROFILES if self._get_doc(EMPLOYEE_PROFILES, uid) is not None else MANAGERS
        fields = {"skillRatings": dict(skill_ratings), "lastAgentTrainedAt": trained_at}
        if collection == EMPLOYEE_PROFILES:
            fields["updatedAt"] = trained_at
        try:
            self.db.collection(collection).document(uid).update(fields)
        except Exception as e:
            raise StoreError(f"Failed to update skill ratings for {uid}: {e}") from e

    def list_team(self, manager_id):
        team: List[PersonRecord] = [EmployeeProfile(**d) for d in self._query(EMPLOYEE_PROFILES, "managerId", manager_id)]
        team.extend(ManagerRecord(**d) for d in self._query(MANAGERS, "reportsTo", manager_id))
        return team

    def list_assignments_for(self, uid):
        return [ProjectAssignment(**d) for d in self._query(ASSIGNMENTS, "assignedTo", uid)]

    def get_assignment(self, assignment_id):
        data = self._get_doc(ASSIGNMENTS, assignment_id)
        return ProjectAssignment(**data) if data is not None else None

    def create_assignment(self, assignment):
        doc = to_document(assignment)
        doc.pop("id", None)
        try:
            _, ref = self.db.collection(ASSIGNMENTS).add(doc)
        except Exception as e:
            raise StoreError(f"Failed to create assignment: {e}") from e
        return ref.id

    def update_assignment(self, assignment_id, fields):
        try:
            self.db.collection(ASSIGNMENTS).document(assignment_id).update(fields)
        except Exception as e:
            raise StoreError(f"Failed to update assignment {assignment_id}: {e}") from e

    def create_notification(self, notification):
        doc = to_document(notification)
        doc.pop("id", None)
        try:
            _, ref = self.db.collection(NOTIFICATIONS).add(doc)
        except Exception as e:
            raise StoreError(f"Failed to create notification: {e}") from e
        return ref.id
