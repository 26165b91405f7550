"""
Candidate Metadata Assembler for the Agenta mediator

This module builds one MediatorCandidate bundle per person for a given task.
The bundle carries the signals the mediator ranks on:

- taskSkillMatchCount / matchedTaskSkills: required skills the candidate has
  (in the flat skill list or as a rated skill; case-insensitive, trimmed)
- taskSkillRatingAvg: mean rating over matched skills (1500 when unrated)
- currentWorkload / capacityScore: open assignments and 1 / (1 + workload)
- totalCompletedCount / diversityOfTasks / lastCompletedAt: task history

Pure computation only: callers fetch people and histories, nothing here does I/O.
Missing skills, ratings or history are treated as empty.
"""

from typing import Dict, List, Optional, Sequence

from models.core_models import (
    AssignmentStatus,
    MediatorCandidate,
    MediatorTaskInput,
    PersonRecord,
    ProjectAssignment,
)
from services.skill_elo import DEFAULT_SKILL_ELO


MAX_PAST_TITLES = 12  # Past completed titles kept on a bundle


def normalize_skill_name(skill: str) -> str:
    """
    Normalize skill name for comparison (case-insensitive, trimmed).

    Args:
        skill (str): Skill name

    Returns:
        str: Normalized skill name
    """
    return skill.strip().lower()


def match_task_skills(
    required_skills: Optional[Sequence[str]],
    skills: Optional[Sequence[str]],
    skill_ratings: Optional[Dict[str, int]]
) -> List[str]:
    """
    Find the task's required skills that the candidate has.

    A required skill matches when its normalized form appears in the candidate's
    flat skill list or among the keys of their skill ratings.

    Args:
        required_skills: Skills required by the task
        skills: Candidate's flat skill list
        skill_ratings: Candidate's rating mapping

    Returns:
        List[str]: Matched required skills (trimmed, task spelling, task order)
    """
    known = {normalize_skill_name(s) for s in (skills or []) if isinstance(s, str)}
    known.update(normalize_skill_name(s) for s in (skill_ratings or {}).keys())
    known.discard("")

    matched = []
    seen = set()
    for required in required_skills or []:
        if not isinstance(required, str):
            continue
        normalized = normalize_skill_name(required)
        if not normalized or normalized in seen:
            continue
        if normalized in known:
            matched.append(required.strip())
            seen.add(normalized)
    return matched


def lookup_rating(skill: str, skill_ratings: Optional[Dict[str, int]]) -> int:
    """Rating for a skill, matched case-insensitively against rating keys; 1500 when unrated."""
    if not skill_ratings:
        return DEFAULT_SKILL_ELO
    if skill in skill_ratings:
        return skill_ratings[skill]
    target = normalize_skill_name(skill)
    for name, rating in skill_ratings.items():
        if normalize_skill_name(name) == target:
            return rating
    return DEFAULT_SKILL_ELO


def task_skill_rating_avg(
    matched_skills: Sequence[str],
    skill_ratings: Optional[Dict[str, int]]
) -> Optional[float]:
    """
    Arithmetic mean of the candidate's ratings for the matched skills.

    Returns:
        Optional[float]: Mean rating, or None when nothing matched
    """
    if not matched_skills:
        return None
    total = sum(lookup_rating(skill, skill_ratings) for skill in matched_skills)
    return total / len(matched_skills)


def capacity_score(current_workload: int) -> float:
    """Capacity: 1 / (1 + currentWorkload)."""
    return 1.0 / (1 + max(0, current_workload))


def _completion_time(assignment: ProjectAssignment) -> Optional[int]:
    if assignment.completed_at is not None:
        return assignment.completed_at
    return assignment.updated_at or None


def summarize_history(assignments: Optional[Sequence[ProjectAssignment]]) -> Dict:
    """
    Derive workload and experience signals from a person's assignments.

    Args:
        assignments: All assignments held by the person (any status)

    Returns:
        Dict: currentWorkload, totalCompletedCount, diversityOfTasks,
              lastCompletedAt, pastCompletedTitles
    """
    completed = []
    workload = 0
    for assignment in assignments or []:
        if assignment.status == AssignmentStatus.COMPLETED.value:
            completed.append(assignment)
        else:
            workload += 1

    # Most recent first so past titles favour fresh experience
    completed.sort(key=lambda a: _completion_time(a) or 0, reverse=True)

    titles: List[str] = []
    seen_titles = set()
    for assignment in completed:
        title = (assignment.title or "").strip()
        if title and title not in seen_titles:
            seen_titles.add(title)
            titles.append(title)

    completion_times = [t for t in (_completion_time(a) for a in completed) if t is not None]

    return {
        "currentWorkload": workload,
        "totalCompletedCount": len(completed),
        "diversityOfTasks": len(titles),
        "lastCompletedAt": max(completion_times) if completion_times else None,
        "pastCompletedTitles": titles[:MAX_PAST_TITLES],
    }


def build_candidate(
    task: MediatorTaskInput,
    person: PersonRecord,
    history: Optional[Sequence[ProjectAssignment]] = None
) -> MediatorCandidate:
    """
    Assemble the mediator bundle for one candidate.

    Args:
        task (MediatorTaskInput): Task being assigned
        person (PersonRecord): Employee or manager record
        history: The person's assignments (any status)

    Returns:
        MediatorCandidate: Fully populated candidate bundle
    """
    skills = list(person.skills or [])
    ratings = dict(person.skill_ratings or {})
    matched = match_task_skills(task.skills_required, skills, ratings)
    summary = summarize_history(history)

    return MediatorCandidate(
        employee_id=person.uid,
        display_name=person.display_name,
        skills=skills,
        skill_ratings=ratings,
        bio=person.bio,
        experience=getattr(person, "experience", None),
        work_ex=getattr(person, "work_ex", None),
        past_completed_titles=summary["pastCompletedTitles"],
        current_workload=summary["currentWorkload"],
        capacity_score=capacity_score(summary["currentWorkload"]),
        total_completed_count=summary["totalCompletedCount"],
        diversity_of_tasks=summary["diversityOfTasks"],
        last_completed_at=summary["lastCompletedAt"],
        last_agent_trained_at=person.last_agent_trained_at,
        task_skill_match_count=len(matched),
        matched_task_skills=matched,
        task_skill_rating_avg=task_skill_rating_avg(matched, ratings),
        goals=getattr(person, "goals", None),
        preferences=getattr(person, "preferences", None),
        favorite_companies=list(getattr(person, "favorite_companies", None) or []),
        awards=list(getattr(person, "awards", None) or []),
        projects=list(getattr(person, "projects", None) or []),
    )


def build_candidates(
    task: MediatorTaskInput,
    people: Sequence[PersonRecord],
    history_by_person: Optional[Dict[str, Sequence[ProjectAssignment]]] = None
) -> List[MediatorCandidate]:
    """
    Assemble bundles for every person, preserving the order of people.

    Args:
        task (MediatorTaskInput): Task being assigned
        people: Candidate people
        history_by_person: uid -> assignments; missing uids have no history

    Returns:
        List[MediatorCandidate]: One bundle per person
    """
    histories = history_by_person or {}
    return [build_candidate(task, person, histories.get(person.uid)) for person in people]
