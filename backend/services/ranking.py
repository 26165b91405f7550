"""
Mediator Ranking Service

Orders candidate people for a task. The ranking itself is a pluggable strategy:

- PassThroughRanking: input order, fixed reason (the fallback)
- LLMRanking: one chat-completion call over the candidate bundles

rank_candidates() is the only entry point callers use. It never raises:
a missing credential, zero candidates, a provider error, or a result that does
not name every candidate exactly once all degrade to the pass-through ordering.
"""

import json
import re
import traceback
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from config import LLMConfig
from models.core_models import MediatorCandidate, MediatorTaskInput, RankedSuggestion
from services.llm_client import Message, call_llm


FALLBACK_REASON = "Ranking unavailable; listed by profile order."
ADDITIONAL_CANDIDATE_REASON = "Additional candidate."

MAX_RATINGS_IN_PROMPT = 14
MAX_TEXT_IN_PROMPT = 200

MEDIATOR_SYSTEM_PROMPT = """You are a mediator that ranks ALL candidates for a task using the metadata provided.

Apply the signals in this order; a lower signal never overrides a higher one:
1. Experience and skill fit: taskSkillRatingAvg, taskSkillMatchCount, matchedTaskSkills,
   totalCompletedCount, lastCompletedAt, skillRatings, past completed projects.
2. Task importance and training flag: critical/high tasks need proven fit; when the task
   is a training opportunity, favour someone who would grow while still able to do it.
3. Workload: currentWorkload and capacityScore break ties between comparable candidates.
4. Goals, preferences, favorite companies, awards and profile projects break remaining ties.
5. diversityOfTasks is a last tiebreaker and never outranks experience.

Return every candidate exactly once, best first.
Reply with ONLY a JSON array: [{"employeeId": "...", "reason": "..."}, ...]"""


class RankingError(Exception):
    """Raised by a ranking strategy that cannot produce an ordering."""


class RankingStrategy(ABC):
    """Strategy interface: rank(task, candidates) -> ordered suggestions."""

    name = "base"

    @abstractmethod
    def rank(
        self,
        task: MediatorTaskInput,
        candidates: Sequence[MediatorCandidate]
    ) -> List[RankedSuggestion]:
        raise NotImplementedError


class PassThroughRanking(RankingStrategy):
    """Every candidate once, in the order supplied, with a fixed reason."""

    name = "pass_through"

    def rank(self, task, candidates):
        return fallback_ranked(candidates)


def fallback_ranked(candidates: Sequence[MediatorCandidate]) -> List[RankedSuggestion]:
    """
    Identity-order ranking used whenever real ranking is unavailable.

    Args:
        candidates: Candidates in the order supplied

    Returns:
        List[RankedSuggestion]: One suggestion per candidate, same order
    """
    return [RankedSuggestion(employee_id=c.employee_id, reason=FALLBACK_REASON) for c in candidates]


def _format_date(ms: Optional[int]) -> str:
    if ms is None:
        return "—"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def _join(values: Sequence[str], sep: str = ", ") -> str:
    return sep.join(values) if values else "—"


def _clip(text: Optional[str], limit: int = MAX_TEXT_IN_PROMPT) -> str:
    return (text or "").strip()[:limit] or "—"


def format_candidate_block(candidate: MediatorCandidate) -> str:
    """Render one candidate bundle as a prompt block."""
    ratings = list(candidate.skill_ratings.items())[:MAX_RATINGS_IN_PROMPT]
    ratings_str = _join([f"{skill}:{rating}" for skill, rating in ratings])
    avg = "—" if candidate.task_skill_rating_avg is None else str(round(candidate.task_skill_rating_avg))
    bio = candidate.bio or candidate.work_ex or candidate.experience

    return "\n".join([
        f"[{candidate.employee_id}] {candidate.display_name}",
        f"  skills: {_join(candidate.skills)}",
        f"  skillRatings: {ratings_str}",
        f"  taskSkillRatingAvg: {avg}",
        f"  taskSkillMatchCount: {candidate.task_skill_match_count} matchedTaskSkills: {_join(candidate.matched_task_skills)}",
        f"  totalCompletedCount: {candidate.total_completed_count} lastCompletedAt: {_format_date(candidate.last_completed_at)}"
        f" lastAgentTrainedAt: {_format_date(candidate.last_agent_trained_at)}",
        f"  currentWorkload: {candidate.current_workload} capacityScore: {candidate.capacity_score:.2f}",
        f"  diversityOfTasks: {candidate.diversity_of_tasks}",
        f"  goals: {_clip(candidate.goals)}",
        f"  preferences: {_clip(candidate.preferences)}",
        f"  favoriteCompanies: {_join(candidate.favorite_companies)}",
        f"  awards: {_join(candidate.awards, '; ')}",
        f"  profile projects: {_join(candidate.projects, '; ')}",
        f"  bio: {_clip(bio, 300)}",
        f"  past completed projects: {_join(candidate.past_completed_titles, '; ')}",
    ])


def build_mediator_messages(
    task: MediatorTaskInput,
    candidates: Sequence[MediatorCandidate]
) -> List[Message]:
    """Chat messages for the mediator call."""
    blocks = "\n\n".join(format_candidate_block(c) for c in candidates)
    user_content = (
        "Task:\n"
        f"Title: {task.title}\n"
        f"Description: {task.description}\n"
        f"Importance: {task.importance}\n"
        f"Timeline: {task.timeline}\n"
        f"Skills required: {_join(task.skills_required)}\n"
        f"Training opportunity for lower-level: {'Yes' if task.training_for_lower_level else 'No'}\n\n"
        "Candidates (employeeId in brackets):\n"
        f"{blocks}\n\n"
        'Respond with a JSON array only: [{"employeeId": "...", "reason": "..."}, ...]'
    )
    return [
        {"role": "system", "content": MEDIATOR_SYSTEM_PROMPT},
        {"role": "user", "content": user_content},
    ]


def parse_ranked_suggestions(
    text: str,
    candidates: Sequence[MediatorCandidate]
) -> List[RankedSuggestion]:
    """
    Parse the mediator's JSON array into suggestions.

    Handles code fences and leading/trailing text. Unknown ids and repeated ids
    are dropped; candidates the model left out are appended in input order.

    Returns:
        List[RankedSuggestion]: Full ordering, or [] when nothing usable was returned
    """
    if not text:
        return []

    match = re.search(r"\[[\s\S]*\]", text)
    if not match:
        return []

    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        print(f"[Mediator] ⚠️  JSON parse error: {e}")
        return []

    if not isinstance(items, list):
        return []

    valid_ids = {c.employee_id for c in candidates}
    result: List[RankedSuggestion] = []
    seen = set()
    for item in items:
        if not isinstance(item, dict) or "employeeId" not in item or "reason" not in item:
            continue
        employee_id = str(item["employeeId"])
        if employee_id in valid_ids and employee_id not in seen:
            seen.add(employee_id)
            result.append(RankedSuggestion(employee_id=employee_id, reason=str(item["reason"])))

    if not result:
        return []

    for candidate in candidates:
        if candidate.employee_id not in seen:
            seen.add(candidate.employee_id)
            result.append(RankedSuggestion(employee_id=candidate.employee_id, reason=ADDITIONAL_CANDIDATE_REASON))

    return result


CompletionFn = Callable[[List[Message]], Optional[str]]


class LLMRanking(RankingStrategy):
    """
    Mediator ranking through the configured LLM provider.

    complete can be injected (messages -> text) to avoid network calls.
    """

    name = "llm"

    def __init__(self, config: LLMConfig, complete: Optional[CompletionFn] = None):
        self.config = config
        self._complete = complete

    def _call(self, messages: List[Message]) -> Optional[str]:
        if self._complete is not None:
            return self._complete(messages)
        return call_llm(self.config, messages, temperature=0.2, max_tokens=2048)

    def rank(self, task, candidates):
        if self._complete is None and not self.config.is_enabled:
            raise RankingError(f"No API key configured for provider '{self.config.provider}'")

        text = self._call(build_mediator_messages(task, candidates))
        if not text:
            raise RankingError("Mediator returned no content")

        suggestions = parse_ranked_suggestions(text, candidates)
        if not suggestions:
            raise RankingError("Mediator response contained no usable ranking")
        return suggestions


def build_ranking_strategy(config: Optional[LLMConfig]) -> RankingStrategy:
    """LLMRanking when the provider has a key, otherwise PassThroughRanking."""
    if config is not None and config.is_enabled:
        return LLMRanking(config)
    return PassThroughRanking()


def _covers_all(suggestions, candidates) -> bool:
    ids = [s.employee_id for s in suggestions]
    expected = [c.employee_id for c in candidates]
    return len(ids) == len(expected) and sorted(ids) == sorted(expected)


def rank_candidates(
    task: MediatorTaskInput,
    candidates: Sequence[MediatorCandidate],
    strategy: Optional[RankingStrategy] = None
) -> List[RankedSuggestion]:
    """
    Rank candidates for a task; never raises.

    Args:
        task (MediatorTaskInput): Task being assigned
        candidates: Candidate bundles in profile order
        strategy (Optional[RankingStrategy]): Ranking strategy (pass-through when None)

    Returns:
        List[RankedSuggestion]: Every candidate exactly once
    """
    candidates = list(candidates or [])
    if not candidates:
        return []

    if strategy is None or isinstance(strategy, PassThroughRanking):
        return fallback_ranked(candidates)

    try:
        suggestions = list(strategy.rank(task, candidates) or [])
        if not all(isinstance(s, RankedSuggestion) for s in suggestions):
            raise RankingError("result contains items that are not RankedSuggestion")
        if not _covers_all(suggestions, candidates):
            raise RankingError("result does not cover every candidate exactly once")
    except Exception as e:
        print(f"[Mediator] ⚠️  {getattr(strategy, 'name', type(strategy).__name__)} ranking failed "
              f"({type(e).__name__}: {e}), using profile order")
        if not isinstance(e, RankingError):
            traceback.print_exc()
        return fallback_ranked(candidates)

    print(f"[Mediator] ✅ Ranked {len(suggestions)} candidates with {strategy.name} strategy")
    return suggestions
