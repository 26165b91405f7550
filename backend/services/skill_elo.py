"""
Skill Elo Rating Service for Agenta

Elo-style rating for skills. Ratings are updated when assignments are completed:
the task's importance is the "opponent" strength and completion is a win (score 1).

Key Rules:
- Every skill starts at 1500
- K factor is 24
- Ratings are integers (round half up, like JavaScript Math.round)
- Skills not used by the task are left untouched
- Pure Python computation only, no database writes

Input: current skill ratings + skills used + task importance
Output: new skill ratings mapping (skill -> rating)
"""

import math
from typing import Dict, Iterable, Optional

from models.core_models import IMPORTANCE_ELO


# Configuration constants
DEFAULT_SKILL_ELO = 1500  # Rating for a skill that has never been rated
K_FACTOR = 24  # Maximum change per completed task
WIN_SCORE = 1.0  # Completed task = win
MAX_ELO_EXPONENT = 300.0  # Rating gap / 400 beyond which expected score saturates


def expected_score(player_elo: float, opponent_elo: float) -> float:
    """
    Expected score (0-1) for a player rated player_elo against opponent_elo.

    Args:
        player_elo (float): Player rating
        opponent_elo (float): Opponent rating

    Returns:
        float: Win probability under the Elo model (exactly 0.0 or 1.0 at the extremes)
    """
    exponent = (opponent_elo - player_elo) / 400.0
    # math.pow overflows near 10 ** 308; saturate before that
    if exponent > MAX_ELO_EXPONENT:
        return 0.0
    if exponent < -MAX_ELO_EXPONENT:
        return 1.0
    return 1.0 / (1.0 + math.pow(10.0, exponent))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def elo_update(current_elo: float, opponent_elo: float, score: float, k: float = K_FACTOR) -> int:
    """
    New Elo after a match.

    Args:
        current_elo (float): Rating before the match
        opponent_elo (float): Opponent rating
        score (float): 1 = win, 0 = loss, 0.5 = draw
        k (float): K factor

    Returns:
        int: Updated rating
    """
    expected = expected_score(current_elo, opponent_elo)
    return round_half_up(current_elo + k * (score - expected))


def importance_to_opponent_elo(importance: Optional[str]) -> int:
    """
    Opponent rating for a task importance level.

    Unknown or missing importance rates like "medium" (1500).
    """
    if importance is None:
        return DEFAULT_SKILL_ELO
    # ImportanceLevel members are str subclasses; .value gives the plain key
    key = getattr(importance, "value", importance)
    return IMPORTANCE_ELO.get(key, DEFAULT_SKILL_ELO)


def update_skill_ratings_for_completion(
    current_ratings: Optional[Dict[str, int]],
    skills_used: Optional[Iterable[str]],
    importance: Optional[str]
) -> Dict[str, int]:
    """
    Compute new skill ratings after completing an assignment.

    For each skill in skills_used (trimmed, empty names skipped), treat completion
    as a win against the task's importance rating. Names are applied in order,
    so a name listed twice is updated twice.

    Args:
        current_ratings (Optional[Dict[str, int]]): Ratings before the task (not mutated)
        skills_used (Optional[Iterable[str]]): Skills used in the task
        importance (Optional[str]): Task importance level

    Returns:
        Dict[str, int]: New ratings mapping; a copy of current_ratings when no skills were used
    """
    next_ratings: Dict[str, int] = dict(current_ratings or {})

    skills = list(skills_used or [])
    if not skills:
        return next_ratings

    opponent_elo = importance_to_opponent_elo(importance)

    for skill in skills:
        if not isinstance(skill, str):
            continue
        name = skill.strip()
        if not name:
            continue
        current = next_ratings.get(name, DEFAULT_SKILL_ELO)
        next_ratings[name] = elo_update(current, opponent_elo, WIN_SCORE)

    return next_ratings
