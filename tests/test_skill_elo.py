"""
Tests for the skill Elo rating updater.
"""
import pytest

from models.core_models import ImportanceLevel
from services.skill_elo import (
    DEFAULT_SKILL_ELO,
    elo_update,
    expected_score,
    importance_to_opponent_elo,
    round_half_up,
    update_skill_ratings_for_completion,
)


def test_expected_score_even_match():
    assert expected_score(1500, 1500) == pytest.approx(0.5)


def test_expected_score_against_critical_task():
    assert expected_score(1500, 1700) == pytest.approx(0.2403, abs=1e-4)


def test_win_against_equal_opponent():
    assert elo_update(1500, 1500, 1) == 1512


def test_win_against_critical_task():
    assert elo_update(1500, 1700, 1) == 1518


def test_loss_against_equal_opponent():
    assert elo_update(1500, 1500, 0) == 1488


def test_round_half_up_is_not_bankers_rounding():
    assert round_half_up(1512.5) == 1513
    assert round_half_up(1511.5) == 1512
    assert round_half_up(-0.5) == 0


@pytest.mark.parametrize("importance, expected", [
    ("low", 1400),
    ("medium", 1500),
    ("high", 1600),
    ("critical", 1700),
    (ImportanceLevel.CRITICAL, 1700),
    ("urgent", 1500),
    (None, 1500),
])
def test_importance_to_opponent_elo(importance, expected):
    assert importance_to_opponent_elo(importance) == expected


def test_completion_rates_only_used_skills():
    ratings = update_skill_ratings_for_completion({"React": 1500, "SQL": 1600}, ["React"], "medium")
    assert ratings == {"React": 1512, "SQL": 1600}


def test_unrated_skill_starts_at_default():
    ratings = update_skill_ratings_for_completion({}, ["Docker"], "critical")
    assert ratings == {"Docker": 1518}
    assert DEFAULT_SKILL_ELO == 1500


def test_repeated_skill_name_is_applied_twice():
    ratings = update_skill_ratings_for_completion({}, ["React", " React "], "high")
    once = elo_update(1500, 1600, 1)
    assert once == 1515
    assert ratings == {"React": elo_update(once, 1600, 1)}
    assert ratings["React"] > once


def test_no_skills_returns_unchanged_copy():
    current = {"SQL": 1600}
    ratings = update_skill_ratings_for_completion(current, None, "low")
    assert ratings == {"SQL": 1600}
    assert ratings is not current


def test_input_mapping_is_not_mutated():
    current = {"React": 1500}
    update_skill_ratings_for_completion(current, ["React"], "medium")
    assert current == {"React": 1500}


def test_blank_and_non_string_names_are_skipped():
    ratings = update_skill_ratings_for_completion({}, ["", "   ", None, 42, "Go"], "medium")
    assert ratings == {"Go": 1512}


def test_unknown_importance_rates_like_medium():
    assert update_skill_ratings_for_completion({}, ["Go"], "urgent") == {"Go": 1512}


def test_names_are_trimmed_but_case_is_kept():
    ratings = update_skill_ratings_for_completion({"react": 1500}, ["  React  "], "medium")
    assert ratings == {"react": 1500, "React": 1512}


def test_extreme_rating_gaps_saturate():
    assert expected_score(1500, 200000) == 0.0
    assert expected_score(200000, 1500) == 1.0
    assert elo_update(1500, 200000, 1) == 1524
    assert elo_update(200000, 1500, 1) == 200000


def test_extreme_stored_rating_does_not_raise():
    ratings = update_skill_ratings_for_completion({"X": -200000}, ["X"], "low")
    assert ratings == {"X": -199976}


SWEEP_OPPONENTS = [-200000, 0, 1000, 1400, 1500, 1501, 1600, 1700, 2000, 3000, 200000]


@pytest.mark.parametrize("current", [-200000, 0, 1000, 1500, 1650, 2000, 3000, 200000])
def test_win_gain_grows_with_opponent_and_is_capped(current):
    gains = [elo_update(current, opponent, 1) - current for opponent in SWEEP_OPPONENTS]

    assert all(0 <= gain <= 24 for gain in gains)
    assert gains == sorted(gains)
    # At least as strong an opponent means expected <= 0.5, so at least half of k
    for opponent, gain in zip(SWEEP_OPPONENTS, gains):
        if opponent >= current:
            assert gain >= 12
