"""
Lawyer scoring tests
"""
from types import SimpleNamespace

import pytest

from src.services.lawyer_scoring import (
    score_lawyer,
    workload_percent,
    workload_score,
    workload_summary,
)
from src.utils.exceptions import ValidationError


def test_workload_percent():
    assert workload_percent(5, 10) == 50.0
    assert workload_percent(0, 10) == 0.0


def test_workload_score_formula():
    # 0.4 * (100 - 50) + 0.4 * 80 + 0.2 * min(5 * 2, 20)
    assert workload_score(5, 10, 80, 5) == 54.0


def test_experience_is_capped():
    assert workload_score(0, 10, 0, 10) == workload_score(0, 10, 0, 25)
    assert workload_score(0, 10, 0, 10) == 44.0


def test_score_rounded_to_two_places():
    assert workload_score(1, 3, 72.5, 3) == 56.87


def test_lower_load_scores_higher():
    """Score is monotonically non-increasing in current load"""
    scores = [workload_score(load, 10, 70, 5) for load in range(11)]
    assert scores == sorted(scores, reverse=True)


def test_zero_capacity_rejected():
    with pytest.raises(ValidationError):
        workload_score(0, 0, 50, 5)


def test_workload_summary():
    lawyer = SimpleNamespace(
        current_case_load=8,
        max_case_load=15,
        success_rate_percent=60,
        experience_years=12,
    )
    summary = workload_summary(lawyer)
    assert summary["remaining_capacity"] == 7
    assert summary["workload_percent"] == 53.33
    assert summary["workload_score"] == score_lawyer(lawyer)
