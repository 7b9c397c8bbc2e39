"""
Lawyer workload scoring

score = 0.4 * (100 - workload%) + 0.4 * success_rate + 0.2 * min(experience * 2, 20)

Higher is better. Pure functions over plain numbers or a Lawyer row.
"""
from typing import Any, Dict, Union
from src.utils.exceptions import ValidationError

Number = Union[int, float]

WORKLOAD_WEIGHT = 0.4
SUCCESS_WEIGHT = 0.4
EXPERIENCE_WEIGHT = 0.2
EXPERIENCE_POINTS_PER_YEAR = 2
EXPERIENCE_POINTS_CAP = 20


def workload_percent(current_case_load: Number, max_case_load: Number) -> float:
    """
    Current load as a percentage of capacity
    
    Args:
        current_case_load: open cases
        max_case_load: capacity (must be >= 1)
    
    Returns:
        percentage (0 for a zero capacity)
    """
    if not max_case_load:
        return 0.0
    return 100.0 * float(current_case_load) / float(max_case_load)


def workload_score(
    current_case_load: Number,
    max_case_load: Number,
    success_rate_percent: Number,
    experience_years: Number
) -> float:
    """
    Composite ranking score rounded to 2 decimals
    
    Raises:
        ValidationError: max_case_load below 1
    """
    if max_case_load is None or max_case_load < 1:
        raise ValidationError("max_case_load must be at least 1", "max_case_load")
    
    load_part = 100.0 - workload_percent(current_case_load, max_case_load)
    experience_part = min(float(experience_years) * EXPERIENCE_POINTS_PER_YEAR, EXPERIENCE_POINTS_CAP)
    score = (
        WORKLOAD_WEIGHT * load_part
        + SUCCESS_WEIGHT * float(success_rate_percent)
        + EXPERIENCE_WEIGHT * experience_part
    )
    return round(score, 2)


def score_lawyer(lawyer: Any) -> float:
    """Score a Lawyer row (or anything with the same attributes)"""
    return workload_score(
        lawyer.current_case_load or 0,
        lawyer.max_case_load,
        lawyer.success_rate_percent or 0,
        lawyer.experience_years or 0,
    )


def workload_summary(lawyer: Any) -> Dict[str, Any]:
    """Load figures shown next to a lawyer"""
    return {
        "current_case_load": lawyer.current_case_load,
        "max_case_load": lawyer.max_case_load,
        "workload_percent": round(workload_percent(lawyer.current_case_load, lawyer.max_case_load), 2),
        "workload_score": score_lawyer(lawyer),
        "remaining_capacity": max(lawyer.max_case_load - lawyer.current_case_load, 0),
    }
