"""
department_load.py — Backlog and throughput per department.

One DepartmentLoad per category present in the input:

  current_open_complaints  pending complaints only (verified ones already
                           carry a resolution and are not backlog)
  avg_time_to_resolve      mean submit → resolve days over resolved and
                           verified complaints that HAVE a resolved_date
  resolved_count           the denominator of that mean

Delay classification evaluates BOTH conditions so that a quiet but
chronically slow department is not reported as fine:

  overloaded = open > config.department_overload_open
  slow       = avg_time_to_resolve > config.baseline_days(category)

  both → high, exactly one → medium, neither → low
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

from civicpulse.models.analytics import CategoryDelayProbability, DepartmentLoad
from civicpulse.models.complaint import Category, ComplaintRecord
from civicpulse.services.analytics_config import DEFAULT_CONFIG, AnalyticsConfig
from civicpulse.services.normalizer import assigned_team, is_pending, resolution_days

logger = logging.getLogger(__name__)


def _group(complaints: Sequence[ComplaintRecord]) -> dict[Category, list[ComplaintRecord]]:
    groups: dict[Category, list[ComplaintRecord]] = defaultdict(list)
    for record in complaints:
        groups[record.category].append(record)
    return groups


def _resolution_times(records: Sequence[ComplaintRecord]) -> list[float]:
    # Resolved/verified records missing resolved_date come back as None and are dropped
    return [d for d in (resolution_days(r) for r in records) if d is not None]


def classify_load(open_count: int, avg_days: float, category: Category,
                  config: AnalyticsConfig = DEFAULT_CONFIG) -> str:
    overloaded = open_count > config.department_overload_open
    slow = avg_days > config.baseline_days(category)
    if overloaded and slow:
        return "high"
    if overloaded or slow:
        return "medium"
    return "low"


def calculate_department_load(
    complaints: Sequence[ComplaintRecord],
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> list[DepartmentLoad]:
    """Ordered by open complaints desc, then department name."""
    loads: list[DepartmentLoad] = []
    for category, records in _group(complaints).items():
        open_count = sum(1 for r in records if is_pending(r))
        times = _resolution_times(records)
        avg_days = round(sum(times) / len(times), 1) if times else 0.0

        loads.append(DepartmentLoad(
            department=assigned_team(category),
            category=category,
            current_open_complaints=open_count,
            avg_time_to_resolve=avg_days,
            resolved_count=len(times),
            delay_risk=classify_load(open_count, avg_days, category, config),
        ))

    loads.sort(key=lambda d: (-d.current_open_complaints, d.department))
    logger.debug("Computed load for %d departments", len(loads))
    return loads


def category_delay_probability(
    complaints: Sequence[ComplaintRecord],
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> list[CategoryDelayProbability]:
    """
    Share of resolved complaints per category that took longer than
    config.delay_probability_days. Categories with no resolution history
    get config.default_delay_probability.
    """
    results: list[CategoryDelayProbability] = []
    for category, records in _group(complaints).items():
        times = _resolution_times(records)
        if times:
            late = sum(1 for d in times if d > config.delay_probability_days)
            probability = round(late / len(times) * 100)
            avg_days = round(sum(times) / len(times), 1)
        else:
            probability = config.default_delay_probability
            avg_days = 0.0
        results.append(CategoryDelayProbability(
            category=category,
            delay_probability=probability,
            avg_resolution_days=avg_days,
        ))

    results.sort(key=lambda r: (-r.delay_probability, r.category.value))
    return results
