"""Live position, trend and headcount tracking."""

from .headcount import HeadcountAggregator, normalize_headcount_row, stats_from_roster
from .reconciler import reconcile_leader_positions
from .trend import DistanceTrendClassifier, TrendThresholds, classify_sample

__all__ = [
    "DistanceTrendClassifier",
    "HeadcountAggregator",
    "TrendThresholds",
    "classify_sample",
    "normalize_headcount_row",
    "reconcile_leader_positions",
    "stats_from_roster",
]
