"""Distance trend classification with hysteresis."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ...config import settings
from ...models.domain import DistanceState, TrendEnum

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrendThresholds:
    proximity_km: float = 2.0
    passed_delta_km: float = 0.6
    dead_band_km: float = 0.45

    @classmethod
    def from_settings(cls) -> "TrendThresholds":
        return cls(
            proximity_km=settings.trend_proximity_km,
            passed_delta_km=settings.trend_passed_delta_km,
            dead_band_km=settings.trend_dead_band_km,
        )


def classify_sample(
    state: Optional[DistanceState],
    distance_km: float,
    thresholds: TrendThresholds = TrendThresholds(),
) -> DistanceState:
    """Return the state that follows ``state`` after observing ``distance_km``.

    The closest approach is never reset while the convoy stays tracked, so a
    convoy that once came within ``proximity_km`` reports ``passed`` on any
    later clear recession.
    """
    if state is None or state.last_distance_km is None:
        return DistanceState(
            last_distance_km=distance_km,
            min_seen_distance_km=distance_km,
            trend=TrendEnum.UNKNOWN,
        )

    previous_min = state.min_seen_distance_km
    min_seen = distance_km if previous_min is None else min(previous_min, distance_km)
    delta = distance_km - state.last_distance_km

    if min_seen <= thresholds.proximity_km and delta > thresholds.passed_delta_km:
        trend = TrendEnum.PASSED
    elif delta <= -thresholds.dead_band_km:
        trend = TrendEnum.APPROACHING
    elif delta >= thresholds.dead_band_km:
        trend = TrendEnum.AWAY
    else:
        trend = TrendEnum.STABLE

    return DistanceState(last_distance_km=distance_km, min_seen_distance_km=min_seen, trend=trend)


class DistanceTrendClassifier:
    """Owns the per-convoy ``DistanceState`` map for one monitoring session.

    State is created on a convoy's first sample, advanced on every later
    sample, left untouched on ticks without a sample and evicted once the
    convoy leaves the active set.
    """

    def __init__(self, thresholds: TrendThresholds | None = None) -> None:
        self.thresholds = thresholds or TrendThresholds.from_settings()
        self._states: dict[str, DistanceState] = {}

    def observe(self, convoy_id: str, distance_km: float) -> TrendEnum:
        state = classify_sample(self._states.get(convoy_id), distance_km, self.thresholds)
        self._states[convoy_id] = state
        return state.trend

    def trend_for(self, convoy_id: str) -> Optional[TrendEnum]:
        state = self._states.get(convoy_id)
        return state.trend if state is not None else None

    def retain(self, active_ids: Iterable[str]) -> None:
        """Drop state for every convoy that is no longer active."""
        keep = set(active_ids)
        stale = [convoy_id for convoy_id in self._states if convoy_id not in keep]
        for convoy_id in stale:
            del self._states[convoy_id]
        if stale:
            logger.debug(f"Evicted trend state for {len(stale)} inactive convoys")

    def snapshot(self) -> dict[str, DistanceState]:
        """Copies of the current states, safe to hand to readers."""
        return {convoy_id: dataclasses.replace(state) for convoy_id, state in self._states.items()}

    def __len__(self) -> int:
        return len(self._states)
