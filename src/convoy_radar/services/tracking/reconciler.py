"""Merge the convoy-level leader position and the roster feed into one position per convoy."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ...models.domain import ConvoySnapshot, MemberPositionReport, ReconciledPosition

LEADER_ROLE = "leader"


def is_leader_report(report: MemberPositionReport, convoy: ConvoySnapshot) -> bool:
    if report.role == LEADER_ROLE:
        return True
    return bool(report.user_id and convoy.leader_id and report.user_id == convoy.leader_id)


def _rank(observed_at: Optional[datetime]) -> float:
    # Unknown timestamps lose against any known one.
    return observed_at.timestamp() if observed_at is not None else float("-inf")


def reconcile_leader_positions(
    convoys: Sequence[ConvoySnapshot],
    roster: Iterable[MemberPositionReport],
) -> dict[str, ReconciledPosition]:
    """Return the best known leader position for each convoy that has one.

    The convoy row seeds the candidate; an eligible roster row replaces it when
    its timestamp is greater than or equal to the candidate's. Convoys without
    a position in either feed are absent from the result.
    """
    by_id = {convoy.id: convoy for convoy in convoys}
    candidates: dict[str, ReconciledPosition] = {}

    for convoy in convoys:
        if convoy.raw_leader_position is None:
            continue
        candidates[convoy.id] = ReconciledPosition(
            position=convoy.raw_leader_position,
            observed_at=convoy.raw_leader_position_at,
        )

    for report in roster:
        convoy = by_id.get(report.convoy_id)
        if convoy is None or report.position is None:
            continue
        if not is_leader_report(report, convoy):
            continue

        current = candidates.get(convoy.id)
        if current is None or _rank(report.reported_at) >= _rank(current.observed_at):
            candidates[convoy.id] = ReconciledPosition(
                position=report.position,
                observed_at=report.reported_at,
            )

    return candidates
