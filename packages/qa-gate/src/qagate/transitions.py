"""Scene status transitions driven by explicit human or pipeline actions.

The gate never changes a status itself; it only reads the current one.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from qagate.errors import SceneTransitionError
from qagate.models import SceneQARecord, SceneStatus, ThresholdPolicy

VALID_TRANSITIONS: dict[SceneStatus, set[SceneStatus]] = {
    SceneStatus.PENDING: {
        SceneStatus.APPROVED,
        SceneStatus.NEEDS_REVIEW,
        SceneStatus.REJECTED,
    },
    SceneStatus.NEEDS_REVIEW: {SceneStatus.APPROVED, SceneStatus.REJECTED},
    # Regeneration request
    SceneStatus.REJECTED: {SceneStatus.PENDING},
    SceneStatus.APPROVED: set(),
}


def can_transition(current: SceneStatus, target: SceneStatus) -> bool:
    return current == target or target in VALID_TRANSITIONS[current]


def transition(record: SceneQARecord, target: SceneStatus) -> SceneQARecord:
    """Return a copy of *record* in *target* status, raising on illegal moves."""
    if record.status == target:
        return record
    if target not in VALID_TRANSITIONS[record.status]:
        raise SceneTransitionError(
            f"Scene {record.scene_id}: cannot move from {record.status.value} to {target.value}"
        )
    return replace(record, status=target)


def approve(record: SceneQARecord) -> SceneQARecord:
    return replace(transition(record, SceneStatus.APPROVED), user_approved=True)


def reject(record: SceneQARecord) -> SceneQARecord:
    return replace(
        transition(record, SceneStatus.REJECTED),
        user_approved=False,
        auto_approved=False,
    )


def request_regeneration(record: SceneQARecord) -> SceneQARecord:
    if record.status == SceneStatus.PENDING:
        return record
    moved = transition(record, SceneStatus.PENDING)
    return replace(moved, regeneration_count=record.regeneration_count + 1)


def approve_if_needs_review(record: SceneQARecord) -> SceneQARecord:
    if record.status != SceneStatus.NEEDS_REVIEW:
        return record
    return approve(record)


def auto_approve_if_eligible(record: SceneQARecord, policy: ThresholdPolicy) -> SceneQARecord:
    """Approve a needs_review scene whose score reaches the auto-approve bar."""
    if record.status != SceneStatus.NEEDS_REVIEW or record.overall_score < policy.auto_approve_score:
        return record
    return replace(transition(record, SceneStatus.APPROVED), auto_approved=True)


def approve_all_needing_review(records: Iterable[SceneQARecord]) -> list[SceneQARecord]:
    return [approve_if_needs_review(r) for r in records]


def auto_approve_eligible(
    records: Iterable[SceneQARecord], policy: ThresholdPolicy
) -> list[SceneQARecord]:
    return [auto_approve_if_eligible(r, policy) for r in records]
