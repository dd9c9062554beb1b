"""Tests for scene status transitions."""

import pytest

from qagate import transitions
from qagate.errors import SceneTransitionError
from qagate.models import SceneQARecord, SceneStatus, ThresholdPolicy


def record(status: SceneStatus, score: float = 80, scene_id: str = "s1") -> SceneQARecord:
    return SceneQARecord(scene_id=scene_id, status=status, overall_score=score)


class TestValidTransitions:
    @pytest.mark.parametrize(
        "target", [SceneStatus.APPROVED, SceneStatus.NEEDS_REVIEW, SceneStatus.REJECTED]
    )
    def test_pending_moves_anywhere_analyzed(self, target):
        moved = transitions.transition(record(SceneStatus.PENDING), target)
        assert moved.status == target

    def test_needs_review_to_approved(self):
        moved = transitions.approve(record(SceneStatus.NEEDS_REVIEW))
        assert moved.status == SceneStatus.APPROVED
        assert moved.user_approved is True

    def test_needs_review_to_rejected(self):
        moved = transitions.reject(record(SceneStatus.NEEDS_REVIEW))
        assert moved.status == SceneStatus.REJECTED

    def test_rejected_to_pending_counts_regeneration(self):
        moved = transitions.request_regeneration(record(SceneStatus.REJECTED))
        assert moved.status == SceneStatus.PENDING
        assert moved.regeneration_count == 1

    def test_same_status_is_noop(self):
        original = record(SceneStatus.APPROVED)
        assert transitions.transition(original, SceneStatus.APPROVED) is original

    def test_input_not_mutated(self):
        original = record(SceneStatus.NEEDS_REVIEW)
        transitions.approve(original)
        assert original.status == SceneStatus.NEEDS_REVIEW


class TestInvalidTransitions:
    def test_approved_cannot_be_rejected(self):
        with pytest.raises(SceneTransitionError):
            transitions.reject(record(SceneStatus.APPROVED))

    def test_rejected_cannot_be_approved(self):
        with pytest.raises(SceneTransitionError):
            transitions.approve(record(SceneStatus.REJECTED))

    def test_needs_review_cannot_go_back_to_pending(self):
        with pytest.raises(SceneTransitionError):
            transitions.request_regeneration(record(SceneStatus.NEEDS_REVIEW))

    def test_can_transition_table(self):
        assert transitions.can_transition(SceneStatus.REJECTED, SceneStatus.PENDING)
        assert not transitions.can_transition(SceneStatus.APPROVED, SceneStatus.PENDING)


class TestBulkActions:
    def test_approve_all_only_touches_needs_review(self):
        records = [
            record(SceneStatus.NEEDS_REVIEW, scene_id="a"),
            record(SceneStatus.REJECTED, scene_id="b"),
            record(SceneStatus.PENDING, scene_id="c"),
        ]
        result = transitions.approve_all_needing_review(records)
        assert [r.status for r in result] == [
            SceneStatus.APPROVED,
            SceneStatus.REJECTED,
            SceneStatus.PENDING,
        ]

    def test_auto_approve_respects_threshold(self):
        policy = ThresholdPolicy(auto_approve_score=85)
        records = [
            record(SceneStatus.NEEDS_REVIEW, score=90, scene_id="a"),
            record(SceneStatus.NEEDS_REVIEW, score=84, scene_id="b"),
        ]
        result = transitions.auto_approve_eligible(records, policy)
        assert result[0].status == SceneStatus.APPROVED
        assert result[0].auto_approved is True
        assert result[1].status == SceneStatus.NEEDS_REVIEW
