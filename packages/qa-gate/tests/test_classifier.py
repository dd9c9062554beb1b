"""Tests for mapping scene analyses to QA statuses."""

import pytest

from qagate.classifier import classify_scene
from qagate.errors import InvalidInputError
from qagate.models import IssueSeverity, SceneAnalysis, SceneIssue, SceneStatus, ThresholdPolicy


@pytest.fixture
def policy() -> ThresholdPolicy:
    return ThresholdPolicy()


def analysis(score, recommendation="needs_review", issues=()) -> SceneAnalysis:
    return SceneAnalysis(
        scene_id="scene-1",
        overall_score=score,
        recommendation=recommendation,
        issues=tuple(issues),
    )


class TestClassifyScene:
    def test_high_score_auto_approved(self, policy):
        record = classify_scene(analysis(85), policy)
        assert record.status == SceneStatus.APPROVED
        assert record.auto_approved is True
        assert record.user_approved is False

    def test_user_approval_wins_over_regenerate(self, policy):
        record = classify_scene(analysis(40, "regenerate"), policy, user_approved=True)
        assert record.status == SceneStatus.APPROVED
        assert record.user_approved is True
        assert record.auto_approved is False

    def test_regenerate_recommendation_rejects(self, policy):
        record = classify_scene(analysis(80, "regenerate"), policy)
        assert record.status == SceneStatus.REJECTED

    def test_below_scene_minimum_rejects(self, policy):
        record = classify_scene(analysis(69.9), policy)
        assert record.status == SceneStatus.REJECTED

    def test_middle_band_needs_review(self, policy):
        record = classify_scene(analysis(70), policy)
        assert record.status == SceneStatus.NEEDS_REVIEW

    def test_issue_counts_by_severity(self, policy):
        issues = [
            SceneIssue(IssueSeverity.CRITICAL, "garbled text"),
            SceneIssue(IssueSeverity.MAJOR, "off-brand colors"),
            SceneIssue(IssueSeverity.MAJOR, "cropped logo"),
            SceneIssue(IssueSeverity.MINOR, "slight blur"),
        ]
        record = classify_scene(analysis(75, issues=issues), policy)
        assert record.critical_issues == 1
        assert record.major_issues == 2
        assert record.minor_issues == 1

    def test_regeneration_count_carried(self, policy):
        record = classify_scene(analysis(75), policy, regeneration_count=2)
        assert record.regeneration_count == 2

    def test_custom_thresholds(self):
        strict = ThresholdPolicy(minimum_scene_score=80, auto_approve_score=95)
        assert classify_scene(analysis(90), strict).status == SceneStatus.NEEDS_REVIEW
        assert classify_scene(analysis(79), strict).status == SceneStatus.REJECTED

    def test_out_of_range_score_rejected(self, policy):
        with pytest.raises(InvalidInputError):
            classify_scene(analysis(101), policy)


class TestIssueSeverity:
    def test_unknown_severity_is_minor(self):
        assert IssueSeverity.parse("cosmetic") == IssueSeverity.MINOR

    def test_case_insensitive(self):
        assert IssueSeverity.parse("CRITICAL") == IssueSeverity.CRITICAL
