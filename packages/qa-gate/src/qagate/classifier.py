"""Scene classifier — maps an analysis result to a QA status.

  - user approved, or score >= auto_approve_score   -> approved
  - analysis recommends regeneration                -> rejected
  - score < minimum_scene_score                     -> rejected
  - otherwise                                       -> needs_review
"""

from __future__ import annotations

from qagate.models import (
    IssueSeverity,
    SceneAnalysis,
    SceneQARecord,
    SceneStatus,
    ThresholdPolicy,
)


def classify_scene(
    analysis: SceneAnalysis,
    policy: ThresholdPolicy,
    user_approved: bool = False,
    regeneration_count: int = 0,
) -> SceneQARecord:
    score = analysis.overall_score
    auto_approved = score >= policy.auto_approve_score

    if user_approved or auto_approved:
        status = SceneStatus.APPROVED
    elif analysis.recommendation == "regenerate":
        status = SceneStatus.REJECTED
    elif score < policy.minimum_scene_score:
        status = SceneStatus.REJECTED
    else:
        status = SceneStatus.NEEDS_REVIEW

    severities = [IssueSeverity.parse(issue.severity) for issue in analysis.issues]
    record = SceneQARecord(
        scene_id=analysis.scene_id,
        status=status,
        overall_score=score,
        critical_issues=severities.count(IssueSeverity.CRITICAL),
        major_issues=severities.count(IssueSeverity.MAJOR),
        minor_issues=severities.count(IssueSeverity.MINOR),
        user_approved=user_approved,
        auto_approved=auto_approved and not user_approved,
        regeneration_count=regeneration_count,
    )
    record.validate()
    return record
