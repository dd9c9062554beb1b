"""Quality gate — render permission derived from scene QA records.

Checks run independently and every violated policy adds a blocking reason,
so the user sees the full remediation list at once:

  1. no analysis at all          -> "Quality analysis required before rendering."
  2. rejected scenes             -> "N scene(s) rejected — must regenerate."
  3. scenes needing review       -> "N scene(s) need review — approve or regenerate."
  4. critical issues             -> "N critical issue(s) must be resolved."
  5. mean score below minimum    -> "Overall score (X) below minimum (Y)."
  6. major issues above maximum  -> only when the policy sets a maximum

can_render is True iff no reason was added. The project score is the mean
of the non-rejected scenes and is undefined (None, check 5 skipped) when
there are none. Pending scenes are counted but never block on their own.
"""

from __future__ import annotations

from collections.abc import Sequence

from qagate.errors import InvalidInputError
from qagate.models import ProjectQAReport, SceneQARecord, SceneStatus, ThresholdPolicy

ANALYSIS_REQUIRED_REASON = "Quality analysis required before rendering."


def format_number(value: float, places: int = 2) -> str:
    """60.0 -> '60', 74.994 -> '74.99'."""
    return f"{round(value, places):.{places}f}".rstrip("0").rstrip(".")


def _format_shortfall(score: float, minimum: float) -> tuple[str, str]:
    # Widen precision until a below-minimum score no longer prints as the minimum.
    for places in range(2, 7):
        shown, limit = format_number(score, places), format_number(minimum, places)
        if shown != limit:
            return shown, limit
    return repr(score), format_number(minimum)


class QualityGate:
    """Evaluates whether a project's scenes may proceed to rendering."""

    def __init__(self, policy: ThresholdPolicy | None = None) -> None:
        self.policy = policy or ThresholdPolicy()

    def evaluate(
        self,
        records: Sequence[SceneQARecord] | None,
        policy: ThresholdPolicy | None = None,
    ) -> ProjectQAReport:
        return evaluate(records, policy or self.policy)


def evaluate(
    records: Sequence[SceneQARecord] | None,
    policy: ThresholdPolicy,
) -> ProjectQAReport:
    """Aggregate *records* into a ProjectQAReport under *policy*.

    ``records=None`` means no QA report exists for the project; an empty
    sequence is treated the same way. Raises InvalidInputError on a
    malformed record.
    """
    scenes = list(records or ())
    _validate(scenes)

    by_status = {status: 0 for status in SceneStatus}
    for scene in scenes:
        by_status[scene.status] += 1

    critical = sum(s.critical_issues for s in scenes)
    major = sum(s.major_issues for s in scenes)
    minor = sum(s.minor_issues for s in scenes)
    # Rejected scenes are already blocking and will be regenerated.
    scored = [s.overall_score for s in scenes if s.status != SceneStatus.REJECTED]
    overall = sum(scored) / len(scored) if scored else None

    reasons: list[str] = []
    rejected = by_status[SceneStatus.REJECTED]
    needs_review = by_status[SceneStatus.NEEDS_REVIEW]

    if not scenes:
        reasons.append(ANALYSIS_REQUIRED_REASON)
    if rejected > 0:
        reasons.append(f"{rejected} scene(s) rejected — must regenerate.")
    if needs_review > 0 and policy.require_user_approval:
        reasons.append(f"{needs_review} scene(s) need review — approve or regenerate.")
    if critical > 0:
        reasons.append(f"{critical} critical issue(s) must be resolved.")
    if overall is not None and overall < policy.minimum_project_score:
        shown, limit = _format_shortfall(overall, policy.minimum_project_score)
        reasons.append(f"Overall score ({shown}) below minimum ({limit}).")
    if policy.maximum_major_issues is not None and major > policy.maximum_major_issues:
        reasons.append(
            f"{major} major issue(s) exceed maximum ({policy.maximum_major_issues})."
        )

    return ProjectQAReport(
        overall_score=overall,
        scene_count=len(scenes),
        approved_count=by_status[SceneStatus.APPROVED],
        needs_review_count=needs_review,
        rejected_count=rejected,
        pending_count=by_status[SceneStatus.PENDING],
        critical_issue_count=critical,
        major_issue_count=major,
        minor_issue_count=minor,
        can_render=not reasons,
        blocking_reasons=reasons,
    )


def _validate(scenes: list[SceneQARecord]) -> None:
    seen: set[str] = set()
    for scene in scenes:
        scene.validate()
        if scene.scene_id in seen:
            raise InvalidInputError(f"Duplicate scene_id {scene.scene_id!r} in project")
        seen.add(scene.scene_id)
