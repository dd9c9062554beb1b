"""Scene QA records, threshold policy and the derived project report."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

from qagate.errors import InvalidInputError


class SceneStatus(Enum):
    APPROVED = "approved"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"
    PENDING = "pending"

    @classmethod
    def parse(cls, value: SceneStatus | str) -> SceneStatus:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise InvalidInputError(
                f"Unknown scene status {value!r}. Must be one of: {allowed}"
            ) from None


class IssueSeverity(Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"

    @classmethod
    def parse(cls, value: IssueSeverity | str) -> IssueSeverity:
        # Anything that is not critical or major counts as minor.
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.MINOR


@dataclass(frozen=True)
class SceneQARecord:
    scene_id: str
    status: SceneStatus
    overall_score: float
    critical_issues: int = 0
    major_issues: int = 0
    minor_issues: int = 0
    user_approved: bool = False
    auto_approved: bool = False
    regeneration_count: int = 0

    def validate(self) -> None:
        """Raise InvalidInputError if the record cannot be evaluated."""
        if not self.scene_id:
            raise InvalidInputError("Scene QA record is missing scene_id")
        if not isinstance(self.status, SceneStatus):
            raise InvalidInputError(
                f"Scene {self.scene_id}: unrecognized status {self.status!r}"
            )
        score = self.overall_score
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise InvalidInputError(f"Scene {self.scene_id}: score {score!r} is not a number")
        if math.isnan(score) or score < 0 or score > 100:
            raise InvalidInputError(
                f"Scene {self.scene_id}: score {score} outside [0, 100]"
            )
        for name in ("critical_issues", "major_issues", "minor_issues", "regeneration_count"):
            count = getattr(self, name)
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise InvalidInputError(
                    f"Scene {self.scene_id}: {name} must be a non-negative integer, got {count!r}"
                )

    @classmethod
    def from_dict(cls, data: dict) -> SceneQARecord:
        """Build a record from loosely-typed input (API bodies, stored JSON)."""
        try:
            scene_id = str(data["scene_id"])
            raw_status = data["status"]
            score = data["overall_score"]
        except KeyError as exc:
            raise InvalidInputError(f"Scene QA record is missing field {exc.args[0]!r}") from None
        record = cls(
            scene_id=scene_id,
            status=SceneStatus.parse(raw_status),
            overall_score=score,
            critical_issues=data.get("critical_issues", 0),
            major_issues=data.get("major_issues", 0),
            minor_issues=data.get("minor_issues", 0),
            user_approved=bool(data.get("user_approved", False)),
            auto_approved=bool(data.get("auto_approved", False)),
            regeneration_count=data.get("regeneration_count", 0),
        )
        record.validate()
        return record


@dataclass(frozen=True)
class ThresholdPolicy:
    """Render thresholds. Passed explicitly, never read from module state."""

    minimum_project_score: float = 75
    minimum_scene_score: float = 70
    auto_approve_score: float = 85
    maximum_major_issues: int | None = None
    require_user_approval: bool = True


@dataclass(frozen=True)
class SceneIssue:
    severity: IssueSeverity
    description: str = ""


@dataclass(frozen=True)
class SceneAnalysis:
    """Output of the external scene analysis step."""

    scene_id: str
    overall_score: float
    recommendation: str = "needs_review"  # approved | needs_review | regenerate
    issues: tuple[SceneIssue, ...] = ()


@dataclass
class ProjectQAReport:
    # Mean over non-rejected scenes; None when no scene is left to score.
    overall_score: float | None
    scene_count: int
    approved_count: int
    needs_review_count: int
    rejected_count: int
    pending_count: int
    critical_issue_count: int
    major_issue_count: int
    minor_issue_count: int
    can_render: bool
    blocking_reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "overall_score": self.overall_score,
            "scene_count": self.scene_count,
            "approved_count": self.approved_count,
            "needs_review_count": self.needs_review_count,
            "rejected_count": self.rejected_count,
            "pending_count": self.pending_count,
            "critical_issue_count": self.critical_issue_count,
            "major_issue_count": self.major_issue_count,
            "minor_issue_count": self.minor_issue_count,
            "can_render": self.can_render,
            "blocking_reasons": list(self.blocking_reasons),
        }
