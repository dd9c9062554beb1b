"""Scene QA gate — render permission for generated video projects."""

from qagate.classifier import classify_scene
from qagate.errors import (
    InvalidInputError,
    ProjectNotFoundError,
    QualityGateError,
    RenderJobNotFoundError,
    ReportFetchTimeoutError,
    SceneNotFoundError,
    SceneTransitionError,
)
from qagate.gate import QualityGate, evaluate
from qagate.guard import DenialKind, RenderDecision, RenderGuard
from qagate.models import (
    IssueSeverity,
    ProjectQAReport,
    SceneAnalysis,
    SceneIssue,
    SceneQARecord,
    SceneStatus,
    ThresholdPolicy,
)

__all__ = [
    "DenialKind",
    "InvalidInputError",
    "IssueSeverity",
    "ProjectNotFoundError",
    "ProjectQAReport",
    "QualityGate",
    "QualityGateError",
    "RenderDecision",
    "RenderGuard",
    "RenderJobNotFoundError",
    "ReportFetchTimeoutError",
    "SceneAnalysis",
    "SceneIssue",
    "SceneNotFoundError",
    "SceneQARecord",
    "SceneStatus",
    "SceneTransitionError",
    "ThresholdPolicy",
    "classify_scene",
    "evaluate",
]
