"""Error taxonomy for the quality gate.

Quality-gate and authorization denials are results, not exceptions
(see guard.DenialKind). Everything here is recoverable by the caller.
"""

from __future__ import annotations


class QualityGateError(Exception):
    pass


class InvalidInputError(QualityGateError):
    """Malformed scene QA record: score out of range, unknown status, ..."""


class SceneTransitionError(QualityGateError):
    """Illegal status change, or mutation of a record used by a completed render."""


class ProjectNotFoundError(QualityGateError):
    pass


class SceneNotFoundError(QualityGateError):
    pass


class RenderJobNotFoundError(QualityGateError):
    pass


class ReportFetchTimeoutError(QualityGateError):
    """Loading the QA records from the store exceeded the configured bound."""
