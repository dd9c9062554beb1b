"""Threshold policy files (YAML) validated with JSON Schema.

Example::

    minimum_project_score: 80
    minimum_scene_score: 70
    auto_approve_score: 90
    maximum_major_issues: 3
    require_user_approval: true
"""

from __future__ import annotations

from pathlib import Path

import jsonschema
import yaml

from qagate.errors import InvalidInputError
from qagate.models import ThresholdPolicy

_SCORE = {"type": "number", "minimum": 0, "maximum": 100}

POLICY_SCHEMA = {
    "type": "object",
    "properties": {
        "minimum_project_score": _SCORE,
        "minimum_scene_score": _SCORE,
        "auto_approve_score": _SCORE,
        "maximum_major_issues": {"type": ["integer", "null"], "minimum": 0},
        "require_user_approval": {"type": "boolean"},
    },
    "additionalProperties": False,
}


def policy_from_dict(data: dict, base: ThresholdPolicy | None = None) -> ThresholdPolicy:
    """Overlay *data* on *base* (defaults when omitted)."""
    try:
        jsonschema.validate(instance=data, schema=POLICY_SCHEMA)
    except jsonschema.ValidationError as e:
        raise InvalidInputError(f"Threshold policy: {e.json_path}: {e.message}") from e

    base = base or ThresholdPolicy()
    return ThresholdPolicy(
        minimum_project_score=data.get("minimum_project_score", base.minimum_project_score),
        minimum_scene_score=data.get("minimum_scene_score", base.minimum_scene_score),
        auto_approve_score=data.get("auto_approve_score", base.auto_approve_score),
        maximum_major_issues=data.get("maximum_major_issues", base.maximum_major_issues),
        require_user_approval=data.get("require_user_approval", base.require_user_approval),
    )


def load_policy(path: Path, base: ThresholdPolicy | None = None) -> ThresholdPolicy:
    if not path.exists():
        raise InvalidInputError(f"Threshold policy file not found: {path}")
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise InvalidInputError(f"Threshold policy file {path} must contain a mapping")
    return policy_from_dict(data, base)
