"""Gate configuration via environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

from qagate.models import ThresholdPolicy
from qagate.policy import load_policy


class GateSettings(BaseSettings):
    """All configuration loaded from env vars or .env file."""

    # Storage
    database_url: str = "sqlite+aiosqlite:///data/studio.db"
    report_fetch_timeout_seconds: float = 5.0

    # Redis render flag (in-process lock when disabled)
    use_redis_lock: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0
    render_lock_ttl_seconds: int = 3600

    # API
    admin_token: str = "dev-token-change-me"
    privileged_role: str = "admin"

    # Thresholds
    minimum_project_score: float = 75
    minimum_scene_score: float = 70
    auto_approve_score: float = 85
    maximum_major_issues: int | None = None
    require_user_approval: bool = True
    # YAML overrides for the thresholds above
    policy_file: str = ""

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def threshold_policy(self) -> ThresholdPolicy:
        policy = ThresholdPolicy(
            minimum_project_score=self.minimum_project_score,
            minimum_scene_score=self.minimum_scene_score,
            auto_approve_score=self.auto_approve_score,
            maximum_major_issues=self.maximum_major_issues,
            require_user_approval=self.require_user_approval,
        )
        if self.policy_file:
            return load_policy(Path(self.policy_file), base=policy)
        return policy
