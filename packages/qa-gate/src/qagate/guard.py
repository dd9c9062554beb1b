"""Render route guard — enforces the quality gate when a render is requested.

Order of checks for request_render():
  1. force_render by a non-privileged role  -> AUTHORIZATION denial
  2. load records (bounded), evaluate gate
  3. gate blocks and not forced              -> QUALITY_GATE denial
  4. render already in flight               -> accepted, nothing enqueued
  5. compare-and-set the render flag; losing it -> accepted, nothing enqueued
  6. forced by privileged role -> bypass audited; enqueue exactly one job
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum

from qagate.audit import AuditEntry, AuditLogger, InMemoryAuditLogger
from qagate.errors import ReportFetchTimeoutError
from qagate.gate import evaluate
from qagate.lock import RenderLock
from qagate.models import ProjectQAReport, SceneQARecord, ThresholdPolicy
from qagate.store import QAStore, RenderJobInfo

logger = logging.getLogger(__name__)

FORCE_RENDER_DENIED_REASON = "Force render requires the admin role."
ALREADY_RENDERING_REASON = "A render is already in progress for this project."


class DenialKind(Enum):
    QUALITY_GATE = "quality_gate"
    AUTHORIZATION = "authorization"


@dataclass
class RenderDecision:
    accepted: bool
    reasons: list[str] = field(default_factory=list)
    denial: DenialKind | None = None
    render_id: str | None = None
    already_rendering: bool = False
    forced: bool = False
    report: ProjectQAReport | None = None

    def to_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "reasons": list(self.reasons),
            "denial": self.denial.value if self.denial else None,
            "render_id": self.render_id,
            "already_rendering": self.already_rendering,
            "forced": self.forced,
            "report": self.report.to_dict() if self.report else None,
        }


class RenderGuard:
    """Allows or denies render requests against the project's QA report."""

    def __init__(
        self,
        store: QAStore,
        lock: RenderLock,
        policy: ThresholdPolicy | None = None,
        audit: AuditLogger | None = None,
        privileged_role: str = "admin",
        fetch_timeout_seconds: float = 5.0,
    ) -> None:
        self.store = store
        self.lock = lock
        self.policy = policy or ThresholdPolicy()
        self.audit = audit or InMemoryAuditLogger()
        self.privileged_role = privileged_role
        self.fetch_timeout_seconds = fetch_timeout_seconds

    async def load_report(self, project_id: str) -> ProjectQAReport:
        records = await self._fetch_records(project_id)
        return evaluate(records, self.policy)

    async def request_render(
        self,
        project_id: str,
        caller_role: str,
        force_render: bool = False,
        caller_id: str = "",
    ) -> RenderDecision:
        if force_render and caller_role != self.privileged_role:
            logger.warning(
                "Non-admin caller %s (role=%s) attempted force render of %s, denied",
                caller_id or "?", caller_role, project_id,
            )
            await self.audit.log(AuditEntry(
                action="render.force_denied",
                actor=caller_id or caller_role,
                project_id=project_id,
                details={"role": caller_role},
            ))
            return RenderDecision(
                accepted=False,
                reasons=[FORCE_RENDER_DENIED_REASON],
                denial=DenialKind.AUTHORIZATION,
            )

        report = await self.load_report(project_id)

        if not report.can_render and not force_render:
            logger.info(
                "Render blocked by quality gate for %s: %s",
                project_id, "; ".join(report.blocking_reasons),
            )
            return RenderDecision(
                accepted=False,
                reasons=list(report.blocking_reasons),
                denial=DenialKind.QUALITY_GATE,
                report=report,
            )

        in_flight = await self.lock.current(project_id)
        if in_flight is not None:
            logger.info("Render %s already in flight for %s", in_flight, project_id)
            return RenderDecision(
                accepted=True,
                reasons=[ALREADY_RENDERING_REASON],
                render_id=in_flight,
                already_rendering=True,
                report=report,
            )

        render_id = str(uuid.uuid4())
        if not await self.lock.try_acquire(project_id, render_id):
            # Lost the compare-and-set to a concurrent request.
            current = await self.lock.current(project_id)
            return RenderDecision(
                accepted=True,
                reasons=[ALREADY_RENDERING_REASON],
                render_id=current,
                already_rendering=True,
                report=report,
            )

        forced = force_render and not report.can_render
        try:
            if forced:
                logger.warning(
                    "ADMIN FORCE RENDER by %s for %s, bypassing quality gate",
                    caller_id or "?", project_id,
                )
                await self.audit.log(AuditEntry(
                    action="render.force_bypass",
                    actor=caller_id or caller_role,
                    project_id=project_id,
                    details={"blocking_reasons": list(report.blocking_reasons), "render_id": render_id},
                ))
            await self.store.enqueue_render(
                project_id, render_id, forced=forced, requested_by=caller_id or caller_role
            )
        except BaseException:
            await self.lock.release(project_id, render_id)
            raise

        logger.info("Render %s enqueued for %s (forced=%s)", render_id, project_id, forced)
        return RenderDecision(
            accepted=True,
            render_id=render_id,
            forced=forced,
            report=report,
        )

    async def complete_render(self, render_id: str, succeeded: bool = True) -> RenderJobInfo:
        """Pipeline callback: close the job and clear the project's render flag."""
        job = await self.store.finish_render(render_id, succeeded)
        await self.lock.release(job.project_id, render_id)
        logger.info("Render %s for %s finished: %s", render_id, job.project_id, job.state)
        return job

    async def _fetch_records(self, project_id: str) -> list[SceneQARecord] | None:
        try:
            return await asyncio.wait_for(
                self.store.load_records(project_id), timeout=self.fetch_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error(
                "Loading QA records for %s exceeded %.1fs", project_id, self.fetch_timeout_seconds
            )
            raise ReportFetchTimeoutError(
                f"Timed out loading QA report for project {project_id}"
            ) from None
