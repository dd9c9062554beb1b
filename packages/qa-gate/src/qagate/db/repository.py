"""SQLAlchemy-backed QA store and audit logger."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qagate.audit import AuditEntry, AuditLogger
from qagate.db.models import AuditLog, RenderJob, SceneQA, VideoProject
from qagate.errors import (
    ProjectNotFoundError,
    RenderJobNotFoundError,
    SceneNotFoundError,
    SceneTransitionError,
)
from qagate.models import SceneQARecord, SceneStatus
from qagate.store import QAStore, RecordUpdate, RenderJobInfo


def _to_record(row: SceneQA) -> SceneQARecord:
    return SceneQARecord(
        scene_id=row.scene_id,
        status=SceneStatus.parse(row.status),
        overall_score=row.overall_score,
        critical_issues=row.critical_issues,
        major_issues=row.major_issues,
        minor_issues=row.minor_issues,
        user_approved=row.user_approved,
        auto_approved=row.auto_approved,
        regeneration_count=row.regeneration_count,
    )


def _apply(row: SceneQA, record: SceneQARecord) -> None:
    row.status = record.status.value
    row.overall_score = record.overall_score
    row.critical_issues = record.critical_issues
    row.major_issues = record.major_issues
    row.minor_issues = record.minor_issues
    row.user_approved = record.user_approved
    row.auto_approved = record.auto_approved
    row.regeneration_count = record.regeneration_count


def _check_mutable(row: SceneQA) -> None:
    if row.rendered_in is not None:
        raise SceneTransitionError(
            f"Scene {row.scene_id} was used by completed render {row.rendered_in} and is read-only"
        )


def _to_job(row: RenderJob) -> RenderJobInfo:
    return RenderJobInfo(
        render_id=row.id,
        project_id=row.project_id,
        forced=row.forced,
        requested_by=row.requested_by,
        state=row.state,
        created_at=row.created_at,
    )


class SqlQAStore(QAStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def create_project(self, project_id: str, owner_id: str, title: str = "") -> None:
        async with self._sessions() as session:
            session.add(VideoProject(id=project_id, owner_id=owner_id, title=title))
            await session.commit()

    async def _require_project(self, session: AsyncSession, project_id: str) -> None:
        if await session.get(VideoProject, project_id) is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}")

    async def _scene_rows(self, session: AsyncSession, project_id: str) -> list[SceneQA]:
        result = await session.execute(
            select(SceneQA).where(SceneQA.project_id == project_id).order_by(SceneQA.id)
        )
        return list(result.scalars().all())

    async def load_records(self, project_id: str) -> list[SceneQARecord] | None:
        async with self._sessions() as session:
            await self._require_project(session, project_id)
            rows = await self._scene_rows(session, project_id)
        return [_to_record(r) for r in rows] or None

    async def save_record(self, project_id: str, record: SceneQARecord) -> SceneQARecord:
        record.validate()
        async with self._sessions() as session:
            await self._require_project(session, project_id)
            result = await session.execute(
                select(SceneQA).where(
                    SceneQA.project_id == project_id, SceneQA.scene_id == record.scene_id
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = SceneQA(project_id=project_id, scene_id=record.scene_id)
                session.add(row)
            else:
                _check_mutable(row)
            _apply(row, record)
            await session.commit()
        return record

    async def update_record(
        self, project_id: str, scene_id: str, update: RecordUpdate
    ) -> SceneQARecord:
        async with self._sessions() as session:
            await self._require_project(session, project_id)
            result = await session.execute(
                select(SceneQA).where(
                    SceneQA.project_id == project_id, SceneQA.scene_id == scene_id
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise SceneNotFoundError(f"Scene {scene_id} not found in project {project_id}")
            _check_mutable(row)
            updated = update(_to_record(row))
            _apply(row, updated)
            await session.commit()
        return updated

    async def update_all(self, project_id: str, update: RecordUpdate) -> int:
        changed = 0
        async with self._sessions() as session:
            await self._require_project(session, project_id)
            for row in await self._scene_rows(session, project_id):
                if row.rendered_in is not None:
                    continue
                current = _to_record(row)
                updated = update(current)
                if updated != current:
                    _apply(row, updated)
                    changed += 1
            await session.commit()
        return changed

    async def enqueue_render(
        self, project_id: str, render_id: str, forced: bool, requested_by: str
    ) -> RenderJobInfo:
        async with self._sessions() as session:
            await self._require_project(session, project_id)
            row = RenderJob(
                id=render_id,
                project_id=project_id,
                state="queued",
                forced=forced,
                requested_by=requested_by,
            )
            session.add(row)
            await session.commit()
            return _to_job(row)

    async def finish_render(self, render_id: str, succeeded: bool) -> RenderJobInfo:
        async with self._sessions() as session:
            row = await session.get(RenderJob, render_id)
            if row is None:
                raise RenderJobNotFoundError(f"Render job not found: {render_id}")
            if row.state != "queued":
                return _to_job(row)
            row.state = "done" if succeeded else "failed"
            row.finished_at = datetime.now(timezone.utc)
            if succeeded:
                for scene in await self._scene_rows(session, row.project_id):
                    if scene.rendered_in is None:
                        scene.rendered_in = render_id
            await session.commit()
            return _to_job(row)

    async def render_jobs(self, project_id: str) -> list[RenderJobInfo]:
        async with self._sessions() as session:
            result = await session.execute(
                select(RenderJob).where(RenderJob.project_id == project_id).order_by(RenderJob.created_at)
            )
            return [_to_job(r) for r in result.scalars().all()]


class SqlAuditLogger(AuditLogger):
    """Writes audit entries to *audit_log*; nothing is kept in memory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def entries_for(self, project_id: str) -> list[AuditEntry]:
        async with self._sessions() as session:
            result = await session.execute(
                select(AuditLog)
                .where(AuditLog.project_id == project_id)
                .order_by(AuditLog.id)
            )
            return [
                AuditEntry(
                    action=row.action,
                    actor=row.actor,
                    project_id=row.project_id,
                    details=json.loads(row.details_json) if row.details_json else {},
                    timestamp=row.created_at,
                )
                for row in result.scalars().all()
            ]

    async def log(self, entry: AuditEntry) -> None:
        async with self._sessions() as session:
            session.add(AuditLog(
                project_id=entry.project_id,
                action=entry.action,
                actor=entry.actor,
                details_json=json.dumps(entry.details),
                created_at=entry.timestamp,
            ))
            await session.commit()
