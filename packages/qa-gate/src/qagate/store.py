"""QA record store interface used by the render guard.

The SQLAlchemy implementation lives in qagate.db.repository; the in-memory
one backs unit tests and local experiments.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from qagate.errors import (
    ProjectNotFoundError,
    RenderJobNotFoundError,
    SceneNotFoundError,
    SceneTransitionError,
)
from qagate.models import SceneQARecord

RecordUpdate = Callable[[SceneQARecord], SceneQARecord]


@dataclass
class RenderJobInfo:
    render_id: str
    project_id: str
    forced: bool
    requested_by: str
    state: str = "queued"  # queued | done | failed
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class QAStore(ABC):
    @abstractmethod
    async def load_records(self, project_id: str) -> list[SceneQARecord] | None:
        """Current records, or None when the project has never been analyzed.

        Raises ProjectNotFoundError for an unknown project.
        """

    @abstractmethod
    async def save_record(self, project_id: str, record: SceneQARecord) -> SceneQARecord:
        """Insert or replace (re-analysis) a scene's record."""

    @abstractmethod
    async def update_record(
        self, project_id: str, scene_id: str, update: RecordUpdate
    ) -> SceneQARecord:
        ...

    @abstractmethod
    async def update_all(self, project_id: str, update: RecordUpdate) -> int:
        """Apply *update* to every mutable record; return how many changed."""

    @abstractmethod
    async def enqueue_render(
        self, project_id: str, render_id: str, forced: bool, requested_by: str
    ) -> RenderJobInfo:
        ...

    @abstractmethod
    async def finish_render(self, render_id: str, succeeded: bool) -> RenderJobInfo:
        """Close a job; on success the records it used become immutable."""


class InMemoryQAStore(QAStore):
    def __init__(self) -> None:
        self._projects: dict[str, dict[str, SceneQARecord]] = {}
        self._rendered: dict[str, set[str]] = {}
        self.jobs: dict[str, RenderJobInfo] = {}

    def add_project(self, project_id: str) -> None:
        self._projects.setdefault(project_id, {})
        self._rendered.setdefault(project_id, set())

    def _scenes(self, project_id: str) -> dict[str, SceneQARecord]:
        if project_id not in self._projects:
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        return self._projects[project_id]

    def _check_mutable(self, project_id: str, scene_id: str) -> None:
        if scene_id in self._rendered[project_id]:
            raise SceneTransitionError(
                f"Scene {scene_id} was used by a completed render and is read-only"
            )

    async def load_records(self, project_id: str) -> list[SceneQARecord] | None:
        scenes = self._scenes(project_id)
        return list(scenes.values()) or None

    async def save_record(self, project_id: str, record: SceneQARecord) -> SceneQARecord:
        record.validate()
        scenes = self._scenes(project_id)
        self._check_mutable(project_id, record.scene_id)
        scenes[record.scene_id] = record
        return record

    async def update_record(
        self, project_id: str, scene_id: str, update: RecordUpdate
    ) -> SceneQARecord:
        scenes = self._scenes(project_id)
        if scene_id not in scenes:
            raise SceneNotFoundError(f"Scene {scene_id} not found in project {project_id}")
        self._check_mutable(project_id, scene_id)
        scenes[scene_id] = update(scenes[scene_id])
        return scenes[scene_id]

    async def update_all(self, project_id: str, update: RecordUpdate) -> int:
        scenes = self._scenes(project_id)
        changed = 0
        for scene_id, record in list(scenes.items()):
            if scene_id in self._rendered[project_id]:
                continue
            updated = update(record)
            if updated != record:
                scenes[scene_id] = updated
                changed += 1
        return changed

    async def enqueue_render(
        self, project_id: str, render_id: str, forced: bool, requested_by: str
    ) -> RenderJobInfo:
        self._scenes(project_id)
        job = RenderJobInfo(
            render_id=render_id,
            project_id=project_id,
            forced=forced,
            requested_by=requested_by,
        )
        self.jobs[render_id] = job
        return job

    async def finish_render(self, render_id: str, succeeded: bool) -> RenderJobInfo:
        job = self.jobs.get(render_id)
        if job is None:
            raise RenderJobNotFoundError(f"Render job not found: {render_id}")
        if job.state != "queued":
            return job
        job.state = "done" if succeeded else "failed"
        if succeeded:
            self._rendered[job.project_id].update(self._projects[job.project_id])
        return job
