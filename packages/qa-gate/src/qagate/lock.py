"""Render-in-flight flag: one render per project at a time."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from qagate.redis.client import RedisManager


class RenderLock(ABC):
    """Atomic per-project flag. try_acquire is the compare-and-set."""

    @abstractmethod
    async def try_acquire(self, project_id: str, render_id: str) -> bool:
        ...

    @abstractmethod
    async def release(self, project_id: str, render_id: str) -> bool:
        ...

    @abstractmethod
    async def current(self, project_id: str) -> str | None:
        """Render id currently holding the flag, if any."""
        ...

    async def is_held(self, project_id: str) -> bool:
        return await self.current(project_id) is not None


class InMemoryRenderLock(RenderLock):
    """Single-process flag for tests and single-worker deployments."""

    def __init__(self) -> None:
        self._holders: dict[str, str] = {}
        self._mutex = asyncio.Lock()

    async def try_acquire(self, project_id: str, render_id: str) -> bool:
        async with self._mutex:
            if project_id in self._holders:
                return False
            self._holders[project_id] = render_id
            return True

    async def release(self, project_id: str, render_id: str) -> bool:
        async with self._mutex:
            if self._holders.get(project_id) != render_id:
                return False
            del self._holders[project_id]
            return True

    async def current(self, project_id: str) -> str | None:
        return self._holders.get(project_id)


class RedisRenderLock(RenderLock):
    def __init__(self, manager: RedisManager, ttl_seconds: int = 3600) -> None:
        self.manager = manager
        self.ttl_seconds = ttl_seconds

    async def try_acquire(self, project_id: str, render_id: str) -> bool:
        return await self.manager.acquire_render_flag(project_id, render_id, self.ttl_seconds)

    async def release(self, project_id: str, render_id: str) -> bool:
        return await self.manager.release_render_flag(project_id, render_id)

    async def current(self, project_id: str) -> str | None:
        return await self.manager.current_render(project_id)
