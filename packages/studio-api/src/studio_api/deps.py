"""Shared dependencies -- settings, store, guard."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from qagate.config import GateSettings
from qagate.db.engine import create_engine, create_schema, get_session_factory
from qagate.db.repository import SqlAuditLogger, SqlQAStore
from qagate.guard import RenderGuard
from qagate.lock import InMemoryRenderLock, RedisRenderLock, RenderLock
from qagate.models import ThresholdPolicy
from qagate.redis.client import RedisConfig, RedisManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: GateSettings
    policy: ThresholdPolicy
    store: SqlQAStore
    guard: RenderGuard
    engine: AsyncEngine | None = None
    redis: RedisManager | None = None

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.close()
        if self.engine is not None:
            await self.engine.dispose()


async def build_services(settings: GateSettings, lock: RenderLock | None = None) -> Services:
    """Create the engine and schema, pick the render flag backend, wire the guard."""
    engine = create_engine(settings.database_url)
    await create_schema(engine)
    sessions = get_session_factory(engine)
    store = SqlQAStore(sessions)
    policy = settings.threshold_policy()

    redis_manager = None
    if lock is None:
        if settings.use_redis_lock:
            redis_manager = RedisManager(RedisConfig(
                host=settings.redis_host,
                port=settings.redis_port,
                password=settings.redis_password,
                db=settings.redis_db,
            ))
            lock = RedisRenderLock(redis_manager, ttl_seconds=settings.render_lock_ttl_seconds)
        else:
            logger.warning("Redis render flag disabled; using in-process lock (single worker only)")
            lock = InMemoryRenderLock()

    guard = RenderGuard(
        store=store,
        lock=lock,
        policy=policy,
        audit=SqlAuditLogger(sessions),
        privileged_role=settings.privileged_role,
        fetch_timeout_seconds=settings.report_fetch_timeout_seconds,
    )
    return Services(
        settings=settings,
        policy=policy,
        store=store,
        guard=guard,
        engine=engine,
        redis=redis_manager,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_store(request: Request) -> SqlQAStore:
    return get_services(request).store


def get_guard(request: Request) -> RenderGuard:
    return get_services(request).guard


def get_policy(request: Request) -> ThresholdPolicy:
    return get_services(request).policy
