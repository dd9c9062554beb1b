"""Redis manager for the per-project render flag.

Key pattern:
  - qagate:render:{project_id}  — render in flight, value = render id

The flag is set with SET NX EX so acceptance is a single atomic
compare-and-set shared by every API worker. The TTL bounds how long a
crashed render pipeline can block a project.
"""

from __future__ import annotations

from dataclasses import dataclass

import redis.asyncio as aioredis

# Delete only if the flag still belongs to the caller.
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


@dataclass
class RedisConfig:
    host: str = "localhost"
    port: int = 6379
    password: str | None = None
    db: int = 0
    max_connections: int = 20


class RedisManager:
    """Owns the Redis connection pool and the render-flag key layout."""

    def __init__(self, config: RedisConfig) -> None:
        self.config = config
        self._client: aioredis.Redis | None = None

    def get_url(self) -> str:
        auth = f":{self.config.password}@" if self.config.password else ""
        return f"redis://{auth}{self.config.host}:{self.config.port}/{self.config.db}"

    async def get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                self.get_url(),
                max_connections=self.config.max_connections,
                decode_responses=True,
            )
        return self._client

    async def _get_client(self) -> aioredis.Redis:
        return await self.get_client()

    def build_render_key(self, project_id: str) -> str:
        return f"qagate:render:{project_id}"

    async def acquire_render_flag(self, project_id: str, render_id: str, ttl_seconds: int) -> bool:
        client = await self._get_client()
        acquired = await client.set(
            self.build_render_key(project_id), render_id, nx=True, ex=ttl_seconds
        )
        return bool(acquired)

    async def release_render_flag(self, project_id: str, render_id: str) -> bool:
        client = await self._get_client()
        deleted = await client.eval(
            _RELEASE_SCRIPT, 1, self.build_render_key(project_id), render_id
        )
        return bool(deleted)

    async def current_render(self, project_id: str) -> str | None:
        client = await self._get_client()
        return await client.get(self.build_render_key(project_id))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
