"""Audit trail for render decisions that bypass or hit the gate."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class AuditEntry:
    action: str
    actor: str
    project_id: str
    details: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuditLogger(ABC):
    """Sink for audit entries. The database-backed logger lives in qagate.db.repository."""

    @abstractmethod
    async def log(self, entry: AuditEntry) -> None:
        ...

    @abstractmethod
    async def entries_for(self, project_id: str) -> list[AuditEntry]:
        """Entries for *project_id*, oldest first."""


class InMemoryAuditLogger(AuditLogger):
    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []

    async def log(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    async def entries_for(self, project_id: str) -> list[AuditEntry]:
        return [e for e in self.entries if e.project_id == project_id]
