"""
services/tenant_store.py
------------------------
In-memory, per-tenant conversation log.

One TenantStore instance lives for the lifetime of the gateway process:
it is created in the app lifespan, reached by routes through a
dependency, and closed on shutdown. Nothing here is persisted.

Locking:
  - _lock guards the tenant map (get-or-create / clear / stats).
  - each tenant record owns a lock that serialises appends for that
    tenant, so two requests for the same tenant never interleave inside
    a single append. clear() takes it before removing the record, and
    append() re-checks that its record is still the live one, so a
    message is never written into a cleared history.
  - lock order is map lock, then record lock. No lock spans a whole
    chat turn.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.logging import get_logger
from app.models import Message, MessageRole, TenantHistory, utcnow

logger = get_logger(__name__)


@dataclass
class _TenantRecord:
    tenant_id: str
    created_at: datetime
    last_activity_at: datetime
    messages: List[Message] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def snapshot(self) -> TenantHistory:
        with self.lock:
            return TenantHistory(
                tenant_id=self.tenant_id,
                messages=tuple(self.messages),
                created_at=self.created_at,
                last_activity_at=self.last_activity_at,
            )


@dataclass(frozen=True)
class StoreStats:
    tenant_count: int
    total_message_count: int


class TenantStore:

    def __init__(self) -> None:
        self._tenants: Dict[str, _TenantRecord] = {}
        self._lock = threading.Lock()

    def _record(self, tenant_id: str) -> _TenantRecord:
        with self._lock:
            record = self._tenants.get(tenant_id)
            if record is None:
                now = utcnow()
                record = _TenantRecord(
                    tenant_id=tenant_id, created_at=now, last_activity_at=now
                )
                self._tenants[tenant_id] = record
                logger.info("Tenant history created", tenant_id=tenant_id)
            return record

    # ── Public API ────────────────────────────────────────────────────────────

    def get_or_create(self, tenant_id: str) -> TenantHistory:
        """Return the tenant's history, creating an empty one on first use."""
        return self._record(tenant_id).snapshot()

    def snapshot(self, tenant_id: str) -> TenantHistory:
        """Read-only view of the tenant's history."""
        return self.get_or_create(tenant_id)

    def append(
        self,
        tenant_id: str,
        role: MessageRole,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        """
        Append a message to the tenant's log and return it.

        Timestamps never go backwards within a tenant, even if the wall
        clock does.
        """
        while True:
            record = self._record(tenant_id)
            with record.lock:
                if self._tenants.get(tenant_id) is not record:
                    # cleared between lookup and lock; use the fresh record
                    continue
                timestamp = max(utcnow(), record.last_activity_at)
                message = Message(
                    role=role,
                    content=content,
                    timestamp=timestamp,
                    metadata=dict(metadata) if metadata else None,
                )
                record.messages.append(message)
                record.last_activity_at = timestamp
                total = len(record.messages)
                break

        logger.info(
            "Message appended",
            tenant_id=tenant_id,
            role=MessageRole(role).value,
            total=total,
        )
        return message

    def clear(self, tenant_id: str) -> bool:
        """Drop the tenant's history. Returns whether one existed."""
        with self._lock:
            record = self._tenants.get(tenant_id)
            existed = record is not None
            if existed:
                with record.lock:
                    del self._tenants[tenant_id]

        if existed:
            logger.info("Tenant history cleared", tenant_id=tenant_id)
        return existed

    def tenant_ids(self) -> List[str]:
        with self._lock:
            return list(self._tenants)

    def global_stats(self) -> StoreStats:
        with self._lock:
            records = list(self._tenants.values())

        total = 0
        for record in records:
            with record.lock:
                total += len(record.messages)

        return StoreStats(tenant_count=len(records), total_message_count=total)

    def close(self) -> None:
        """Release all tenant state. Called once at process shutdown."""
        with self._lock:
            count = len(self._tenants)
            self._tenants.clear()
        logger.info("Tenant store closed", tenants_released=count)
