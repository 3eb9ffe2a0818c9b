"""
Audit Repository - append and read access to the audit chain.
No update or delete operation exists.
"""
from datetime import datetime
from typing import List, Optional

from ..domain.entities import AuditEntry
from ..domain.value_objects import AuditAction, AuditLogLevel
from ..services.database.base import DatabaseInterface


class AuditRepository:
    def __init__(self, db_service: DatabaseInterface):
        self._db = db_service

    def _to_entity(self, data: dict) -> AuditEntry:
        return AuditEntry(
            id=data["id"],
            level=AuditLogLevel(data["level"]),
            action=AuditAction(data["action"]),
            resource_type=data["resource_type"],
            resource_id=data.get("resource_id"),
            user_id=data["user_id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            details=data.get("details"),
            location=data.get("location"),
            device_info=data.get("device_info"),
            is_success=data["is_success"],
            error_message=data.get("error_message"),
            previous_entry_id=data.get("previous_entry_id"),
            previous_checksum=data.get("previous_checksum"),
            checksum=data["checksum"],
        )

    def _to_dict(self, entry: AuditEntry) -> dict:
        return {
            "id": entry.id,
            "level": entry.level.value,
            "action": entry.action.value,
            "resource_type": entry.resource_type,
            "resource_id": entry.resource_id,
            "user_id": entry.user_id,
            "timestamp": entry.timestamp.isoformat(),
            "details": entry.details,
            "location": entry.location,
            "device_info": entry.device_info,
            "is_success": entry.is_success,
            "error_message": entry.error_message,
            "previous_entry_id": entry.previous_entry_id,
            "previous_checksum": entry.previous_checksum,
            "checksum": entry.checksum,
        }

    async def append(self, entry: AuditEntry) -> AuditEntry:
        await self._db.insert_audit_entry(self._to_dict(entry))
        return entry

    async def get_last(self) -> Optional[AuditEntry]:
        data = await self._db.get_last_audit_entry()
        return self._to_entity(data) if data else None

    async def list_recent(self, limit: Optional[int] = None) -> List[AuditEntry]:
        """Entries, most recent first."""
        return [self._to_entity(data) for data in await self._db.list_audit_entries(limit)]

    async def list_chain(self) -> List[AuditEntry]:
        """Entries in append order."""
        return [self._to_entity(data) for data in await self._db.list_audit_chain()]
