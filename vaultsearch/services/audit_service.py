"""
Audit Trail - append-only, hash-chained record of queries and mutations.

Each entry's checksum is the SHA-256 of its canonical serialization, and
each entry carries the id and checksum of the entry appended before it.
Editing or removing any stored entry breaks the chain from that point on.
"""
import asyncio
import platform
import uuid
from datetime import datetime
from typing import List, Optional

from ..core.config import AUDIT_LOG_LEVEL
from ..core.exceptions import ChainIntegrityViolation
from ..domain.entities import AuditEntry
from ..domain.results import AuditDetails, IntegrityReport
from ..domain.value_objects import AuditAction, AuditLogLevel
from ..repositories.audit_repository import AuditRepository
from ..utils.checksum import calculate_audit_checksum
from ..core.logging_config import get_logger

logger = get_logger(__name__)


class AuditTrail:
    """
    Appends are serialized with an asyncio lock: the chain links to
    whichever entry finished appending last, so two appends must never
    read the same predecessor. The lock is held across the repository
    awaits (the read of the last entry and the insert) and is the only lock
    in the service held across a storage wait; releasing it between the
    read and the insert would let two entries share a predecessor.
    """

    def __init__(
        self,
        repository: AuditRepository,
        level: Optional[AuditLogLevel] = None,
        device_info: Optional[str] = None
    ):
        self._repository = repository
        self._level = level or AuditLogLevel.parse(AUDIT_LOG_LEVEL)
        self._device_info = device_info or f"{platform.system()} {platform.machine()}".strip()
        self._append_lock = asyncio.Lock()

    @property
    def level(self) -> AuditLogLevel:
        return self._level

    def set_level(self, level: AuditLogLevel) -> None:
        self._level = level
        logger.info(f"Audit log level set to: {level.value}")

    def should_record(self, level: AuditLogLevel) -> bool:
        return level.priority >= self._level.priority

    async def append(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[str],
        actor: str,
        success: bool,
        details: Optional[AuditDetails] = None,
        level: AuditLogLevel = AuditLogLevel.INFO,
        error_message: Optional[str] = None,
        location: Optional[str] = None
    ) -> Optional[AuditEntry]:
        """
        Append an entry linked to the current chain tail.

        Args:
            action: What happened
            resource_type: Kind of resource acted on (document, index, query...)
            resource_id: Identifier of the resource, if any
            actor: Who triggered the action
            success: Whether the action succeeded
            details: Structured details recorded as canonical JSON
            level: Entry level; entries below the configured level are skipped
            error_message: Failure description
            location: Optional location metadata

        Returns:
            The stored entry, or None when the level is filtered out
        """
        if not self.should_record(level):
            return None

        async with self._append_lock:
            previous = await self._repository.get_last()
            draft = AuditEntry(
                id=str(uuid.uuid4()),
                level=level,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                user_id=actor,
                timestamp=datetime.now(),
                details=details.to_json() if details else None,
                location=location,
                device_info=self._device_info,
                is_success=success,
                error_message=error_message,
                previous_entry_id=previous.id if previous else None,
                previous_checksum=previous.checksum if previous else None,
            )
            entry = draft.replace(checksum=calculate_audit_checksum(draft))
            await self._repository.append(entry)

        logger.debug(f"Audit event logged: {level.value} - {action.value} on {resource_type}/{resource_id}")
        return entry

    @staticmethod
    def verify_checksum(entry: AuditEntry) -> bool:
        """Recompute the entry's digest and compare with the stored one."""
        return calculate_audit_checksum(entry) == entry.checksum

    @staticmethod
    def verify_chain(entry: AuditEntry, claimed_previous_checksum: Optional[str]) -> bool:
        """True for a chain head, otherwise the stored link must match the claim."""
        if entry.previous_entry_id is None:
            return True
        return entry.previous_checksum == claimed_previous_checksum

    async def verify_integrity(self) -> IntegrityReport:
        """
        Walk the whole chain oldest first.

        The first entry that fails its checksum, links to something other
        than its stored predecessor, or carries a stale previous checksum
        marks itself and everything after it as untrusted.
        """
        chain = await self._repository.list_chain()
        previous: Optional[AuditEntry] = None

        for index, entry in enumerate(chain):
            reason = None
            expected_previous_id = previous.id if previous else None

            if not self.verify_checksum(entry):
                reason = "checksum mismatch"
            elif entry.previous_entry_id != expected_previous_id:
                reason = "previous entry link mismatch"
            elif previous is not None and not self.verify_chain(entry, previous.checksum):
                reason = "previous checksum mismatch"

            if reason:
                untrusted = [e.id for e in chain[index:]]
                logger.error(
                    f"Audit chain integrity violation at entry {entry.id} ({reason}); "
                    f"{len(untrusted)} entries untrusted"
                )
                return IntegrityReport(
                    valid=False,
                    checked=index + 1,
                    broken_entry_id=entry.id,
                    reason=reason,
                    untrusted_entry_ids=untrusted,
                )
            previous = entry

        return IntegrityReport(valid=True, checked=len(chain))

    async def assert_integrity(self) -> None:
        """
        Raises:
            ChainIntegrityViolation: If verify_integrity() finds a break
        """
        report = await self.verify_integrity()
        if not report.valid:
            raise ChainIntegrityViolation(report.broken_entry_id, report.reason)

    async def get_recent_entries(self, limit: int = 50) -> List[AuditEntry]:
        """Entries, most recent first."""
        return await self._repository.list_recent(limit)
