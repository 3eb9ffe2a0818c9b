"""
SHA-256 helpers for model artifacts and audit entries.
"""
import hashlib
import json
from pathlib import Path

from ..domain.entities import AuditEntry

CHUNK_SIZE = 1024 * 1024


def calculate_file_checksum(file_path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    """
    Hex SHA-256 of a file, read in chunks so multi-gigabyte model files do
    not have to fit in memory.

    Raises:
        FileNotFoundError: If file_path is not a regular file
    """
    if not file_path.is_file():
        raise FileNotFoundError(f"No such file: {file_path}")

    digest = hashlib.sha256()
    with file_path.open("rb") as handle:
        while chunk := handle.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def canonical_audit_payload(entry: AuditEntry) -> str:
    """Compact JSON of every field except the checksum, in AuditEntry.canonical_fields() order."""
    return json.dumps(entry.canonical_fields(), separators=(",", ":"), ensure_ascii=False)


def calculate_audit_checksum(entry: AuditEntry) -> str:
    return hashlib.sha256(canonical_audit_payload(entry).encode("utf-8")).hexdigest()
