"""
Embedding Repository - maps EmbeddingRecord entities to storage rows.
"""
from datetime import datetime
from typing import List, Optional

import numpy as np

from ..domain.entities import EmbeddingRecord
from ..services.database.base import DatabaseInterface


class EmbeddingRepository:
    def __init__(self, db_service: DatabaseInterface):
        self._db = db_service

    def _to_entity(self, data: dict) -> EmbeddingRecord:
        return EmbeddingRecord(
            document_id=data["document_id"],
            vector=np.asarray(data["vector"], dtype=np.float32),
            vectorized_at=datetime.fromisoformat(data["vectorized_at"]),
            text_hash=data["text_hash"],
        )

    def _to_dict(self, record: EmbeddingRecord) -> dict:
        # float32 -> Python float -> float32 is exact, so stored vectors
        # come back bit-identical
        return {
            "document_id": record.document_id,
            "vector": [float(x) for x in record.vector],
            "vectorized_at": record.vectorized_at.isoformat(),
            "text_hash": record.text_hash,
        }

    async def get(self, doc_id: str) -> Optional[EmbeddingRecord]:
        data = await self._db.get_embedding(doc_id)
        return self._to_entity(data) if data else None

    async def save(self, record: EmbeddingRecord) -> EmbeddingRecord:
        """Replace the document's embedding row in full."""
        await self._db.upsert_embedding(self._to_dict(record))
        return record

    async def delete(self, doc_id: str) -> bool:
        return await self._db.delete_embedding(doc_id)

    async def list_all(self) -> List[EmbeddingRecord]:
        return [self._to_entity(data) for data in await self._db.list_embeddings()]
