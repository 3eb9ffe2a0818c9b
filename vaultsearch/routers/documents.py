"""
Documents Router - the capture pipeline's entry point into the vault.

Documents arrive with their OCR text already extracted. Creating or
updating one does not embed or extract it; the index and reprocessing
sweeps pick it up.
"""
from fastapi import APIRouter, Depends, Query, status

from ..api.dto import DocumentCreateDTO, DocumentDTO, DocumentTextUpdateDTO
from ..api.mappers import DocumentMapper
from ..services.search_engine import LocalSearchEngine
from .dependencies import get_engine

router = APIRouter()


@router.post("/documents", response_model=DocumentDTO, status_code=status.HTTP_201_CREATED)
async def create_document(payload: DocumentCreateDTO, engine: LocalSearchEngine = Depends(get_engine)):
    document = await engine.add_document(
        payload.title,
        payload.extracted_text,
        document_id=payload.id,
        actor=payload.actor_id,
    )
    return DocumentMapper.to_dto(document)


@router.get("/documents/{document_id}", response_model=DocumentDTO)
async def get_document(document_id: str, engine: LocalSearchEngine = Depends(get_engine)):
    document = await engine.get_document(document_id)
    return DocumentMapper.to_dto(document)


@router.put("/documents/{document_id}/text", response_model=DocumentDTO)
async def update_document_text(
    document_id: str,
    payload: DocumentTextUpdateDTO,
    engine: LocalSearchEngine = Depends(get_engine)
):
    document = await engine.update_document_text(
        document_id, payload.extracted_text, title=payload.title, actor=payload.actor_id
    )
    return DocumentMapper.to_dto(document)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    actor_id: str = Query("system"),
    engine: LocalSearchEngine = Depends(get_engine)
):
    await engine.delete_document(document_id, actor=actor_id)
