"""
Shared fixtures: an in-memory engine wired like production, with the mock
generative provider and no pacing delays.
"""
from datetime import date, datetime
from typing import Optional

import pytest

from vaultsearch.domain.entities import DocumentEntity
from vaultsearch.domain.value_objects import EntityCategory
from vaultsearch.services.database import MemoryAdapter
from vaultsearch.services.model_store import ModelArtifactStore
from vaultsearch.services.providers import MockGenerativeProvider
from vaultsearch.services.rate_limiter import QueryRateLimiter
from vaultsearch.services.search_engine import build_search_engine


@pytest.fixture
def limiter():
    return QueryRateLimiter(per_minute=100, per_hour=1000)


@pytest.fixture
async def engine(tmp_path, limiter):
    search_engine = build_search_engine(
        db=MemoryAdapter(),
        generative_provider=MockGenerativeProvider(),
        model_store=ModelArtifactStore(tmp_path / "models"),
        limiter=limiter,
        vectorize_pause_every=0,
        reprocess_pause_every=0,
    )
    await search_engine.start()
    yield search_engine
    await search_engine.close()


@pytest.fixture
def add_document(engine):
    """Create a document, optionally with already-extracted entities."""

    async def _add(
        doc_id: str,
        title: str,
        text: str,
        created_at: datetime,
        vendor: Optional[str] = None,
        amount: Optional[float] = None,
        transaction_date: Optional[date] = None,
        category: Optional[EntityCategory] = None,
        extracted: bool = False
    ):
        document = await engine.add_document(title, text, document_id=doc_id, created_at=created_at)
        if extracted or vendor or amount is not None or transaction_date or category:
            document = await engine.documents.update_entities(
                doc_id,
                DocumentEntity(
                    vendor=vendor,
                    amount=amount,
                    transaction_date=transaction_date,
                    category=category,
                    confidence=0.9,
                ),
            )
        return document

    return _add


@pytest.fixture
async def kroger_receipts(add_document):
    """Three Kroger receipts in 2024, one in 2023 and one from another vendor."""
    await add_document("k1", "Kroger receipt", "KROGER total $10.00", datetime(2024, 1, 5),
                       vendor="Kroger", amount=10.0, transaction_date=date(2024, 1, 5),
                       category=EntityCategory.GROCERY)
    await add_document("k2", "Kroger receipt", "KROGER total $15.00", datetime(2024, 3, 9),
                       vendor="Kroger", amount=15.0, transaction_date=date(2024, 3, 9),
                       category=EntityCategory.GROCERY)
    await add_document("k3", "Kroger receipt", "KROGER total $20.00", datetime(2024, 7, 21),
                       vendor="Kroger", amount=20.0, transaction_date=date(2024, 7, 21),
                       category=EntityCategory.GROCERY)
    await add_document("k0", "Kroger receipt", "KROGER total $99.00", datetime(2023, 12, 30),
                       vendor="Kroger", amount=99.0, transaction_date=date(2023, 12, 30),
                       category=EntityCategory.GROCERY)
    await add_document("w1", "Walmart receipt", "WALMART total $30.00", datetime(2024, 2, 2),
                       vendor="Walmart", amount=30.0, transaction_date=date(2024, 2, 2),
                       category=EntityCategory.GROCERY)


@pytest.fixture
async def home_documents(add_document):
    """Two home-repair documents and one unrelated grocery receipt."""
    await add_document("a", "Home repairs", "Home repairs estimate", datetime(2024, 5, 1))
    await add_document("b", "Plumber invoice", "Kitchen sink repairs at home", datetime(2024, 5, 2))
    await add_document("c", "Grocery receipt", "Milk eggs bread", datetime(2024, 5, 3))
