import json
from datetime import date, datetime

import pytest

from vaultsearch.domain.value_objects import EntityCategory, StructuredFilter
from vaultsearch.services.database import DatabaseFactory, JSONAdapter, MemoryAdapter
from vaultsearch.services.search_engine import build_search_engine
from vaultsearch.services.providers import MockGenerativeProvider
from vaultsearch.services.model_store import ModelArtifactStore


def _doc(doc_id, created_at, **fields):
    data = {"id": doc_id, "title": f"Doc {doc_id}", "extracted_text": "", "created_at": created_at}
    data.update(fields)
    return data


async def test_memory_adapter_returns_copies():
    db = MemoryAdapter()
    await db.initialize()
    created = await db.create_document(_doc("d1", "2024-01-01T00:00:00"))
    created["title"] = "changed"
    assert (await db.get_document("d1"))["title"] == "Doc d1"


async def test_duplicate_ids_are_rejected():
    db = MemoryAdapter()
    await db.initialize()
    await db.create_document(_doc("d1", "2024-01-01T00:00:00"))
    with pytest.raises(ValueError):
        await db.create_document(_doc("d1", "2024-01-02T00:00:00"))


async def test_documents_are_listed_in_creation_order():
    db = MemoryAdapter()
    await db.initialize()
    await db.create_document(_doc("late", "2024-03-01T00:00:00"))
    await db.create_document(_doc("early", "2024-01-01T00:00:00"))
    assert [d["id"] for d in await db.get_all_documents()] == ["early", "late"]


async def test_query_documents_applies_every_predicate():
    db = MemoryAdapter()
    await db.initialize()
    await db.create_document(_doc("a", "2024-01-01T00:00:00", vendor="Kroger", amount=10.0,
                                  transaction_date="2024-01-05", category="grocery"))
    await db.create_document(_doc("b", "2024-01-02T00:00:00", vendor="Kroger", amount=50.0,
                                  transaction_date="2024-02-05", category="grocery"))
    await db.create_document(_doc("c", "2024-01-03T00:00:00", vendor="Shell", amount=40.0,
                                  transaction_date="2024-02-06", category="fuel"))
    await db.create_document(_doc("d", "2024-01-04T00:00:00", vendor="kroger marketplace"))

    by_vendor = await db.query_documents(StructuredFilter(vendor="KROGER"))
    assert [d["id"] for d in by_vendor] == ["b", "a", "d"]

    bounded = await db.query_documents(StructuredFilter(
        vendor="kroger",
        category=EntityCategory.GROCERY,
        start_date=date(2024, 1, 5),
        end_date=date(2024, 2, 5),
        min_amount=10.0,
        max_amount=10.0,
    ))
    assert [d["id"] for d in bounded] == ["a"]

    limited = await db.query_documents(StructuredFilter(min_amount=0, limit=1))
    assert [d["id"] for d in limited] == ["c"]


async def test_deleting_a_document_removes_its_embedding():
    db = MemoryAdapter()
    await db.initialize()
    await db.create_document(_doc("d1", "2024-01-01T00:00:00"))
    await db.upsert_embedding({"document_id": "d1", "vector": [1.0], "text_hash": "x",
                               "vectorized_at": "2024-01-01T00:00:00"})
    assert await db.delete_document("d1")
    assert await db.get_embedding("d1") is None


def test_factory(tmp_path):
    assert isinstance(DatabaseFactory.create("memory"), MemoryAdapter)
    json_db = DatabaseFactory.create("json", data_dir=tmp_path)
    assert isinstance(json_db, JSONAdapter)
    assert json_db.data_dir == tmp_path
    with pytest.raises(ValueError):
        DatabaseFactory.create("postgres")


async def test_json_adapter_persists_across_reopen(tmp_path):
    def make_engine():
        return build_search_engine(
            db=JSONAdapter(tmp_path / "db"),
            generative_provider=MockGenerativeProvider(),
            model_store=ModelArtifactStore(tmp_path / "models"),
            vectorize_pause_every=0,
            reprocess_pause_every=0,
        )

    first = make_engine()
    await first.start()
    await first.add_document("Kroger receipt", "KROGER $12.00 01/02/2024", document_id="k1",
                             created_at=datetime(2024, 1, 2))
    await first.vectorize_all()
    await first.reprocess_all()
    await first.close()

    for name in ("documents.json", "embeddings.json", "audit.json"):
        assert (tmp_path / "db" / name).exists()
    assert "k1" in json.loads((tmp_path / "db" / "documents.json").read_text())

    second = make_engine()
    await second.start()
    document = await second.get_document("k1")
    assert document.vendor == "Kroger"
    assert document.amount == 12.0
    assert document.transaction_date == date(2024, 1, 2)
    assert (await second.get_vectorization_stats()).vectorized == 1
    report = await second.verify_audit_integrity()
    assert report.valid
    assert report.checked == 4
    await second.close()


async def test_json_adapter_stores_vectors_bit_identical(tmp_path):
    def make_engine():
        return build_search_engine(
            db=JSONAdapter(tmp_path / "db"),
            generative_provider=MockGenerativeProvider(),
            model_store=ModelArtifactStore(tmp_path / "models"),
            vectorize_pause_every=0,
            reprocess_pause_every=0,
        )

    first = make_engine()
    await first.start()
    await first.add_document("Plumber invoice", "Kitchen sink repairs at home", document_id="p1",
                             created_at=datetime(2024, 5, 2))
    vectorized = await first.index.vectorize("p1")
    again = await first.index.vectorize("p1")
    stored = await first.index._embeddings.get("p1")
    await first.close()

    assert again.vector.tobytes() == vectorized.vector.tobytes()
    assert stored.vector.tobytes() == vectorized.vector.tobytes()

    second = make_engine()
    await second.start()
    reloaded = await second.index._embeddings.get("p1")
    assert reloaded.vector.dtype == vectorized.vector.dtype
    assert reloaded.vector.tobytes() == vectorized.vector.tobytes()
    assert (await second.get_vectorization_stats()).vectorized == 1
    await second.close()


async def test_json_adapter_leaves_no_temp_files(tmp_path):
    db = JSONAdapter(tmp_path)
    await db.initialize()
    for i in range(5):
        await db.create_document(_doc(f"d{i}", f"2024-01-0{i + 1}T00:00:00"))
    assert sorted(p.name for p in tmp_path.iterdir()) == ["documents.json"]
