from datetime import datetime

import numpy as np
import pytest

from vaultsearch.core.exceptions import IndexUnavailable, VectorizationInProgress
from vaultsearch.domain.value_objects import AuditAction
from vaultsearch.services.providers import HashingEmbeddingProvider
from vaultsearch.services.providers.base import EmbeddingProvider


class UnavailableProvider(EmbeddingProvider):
    @property
    def dimension(self) -> int:
        return 512

    def is_available(self) -> bool:
        return False

    def embed(self, text: str) -> np.ndarray:
        raise AssertionError("embed must not be called")


def test_hashing_embedding_is_deterministic_and_normalized():
    provider = HashingEmbeddingProvider(512)
    first = provider.embed("Home repairs estimate")
    second = HashingEmbeddingProvider(512).embed("Home repairs estimate")

    assert first.dtype == np.float32
    assert first.shape == (512,)
    assert first.tobytes() == second.tobytes()
    assert np.linalg.norm(first) == pytest.approx(1.0, abs=1e-6)


def test_hashing_embedding_of_stop_words_is_zero():
    vector = HashingEmbeddingProvider(64).embed("about the documents")
    assert not vector.any()


def test_hashing_embedding_rejects_bad_dimension():
    with pytest.raises(ValueError):
        HashingEmbeddingProvider(0)


async def test_vectorize_all_then_stats(engine, home_documents):
    before = await engine.get_vectorization_stats()
    assert (before.total, before.vectorized, before.pending) == (3, 0, 3)

    progress = []
    summary = await engine.vectorize_all(lambda done, total: progress.append((done, total)))
    assert summary.total == 3
    assert summary.vectorized == 3
    assert summary.skipped == 0
    assert summary.errored == 0
    assert not summary.cancelled
    assert progress == [(1, 3), (2, 3), (3, 3)]

    after = await engine.get_vectorization_stats()
    assert (after.vectorized, after.pending) == (3, 0)

    again = await engine.vectorize_all()
    assert again.vectorized == 0
    assert again.skipped == 3


async def test_vectorize_with_explicit_text_is_trusted(engine, add_document):
    await add_document("d1", "Roof repair", "Roof repair invoice", datetime(2024, 4, 1))

    await engine.index.vectorize("d1", "Roof repair invoice")

    stats = await engine.get_vectorization_stats()
    assert (stats.vectorized, stats.pending) == (1, 0)
    query_vector = await engine.index.embed_query("roof repair")
    assert [doc_id for doc_id, _ in await engine.index.search(query_vector, k=5)] == ["d1"]


async def test_vectorize_with_other_text_stays_pending(engine, add_document):
    await add_document("d1", "Roof repair", "Roof repair invoice", datetime(2024, 4, 1))

    await engine.index.vectorize("d1", "Something else entirely")

    stats = await engine.get_vectorization_stats()
    assert (stats.vectorized, stats.pending) == (0, 1)


async def test_revectorizing_unchanged_text_is_bit_identical(engine, home_documents):
    first = await engine.index.vectorize("a")
    second = await engine.index.vectorize("a")
    stored = await engine.index._embeddings.get("a")

    assert first.vector.tobytes() == second.vector.tobytes()
    assert stored.vector.dtype == np.float32
    assert stored.vector.tobytes() == first.vector.tobytes()
    assert not stored.is_stale_for(await engine.get_document("a"))


async def test_vectorize_all_is_audited(engine, home_documents):
    await engine.vectorize_all()
    entries = await engine.get_recent_audit_entries(1)
    assert entries[0].action == AuditAction.VECTORIZE
    assert '"processed":3' in entries[0].details


async def test_search_ranks_by_similarity_with_floor(engine, home_documents):
    await engine.vectorize_all()
    query_vector = await engine.index.embed_query("home repairs")

    results = list(await engine.index.search(query_vector, k=10, min_similarity=0.3))
    assert [doc_id for doc_id, _ in results] == ["a", "b"]
    assert results[0][1] == pytest.approx(0.923, abs=0.01)
    assert results[1][1] == pytest.approx(0.577, abs=0.01)


async def test_search_respects_k(engine, home_documents):
    await engine.vectorize_all()
    query_vector = await engine.index.embed_query("home repairs")
    results = list(await engine.index.search(query_vector, k=1))
    assert [doc_id for doc_id, _ in results] == ["a"]


async def test_ties_prefer_newer_documents(engine, add_document):
    await add_document("old", "Tax return", "Tax return", datetime(2023, 1, 1))
    await add_document("new", "Tax return", "Tax return", datetime(2024, 1, 1))
    await engine.vectorize_all()

    query_vector = await engine.index.embed_query("tax return")
    results = list(await engine.index.search(query_vector, k=2))
    assert [doc_id for doc_id, _ in results] == ["new", "old"]


async def test_search_results_are_one_shot(engine, home_documents):
    await engine.vectorize_all()
    results = await engine.index.search(await engine.index.embed_query("home repairs"), k=10)
    assert len(list(results)) == 2
    assert list(results) == []


async def test_changed_text_makes_embedding_stale(engine, home_documents):
    await engine.vectorize_all()
    await engine.update_document_text("a", "Dentist appointment reminder")

    stats = await engine.get_vectorization_stats()
    assert (stats.vectorized, stats.pending) == (2, 1)

    query_vector = await engine.index.embed_query("home repairs")
    ids = [doc_id for doc_id, _ in await engine.index.search(query_vector, k=10)]
    assert "a" not in ids

    summary = await engine.vectorize_all()
    assert summary.vectorized == 1
    assert summary.skipped == 2


async def test_deleting_a_document_removes_its_embedding(engine, home_documents):
    await engine.vectorize_all()
    await engine.delete_document("a")
    assert await engine.index._embeddings.get("a") is None
    stats = await engine.get_vectorization_stats()
    assert (stats.total, stats.vectorized) == (2, 2)


async def test_cancel_stops_between_documents(engine, home_documents):
    assert engine.cancel_vectorization() is False

    def cancel_after_first(done, total):
        if done == 1:
            assert engine.cancel_vectorization() is True

    summary = await engine.vectorize_all(cancel_after_first)
    assert summary.cancelled
    assert summary.vectorized == 1
    assert not engine.index.is_sweeping


async def test_second_sweep_is_rejected_while_running(engine, home_documents):
    engine.index._sweep_running = True
    with pytest.raises(VectorizationInProgress):
        await engine.vectorize_all()
    engine.index._sweep_running = False
    assert (await engine.vectorize_all()).vectorized == 3


async def test_unavailable_provider_raises(engine, home_documents):
    engine.index._provider = UnavailableProvider()
    assert not engine.index.is_ready()
    with pytest.raises(IndexUnavailable):
        await engine.index.embed_query("home")
    with pytest.raises(IndexUnavailable):
        await engine.vectorize_all()
