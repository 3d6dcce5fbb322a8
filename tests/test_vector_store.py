import asyncio
import logging

import pytest

from tarana.models.activity import SimilarityResult
from tarana.rag.cache import SimilarityCache
from tarana.rag.errors import EmbeddingProviderError, MalformedInputError, StoreUnavailableError
from tarana.rag.vector_store import VectorStore, to_score_map

from conftest import FakeEmbeddingModel, FakeSupabaseClient


@pytest.fixture
def store(fake_client, fake_model, clock):
    return VectorStore(
        client=fake_client,
        embedding_model=fake_model,
        cache=SimilarityCache(ttl_seconds=600, clock=clock)
    )


async def _index(store, catalog):
    for activity in catalog:
        await store.upsert_activity(activity.title, activity.embedding_text(), activity.to_metadata())


@pytest.mark.asyncio
async def test_upsert_same_id_keeps_one_row(store, fake_client):
    await store.upsert_activity("Burnham Park", "Burnham Park. Lake", {"title": "Burnham Park"})
    await store.upsert_activity("Burnham Park", "Burnham Park. Lake and boats", {"title": "Burnham Park", "desc": "new"})

    assert len(fake_client.rows) == 1
    assert fake_client.last_on_conflict == "activity_id"
    row = await store.get_activity("Burnham Park")
    assert row["metadata"]["desc"] == "new"


@pytest.mark.asyncio
async def test_upsert_embeds_with_document_task_type(store, fake_model):
    await store.upsert_activity("Burnham Park", "Burnham Park. Lake", {})

    assert fake_model.calls == [("Burnham Park. Lake", "retrieval_document")]


@pytest.mark.asyncio
async def test_get_activity_missing_returns_none(store):
    assert await store.get_activity("Nowhere") is None


@pytest.mark.asyncio
async def test_end_to_end_search_returns_top_matches_in_order(store, catalog):
    await _index(store, catalog)

    results = await store.search("quiet place to relax", 2)

    assert len(results) == 2
    assert results[0].similarity >= results[1].similarity
    assert {r.activity_id for r in results} <= {a.title for a in catalog}
    assert "Night Market" not in {r.activity_id for r in results}


@pytest.mark.asyncio
async def test_search_uses_query_task_type(store, catalog, fake_model):
    await _index(store, catalog)
    fake_model.calls.clear()

    await store.search("quiet place to relax", 2)

    assert fake_model.calls == [("quiet place to relax", "retrieval_query")]


@pytest.mark.asyncio
async def test_repeat_search_within_ttl_hits_cache(store, catalog, fake_model, fake_client, clock):
    await _index(store, catalog)
    first = await store.search("quiet place to relax", 2)
    calls_after_first = fake_model.call_count

    clock.advance(599)
    second = await store.search("quiet place to relax", 2)

    assert second == first
    assert fake_model.call_count == calls_after_first
    assert len(fake_client.rpc_calls) == 1


@pytest.mark.asyncio
async def test_search_after_ttl_calls_provider_again(store, catalog, fake_model, clock):
    await _index(store, catalog)
    await store.search("quiet place to relax", 2)
    calls_after_first = fake_model.call_count

    clock.advance(600)
    await store.search("quiet place to relax", 2)

    assert fake_model.call_count == calls_after_first + 1


@pytest.mark.asyncio
async def test_concurrent_identical_searches_embed_once(store, catalog, fake_model):
    await _index(store, catalog)
    fake_model.calls.clear()

    await asyncio.gather(*(store.search("night food", 3) for _ in range(5)))

    assert len(fake_model.calls) == 1


@pytest.mark.asyncio
async def test_batch_search_concatenates_in_query_order(store, catalog):
    await _index(store, catalog)
    queries = ["quiet place to relax", "cheap food", "historic church"]

    batch = await store.search(queries, 5)

    assert len(batch) <= 15
    expected = []
    for q in queries:
        expected.extend(await store.search(q, 5))
    assert batch == expected


@pytest.mark.asyncio
async def test_search_without_client_returns_empty(fake_model):
    store = VectorStore(client=None, embedding_model=fake_model)

    assert await store.search("quiet place to relax") == []
    assert fake_model.call_count == 0
    assert not store.is_available


@pytest.mark.asyncio
async def test_upsert_without_client_raises(fake_model):
    store = VectorStore(client=None, embedding_model=fake_model)

    with pytest.raises(StoreUnavailableError):
        await store.upsert_activity("Burnham Park", "Burnham Park. Lake", {})


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   ", 123, None])
async def test_malformed_query_is_rejected(store, query):
    with pytest.raises(MalformedInputError):
        await store.search(query, 5)


@pytest.mark.asyncio
async def test_batch_with_non_string_element_is_rejected(store):
    with pytest.raises(MalformedInputError):
        await store.search(["park", 7], 5)


@pytest.mark.asyncio
@pytest.mark.parametrize("match_count", [0, -1, True, 2.5])
async def test_invalid_match_count_is_rejected(store, match_count):
    with pytest.raises(MalformedInputError):
        await store.search("park", match_count)


@pytest.mark.asyncio
async def test_upsert_rejects_blank_activity_id(store):
    with pytest.raises(MalformedInputError):
        await store.upsert_activity("  ", "text", {})


@pytest.mark.asyncio
async def test_upsert_rejects_empty_text(store):
    with pytest.raises(MalformedInputError):
        await store.upsert_activity("Burnham Park", "", {})


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_unavailable(fake_model):
    store = VectorStore(client=FakeSupabaseClient(fail=True), embedding_model=fake_model)

    with pytest.raises(StoreUnavailableError):
        await store.search("park", 5)
    with pytest.raises(StoreUnavailableError):
        await store.upsert_activity("Burnham Park", "Burnham Park. Lake", {})


@pytest.mark.asyncio
async def test_embedding_failure_propagates_and_is_not_cached(fake_client, clock):
    failing = FakeEmbeddingModel(fail=True)
    cache = SimilarityCache(clock=clock)
    store = VectorStore(client=fake_client, embedding_model=failing, cache=cache)

    with pytest.raises(EmbeddingProviderError):
        await store.search("park", 5)
    assert len(cache) == 0
    assert fake_client.rpc_calls == []


def test_to_score_map_keeps_max_per_title():
    results = [
        SimilarityResult(activity_id="a", similarity=0.4, metadata={"title": "Burnham Park"}),
        SimilarityResult(activity_id="b", similarity=0.9, metadata={"title": "Burnham Park"}),
        SimilarityResult(activity_id="Night Market", similarity=0.2, metadata={}),
    ]

    assert to_score_map(results) == {"Burnham Park": 0.9, "Night Market": 0.2}


def test_to_score_map_accepts_nested_batches():
    batches = [
        [SimilarityResult(activity_id="x", similarity=0.3, metadata={"title": "Mines View"})],
        [
            SimilarityResult(activity_id="x", similarity=0.7, metadata={"title": "Mines View"}),
            SimilarityResult(activity_id="y", similarity=0.5, metadata={"title": "Camp John Hay"}),
        ],
    ]

    assert to_score_map(batches) == {"Mines View": 0.7, "Camp John Hay": 0.5}


def test_similarity_is_clamped_to_cosine_range():
    assert SimilarityResult(activity_id="a", similarity=1.0000002).similarity == 1.0
    assert SimilarityResult(activity_id="a", similarity=-1.5).similarity == -1.0


@pytest.mark.asyncio
async def test_mutating_a_result_does_not_change_later_cache_hits(store, catalog):
    await _index(store, catalog)

    first = await store.search("quiet place to relax", 2)
    first.clear()
    second = await store.search("quiet place to relax", 2)

    assert len(second) == 2


@pytest.mark.asyncio
async def test_unconfigured_store_warns_once(fake_model, caplog):
    caplog.set_level(logging.WARNING, logger="tarana.rag.vector_store")
    store = VectorStore(client=None, embedding_model=fake_model)

    for _ in range(3):
        assert await store.search("quiet place to relax") == []

    warnings = [r for r in caplog.records if r.name == "tarana.rag.vector_store"]
    assert len(warnings) == 1
    assert warnings[0].levelno == logging.WARNING
