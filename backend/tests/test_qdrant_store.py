"""Tests for the Qdrant vector store against the in-process client."""

from pathlib import Path

import pytest
from qdrant_client import QdrantClient

from convmem.core.models import VectorEntry
from convmem.storage import QdrantVectorStore, create_vector_store
from convmem.storage.qdrant import point_id
from convmem.utils import collection_name_for


def entry(entry_id, source_file="", embedding=None, **kw):
    return VectorEntry(
        id=entry_id,
        text=kw.pop("text", f"text of {entry_id}"),
        type=kw.pop("type", "decision"),
        source_file=source_file,
        workspace=kw.pop("workspace", "/work/project"),
        timestamp=kw.pop("timestamp", 1000),
        embedding=embedding or [1.0, 0.0, 0.0, 0.0],
        **kw,
    )


@pytest.fixture
def store():
    s = QdrantVectorStore(QdrantClient(location=":memory:"), "convmem_test")
    yield s
    s.close()


def test_empty_store(store):
    assert store.count() == 0
    assert store.get_all() == []
    assert store.search([1.0, 0.0, 0.0, 0.0], 5) == []
    store.delete("missing")
    store.rebuild()


def test_insert_and_read_back(store):
    store.insert(entry("a", "/m/decisions/a.md", permanent=True))
    entries = store.get_all()
    assert len(entries) == 1
    e = entries[0]
    assert e.id == "a"
    assert e.source_file == "/m/decisions/a.md"
    assert e.permanent is True
    assert e.embedding == pytest.approx([1.0, 0.0, 0.0, 0.0])


def test_upsert_is_idempotent(store):
    store.insert(entry("a", text="first"))
    store.insert(entry("a", text="second"))
    assert store.count() == 1
    assert store.get_all()[0].text == "second"


def test_filter_by_source_file(store):
    store.insert(entry("a", "/m/a.md"))
    store.insert(entry("b", "/m/b.md"))
    assert [e.id for e in store.get_all(source_file="/m/b.md")] == ["b"]


def test_search_orders_by_similarity(store):
    store.insert(entry("near", embedding=[1.0, 0.1, 0.0, 0.0]))
    store.insert(entry("far", embedding=[0.0, 0.0, 1.0, 0.0]))
    hits = store.search([1.0, 0.0, 0.0, 0.0], 2)
    assert [e.id for _, e in hits] == ["near", "far"]
    assert hits[0][0] > hits[1][0]


def test_delete_and_rebuild(store):
    store.insert(entry("a"))
    store.insert(entry("b"))
    store.delete("a")
    assert [e.id for e in store.get_all()] == ["b"]
    store.rebuild()
    assert store.count() == 0
    store.insert(entry("c", embedding=[0.5, 0.5]))
    assert store.count() == 1


def test_dimension_mismatch(store):
    store.insert(entry("a"))
    with pytest.raises(ValueError):
        store.insert(entry("b", embedding=[1.0, 2.0]))


def test_missing_embedding(store):
    with pytest.raises(ValueError):
        store.insert(VectorEntry("x", "t", "decision", "", "", 0, []))


def test_point_ids_are_stable_uuids():
    assert point_id("abc") == point_id("abc")
    assert point_id("abc") != point_id("abd")


def test_collection_per_project(tmp_path, cfg):
    cfg["vector_store"]["qdrant"]["location"] = ":memory:"
    a = tmp_path / "one" / "app"
    b = tmp_path / "two" / "app"
    a.mkdir(parents=True)
    b.mkdir(parents=True)
    store = create_vector_store(cfg, a)
    assert store.collection_name == collection_name_for(a, "convmem")
    assert store.collection_name.startswith("convmem_app_")
    assert collection_name_for(a, "convmem") != collection_name_for(b, "convmem")
    assert collection_name_for(Path("/tmp/1st project"), "").startswith("_1st_project_")
    store.close()
