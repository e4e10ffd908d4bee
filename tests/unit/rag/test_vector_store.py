"""Tests for VectorStore and cosine similarity."""

from __future__ import annotations

import math

import pytest

from daytrace.errors import VectorStoreError
from daytrace.rag.vector_store import VectorStore, cosine_similarity

# ------------------------------------------------------------------
# cosine_similarity
# ------------------------------------------------------------------


def test_cosine_of_vector_with_itself_is_one():
    assert cosine_similarity([0.3, -1.2, 4.0], [0.3, -1.2, 4.0]) == pytest.approx(1.0)


def test_cosine_is_symmetric():
    a, b = [1.0, 2.0, 0.5], [0.0, 1.0, 3.0]
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


def test_cosine_opposite_vectors():
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


@pytest.mark.parametrize(
    ("a", "b"),
    [
        ([0.0, 0.0], [1.0, 1.0]),
        ([1.0, 2.0], [1.0, 2.0, 3.0]),
        ([], []),
    ],
)
def test_cosine_degenerate_inputs_are_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


# ------------------------------------------------------------------
# VectorStore
# ------------------------------------------------------------------


def test_search_ranks_by_similarity(vectors):
    vectors.upsert("a", "about cats", [1.0, 0.0, 0.0])
    vectors.upsert("b", "about dogs", [0.0, 1.0, 0.0])
    vectors.upsert("c", "cats and dogs", [1.0, 1.0, 0.0])

    results = vectors.search([1.0, 0.1, 0.0], k=3)

    assert [r.snapshot_id for r in results] == ["a", "c", "b"]
    assert results[0].text == "about cats"
    assert results[0].score >= results[1].score >= results[2].score


def test_search_respects_k(vectors):
    for i in range(5):
        vectors.upsert(f"s{i}", "t", [1.0, float(i)])
    assert len(vectors.search([1.0, 0.0], k=2)) == 2
    assert vectors.search([1.0, 0.0], k=0) == []


def test_search_empty_store(vectors):
    assert vectors.search([1.0, 0.0]) == []


def test_upsert_replaces_existing(vectors):
    vectors.upsert("a", "old", [1.0, 0.0])
    vectors.upsert("b", "other", [0.7, 0.7])
    vectors.upsert("a", "new", [0.0, 1.0])

    assert vectors.count() == 2
    top = vectors.search([0.0, 1.0], k=1)[0]
    assert top.snapshot_id == "a"
    assert top.text == "new"
    assert top.score == pytest.approx(1.0)


def test_equal_scores_keep_insertion_order(vectors):
    for sid in ("first", "second", "third"):
        vectors.upsert(sid, sid, [1.0, 1.0])
    assert [r.snapshot_id for r in vectors.search([1.0, 1.0], k=3)] == ["first", "second", "third"]


def test_dimension_mismatch_excluded(vectors):
    vectors.upsert("two", "t", [1.0, 0.0])
    vectors.upsert("three", "t", [1.0, 0.0, 0.0])
    assert [r.snapshot_id for r in vectors.search([1.0, 0.0], k=5)] == ["two"]


def test_corrupt_blob_excluded(vectors, db):
    vectors.upsert("good", "t", [1.0, 0.0])
    with db.session() as conn:
        conn.execute(
            "INSERT INTO embeddings (snapshot_id, text, embedding) VALUES (?, ?, ?)",
            ("bad", "t", b"\x00\x01\x02"),
        )
        conn.commit()
    assert [r.snapshot_id for r in vectors.search([1.0, 0.0])] == ["good"]


def test_window_limits_scan_to_recent(db):
    store = VectorStore(db, window=2)
    store.upsert("old", "t", [1.0, 0.0])
    store.upsert("mid", "t", [0.0, 1.0])
    store.upsert("new", "t", [0.0, 1.0])

    ids = {r.snapshot_id for r in store.search([1.0, 0.0], k=10)}
    assert ids == {"mid", "new"}


def test_scores_are_finite(vectors):
    vectors.upsert("z", "t", [0.0, 0.0])
    (result,) = vectors.search([1.0, 0.0])
    assert math.isfinite(result.score)
    assert result.score == 0.0


def test_empty_vector_rejected(vectors):
    with pytest.raises(VectorStoreError):
        vectors.upsert("a", "t", [])


def test_delete(vectors):
    vectors.upsert("a", "t", [1.0])
    assert vectors.delete("a") is True
    assert vectors.delete("a") is False
    assert vectors.count() == 0


def test_delete_all(vectors):
    vectors.upsert("a", "t", [1.0])
    vectors.upsert("b", "t", [1.0])
    assert vectors.delete_all() == 2
    assert vectors.count() == 0


def test_persists_across_instances(db):
    VectorStore(db).upsert("a", "kept", [0.5, 0.5])
    assert VectorStore(db).search([0.5, 0.5])[0].text == "kept"


def test_initialize_unwritable_path(tmp_path):
    from daytrace.db.connection import Database

    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    store = VectorStore(Database(blocker / "daytrace.db"))
    with pytest.raises(VectorStoreError):
        store.initialize()
