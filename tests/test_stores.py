"""Tests for the thread-safe stores and the reader/writer lock."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from knn_text_classifier.models import UNCLASSIFIED, UNKNOWN_TERM, Document
from knn_text_classifier.stores import (
    ClassRegistry,
    CorpusStore,
    PostingsIndex,
    RWLock,
    Vocabulary,
)


# ---------------------------------------------------------------------------
# RWLock
# ---------------------------------------------------------------------------

class TestRWLock:
    """Tests for reader/writer exclusion."""

    def test_readers_share_the_lock(self) -> None:
        lock = RWLock()
        barrier = threading.Barrier(2, timeout=5)
        errors: list[Exception] = []

        def reader() -> None:
            try:
                with lock.read():
                    # Both readers must be inside together to pass.
                    barrier.wait()
            except threading.BrokenBarrierError as e:
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        assert errors == []

    def test_writer_excludes_readers(self) -> None:
        lock = RWLock()
        entered = threading.Event()

        def reader() -> None:
            with lock.read():
                entered.set()

        lock.acquire_write()
        t = threading.Thread(target=reader)
        t.start()
        assert not entered.wait(0.1)
        lock.release_write()
        assert entered.wait(5)
        t.join(timeout=5)

    def test_reader_excludes_writer(self) -> None:
        lock = RWLock()
        entered = threading.Event()

        def writer() -> None:
            with lock.write():
                entered.set()

        lock.acquire_read()
        t = threading.Thread(target=writer)
        t.start()
        assert not entered.wait(0.1)
        lock.release_read()
        assert entered.wait(5)
        t.join(timeout=5)

    def test_context_manager_releases_on_error(self) -> None:
        lock = RWLock()
        with pytest.raises(RuntimeError):
            with lock.write():
                raise RuntimeError("boom")
        # Would block forever if the write side were still held.
        with lock.read():
            pass


# ---------------------------------------------------------------------------
# Vocabulary / ClassRegistry
# ---------------------------------------------------------------------------

class TestVocabulary:
    """Tests for stem <-> term id mapping."""

    def test_ids_are_dense_in_first_seen_order(self) -> None:
        vocab = Vocabulary()
        assert vocab.lookup_or_insert("cat") == 0
        assert vocab.lookup_or_insert("dog") == 1
        assert vocab.lookup_or_insert("cat") == 0
        assert vocab.lookup_or_insert("fish") == 2
        assert len(vocab) == 3

    def test_lookup_unknown_returns_sentinel(self) -> None:
        vocab = Vocabulary()
        assert vocab.lookup("cat") == UNKNOWN_TERM

    def test_lookup_never_mutates(self) -> None:
        vocab = Vocabulary()
        vocab.lookup("cat")
        vocab.lookup_many(["cat", "dog"], admit=False)
        assert len(vocab) == 0
        assert "cat" not in vocab

    def test_lookup_many_admit(self) -> None:
        vocab = Vocabulary()
        assert vocab.lookup_many(["a", "b", "a", "c"], admit=True) == [0, 1, 0, 2]
        assert vocab.lookup_many(["c", "z"], admit=False) == [2, UNKNOWN_TERM]

    def test_reverse_lookup(self) -> None:
        vocab = Vocabulary()
        vocab.lookup_or_insert("cat")
        assert vocab.key_for(0) == "cat"
        assert vocab.key_for(1) is None
        assert vocab.key_for(UNKNOWN_TERM) is None

    def test_snapshot_is_a_copy(self) -> None:
        vocab = Vocabulary()
        vocab.lookup_or_insert("cat")
        snap = vocab.snapshot()
        snap["dog"] = 99
        assert "dog" not in vocab
        assert vocab.keys() == ["cat"]

    def test_concurrent_inserts_stay_dense(self) -> None:
        vocab = Vocabulary()
        words = [f"w{i % 50}" for i in range(1000)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(vocab.lookup_or_insert, words))

        snap = vocab.snapshot()
        assert len(snap) == 50
        assert sorted(snap.values()) == list(range(50))
        for word, idx in zip(words, ids):
            assert snap[word] == idx


class TestClassRegistry:
    """Tests for label <-> class id mapping."""

    def test_unknown_label_is_unclassified(self) -> None:
        classes = ClassRegistry()
        assert classes.lookup("animal") == UNCLASSIFIED

    def test_ids_in_first_seen_order(self) -> None:
        classes = ClassRegistry()
        assert classes.lookup_or_insert("animal") == 0
        assert classes.lookup_or_insert("finance") == 1
        assert classes.lookup_or_insert("animal") == 0
        assert classes.keys() == ["animal", "finance"]


# ---------------------------------------------------------------------------
# CorpusStore / PostingsIndex
# ---------------------------------------------------------------------------

class TestCorpusStore:
    """Tests for the append-only document list."""

    def test_append_returns_positions(self) -> None:
        corpus = CorpusStore()
        first = Document(class_id=0, weights={0: 1.0})
        second = Document(class_id=1, weights={1: 1.0})
        assert corpus.append(first) == 0
        assert corpus.append(second) == 1
        assert len(corpus) == 2
        assert corpus.get(1) is second

    def test_get_unknown_raises(self) -> None:
        corpus = CorpusStore()
        with pytest.raises(IndexError):
            corpus.get(0)
        with pytest.raises(IndexError):
            corpus.get(-1)

    def test_get_many(self) -> None:
        corpus = CorpusStore()
        docs = [Document(class_id=i, weights={i: 1.0}) for i in range(3)]
        for doc in docs:
            corpus.append(doc)
        assert corpus.get_many([2, 0]) == {2: docs[2], 0: docs[0]}

    def test_class_counts(self) -> None:
        corpus = CorpusStore()
        for class_id in (0, 1, 0, 0):
            corpus.append(Document(class_id=class_id, weights={}))
        assert corpus.class_counts() == {0: 3, 1: 1}


class TestPostingsIndex:
    """Tests for the inverted index."""

    def test_add_and_get_in_insertion_order(self) -> None:
        postings = PostingsIndex()
        postings.add(0, [5, 7])
        postings.add(1, [7])
        postings.add(2, [5])
        assert postings.get(5) == (0, 2)
        assert postings.get(7) == (0, 1)
        assert postings.get(9) == ()

    def test_lookup_many_skips_missing_terms(self) -> None:
        postings = PostingsIndex()
        postings.add(0, [1])
        assert postings.lookup_many([1, 2, UNKNOWN_TERM]) == {1: (0,)}

    def test_document_frequency(self) -> None:
        postings = PostingsIndex()
        postings.add(0, [1, 2])
        postings.add(1, [1])
        assert postings.document_frequency(1) == 2
        assert postings.document_frequency(3) == 0
        assert len(postings) == 2
        assert 2 in postings

    def test_returned_postings_are_copies(self) -> None:
        postings = PostingsIndex()
        postings.add(0, [1])
        snapshot = postings.get(1)
        postings.add(1, [1])
        assert snapshot == (0,)
        assert postings.get(1) == (0, 1)
