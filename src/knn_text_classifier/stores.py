"""Thread-safe in-memory stores backing the classifier.

Four independent structures make up a trained classifier:

- ``Vocabulary``: stem <-> dense term id
- ``ClassRegistry``: label <-> dense class id
- ``CorpusStore``: append-only list of ``Document`` values
- ``PostingsIndex``: term id -> ids of the documents containing it

Each store guards its state with its own ``RWLock``: mutations take the
write side, lookups the read side. Callers only ever receive copies or
immutable values, never the underlying containers.
"""

from __future__ import annotations

import threading
from collections import Counter
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from .models import UNCLASSIFIED, UNKNOWN_TERM, Document


class RWLock:
    """Reader/writer lock with writer preference.

    Any number of readers may hold the lock together; a writer holds it
    alone. Once a writer is waiting, new readers queue behind it. Not
    reentrant on either side.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


# ---------------------------------------------------------------------------
# Id registries
# ---------------------------------------------------------------------------


class _IdRegistry:
    """Bidirectional mapping between strings and dense integer ids.

    Ids are assigned in first-seen order starting at 0 and never change.
    Lookups of unseen keys return ``unknown_id`` instead of raising.
    """

    unknown_id = -1

    def __init__(self) -> None:
        self._lock = RWLock()
        self._ids: dict[str, int] = {}
        self._keys: list[str] = []

    def _insert(self, key: str) -> int:
        # Caller holds the write lock.
        idx = self._ids.get(key)
        if idx is None:
            idx = len(self._keys)
            self._ids[key] = idx
            self._keys.append(key)
        return idx

    def lookup_or_insert(self, key: str) -> int:
        """Return the id of ``key``, assigning the next free id if unseen."""
        with self._lock.read():
            idx = self._ids.get(key)
        if idx is not None:
            return idx
        with self._lock.write():
            return self._insert(key)

    def lookup(self, key: str) -> int:
        """Return the id of ``key`` or ``unknown_id``. Never mutates."""
        with self._lock.read():
            return self._ids.get(key, self.unknown_id)

    def lookup_many(self, keys: Iterable[str], admit: bool = False) -> list[int]:
        """Resolve a sequence of keys under a single lock acquisition.

        Args:
            keys: Keys to resolve, in order.
            admit: Assign ids to unseen keys (write lock) instead of
                mapping them to ``unknown_id`` (read lock).

        Returns:
            One id per key, in input order.
        """
        if admit:
            with self._lock.write():
                return [self._insert(key) for key in keys]
        with self._lock.read():
            return [self._ids.get(key, self.unknown_id) for key in keys]

    def key_for(self, idx: int) -> Optional[str]:
        """Reverse lookup; ``None`` for ids that were never assigned."""
        with self._lock.read():
            if 0 <= idx < len(self._keys):
                return self._keys[idx]
        return None

    def keys(self) -> list[str]:
        """All keys in id order."""
        with self._lock.read():
            return list(self._keys)

    def snapshot(self) -> dict[str, int]:
        with self._lock.read():
            return dict(self._ids)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._keys)

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._ids


class Vocabulary(_IdRegistry):
    """Stems to term ids. Unknown stems resolve to ``UNKNOWN_TERM``."""

    unknown_id = UNKNOWN_TERM


class ClassRegistry(_IdRegistry):
    """Labels to class ids. Unknown labels resolve to ``UNCLASSIFIED``."""

    unknown_id = UNCLASSIFIED


# ---------------------------------------------------------------------------
# Corpus and postings
# ---------------------------------------------------------------------------


class CorpusStore:
    """Append-only sequence of trained documents.

    A document's position is its permanent id.
    """

    def __init__(self) -> None:
        self._lock = RWLock()
        self._documents: list[Document] = []

    def append(self, document: Document) -> int:
        """Store a document and return its id."""
        with self._lock.write():
            self._documents.append(document)
            return len(self._documents) - 1

    def get(self, doc_id: int) -> Document:
        """Return the document with the given id.

        Raises:
            IndexError: If no document has that id.
        """
        if doc_id < 0:
            raise IndexError(f"document id must be non-negative, got {doc_id}")
        with self._lock.read():
            return self._documents[doc_id]

    def get_many(self, doc_ids: Iterable[int]) -> dict[int, Document]:
        """Fetch several documents under one read lock."""
        with self._lock.read():
            return {doc_id: self._documents[doc_id] for doc_id in doc_ids}

    def class_counts(self) -> Counter[int]:
        """Number of stored documents per class id."""
        with self._lock.read():
            return Counter(doc.class_id for doc in self._documents)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._documents)


class PostingsIndex:
    """Inverted index from term ids to the documents that contain them."""

    def __init__(self) -> None:
        self._lock = RWLock()
        self._postings: dict[int, list[int]] = {}

    def add(self, doc_id: int, term_ids: Iterable[int]) -> None:
        """Record that ``doc_id`` contains every term in ``term_ids``."""
        with self._lock.write():
            for term_id in term_ids:
                self._postings.setdefault(term_id, []).append(doc_id)

    def get(self, term_id: int) -> tuple[int, ...]:
        """Document ids for one term, in insertion order."""
        with self._lock.read():
            return tuple(self._postings.get(term_id, ()))

    def lookup_many(self, term_ids: Iterable[int]) -> dict[int, tuple[int, ...]]:
        """Postings for several terms under one read lock.

        Terms without postings (including ``UNKNOWN_TERM``) are omitted.
        """
        with self._lock.read():
            return {
                term_id: tuple(self._postings[term_id])
                for term_id in term_ids
                if term_id in self._postings
            }

    def document_frequency(self, term_id: int) -> int:
        with self._lock.read():
            return len(self._postings.get(term_id, ()))

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._postings)

    def __contains__(self, term_id: object) -> bool:
        with self._lock.read():
            return term_id in self._postings
