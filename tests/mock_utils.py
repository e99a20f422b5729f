"""Mock utilities for Firestore: filters, batches and live snapshots."""

from __future__ import annotations

import unittest.mock
from typing import Any, Callable, Optional

from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference, DocumentSnapshot


class MockBatch:
    """Applies queued writes in order on commit."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append((ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append((ref, "DELETE"))

    def _real_commit(self) -> None:
        with LIVE.deferred():
            for ref, data in self.writes:
                if data == "DELETE":
                    ref.delete()
                else:
                    ref.set(data)


class MockWatch:
    """A registered on_snapshot listener."""

    def __init__(self, target: Any, callback: Callable, is_document: bool) -> None:
        self.target = target
        self.callback = callback
        self.is_document = is_document
        self.active = True
        self.unsubscribe = unittest.mock.MagicMock(side_effect=self._stop)

    def _stop(self) -> None:
        self.active = False

    def fire(self) -> None:
        if not self.active:
            return
        if self.is_document:
            try:
                docs = [self.target.get()]
            except KeyError:
                # The document (or a parent) was deleted.
                docs = [DocumentSnapshot(self.target, {})]
        else:
            try:
                docs = [doc for doc in self.target.stream() if doc.exists]
            except KeyError:
                docs = []
        self.callback(docs, [], None)


class LiveSnapshots:
    """Delivers a snapshot to every active watch after each write."""

    def __init__(self) -> None:
        self.watches: list[MockWatch] = []
        self._depth = 0

    def reset(self) -> None:
        self.watches = []
        self._depth = 0

    def watch(self, target: Any, callback: Callable, is_document: bool) -> MockWatch:
        watch = MockWatch(target, callback, is_document)
        self.watches.append(watch)
        watch.fire()
        return watch

    def notify(self) -> None:
        if self._depth:
            return
        for watch in list(self.watches):
            watch.fire()

    def deferred(self) -> "_Deferred":
        """Hold notifications until the block ends, like an atomic commit."""
        return _Deferred(self)

    @property
    def active(self) -> list[MockWatch]:
        return [w for w in self.watches if w.active]


class _Deferred:
    def __init__(self, live: LiveSnapshots) -> None:
        self.live = live

    def __enter__(self) -> None:
        self.live._depth += 1

    def __exit__(self, *exc: Any) -> None:
        self.live._depth -= 1
        self.live.notify()


LIVE = LiveSnapshots()


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore for FieldFilter and on_snapshot."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = collection_where

    def doc_on_snapshot(self: Any, callback: Callable) -> MockWatch:
        return LIVE.watch(self, callback, is_document=True)

    def query_on_snapshot(self: Any, callback: Callable) -> MockWatch:
        return LIVE.watch(self, callback, is_document=False)

    DocumentReference.on_snapshot = doc_on_snapshot
    CollectionReference.on_snapshot = query_on_snapshot
    Query.on_snapshot = query_on_snapshot

    if not hasattr(DocumentReference, "_orig_set"):
        DocumentReference._orig_set = DocumentReference.set
        DocumentReference._orig_delete = DocumentReference.delete

        def notifying_set(self: Any, data: dict[str, Any], merge: bool = False) -> Any:
            result = self._orig_set(data, merge=merge)
            LIVE.notify()
            return result

        def notifying_delete(self: Any) -> Any:
            result = self._orig_delete()
            LIVE.notify()
            return result

        DocumentReference.set = notifying_set
        DocumentReference.delete = notifying_delete


def make_live_db() -> MockFirestore:
    """A MockFirestore with batches and live snapshots, fresh for each test."""
    patch_mockfirestore()
    LIVE.reset()
    db = MockFirestore()
    db.batch = unittest.mock.MagicMock(side_effect=lambda: MockBatch(db))
    return db


def inline_runner(task: Callable[[], None]) -> None:
    """Run subscription disposers immediately so tests can assert on them."""
    task()
