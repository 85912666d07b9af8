"""In-memory vector store handle.

Holds one schema and the record set of a single corpus. Every mutating
method is synchronous, so a delete-then-insert upsert cannot interleave with
another coroutine on the event loop.
"""

from typing import Callable, Iterator

import numpy as np

from shared.clients.store.StoreErrors import StoreDimensionError
from shared.clients.store.models.IndexedDocumentRecord import IndexedDocumentRecord
from shared.clients.store.models.StoreSchema import StoreSchema, StoreSnapshot


class VectorStore:
    def __init__(self, schema: StoreSchema, corpus_name: str = ""):
        self.schema = schema
        self.corpus_name = corpus_name
        self._records: dict[str, IndexedDocumentRecord] = {}
        self._ids_by_path: dict[str, str] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    @property
    def vector_length(self) -> int:
        return self.schema.vector_length

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[IndexedDocumentRecord]:
        return iter(list(self._records.values()))

    def get(self, record_id: str) -> IndexedDocumentRecord | None:
        return self._records.get(record_id)

    def get_by_path(self, path: str) -> IndexedDocumentRecord | None:
        record_id = self._ids_by_path.get(path)
        return self._records.get(record_id) if record_id else None

    def paths(self) -> set[str]:
        return set(self._ids_by_path.keys())

    def sample(self) -> IndexedDocumentRecord | None:
        """Return any one record, or None if the store is empty."""
        return next(iter(self._records.values()), None)

    def latest_mtime(self) -> int | None:
        """Maximum ``mtime`` across all records, None when empty."""
        if not self._records:
            return None
        return max(r.mtime for r in self._records.values())

    def query(self, predicate: Callable[[IndexedDocumentRecord], bool] | None = None, limit: int | None = None) -> list[IndexedDocumentRecord]:
        """Return records matching ``predicate`` (all when None), at most ``limit``."""
        result = []
        for record in self._records.values():
            if predicate is not None and not predicate(record):
                continue
            result.append(record)
            if limit is not None and len(result) >= limit:
                break
        return result

    ##########################################
    ############### MUTATION #################
    ##########################################

    def insert(self, record: IndexedDocumentRecord) -> None:
        """
        Raises:
            StoreDimensionError: If the vector length differs from the schema.
            ValueError: If a live record for the same path already exists.
        """
        if len(record.embedding) != self.schema.vector_length:
            raise StoreDimensionError(self.schema.vector_length, len(record.embedding), record.path)
        if record.path in self._ids_by_path:
            raise ValueError(f"A record for path '{record.path}' already exists.")
        self._records[record.id] = record
        self._ids_by_path[record.path] = record.id

    def upsert(self, record: IndexedDocumentRecord) -> None:
        """Replace any record at the same path (or id) with ``record``."""
        if len(record.embedding) != self.schema.vector_length:
            raise StoreDimensionError(self.schema.vector_length, len(record.embedding), record.path)
        self.remove_path(record.path)
        self.remove([record.id])
        self.insert(record)

    def remove(self, ids: list[str]) -> int:
        """Remove records by id. Returns the number removed."""
        removed = 0
        for record_id in ids:
            record = self._records.pop(record_id, None)
            if record is None:
                continue
            if self._ids_by_path.get(record.path) == record_id:
                del self._ids_by_path[record.path]
            removed += 1
        return removed

    def remove_path(self, path: str) -> bool:
        record_id = self._ids_by_path.get(path)
        if record_id is None:
            return False
        return self.remove([record_id]) == 1

    ##########################################
    ################ SEARCH ##################
    ##########################################

    def search_by_vector(self, vector: list[float], limit: int = 10, min_similarity: float = 0.0) -> list[tuple[IndexedDocumentRecord, float]]:
        """Rank records by cosine similarity to ``vector``."""
        if not self._records or len(vector) != self.schema.vector_length:
            return []
        records = list(self._records.values())
        matrix = np.asarray([r.embedding for r in records], dtype=np.float32)
        query = np.asarray(vector, dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query) + 1e-9
        scores = matrix @ query / norms
        order = np.argsort(-scores)[:limit]
        return [(records[i], float(scores[i])) for i in order if scores[i] >= min_similarity]

    def search_by_term(self, term: str, limit: int = 10) -> list[tuple[IndexedDocumentRecord, float]]:
        """Lexical search over title and content. Score is the share of query words found."""
        words = [w for w in term.lower().split() if w]
        if not words:
            return []
        hits = []
        for record in self._records.values():
            haystack = f"{record.title}\n{record.content}".lower()
            found = sum(1 for w in words if w in haystack)
            if found:
                hits.append((record, found / len(words)))
        hits.sort(key=lambda hit: (-hit[1], hit[0].path))
        return hits[:limit]

    ##########################################
    ############### SNAPSHOT #################
    ##########################################

    def to_snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(corpus_name=self.corpus_name, schema=self.schema, records=list(self._records.values()))

    @classmethod
    def from_snapshot(cls, snapshot: StoreSnapshot) -> "VectorStore":
        """
        Raises:
            StoreDimensionError: If a stored record does not fit the stored schema.
        """
        store = cls(schema=snapshot.schema_, corpus_name=snapshot.corpus_name)
        for record in snapshot.records:
            store.upsert(record)
        return store
