"""Schema and on-disk snapshot models of a store instance."""

from pydantic import BaseModel, Field

from shared.clients.store.models.IndexedDocumentRecord import IndexedDocumentRecord

RECORD_FIELDS = [
    "id",
    "path",
    "title",
    "content",
    "embedding",
    "embedding_model",
    "created_at",
    "ctime",
    "mtime",
    "tags",
    "extension",
    "metadata",
]

SNAPSHOT_FORMAT_VERSION = 1


class StoreSchema(BaseModel):
    """Field list plus the vector dimensionality declared when the store was created."""

    fields: list[str] = Field(default_factory=lambda: list(RECORD_FIELDS))
    vector_length: int


class StoreSnapshot(BaseModel):
    """Serialized blob: schema and all records, round-tripped by the store client."""

    format_version: int = SNAPSHOT_FORMAT_VERSION
    corpus_name: str = ""
    schema_: StoreSchema = Field(alias="schema")
    records: list[IndexedDocumentRecord] = Field(default_factory=list)

    model_config = {"populate_by_name": True}
