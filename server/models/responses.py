from pydantic import BaseModel

from shared.models.index import IndexingProgress, IndexRunResult


class ActionResponse(BaseModel):
    status: str
    message: str = ""


class IndexStatusResponse(BaseModel):
    ready: bool
    available: bool
    running: bool
    record_count: int
    progress: IndexingProgress
    last_result: IndexRunResult | None = None


class IndexedFilesResponse(BaseModel):
    empty: bool
    paths: list[str]


class RecordResponse(BaseModel):
    """A stored record without its vector."""

    id: str
    path: str
    title: str
    content: str
    embedding_model: str
    dimensions: int
    created_at: int
    ctime: int
    mtime: int
    tags: list[str]
    extension: str
    metadata: dict


class GarbageCollectResponse(BaseModel):
    status: str
    removed: int


class RemoveDocumentResponse(BaseModel):
    status: str
    removed: bool
