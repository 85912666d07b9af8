"""Pydantic models for semantic search over the index."""

from pydantic import BaseModel, Field


class SearchHit(BaseModel):
    """A single record returned by a search, without its vector."""

    id: str
    path: str
    title: str
    score: float
    tags: list[str] = Field(default_factory=list)
    mtime: int
    content: str | None = None


class SearchResult(BaseModel):
    """Hits for a query plus how they were found ("semantic" or "lexical")."""

    query: str
    mode: str
    hits: list[SearchHit]
    total: int
