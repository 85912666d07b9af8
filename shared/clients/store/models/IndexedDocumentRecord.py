"""IndexedDocumentRecord model: the unit stored in the vector store, one per source document."""

import hashlib
import os

from pydantic import BaseModel, Field


def record_id_for_path(path: str) -> str:
    """Stable record id derived from the document path. A moved document gets a new id."""
    return hashlib.md5(path.encode("utf-8")).hexdigest()


def title_for_path(path: str) -> str:
    """Short display name: the file name without extension."""
    return os.path.splitext(os.path.basename(path))[0]


class IndexedDocumentRecord(BaseModel):
    """One indexed document.

    Attributes:
        id:               md5 of ``path``.
        path:             Corpus-relative location, unique among live records.
        title:            File name without extension.
        content:          Full text at index time, used for lexical fallback search.
        embedding:        Vector whose length equals the store schema's vector_length.
        embedding_model:  "<name>|<provider>" of the model that produced ``embedding``.
        created_at:       Epoch milliseconds when the record was written.
        ctime:            Document creation time, epoch milliseconds.
        mtime:            Document modification time, epoch milliseconds. Watermark field.
        tags:             Tags from frontmatter and inline hashtags, without "#".
        extension:        File extension without dot, e.g. "md".
        metadata:         Parsed frontmatter.
    """

    id: str
    path: str
    title: str
    content: str
    embedding: list[float]
    embedding_model: str
    created_at: int
    ctime: int
    mtime: int
    tags: list[str] = Field(default_factory=list)
    extension: str = ""
    metadata: dict = Field(default_factory=dict)
