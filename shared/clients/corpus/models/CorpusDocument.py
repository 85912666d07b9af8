"""Models describing source documents as the corpus accessor reports them."""

from pydantic import BaseModel, Field


class CorpusDocument(BaseModel):
    """A document listed by the corpus.

    Attributes:
        path:       Corpus-relative path with "/" separators.
        mtime:      Modification time, epoch milliseconds.
        ctime:      Creation (or metadata change) time, epoch milliseconds.
        extension:  File extension without dot, lowercase.
    """

    path: str
    mtime: int
    ctime: int
    extension: str


class DocumentMetadata(BaseModel):
    """Structured metadata of a document: tags (without "#") and parsed frontmatter."""

    tags: list[str] = Field(default_factory=list)
    frontmatter: dict = Field(default_factory=dict)
