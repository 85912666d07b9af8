"""Pydantic models describing indexing runs."""

from enum import Enum

from pydantic import BaseModel, Field


class IndexRunStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    SUCCESS = "success"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    CANCELLED = "cancelled"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    BUSY = "busy"
    ERROR = "error"


class IndexingProgress(BaseModel):
    """Live counters of the active run, pushed to progress sinks."""

    indexed_count: int = 0
    total_files_to_index: int = 0
    paused: bool = False
    running: bool = False


class IndexRunResult(BaseModel):
    """Outcome of one indexAll() invocation.

    documents_considered is the return value of the run: candidates after
    filtering, failures included.
    """

    status: IndexRunStatus
    documents_considered: int = 0
    indexed_count: int = 0
    removed_count: int = 0
    errors: list[str] = Field(default_factory=list)
    message: str = ""
    overwrite: bool = False
