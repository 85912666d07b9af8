from typing import Literal

from pydantic import BaseModel, Field


class IndexRequest(BaseModel):
    overwrite: bool = False


class WebhookRequest(BaseModel):
    path: str = Field(min_length=1)
    event: Literal["modify", "delete"] = "modify"


class RemoveDocumentRequest(BaseModel):
    path: str = Field(min_length=1)


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: int = Field(default=5, ge=1, le=100)
