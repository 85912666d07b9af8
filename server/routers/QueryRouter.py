from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import SearchRequest
from shared.models.search import SearchResult

router = APIRouter(prefix="/query", tags=["query"])


@router.post("")
async def query_documents(
    request: Request,
    body: SearchRequest,
    _: None = Depends(verify_api_key),
) -> SearchResult:
    """Search the index semantically, with a lexical fallback.

    Args:
        request (Request): FastAPI request (provides app.state.index_service).
        body (SearchRequest): Query string and result limit.

    Returns:
        SearchResult: Matching records, best first.
    """
    index_service = request.app.state.index_service
    return await index_service.do_search(body.query, limit=body.limit)
