from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import WebhookRequest
from server.models.responses import ActionResponse

router = APIRouter(prefix="/webhook", tags=["webhook"])


@router.post("/document")
async def webhook_document(
    request: Request,
    body: WebhookRequest,
    _: None = Depends(verify_api_key),
) -> ActionResponse:
    """Feed an external document change into the live-edit reactor.

    Modify events are debounced per document, delete events apply at once.

    Args:
        request (Request): FastAPI request (provides app.state.index_service).
        body (WebhookRequest): Corpus path and event type.

    Returns:
        ActionResponse: "accepted", or "unavailable" when indexing is disabled.
    """
    service = request.app.state.index_service
    await service.wait_for_initialization()
    if not service.is_ready():
        return ActionResponse(status="unavailable")
    path = body.path.strip().lstrip("/")
    if body.event == "delete":
        service.reactor.on_delete(path)
    else:
        service.reactor.on_modify(path)
    return ActionResponse(status="accepted", message=f"{body.event} {path}")
