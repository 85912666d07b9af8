from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import IndexRequest, RemoveDocumentRequest
from server.models.responses import (
    ActionResponse,
    GarbageCollectResponse,
    IndexedFilesResponse,
    IndexStatusResponse,
    RecordResponse,
    RemoveDocumentResponse,
)
from services.vault_index.IndexService import UNAVAILABLE_MESSAGE, IndexService

router = APIRouter(prefix="/index", tags=["index"])


def _service(request: Request) -> IndexService:
    return request.app.state.index_service


@router.post("")
async def start_indexing(
    request: Request,
    body: IndexRequest,
    background_tasks: BackgroundTasks,
    _: None = Depends(verify_api_key),
) -> ActionResponse:
    """Start an indexing run in the background.

    Args:
        body (IndexRequest): ``overwrite`` discards the index and reindexes everything.

    Returns:
        ActionResponse: "accepted", "busy" if a run is active, or "unavailable".
    """
    service = _service(request)
    await service.wait_for_initialization()
    if not service.is_ready():
        return ActionResponse(status="unavailable", message=UNAVAILABLE_MESSAGE)
    if service.driver.is_running():
        return ActionResponse(status="busy", message="Indexing is already in progress.")
    background_tasks.add_task(service.do_index_all, body.overwrite)
    return ActionResponse(status="accepted", message="Full reindex started." if body.overwrite else "Incremental indexing started.")


@router.post("/pause")
async def pause_indexing(request: Request, _: None = Depends(verify_api_key)) -> ActionResponse:
    service = _service(request)
    service.pause()
    return ActionResponse(status="paused" if service.get_progress().paused else "idle")


@router.post("/resume")
async def resume_indexing(request: Request, _: None = Depends(verify_api_key)) -> ActionResponse:
    service = _service(request)
    service.resume()
    return ActionResponse(status="running" if service.driver.is_running() else "idle")


@router.post("/cancel")
async def cancel_indexing(request: Request, _: None = Depends(verify_api_key)) -> ActionResponse:
    service = _service(request)
    running = service.driver.is_running()
    service.cancel()
    return ActionResponse(status="cancelling" if running else "idle")


@router.post("/clear")
async def clear_index(request: Request, _: None = Depends(verify_api_key)) -> ActionResponse:
    service = _service(request)
    await service.do_clear()
    if not service.is_ready():
        return ActionResponse(status="unavailable", message=UNAVAILABLE_MESSAGE)
    return ActionResponse(status="cleared")


@router.post("/garbage-collect")
async def garbage_collect(request: Request, _: None = Depends(verify_api_key)) -> GarbageCollectResponse:
    service = _service(request)
    removed = await service.do_garbage_collect()
    return GarbageCollectResponse(status="ok" if service.is_ready() else "unavailable", removed=removed)


@router.get("/status")
async def index_status(request: Request, _: None = Depends(verify_api_key)) -> IndexStatusResponse:
    service = _service(request)
    store = service.context.store
    return IndexStatusResponse(
        ready=service.is_ready(),
        available=service.is_available(),
        running=service.driver.is_running(),
        record_count=len(store) if store is not None else 0,
        progress=service.get_progress(),
        last_result=service.get_last_result(),
    )


@router.get("/files")
async def indexed_files(request: Request, _: None = Depends(verify_api_key)) -> IndexedFilesResponse:
    service = _service(request)
    return IndexedFilesResponse(
        empty=await service.do_is_index_empty(),
        paths=await service.do_get_indexed_files(),
    )


@router.get("/records/{record_id}")
async def get_record(request: Request, record_id: str, _: None = Depends(verify_api_key)) -> RecordResponse:
    """Return one stored record without its vector.

    Raises:
        HTTPException: 404 if no record has this id.
    """
    record = await _service(request).do_get_record_by_id(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No record with id '{record_id}'")
    return RecordResponse(
        dimensions=len(record.embedding),
        **record.model_dump(exclude={"embedding"}),
    )


@router.delete("/documents")
async def remove_document(request: Request, body: RemoveDocumentRequest, _: None = Depends(verify_api_key)) -> RemoveDocumentResponse:
    service = _service(request)
    removed = await service.do_remove_document(body.path)
    return RemoveDocumentResponse(status="ok" if service.is_ready() else "unavailable", removed=removed)
