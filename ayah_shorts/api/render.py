"""Render API endpoints - jobs run in the background, progress over WebSocket."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ayah_shorts.api.deps import JobManager, Registry, WSManager
from ayah_shorts.exceptions import RenderJobNotFoundError
from ayah_shorts.schemas.render import CancelResponse, RenderJobResponse, RenderRequest

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/renders",
    response_model=RenderJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_render(render_request: RenderRequest, manager: JobManager) -> RenderJobResponse:
    """
    Queue a render job.

    Returns immediately; poll GET /renders/{job_id} or watch
    /ws/renders/{job_id} for progress.
    """
    job = await manager.submit(render_request)
    return RenderJobResponse(**job.to_dict())


@router.get("/renders", response_model=list[RenderJobResponse])
async def list_renders(registry: Registry) -> list[RenderJobResponse]:
    """List all render jobs, newest first."""
    return [RenderJobResponse(**job.to_dict()) for job in registry.list_jobs()]


@router.get("/renders/{job_id}", response_model=RenderJobResponse)
async def get_render(job_id: str, registry: Registry) -> RenderJobResponse:
    """Get the current state of a render job."""
    return RenderJobResponse(**registry.get(job_id).to_dict())


@router.post("/renders/{job_id}/cancel", response_model=CancelResponse)
async def cancel_render(job_id: str, manager: JobManager) -> CancelResponse:
    """Cancel a processing render job."""
    return CancelResponse(cancelled=manager.cancel_job(job_id))


@router.websocket("/ws/renders/{job_id}")
async def render_progress_ws(websocket: WebSocket, job_id: str, ws_manager: WSManager) -> None:
    """Stream progress / complete / error messages for one job."""
    registry = websocket.app.state.registry
    try:
        job = registry.get(job_id)
    except RenderJobNotFoundError:
        await websocket.close(code=4404)
        return

    await ws_manager.connect(websocket, job_id)
    # Initial snapshot so late subscribers see where the job is
    await websocket.send_json({"type": "status", "job": job.to_dict()})
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"[WS] Client disconnected from job {job_id}")
    finally:
        ws_manager.disconnect(websocket, job_id)
