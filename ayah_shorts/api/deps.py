from typing import Annotated

from fastapi import Depends, Request, WebSocket

from ayah_shorts.api.websocket import WebSocketManager
from ayah_shorts.services.job_manager import RenderJobManager, RenderJobRegistry


def get_registry(request: Request) -> RenderJobRegistry:
    return request.app.state.registry


def get_job_manager(request: Request) -> RenderJobManager:
    return request.app.state.job_manager


def get_websocket_manager(websocket: WebSocket) -> WebSocketManager:
    return websocket.app.state.websocket_manager


Registry = Annotated[RenderJobRegistry, Depends(get_registry)]
JobManager = Annotated[RenderJobManager, Depends(get_job_manager)]
WSManager = Annotated[WebSocketManager, Depends(get_websocket_manager)]
