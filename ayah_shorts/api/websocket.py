"""WebSocket support for real-time render progress notifications.

This module provides:
- WebSocketManager: Manages WebSocket connections per render job
- RenderProgressNotifier: High-level API for sending progress updates
- Message creation helpers: Standardized message formats

Both objects are built once in the app lifespan (see main.py) and handed to
the job manager; there is no module-level instance.
"""

import logging
from typing import Any, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Manages WebSocket connections for render progress updates.

    Supports multiple clients watching the same render job.
    """

    def __init__(self):
        # job_id -> list of connected websockets
        self._connections: dict[str, list[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, job_id: str) -> None:
        """Accept and register a WebSocket connection for a job."""
        await websocket.accept()
        self._connections.setdefault(job_id, []).append(websocket)

    def disconnect(self, websocket: WebSocket, job_id: str) -> None:
        """Remove a WebSocket connection."""
        if job_id in self._connections:
            if websocket in self._connections[job_id]:
                self._connections[job_id].remove(websocket)
            if not self._connections[job_id]:
                del self._connections[job_id]

    async def broadcast(self, job_id: str, message: dict[str, Any]) -> None:
        """Broadcast a message to all clients watching a job."""
        if job_id not in self._connections:
            return

        disconnected = []
        for websocket in list(self._connections[job_id]):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.debug(f"[WS] Dropping client for job {job_id}: {e}")
                disconnected.append(websocket)

        for ws in disconnected:
            self.disconnect(ws, job_id)

    def get_connection_count(self, job_id: str) -> int:
        """Get the number of connected clients for a job."""
        return len(self._connections.get(job_id, []))


class RenderProgressNotifier:
    """High-level API for sending render progress notifications."""

    def __init__(self, manager: WebSocketManager):
        self._manager = manager

    async def notify_progress(
        self,
        job_id: str,
        percent: int,
        status: str = "processing",
        elapsed_ms: int = 0,
    ) -> None:
        """Send a progress update to all connected clients."""
        message = create_progress_message(job_id=job_id, status=status, percent=percent, elapsed_ms=elapsed_ms)
        await self._manager.broadcast(job_id, message)

    async def notify_complete(
        self,
        job_id: str,
        output_path: str,
        processing_time_ms: Optional[int] = None,
    ) -> None:
        """Send a completion notification to all connected clients."""
        message = create_complete_message(
            job_id=job_id,
            output_path=output_path,
            processing_time_ms=processing_time_ms,
        )
        await self._manager.broadcast(job_id, message)

    async def notify_error(
        self,
        job_id: str,
        error_message: str,
        error_code: Optional[str] = None,
    ) -> None:
        """Send an error notification to all connected clients."""
        message = create_error_message(job_id=job_id, error_message=error_message, error_code=error_code)
        await self._manager.broadcast(job_id, message)


def create_progress_message(
    job_id: str,
    status: str,
    percent: int,
    elapsed_ms: int = 0,
) -> dict[str, Any]:
    """Create a standardized progress message."""
    return {
        "type": "progress",
        "job_id": job_id,
        "status": status,
        "percent": percent,
        "elapsed_ms": elapsed_ms,
    }


def create_complete_message(
    job_id: str,
    output_path: str,
    processing_time_ms: Optional[int] = None,
) -> dict[str, Any]:
    """Create a standardized completion message."""
    return {
        "type": "complete",
        "job_id": job_id,
        "status": "completed",
        "output_path": output_path,
        "processing_time_ms": processing_time_ms,
    }


def create_error_message(
    job_id: str,
    error_message: str,
    error_code: Optional[str] = None,
) -> dict[str, Any]:
    """Create a standardized error message."""
    return {
        "type": "error",
        "job_id": job_id,
        "status": "failed",
        "error_message": error_message,
        "error_code": error_code,
    }
