"""Render job registry and pipeline orchestration.

RenderJobRegistry holds job state; it is constructed once by the app and
passed around (no module-level instance). RenderJobManager runs the render
pipeline for a job as a single asyncio task:

    queued -> processing -> completed | failed

Only ``queued -> processing`` and ``processing -> completed|failed`` are
allowed; terminal jobs never change status again.
"""

import asyncio
import logging
import threading
from contextlib import aclosing
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from ayah_shorts.config import get_settings
from ayah_shorts.constants.error_codes import get_error_spec
from ayah_shorts.exceptions import (
    AyahShortsError,
    EncodeCancelledError,
    EncodeFailureError,
    InvalidStateTransitionError,
    ProbeFailureError,
    RenderJobNotFoundError,
)
from ayah_shorts.render.executor import (
    FFmpegExecutor,
    RenderCompletedEvent,
    RenderFailedEvent,
    RenderProgressEvent,
)
from ayah_shorts.render.geometry import canvas_of, resolve_geometry
from ayah_shorts.render.plan import compose_render_plan
from ayah_shorts.render.style import resolve_style
from ayah_shorts.render.subtitles import write_caption_track
from ayah_shorts.render.timeline import SegmentText, build_timeline, probe_segments
from ayah_shorts.schemas.render import RenderRequest
from ayah_shorts.utils.formatting import build_output_filename, filename_timestamp, format_duration
from ayah_shorts.utils.media_info import get_video_dimensions

logger = logging.getLogger(__name__)


class RenderStatus(str, Enum):
    """Render job status."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({RenderStatus.COMPLETED, RenderStatus.FAILED})

ALLOWED_TRANSITIONS: dict[RenderStatus, frozenset[RenderStatus]] = {
    RenderStatus.QUEUED: frozenset({RenderStatus.PROCESSING}),
    RenderStatus.PROCESSING: frozenset({RenderStatus.COMPLETED, RenderStatus.FAILED}),
    RenderStatus.COMPLETED: frozenset(),
    RenderStatus.FAILED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RenderJob:
    """Render job information."""

    id: str
    status: RenderStatus = RenderStatus.QUEUED
    request: dict[str, Any] = field(default_factory=dict)
    progress: int = 0
    output_file_path: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def processing_time_ms(self) -> Optional[int]:
        if self.started_at is None or self.completed_at is None:
            return None
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        processing_ms = self.processing_time_ms
        return {
            "id": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "output_file_path": self.output_file_path,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "user_message": get_error_spec(self.error_code)["user_message"] if self.error_code else None,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "processing_time_ms": processing_ms,
            "processing_time": format_duration(processing_ms / 1000) if processing_ms is not None else None,
        }


class RenderJobRegistry:
    """Thread-safe in-memory job store keyed by job id.

    Callers always receive copies; mutation goes through transition() and
    update_progress().
    """

    def __init__(self) -> None:
        self._jobs: dict[str, RenderJob] = {}
        self._lock = threading.Lock()

    def create(self, request: Optional[dict[str, Any]] = None, job_id: Optional[str] = None) -> RenderJob:
        """Register a new queued job."""
        with self._lock:
            job_id = job_id or str(uuid4())
            if job_id in self._jobs:
                raise ValueError(f"Render job already exists: {job_id}")
            job = RenderJob(id=job_id, request=dict(request or {}))
            self._jobs[job_id] = job
            return replace(job)

    def get(self, job_id: str) -> RenderJob:
        """Look up a job by id.

        Raises:
            RenderJobNotFoundError: Unknown id
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise RenderJobNotFoundError(job_id)
            return replace(job)

    def list_jobs(self) -> list[RenderJob]:
        """All jobs, newest first."""
        with self._lock:
            jobs = [replace(job) for job in self._jobs.values()]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def transition(self, job_id: str, new_status: RenderStatus | str, **updates: Any) -> RenderJob:
        """
        Move a job to a new status, applying field updates atomically.

        started_at is stamped on entry into processing, and completed_at on
        entry into completed/failed, unless the caller supplies them.

        Raises:
            RenderJobNotFoundError: Unknown id
            InvalidStateTransitionError: Transition not in ALLOWED_TRANSITIONS
        """
        new_status = RenderStatus(new_status)
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise RenderJobNotFoundError(job_id)
            if new_status not in ALLOWED_TRANSITIONS[job.status]:
                raise InvalidStateTransitionError(job_id, job.status.value, new_status.value)

            now = _utcnow()
            if new_status is RenderStatus.PROCESSING and updates.get("started_at") is None and job.started_at is None:
                updates["started_at"] = now
            if new_status in TERMINAL_STATES and updates.get("completed_at") is None and job.completed_at is None:
                updates["completed_at"] = now
            if new_status is RenderStatus.COMPLETED:
                updates.setdefault("progress", 100)

            job = replace(job, status=new_status, **updates)
            self._jobs[job_id] = job
            logger.info(f"[JOB] {job_id}: -> {new_status.value}")
            return replace(job)

    def update_progress(self, job_id: str, percent: int) -> RenderJob:
        """Raise a processing job's progress. Lower or equal values are ignored."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise RenderJobNotFoundError(job_id)
            percent = max(0, min(100, int(percent)))
            if job.status is RenderStatus.PROCESSING and percent > job.progress:
                job = replace(job, progress=percent)
                self._jobs[job_id] = job
            return replace(job)


class RenderJobManager:
    """Runs the render pipeline for registered jobs."""

    def __init__(self, registry: RenderJobRegistry, executor: FFmpegExecutor, notifier=None):
        self.registry = registry
        self.executor = executor
        self.notifier = notifier
        self._tasks: dict[str, asyncio.Task] = {}

    async def submit(self, request: RenderRequest) -> RenderJob:
        """Create a queued job and schedule its pipeline in the background."""
        job = self.registry.create(request.model_dump(mode="json"))
        task = asyncio.create_task(self.run(job.id, request), name=f"render:{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda t, job_id=job.id: self._on_task_done(job_id, t))
        logger.info(f"[JOB] Submitted {job.id} ({len(request.audio_paths)} audio clips)")
        return job

    def _on_task_done(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]
        if not task.cancelled():
            return
        # Cancelled before run() took its first step
        if self.registry.get(job_id).status is RenderStatus.QUEUED:
            error = EncodeCancelledError("Render cancelled before it started")
            logger.warning(f"[JOB] {job_id}: {error.message}")
            self.registry.transition(job_id, RenderStatus.PROCESSING)
            self.registry.transition(
                job_id,
                RenderStatus.FAILED,
                error_message=error.message,
                error_code=error.code,
            )

    async def wait(self, job_id: str) -> RenderJob:
        """Wait for a submitted job's pipeline to finish and return its final state.

        Cancelling the waiter does not cancel the job.
        """
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task})
        return self.registry.get(job_id)

    def cancel_job(self, job_id: str) -> bool:
        """Cancel a submitted job that is queued or processing. Returns False otherwise.

        Raises:
            RenderJobNotFoundError: Unknown id
        """
        job = self.registry.get(job_id)
        task = self._tasks.get(job_id)
        if job.is_terminal or task is None or task.done():
            return False
        logger.info(f"[JOB] Cancelling {job_id} ({job.status.value})")
        task.cancel()
        return True

    async def shutdown(self) -> None:
        """Cancel all running pipelines and wait for them to settle."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _default_output_path(self, job_id: str, request: RenderRequest) -> str:
        output_dir = get_settings().render_output_dir
        if request.has_provenance:
            return build_output_filename(
                output_dir,
                surah_number=request.surah_number,
                ayah_start=request.ayah_start,
                ayah_end=request.ayah_end,
                reciter_id=request.reciter_id,
            )
        return str(Path(output_dir) / f"{filename_timestamp()}-{job_id}.mp4")

    async def run(self, job_id: str, request: Optional[RenderRequest] = None) -> RenderJob:
        """
        Run the full pipeline for a queued job in the current task.

        Pipeline errors end the job as failed and are not re-raised;
        cancellation ends it as failed and re-raises CancelledError.

        Returns:
            Final job state
        """
        job = self.registry.get(job_id)
        if request is None:
            request = RenderRequest.model_validate(job.request)

        self.registry.transition(job_id, RenderStatus.PROCESSING)
        await self._notify_progress(job_id, 0)

        caption_path = Path(get_settings().render_work_dir) / f"{job_id}.srt"
        try:
            output_path = await self._render(job_id, request, caption_path)
        except asyncio.CancelledError:
            await self._fail(job_id, EncodeCancelledError("Render cancelled"))
            raise
        except AyahShortsError as e:
            return await self._fail(job_id, e)
        except Exception as e:
            logger.exception(f"[JOB] {job_id}: unexpected pipeline error")
            return await self._fail(job_id, AyahShortsError(f"Unexpected error: {e}"))
        finally:
            self._remove_caption_file(caption_path)

        job = self.registry.transition(job_id, RenderStatus.COMPLETED, output_file_path=output_path)
        logger.info(f"[JOB] {job_id}: completed in {job.processing_time_ms}ms -> {output_path}")
        if self.notifier:
            await self.notifier.notify_complete(job_id, output_path, job.processing_time_ms)
        return job

    async def _render(self, job_id: str, request: RenderRequest, caption_path: Path) -> str:
        settings = get_settings()

        # Probe clips in ayah order; failures fall back to a fixed duration
        segments = await probe_segments(request.audio_paths, settings.probe_fallback_seconds)

        captions = request.captions
        captions_enabled = bool(captions and captions.enabled)
        texts = None
        if captions_enabled:
            texts = [SegmentText(primary=s.primary, secondary=s.secondary) for s in captions.segments]
        timeline = build_timeline(segments, texts)

        try:
            source_size = await asyncio.to_thread(get_video_dimensions, request.video_path)
        except ProbeFailureError as e:
            logger.warning(f"[JOB] {job_id}: {e}; using encoder-side fit")
            source_size = None
        geometry = resolve_geometry(source_size, request.resolution, request.aspect_ratio)

        style = None
        track_path = None
        if captions_enabled and not timeline.is_empty:
            style = resolve_style(
                captions.color,
                captions.position,
                captions.font_size or settings.caption_font_size,
                captions.show_secondary,
                captions.secondary_font_size or settings.caption_secondary_font_size,
                canvas_of(geometry).height,
            )
            track_path = await write_caption_track(caption_path, timeline.cues, style)

        output_path = request.output_path or self._default_output_path(job_id, request)
        plan = compose_render_plan(
            segments,
            request.video_path,
            geometry,
            output_path,
            style=style,
            timeline=timeline,
            caption_path=track_path,
        )

        async with aclosing(self.executor.stream(plan)) as events:
            async for event in events:
                if isinstance(event, RenderProgressEvent):
                    self.registry.update_progress(job_id, event.percent)
                    await self._notify_progress(job_id, event.percent, event.elapsed_ms)
                elif isinstance(event, RenderCompletedEvent):
                    return event.output_path
                elif isinstance(event, RenderFailedEvent):
                    raise event.error
        raise EncodeFailureError("Encode ended without a result")

    async def _fail(self, job_id: str, error: AyahShortsError) -> RenderJob:
        logger.error(f"[JOB] {job_id}: failed [{error.code}] {error.message}")
        job = self.registry.transition(
            job_id,
            RenderStatus.FAILED,
            error_message=error.message,
            error_code=error.code,
        )
        if self.notifier:
            await self.notifier.notify_error(job_id, error.message, error.code)
        return job

    async def _notify_progress(self, job_id: str, percent: int, elapsed_ms: int = 0) -> None:
        if self.notifier:
            await self.notifier.notify_progress(job_id, percent, RenderStatus.PROCESSING.value, elapsed_ms)

    @staticmethod
    def _remove_caption_file(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[JOB] Could not remove caption file {path}: {e}")
