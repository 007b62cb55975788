"""FFmpeg execution with a progress event stream.

FFmpegExecutor.stream() runs one encode and yields:

- RenderProgressEvent(percent) while ffmpeg runs, percent strictly
  increasing and capped at 99
- then exactly one terminal event: RenderProgressEvent(100) followed by
  RenderCompletedEvent on success, or RenderFailedEvent on failure

Progress comes from ffmpeg's ``-progress pipe:1`` key=value output on stdout;
stderr is drained concurrently into a bounded buffer whose tail is attached
to failures.

Cancellation policy: if the consumer stops iterating (aclose, task cancel)
or the watchdog expires, ffmpeg is killed and the partial output file is
deleted. A failed encode never leaves an output file behind.
"""

import asyncio
import logging
import math
import time
from collections import deque
from contextlib import aclosing, suppress
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Union

from ayah_shorts.config import get_settings
from ayah_shorts.exceptions import AyahShortsError, EncodeFailureError, EncodeTimeoutError, MissingSourceFileError
from ayah_shorts.render.plan import RenderPlan, build_ffmpeg_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderProgressEvent:
    """Encode progress, 0-100."""

    percent: int
    elapsed_ms: int = 0


@dataclass(frozen=True)
class RenderCompletedEvent:
    """Encode finished and the output file exists."""

    output_path: str


@dataclass(frozen=True)
class RenderFailedEvent:
    """Encode could not start or did not succeed."""

    error: AyahShortsError


RenderEvent = Union[RenderProgressEvent, RenderCompletedEvent, RenderFailedEvent]


def progress_percent(elapsed_ms: float, expected_ms: float) -> int:
    """Map encoded media time to a running percentage, clamped to 0..99."""
    if expected_ms <= 0:
        return 0
    pct = math.floor(elapsed_ms / expected_ms * 100 + 0.5)
    return max(0, min(99, pct))


def parse_progress_line(line: str) -> Optional[int]:
    """Return elapsed media time in ms from an ``out_time_us=`` line.

    ffmpeg's ``out_time_ms`` key is also in microseconds despite its name.
    Returns None for other keys and for ``N/A`` values.
    """
    for key in ("out_time_us=", "out_time_ms="):
        if line.startswith(key):
            try:
                return int(line[len(key):]) // 1000
            except ValueError:
                return None
    return None


def ensure_output_dir(output_path: str) -> None:
    """Create the destination directory if it does not exist yet."""
    parent = Path(output_path).parent
    if not parent.exists():
        # exist_ok: another job may create it between the check and mkdir
        parent.mkdir(parents=True, exist_ok=True)


def check_sources(plan: RenderPlan) -> None:
    """Raise MissingSourceFileError for the first input that is not a file."""
    paths = [plan.video_path, *plan.audio_paths]
    if plan.caption_path:
        paths.append(plan.caption_path)
    for path in paths:
        if not Path(path).is_file():
            raise MissingSourceFileError(path)


def _remove_partial(output_path: str) -> None:
    with suppress(OSError):
        Path(output_path).unlink(missing_ok=True)


class FFmpegExecutor:
    """Runs RenderPlans through ffmpeg, one subprocess per call."""

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        timeout_s: Optional[float] = None,
        error_tail_chars: Optional[int] = None,
        stderr_max_lines: Optional[int] = None,
    ):
        settings = get_settings()
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.timeout_s = settings.render_timeout_s if timeout_s is None else timeout_s
        self.error_tail_chars = error_tail_chars or settings.render_error_tail_chars
        self.stderr_max_lines = stderr_max_lines or settings.render_stderr_max_lines

    def build_command(self, plan: RenderPlan) -> list[str]:
        """FFmpeg argv with progress reporting on stdout."""
        cmd = build_ffmpeg_command(plan, self.ffmpeg_path)
        # Insert -progress pipe:1 before output_path to get progress on stdout
        cmd[-1:-1] = ["-progress", "pipe:1", "-nostats"]
        return cmd

    def _tail(self, lines: deque) -> str:
        text = "\n".join(lines).strip()
        return text[-self.error_tail_chars:]

    @staticmethod
    async def _drain(stream: asyncio.StreamReader, sink: deque) -> None:
        async for raw_line in stream:
            sink.append(raw_line.decode("utf-8", errors="replace").rstrip())

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            with suppress(ProcessLookupError):
                proc.kill()
        await proc.wait()

    @staticmethod
    async def _with_deadline(awaitable, deadline: Optional[float]):
        if deadline is None:
            return await awaitable
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            # close the un-awaited coroutine before bailing out
            awaitable.close()
            raise asyncio.TimeoutError
        return await asyncio.wait_for(awaitable, timeout=remaining)

    async def stream(self, plan: RenderPlan) -> AsyncIterator[RenderEvent]:
        """Run the encode and yield progress events, ending with a terminal event."""
        try:
            check_sources(plan)
        except MissingSourceFileError as e:
            logger.error(f"[RENDER] {e}")
            yield RenderFailedEvent(e)
            return

        ensure_output_dir(plan.output_path)
        cmd = self.build_command(plan)
        logger.info(f"[RENDER] Starting ffmpeg: {' '.join(cmd)}")
        started = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"[RENDER] Could not start ffmpeg ({self.ffmpeg_path}): {e}")
            yield RenderFailedEvent(EncodeFailureError(f"Could not start ffmpeg: {e}"))
            return

        stderr_lines: deque = deque(maxlen=self.stderr_max_lines)
        stderr_task = asyncio.create_task(self._drain(proc.stderr, stderr_lines))
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_s if self.timeout_s and self.timeout_s > 0 else None
        last_pct = -1
        settled = False

        try:
            try:
                while True:
                    raw_line = await self._with_deadline(proc.stdout.readline(), deadline)
                    if not raw_line:
                        break
                    line = raw_line.decode("utf-8", errors="replace").strip()
                    elapsed_ms = parse_progress_line(line)
                    if elapsed_ms is not None:
                        pct = progress_percent(elapsed_ms, plan.expected_total_duration_ms)
                        if pct > last_pct:
                            last_pct = pct
                            yield RenderProgressEvent(percent=pct, elapsed_ms=elapsed_ms)
                    elif line == "progress=end":
                        break
                returncode = await self._with_deadline(proc.wait(), deadline)
            except asyncio.TimeoutError:
                await self._kill(proc)
                await stderr_task
                _remove_partial(plan.output_path)
                settled = True
                tail = self._tail(stderr_lines)
                logger.error(f"[RENDER] Watchdog expired after {self.timeout_s}s, ffmpeg killed")
                yield RenderFailedEvent(EncodeTimeoutError(self.timeout_s, diagnostic_tail=tail))
                return

            await stderr_task
            settled = True
            elapsed_s = time.monotonic() - started

            if returncode != 0:
                _remove_partial(plan.output_path)
                tail = self._tail(stderr_lines)
                logger.error(f"[RENDER] ffmpeg exited {returncode} after {elapsed_s:.1f}s: {tail}")
                yield RenderFailedEvent(
                    EncodeFailureError("FFmpeg failed", exit_code=returncode, diagnostic_tail=tail)
                )
                return

            if not Path(plan.output_path).is_file():
                logger.error(f"[RENDER] ffmpeg exited 0 but {plan.output_path} is missing")
                yield RenderFailedEvent(
                    EncodeFailureError("FFmpeg produced no output file", exit_code=returncode)
                )
                return

            logger.info(f"[RENDER] Encode finished in {elapsed_s:.1f}s: {plan.output_path}")
            yield RenderProgressEvent(percent=100, elapsed_ms=plan.expected_total_duration_ms)
            yield RenderCompletedEvent(output_path=plan.output_path)
        finally:
            if not settled:
                # Consumer went away mid-encode
                logger.warning(f"[RENDER] Encode abandoned, killing ffmpeg and removing {plan.output_path}")
                await self._kill(proc)
                stderr_task.cancel()
                with suppress(asyncio.CancelledError):
                    await stderr_task
                _remove_partial(plan.output_path)

    async def execute(
        self,
        plan: RenderPlan,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> str:
        """Run the encode to completion.

        Returns:
            Output path

        Raises:
            AyahShortsError: MissingSourceFileError or an EncodeFailureError
        """
        async with aclosing(self.stream(plan)) as events:
            async for event in events:
                if isinstance(event, RenderProgressEvent):
                    if on_progress:
                        on_progress(event.percent)
                elif isinstance(event, RenderCompletedEvent):
                    return event.output_path
                elif isinstance(event, RenderFailedEvent):
                    raise event.error
        raise EncodeFailureError("Encode ended without a result")
