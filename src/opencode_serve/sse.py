"""Server-Sent Events frame parsing.

Handles:
- Reassembling data:/event:/id: lines into frames (a blank line ends a frame)
- The ``data: [DONE]`` end-of-stream marker
- Dropping frames that are not valid JSON objects without ending the stream
- Optional progress reporting for long-lived subscriptions
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"
PREVIEW_LENGTH = 200


@dataclass
class SSEFrame:
    """One complete SSE frame."""

    data: str
    event: str | None = None
    id: str | None = None

    @property
    def is_done(self) -> bool:
        return self.data.strip() == DONE_MARKER


class SSEParser:
    """Incremental line-oriented SSE parser.

    Feed lines one at a time; a complete frame is returned when a blank line
    terminates it. Multiple data: lines in one frame are joined with newlines.
    """

    def __init__(self) -> None:
        self._data: list[str] = []
        self._event: str | None = None
        self._id: str | None = None
        self.last_event_id: str | None = None

    def feed(self, line: str) -> SSEFrame | None:
        line = line.rstrip("\r\n")

        if not line:
            return self._emit()

        if line.startswith(":"):
            return None  # comment / keep-alive

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "data":
            self._data.append(value)
        elif name == "event":
            self._event = value
        elif name == "id":
            self._id = value
            self.last_event_id = value
        elif name != "retry":
            logger.debug(f"Ignoring unknown SSE field: {name}")
        return None

    def flush(self) -> SSEFrame | None:
        """Emit whatever is buffered when the stream ends without a blank line."""
        return self._emit()

    def _emit(self) -> SSEFrame | None:
        if not self._data:
            self._event = None
            self._id = None
            return None
        frame = SSEFrame(data="\n".join(self._data), event=self._event, id=self._id)
        self._data = []
        self._event = None
        self._id = None
        return frame


async def iter_frames(lines: AsyncIterable[str]) -> AsyncIterator[SSEFrame]:
    """Yield frames from an async iterable of text lines until [DONE] or EOF."""
    parser = SSEParser()
    async for line in lines:
        frame = parser.feed(line)
        if frame is None:
            continue
        if frame.is_done:
            logger.debug("SSE stream signalled [DONE]")
            return
        yield frame

    frame = parser.flush()
    if frame is not None and not frame.is_done:
        yield frame


def decode_frame(frame: SSEFrame) -> dict[str, Any] | None:
    """Decode a frame's data as a JSON object, or None if it is malformed."""
    try:
        payload = json.loads(frame.data)
    except json.JSONDecodeError:
        logger.warning(f"Failed to parse SSE data: {frame.data[:PREVIEW_LENGTH]}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Ignoring non-object SSE payload: {frame.data[:PREVIEW_LENGTH]}")
        return None
    return payload


async def iter_payloads(
    lines: AsyncIterable[str],
    progress: ProgressTracker | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """Yield decoded JSON payloads, skipping malformed frames."""
    async for frame in iter_frames(lines):
        if progress is not None:
            progress.chunk(frame)
        payload = decode_frame(frame)
        if payload is not None:
            yield payload


# =============================================================================
# Progress reporting
# =============================================================================


class ProgressStage(str, Enum):
    """Lifecycle stages of a streamed subscription."""

    STARTING = "starting"
    CONNECTED = "connected"
    CHUNK_RECEIVED = "chunk_received"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class StreamingProgress:
    """Snapshot of a stream's progress."""

    stage: ProgressStage
    chunk_count: int = 0
    bytes_received: int = 0
    char_count: int = 0
    elapsed: float = 0.0
    preview: str | None = None
    event_type: str | None = None
    error: str | None = None


ProgressCallback = Callable[[StreamingProgress], None]


def make_preview(data: str, limit: int = PREVIEW_LENGTH) -> str:
    if len(data) <= limit:
        return data
    return data[:limit] + "..."


class ProgressTracker:
    """Accumulates stream statistics and reports them to a callback."""

    def __init__(self, callback: ProgressCallback, clock: Callable[[], float] = time.monotonic):
        self._callback = callback
        self._clock = clock
        self._started = clock()
        self.chunk_count = 0
        self.bytes_received = 0
        self.char_count = 0

    def _report(self, stage: ProgressStage, **kwargs: Any) -> None:
        self._callback(
            StreamingProgress(
                stage=stage,
                chunk_count=self.chunk_count,
                bytes_received=self.bytes_received,
                char_count=self.char_count,
                elapsed=self._clock() - self._started,
                **kwargs,
            )
        )

    def starting(self) -> None:
        self._report(ProgressStage.STARTING)

    def connected(self) -> None:
        self._report(ProgressStage.CONNECTED)

    def chunk(self, frame: SSEFrame) -> None:
        self.chunk_count += 1
        self.bytes_received += len(frame.data.encode("utf-8"))
        self.char_count += len(frame.data)
        self._report(
            ProgressStage.CHUNK_RECEIVED,
            preview=make_preview(frame.data),
            event_type=frame.event,
        )

    def completed(self) -> None:
        self._report(ProgressStage.COMPLETED)

    def cancelled(self) -> None:
        self._report(ProgressStage.CANCELLED)

    def failed(self, error: BaseException) -> None:
        self._report(ProgressStage.FAILED, error=str(error))
