"""Progress events for photo uploads, consumable as an async stream."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from typing import AsyncIterator, Callable, Deque, Optional

from models.upload_models import UploadProgress, UploadStage

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[UploadProgress], None]

_CLOSED = object()


class ProgressStream:
    """Queue-backed publisher of `UploadProgress` events.

    The pipeline calls `emit()`; a consumer iterates with
    `async for event in stream` until `close()` is called. An optional
    callback receives every event synchronously as well.

    Args:
        callback: Optional function invoked for each event.
        maxsize: Queue bound; events are dropped when a slow consumer lets it fill.
            `history` keeps the same number of most recent events.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None, maxsize: int = 500) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._callback = callback
        self._closed = False
        self.history: Deque[UploadProgress] = deque(maxlen=maxsize or None)

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: UploadProgress) -> None:
        if self._closed:
            return
        self.history.append(event)
        LOGGER.debug("Upload progress %s %d%% %s", event.stage.value, event.progress, event.message)
        if self._callback is not None:
            self._callback(event)
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            pass  # Drop if the consumer is too slow

    def scoped(self, file_index: int) -> "IndexedProgress":
        """Return an emitter that stamps every event with `file_index`."""
        return IndexedProgress(self, file_index)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Make room for the sentinel so consumers always terminate.
            self._queue.get_nowait()
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[UploadProgress]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


class IndexedProgress:
    """Emitter view over a ProgressStream for one batch position."""

    def __init__(self, stream: ProgressStream, file_index: int) -> None:
        self._stream = stream
        self.file_index = file_index

    def emit(self, event: UploadProgress) -> None:
        self._stream.emit(
            UploadProgress(
                stage=event.stage,
                progress=event.progress,
                message=event.message,
                file_index=self.file_index,
            )
        )


def report(progress, stage: UploadStage, percent: int, message: str) -> None:
    """Emit on `progress` when the caller supplied one."""
    if progress is not None:
        progress.emit(UploadProgress(stage=stage, progress=percent, message=message))


def format_sse(event_type: str, payload: dict) -> str:
    """Format a payload as a server-sent event frame."""
    return f"event: {event_type}\ndata: {json.dumps(payload)}\n\n"
