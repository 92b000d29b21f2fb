"""
Progress Channel
Per-request queue between the orchestrator and a server-sent events response
"""
import asyncio
import json
from datetime import datetime, timezone
from typing import AsyncGenerator, Awaitable, Callable, Optional

import structlog
from sse_starlette.sse import ServerSentEvent

from llm_mail.models.campaign import ProgressEvent

logger = structlog.get_logger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


class ProgressChannel:
    """
    Single-subscriber event stream for one generation request.

    ``publish`` is handed to the orchestrator as its progress sink; ``stream``
    runs the generation and yields its events as SSE until a terminal event.
    """

    def __init__(self, heartbeat_interval: float = 15.0):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.heartbeat_interval = heartbeat_interval
        self._closed = False

    async def publish(self, event: ProgressEvent):
        """Queue an event to be sent"""
        if not self._closed:
            await self.queue.put(event)

    def close(self):
        self._closed = True

    @staticmethod
    def to_sse(event: ProgressEvent) -> ServerSentEvent:
        return ServerSentEvent(data=event.model_dump_json(exclude_none=True), event=event.stage)

    @staticmethod
    def heartbeat() -> ServerSentEvent:
        return ServerSentEvent(
            data=json.dumps({"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}),
            event="heartbeat",
        )

    async def stream(
        self,
        work: Awaitable,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> AsyncGenerator[ServerSentEvent, None]:
        """
        Run ``work`` (which publishes into this channel) and yield its events.

        Stops after the first terminal event, when the client disconnects, or
        when ``work`` finishes without publishing one. Unfinished work is
        cancelled when the stream stops.
        """
        task = asyncio.ensure_future(work)
        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    logger.info("Progress stream client disconnected")
                    break

                try:
                    event = await asyncio.wait_for(self.queue.get(), timeout=self.heartbeat_interval)
                except asyncio.TimeoutError:
                    if task.done() and self.queue.empty():
                        yield self.to_sse(self._unfinished(task))
                        break
                    yield self.heartbeat()
                    continue

                yield self.to_sse(event)
                if event.is_terminal:
                    break
        except asyncio.CancelledError:
            logger.info("Progress stream cancelled")
            raise
        finally:
            self.close()
            if not task.done():
                task.cancel()

    @staticmethod
    def _unfinished(task: asyncio.Future) -> ProgressEvent:
        if task.cancelled():
            error = "Generation was cancelled"
        elif task.exception() is not None:
            error = str(task.exception()) or task.exception().__class__.__name__
        else:
            error = "Generation finished without a result"
        logger.error("Progress stream ended without terminal event", error=error)
        return ProgressEvent(stage="error", message="Generation failed", error=error)
