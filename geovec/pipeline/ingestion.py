"""Background ingestion of intercepted tool responses.

Submissions never block the caller. Jobs run on worker tasks owned by the
queue, so cancelling the request that submitted a job does not cancel the
job. Concurrency is bounded by the worker count and backlog by the queue size.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from geovec.config import IngestionSettings
from geovec.geodata.tool_result import parse_tool_result
from geovec.logging_config import get_logger
from geovec.observability.metrics import track_ingestion_job
from geovec.pipeline.vectorizer import GeoVectorizer

logger = get_logger(__name__)


@dataclass(frozen=True)
class IngestionJob:
    source_tool: str
    payload: Mapping[str, Any]


class IngestionQueue:
    """Bounded worker pool feeding a GeoVectorizer."""

    def __init__(
        self,
        vectorizer: GeoVectorizer,
        settings: IngestionSettings | None = None,
    ) -> None:
        self._vectorizer = vectorizer
        self._settings = settings or IngestionSettings()
        self._queue: asyncio.Queue[IngestionJob] = asyncio.Queue(
            maxsize=self._settings.queue_size
        )
        self._workers: list[asyncio.Task[None]] = []
        self.succeeded = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        """Start the worker tasks. Calling it twice is a no-op."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(n), name=f"ingestion-worker-{n}")
            for n in range(self._settings.max_workers)
        ]
        logger.info(
            "Ingestion workers started",
            extra={"workers": self._settings.max_workers, "queue_size": self._settings.queue_size},
        )

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        await self._queue.join()

    async def stop(self, drain: bool = True) -> None:
        """Stop the workers.

        Args:
            drain: Process queued jobs before stopping.
        """
        if drain and self._workers:
            await self._queue.join()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(
            "Ingestion workers stopped",
            extra={"succeeded": self.succeeded, "failed": self.failed},
        )

    def submit(self, source_tool: str, payload: Mapping[str, Any]) -> bool:
        """Queue a response for vectorization without waiting for it.

        Returns:
            False if the job was not queued (not running, disabled, or full).
        """
        if not self._workers:
            logger.warning("Ingestion queue is not running", extra={"source_tool": source_tool})
            track_ingestion_job("rejected", self.pending)
            return False
        if not self._vectorizer.is_enabled:
            logger.debug("Vectorization disabled, not queueing", extra={"source_tool": source_tool})
            return False

        try:
            self._queue.put_nowait(IngestionJob(source_tool, payload))
        except asyncio.QueueFull:
            logger.warning(
                "Ingestion queue full, dropping response",
                extra={"source_tool": source_tool, "pending": self.pending},
            )
            track_ingestion_job("rejected", self.pending)
            return False

        track_ingestion_job("submitted", self.pending)
        return True

    def intercept(self, tool_name: str, result: str | bytes | Mapping[str, Any]) -> bool:
        """Queue the payload carried by a raw tool result, if it has one."""
        payload = parse_tool_result(result)
        if payload is None:
            logger.debug(f"No JSON payload in result of {tool_name}")
            return False
        return self.submit(tool_name, payload)

    async def _worker(self, number: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                record = await self._vectorizer.vectorize(job.source_tool, job.payload)
            except Exception as e:
                self.failed += 1
                track_ingestion_job("failed", self.pending)
                logger.error(
                    f"Background vectorization of {job.source_tool} failed: {e}",
                    extra={"worker": number},
                    exc_info=True,
                )
            else:
                self.succeeded += 1
                track_ingestion_job("succeeded", self.pending)
                logger.debug(
                    "Background vectorization done",
                    extra={"worker": number, "id": record.id},
                )
            finally:
                self._queue.task_done()
