"""
Coalescing analysis queue.

"Message appended" and "language changed" commands enqueue an analysis job
for a chat. While a chat's job is still waiting, further commands for that
chat merge into it. A single worker runs jobs one at a time in order of
first enqueue; the runner reads the transcript when the job starts, so a
job never analyses anything older than what was appended before it began.

Usage:
    scheduler = AnalysisScheduler(runner)
    scheduler.enqueue(chat_id, "message_appended")
    await scheduler.wait_idle()
"""

import asyncio
import itertools
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

MESSAGE_APPENDED = "message_appended"
LANGUAGE_CHANGED = "language_changed"


@dataclass
class AnalysisJob:
    seq: int
    chat_id: str
    reasons: List[str] = field(default_factory=list)


class AnalysisScheduler:
    def __init__(self, runner: Callable[[AnalysisJob], Awaitable[None]]):
        self._runner = runner
        self._pending: "OrderedDict[str, AnalysisJob]" = OrderedDict()
        self._running: Optional[AnalysisJob] = None
        self._worker: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._seq = itertools.count(1)

    @property
    def pending(self) -> List[AnalysisJob]:
        return list(self._pending.values())

    @property
    def running(self) -> Optional[AnalysisJob]:
        return self._running

    def enqueue(self, chat_id: str, reason: str) -> AnalysisJob:
        """Must be called from inside the running event loop."""
        job = self._pending.get(chat_id)
        if job is not None:
            job.reasons.append(reason)
            logger.debug("Coalesced %s into pending analysis job %d", reason, job.seq)
            return job

        job = AnalysisJob(seq=next(self._seq), chat_id=chat_id, reasons=[reason])
        self._pending[chat_id] = job
        self._idle.clear()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())
        return job

    def discard(self, chat_id: str) -> None:
        self._pending.pop(chat_id, None)
        if not self._pending and self._running is None:
            self._idle.set()

    async def _drain(self) -> None:
        while self._pending:
            _, job = self._pending.popitem(last=False)
            self._running = job
            try:
                await self._runner(job)
            except Exception:
                logger.exception("Analysis job %d for chat %s failed", job.seq, job.chat_id)
            finally:
                self._running = None
        self._idle.set()

    async def wait_idle(self) -> None:
        await self._idle.wait()

    async def aclose(self) -> None:
        self._pending.clear()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._running = None
        self._idle.set()
