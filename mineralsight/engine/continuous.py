"""Continuous analysis. Re-analyzes the live frame on a fixed interval.

A tick that arrives while the previous cycle is still running is skipped,
never queued. Cancellation is checked once per loop and once per delay.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import numpy as np
from numpy.typing import NDArray

from mineralsight.engine.results import FullSceneAnalysis

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 800

FrameProvider = Callable[[], "NDArray[np.uint8] | None"]
Analyzer = Callable[[NDArray[np.uint8]], FullSceneAnalysis]
ResultCallback = Callable[[FullSceneAnalysis], None]


class ContinuousAnalysisController:
    def __init__(
        self,
        frame_provider: FrameProvider,
        analyzer: Analyzer,
        on_result: ResultCallback | None = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        self.frame_provider = frame_provider
        self.analyzer = analyzer
        self.on_result = on_result
        self.interval_ms = interval_ms
        self.cycles_completed = 0
        self.ticks_skipped = 0
        self._busy = False
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_busy(self) -> bool:
        return self._busy

    def start(self) -> asyncio.Task:
        """Schedule the loop on the running event loop."""
        if self.is_running:
            return self._task
        self._stop = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def run(self) -> None:
        logger.info("Continuous analysis started (%d ms interval)", self.interval_ms)
        in_flight: set[asyncio.Task] = set()
        while not self._stop.is_set():
            if self._busy:
                self.ticks_skipped += 1
                logger.debug("Continuous analysis: previous cycle still running, tick skipped")
            else:
                task = asyncio.ensure_future(self._cycle())
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_ms / 1000)
            except asyncio.TimeoutError:
                pass
        if in_flight:
            await asyncio.gather(*in_flight)
        logger.info(
            "Continuous analysis stopped: %d cycles, %d ticks skipped",
            self.cycles_completed,
            self.ticks_skipped,
        )

    async def _cycle(self) -> None:
        self._busy = True
        try:
            frame = self.frame_provider()
            if frame is None:
                return
            frame = np.array(frame, copy=True)
            loop = asyncio.get_running_loop()
            scene = await loop.run_in_executor(None, self.analyzer, frame)
            self.cycles_completed += 1
            if self.on_result is not None and not self._stop.is_set():
                self.on_result(scene)
        except Exception as e:
            logger.warning("Continuous analysis cycle failed: %s", e)
        finally:
            self._busy = False
