#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Repeating timer for clipsync, driven by the asyncio event loop
"""
import asyncio
from typing import Awaitable, Callable, Optional

from .logging_utils import get_logger


class Ticker:
    """Calls an async callback every `interval` seconds until stopped"""

    def __init__(self, interval: float, callback: Callable[[], Awaitable[None]], name: str = 'ticker'):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.logger = get_logger(name)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.callback()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # A failing tick must not end the timer
                self.logger.error(f'Tick callback failed: {e}', exc_info=True)
