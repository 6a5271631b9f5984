#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Connection-state and sync-record events for clipsync
"""
import asyncio
import enum
import inspect
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, List, Optional, Tuple

from .logging_utils import get_logger

HISTORY_LIMIT = 50


class ConnectionState(enum.Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'
    CONNECTION_FAILURE = 'connection_failure'


class SyncDirection(enum.Enum):
    INCOMING = 'incoming'
    OUTGOING = 'outgoing'


@dataclass(frozen=True)
class SyncRecord:
    content: str
    direction: SyncDirection
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def formatted_time(self) -> str:
        return self.timestamp.strftime('%H:%M:%S')


class EventObserver:
    """Base observer; override the events you care about. Handlers may be coroutines."""

    def on_connection_state_changed(self, state: ConnectionState) -> Any:
        pass

    def on_sync_record(self, record: SyncRecord) -> Any:
        pass


class EventNotifier:
    """Delivers events to observers from a dispatcher task

    Emitting only enqueues, so a slow observer never holds up the caller.
    """

    def __init__(self):
        self.logger = get_logger('event-notifier')
        self._observers: List[EventObserver] = []
        self._queue: Optional[asyncio.Queue] = None
        self._dispatcher: Optional[asyncio.Task] = None

    def subscribe(self, observer: EventObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: EventObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def connection_state_changed(self, state: ConnectionState) -> None:
        self._emit('on_connection_state_changed', state)

    def sync_record(self, record: SyncRecord) -> None:
        self._emit('on_sync_record', record)

    def _emit(self, handler: str, payload: Any) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.get_running_loop().create_task(
                self._dispatch(), name='event-dispatcher'
            )
        self._queue.put_nowait((handler, payload))

    async def _dispatch(self) -> None:
        while True:
            handler, payload = await self._queue.get()
            try:
                for observer in list(self._observers):
                    await self._deliver(observer, handler, payload)
            finally:
                self._queue.task_done()

    async def _deliver(self, observer: EventObserver, handler: str, payload: Any) -> None:
        try:
            result = getattr(observer, handler)(payload)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f'Observer {observer!r} failed handling {handler}: {e}', exc_info=True)

    async def join(self) -> None:
        """Wait until every queued event has been delivered"""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        await self.join()
        if self._dispatcher is not None:
            self._dispatcher.cancel()
            try:
                await self._dispatcher
            except asyncio.CancelledError:
                pass
            self._dispatcher = None
        self._queue = None


class SyncHistory(EventObserver):
    """Most recent sync records, newest first"""

    def __init__(self, limit: int = HISTORY_LIMIT):
        self._records: Deque[SyncRecord] = deque(maxlen=limit)

    def on_sync_record(self, record: SyncRecord) -> None:
        # appendleft on a full deque drops the oldest entry from the right
        self._records.appendleft(record)

    @property
    def records(self) -> Tuple[SyncRecord, ...]:
        return tuple(self._records)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
