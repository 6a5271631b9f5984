#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Blocking runner for clipsync

Owns an event loop so that a CLI or GUI thread can start the sync engine and
stop it later from another thread.
"""
import asyncio
from typing import Callable, Iterable, Optional

from ..client.sync_client import ConnectionManager
from ..client.transport import MqttTransport, Transport
from ..core.clipboard import PyperclipClipboard, SystemClipboard
from ..core.config import ConnectionSettings
from ..core.events import ConnectionState, EventNotifier, EventObserver, SyncHistory
from ..core.exceptions import TransportError
from ..core.identity import DeviceIdentity
from ..core.logging_utils import get_logger


class _FailureWatch(EventObserver):
    """Ends the run once the connection has failed for good"""

    def __init__(self, runner: 'ClipboardSync'):
        self.runner = runner

    def on_connection_state_changed(self, state: ConnectionState) -> None:
        if state is ConnectionState.CONNECTION_FAILURE:
            self.runner.failed = True
            self.runner.request_stop()


class ClipboardSync:
    """Runs a ConnectionManager until stop_sync() is called"""

    def __init__(
        self,
        settings: ConnectionSettings,
        identity: Optional[DeviceIdentity] = None,
        observers: Iterable[EventObserver] = (),
        transport_factory: Callable[[], Transport] = MqttTransport,
        clipboard_factory: Callable[[], SystemClipboard] = PyperclipClipboard,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self.settings = settings
        self.identity = identity or DeviceIdentity.detect()
        self.observers = list(observers)
        self.transport_factory = transport_factory
        self.clipboard_factory = clipboard_factory
        self.log_callback = log_callback
        self.logger = get_logger('clipsync', log_callback)
        self.history = SyncHistory()
        self.manager: Optional[ConnectionManager] = None
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.running = False
        self.failed = False
        self._stop_event: Optional[asyncio.Event] = None

    def start_sync(self) -> None:
        """Run until stopped; raises TransportError if the connection failed"""
        self.running = True
        self.failed = False
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

        try:
            self.loop.run_until_complete(self._run())
        finally:
            self._cleanup_tasks_sync()
            self.loop.close()
            self.running = False
            self.logger.info('Sync service stopped.')

        if self.failed:
            raise TransportError(
                f'Unable to stay connected to {self.settings.host}:{self.settings.port}'
            )

    def stop_sync(self) -> None:
        """Stop the service; safe to call from any thread"""
        if not self.running:
            return
        if self.loop and self.loop.is_running():
            self.loop.call_soon_threadsafe(self.request_stop)

    def request_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    async def _run(self) -> None:
        self._stop_event = asyncio.Event()
        notifier = EventNotifier()
        notifier.subscribe(self.history)
        notifier.subscribe(_FailureWatch(self))
        for observer in self.observers:
            notifier.subscribe(observer)

        self.manager = ConnectionManager(
            self.identity,
            self.transport_factory(),
            self.clipboard_factory(),
            notifier=notifier,
            log_callback=self.log_callback,
        )
        try:
            await self.manager.update_settings(self.settings)
            await self.manager.connect()
            await self._stop_event.wait()
        finally:
            await self.manager.close()

    def _cleanup_tasks_sync(self) -> None:
        """Cancel and drain whatever is still pending on the loop"""
        if not self.loop:
            return
        pending = asyncio.all_tasks(self.loop)
        if pending:
            for task in pending:
                task.cancel()
            self.loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
