#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Connection manager for clipsync

Owns the connection state machine and routes clipboard changes between the
watcher, the codec and the transport. Every coroutine here runs on a single
event loop, which serializes state transitions against clipboard polling.
"""
import asyncio
from typing import Callable, Optional

from ..core import protocol
from ..core.clipboard import POLL_INTERVAL, ClipboardWatcher, SystemClipboard
from ..core.config import ActiveConfig, ConnectionSettings
from ..core.events import ConnectionState, EventNotifier, SyncDirection, SyncRecord
from ..core.exceptions import ClipboardAccessError, ConfigurationError, ProtocolError, TransportError
from ..core.identity import DeviceIdentity
from ..core.logging_utils import get_logger, preview
from ..core.protocol import TEXT_TYPE, SyncMessage
from .transport import QOS_AT_LEAST_ONCE, Transport, TransportListener

RECONNECT_DELAY = 1.0


class ConnectionManager(TransportListener):
    """Clipboard sync over a pub/sub transport"""

    def __init__(
        self,
        identity: DeviceIdentity,
        transport: Transport,
        clipboard: SystemClipboard,
        notifier: Optional[EventNotifier] = None,
        reconnect_delay: float = RECONNECT_DELAY,
        poll_interval: float = POLL_INTERVAL,
        log_callback: Optional[Callable[[str], None]] = None,
    ):
        self.identity = identity
        self.transport = transport
        self.notifier = notifier or EventNotifier()
        self.reconnect_delay = reconnect_delay
        self.logger = get_logger('connection-manager', log_callback)
        self.watcher = ClipboardWatcher(
            clipboard,
            self._on_local_clipboard_change,
            interval=poll_interval,
            is_active=lambda: self._state is ConnectionState.CONNECTED,
        )
        self._state = ConnectionState.DISCONNECTED
        self._config: Optional[ActiveConfig] = None
        self._auto_reconnect = False
        self._reconnect_task: Optional[asyncio.Task] = None
        transport.bind(self)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def settings(self) -> Optional[ConnectionSettings]:
        return self._config.settings if self._config else None

    @property
    def auto_reconnect(self) -> bool:
        return self._auto_reconnect

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self.logger.debug(f'Connection state: {self._state.value} -> {state.value}')
        self._state = state
        self.notifier.connection_state_changed(state)

    # settings

    async def update_settings(self, settings: ConnectionSettings) -> None:
        """Apply new settings, reconnecting if connection fields changed while connected

        Raises ConfigurationError without touching the current state if the
        settings are unusable.
        """
        new_config = ActiveConfig.from_settings(settings)
        old_config, self._config = self._config, new_config

        changed = old_config is None or old_config.connection_fields() != new_config.connection_fields()
        if changed and self._state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING):
            self.logger.info('Connection settings changed, reconnecting...')
            await self.disconnect(reconnect=True)
            await self.connect()

    # connection lifecycle

    async def connect(self) -> None:
        """Start connecting with the active settings"""
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            self.logger.debug(f'connect() ignored while {self._state.value}')
            return
        config = self._config
        if config is None:
            raise ConfigurationError('No connection settings have been applied')

        self._cancel_reconnect()
        self._set_state(ConnectionState.CONNECTING)
        self.watcher.start_monitoring()
        try:
            self.transport.connect(config.settings, self.identity.device_id)
        except TransportError as e:
            self.logger.error(f'Connection failed: {e}')
            self._fail()

    async def disconnect(self, reconnect: bool = False) -> None:
        """Close the connection

        With `reconnect`, the auto-reconnect intent survives so the caller can
        connect again right away.
        """
        if not reconnect:
            self._auto_reconnect = False
        self._cancel_reconnect()
        if self._state is ConnectionState.DISCONNECTED:
            return

        self.watcher.stop_monitoring()
        self.transport.disconnect()
        self._set_state(ConnectionState.DISCONNECTED)
        self.logger.info('Disconnected from broker')

    async def toggle_connection(self) -> None:
        if self._state is ConnectionState.CONNECTED:
            await self.disconnect()
        else:
            await self.connect()

    async def close(self) -> None:
        await self.disconnect()
        await self.notifier.close()

    def _fail(self) -> None:
        self._auto_reconnect = False
        self.watcher.stop_monitoring()
        self.transport.disconnect()
        self._set_state(ConnectionState.CONNECTION_FAILURE)

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _reconnect_later(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        self._reconnect_task = None
        if self._auto_reconnect and self._state is ConnectionState.DISCONNECTED:
            self.logger.info('Attempting to reconnect...')
            await self.connect()

    # transport events

    async def handle_connect_ack(self, success: bool, reason: Optional[str] = None) -> None:
        if self._state is not ConnectionState.CONNECTING:
            self.logger.debug(f'Ignoring connect ack while {self._state.value}')
            return
        if not success:
            self.logger.error(f'Broker rejected the connection: {reason}')
            self._fail()
            return

        topic = self._config.settings.topic
        try:
            # no-local keeps the broker from echoing our own publishes back
            self.transport.subscribe(topic, QOS_AT_LEAST_ONCE, no_local=True)
        except TransportError as e:
            self.logger.error(f'Subscription failed: {e}')
            self._fail()
            return

        self._auto_reconnect = True
        self._set_state(ConnectionState.CONNECTED)
        self.logger.info(f'Connected to broker, subscribed to {topic}')

    async def handle_disconnect(self, error: Optional[str] = None) -> None:
        if self._state is ConnectionState.CONNECTING:
            self.logger.error(f'Connection attempt failed: {error}')
            self._fail()
            return
        if self._state is not ConnectionState.CONNECTED:
            return

        self.logger.warning(f'Connection to broker lost: {error}')
        self.watcher.stop_monitoring()
        self.transport.disconnect()
        self._set_state(ConnectionState.DISCONNECTED)

        if self._auto_reconnect:
            self.logger.info(f'Reconnecting in {self.reconnect_delay:g} seconds...')
            self._reconnect_task = asyncio.get_running_loop().create_task(
                self._reconnect_later(), name='reconnect'
            )

    async def handle_message(self, topic: str, payload: bytes) -> None:
        config = self._config
        if config is None or topic != config.settings.topic:
            self.logger.debug(f'Ignoring message on unexpected topic {topic}')
            return

        try:
            message = protocol.decode(payload, config.key_material)
        except ProtocolError as e:
            self.logger.warning(f'Dropped undecodable message on {topic}: {e}')
            return

        if message.device_id == self.identity.device_id:
            self.logger.debug(f'Ignoring own message: {preview(message.content)}')
            return
        if message.type != TEXT_TYPE:
            self.logger.debug(f'Ignoring unsupported message type {message.type!r}')
            return

        try:
            self.watcher.write_suppressed(message.content)
        except ClipboardAccessError as e:
            self.logger.warning(f'Failed to update the clipboard: {e}')
            return

        self.logger.info(f'Received clipboard update from {message.device_id}: {preview(message.content)}')
        self.notifier.sync_record(SyncRecord(message.content, SyncDirection.INCOMING))

    # outgoing

    async def _on_local_clipboard_change(self, content: str) -> None:
        self.logger.info(f'Local clipboard changed: {preview(content)}')
        await self.send_clipboard_update(content)

    async def send_clipboard_update(self, content: str) -> None:
        """Publish local clipboard content to the topic"""
        if not content or self._state is not ConnectionState.CONNECTED:
            return
        config = self._config
        message = SyncMessage.create(self.identity.device_id, content)
        payload = protocol.encode(message, config.key_material)
        try:
            self.transport.publish(config.settings.topic, payload, QOS_AT_LEAST_ONCE)
        except TransportError as e:
            self.logger.error(f'Publishing failed: {e}')
            await self.handle_disconnect(str(e))
            return

        self.notifier.sync_record(SyncRecord(content, SyncDirection.OUTGOING))
