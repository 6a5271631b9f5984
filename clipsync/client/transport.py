#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Pub/sub transport for clipsync
"""
import asyncio
import ssl
import threading
from abc import ABC, abstractmethod
from typing import Optional

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion
from paho.mqtt.subscribeoptions import SubscribeOptions

from ..core.config import ConnectionSettings
from ..core.exceptions import TransportError
from ..core.logging_utils import get_logger

QOS_AT_LEAST_ONCE = 1


class TransportListener(ABC):
    """Receives transport events on the owner's event loop"""

    @abstractmethod
    async def handle_connect_ack(self, success: bool, reason: Optional[str] = None) -> None:
        ...

    @abstractmethod
    async def handle_message(self, topic: str, payload: bytes) -> None:
        ...

    @abstractmethod
    async def handle_disconnect(self, error: Optional[str] = None) -> None:
        ...


class Transport(ABC):
    """Pub/sub client used by the connection manager

    `connect` only starts the handshake; its outcome arrives through
    `handle_connect_ack` or `handle_disconnect`. After `disconnect` returns,
    no further events are delivered for that session.
    """

    listener: Optional[TransportListener] = None

    def bind(self, listener: TransportListener) -> None:
        self.listener = listener

    @abstractmethod
    def connect(self, settings: ConnectionSettings, client_id: str) -> None:
        ...

    @abstractmethod
    def disconnect(self) -> None:
        ...

    @abstractmethod
    def publish(self, topic: str, payload: bytes, qos: int = QOS_AT_LEAST_ONCE) -> None:
        ...

    @abstractmethod
    def subscribe(self, topic: str, qos: int = QOS_AT_LEAST_ONCE, no_local: bool = True) -> None:
        ...


class MqttTransport(Transport):
    """MQTT v5 transport on paho-mqtt

    paho runs its network loop on its own thread; every callback is handed
    over to the event loop that called `connect`.
    """

    def __init__(self):
        self.logger = get_logger('mqtt-transport')
        self._client: Optional[mqtt.Client] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def connect(self, settings: ConnectionSettings, client_id: str) -> None:
        if self._client is not None:
            self.disconnect()

        self._loop = asyncio.get_running_loop()
        client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv5,
        )
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        try:
            if settings.username:
                client.username_pw_set(settings.username, settings.password or None)
            if settings.enable_tls:
                client.tls_set()
            client.connect_async(settings.host, settings.port, keepalive=settings.keep_alive)
            client.loop_start()
        except (OSError, ssl.SSLError, ValueError) as e:
            raise TransportError(f'Unable to connect to {settings.host}:{settings.port}: {e}') from e

        self._client = client
        scheme = 'mqtts' if settings.enable_tls else 'mqtt'
        self.logger.info(f'Connecting to {scheme}://{settings.host}:{settings.port}...')

    def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        # loop_stop joins the network thread, keep that off the event loop
        threading.Thread(
            target=self._teardown, args=(client,), name='mqtt-teardown', daemon=True
        ).start()

    def _teardown(self, client: mqtt.Client) -> None:
        try:
            client.disconnect()
        finally:
            client.loop_stop()

    def publish(self, topic: str, payload: bytes, qos: int = QOS_AT_LEAST_ONCE) -> None:
        if self._client is None:
            raise TransportError('Not connected')
        info = self._client.publish(topic, payload, qos=qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(f'Publish to {topic} failed: {mqtt.error_string(info.rc)}')

    def subscribe(self, topic: str, qos: int = QOS_AT_LEAST_ONCE, no_local: bool = True) -> None:
        if self._client is None:
            raise TransportError('Not connected')
        result, _ = self._client.subscribe((topic, SubscribeOptions(qos=qos, noLocal=no_local)))
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(f'Subscribe to {topic} failed: {mqtt.error_string(result)}')

    # paho callbacks, called on the network thread

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        success = not reason_code.is_failure
        self._deliver(client, 'handle_connect_ack', success, None if success else str(reason_code))

    def _on_connect_fail(self, client, userdata):
        self._deliver(client, 'handle_disconnect', 'connection attempt failed')

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        self._deliver(client, 'handle_disconnect', str(reason_code))

    def _on_message(self, client, userdata, message):
        self._deliver(client, 'handle_message', message.topic, bytes(message.payload))

    def _deliver(self, client: mqtt.Client, handler: str, *args) -> None:
        loop = self._loop
        if loop is None or self.listener is None:
            return

        async def deliver():
            # events from a client we already let go of are stale
            if client is self._client:
                await getattr(self.listener, handler)(*args)

        coro = deliver()
        try:
            asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError as e:
            coro.close()
            self.logger.debug(f'Dropped {handler} after event loop shutdown: {e}')
