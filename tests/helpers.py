#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
In-memory stand-ins for the clipboard and the broker
"""
import asyncio
from typing import List, Optional, Tuple

from clipsync.client.transport import QOS_AT_LEAST_ONCE, Transport
from clipsync.core.config import ConnectionSettings
from clipsync.core.exceptions import ClipboardAccessError, TransportError
from clipsync.core.clipboard import SystemClipboard


def run_async(coro):
    """Helper to run async functions in sync context"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        pending = asyncio.all_tasks(loop)
        for task in pending:
            task.cancel()
        if pending:
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        loop.close()


async def settle(rounds: int = 20) -> None:
    """Let scheduled tasks run"""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClipboard(SystemClipboard):
    """Clipboard with an explicit change counter, like the macOS pasteboard"""

    def __init__(self, content: Optional[str] = None):
        self.content = content
        self.count = 0
        self.writes: List[str] = []
        self.fail_reads = False

    def user_copy(self, content: Optional[str]) -> None:
        """Simulate another application changing the clipboard"""
        self.content = content
        self.count += 1

    def change_count(self) -> int:
        if self.fail_reads:
            raise ClipboardAccessError('clipboard unavailable')
        return self.count

    def read_text(self) -> Optional[str]:
        if self.fail_reads:
            raise ClipboardAccessError('clipboard unavailable')
        return self.content

    def write_text(self, text: str) -> None:
        self.writes.append(text)
        self.user_copy(text)

    def clear(self) -> None:
        self.user_copy(None)


class FakeTransport(Transport):
    """Records calls; optionally acknowledges connects and routes through a FakeBroker"""

    def __init__(self, broker: Optional['FakeBroker'] = None, auto_ack: Optional[bool] = None):
        self.broker = broker
        self.auto_ack = auto_ack
        self.calls: List[Tuple] = []
        self.published: List[Tuple[str, bytes, int]] = []
        self.subscriptions: List[Tuple[str, int, bool]] = []
        self.settings: Optional[ConnectionSettings] = None
        self.client_id: Optional[str] = None
        self.fail_connect = False
        self.fail_publish = False

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def connect(self, settings: ConnectionSettings, client_id: str) -> None:
        self.calls.append(('connect', settings))
        if self.fail_connect:
            raise TransportError('connection refused')
        self.settings = settings
        self.client_id = client_id
        if self.auto_ack is not None:
            asyncio.get_running_loop().create_task(self.listener.handle_connect_ack(self.auto_ack))

    def disconnect(self) -> None:
        self.calls.append(('disconnect',))
        self.settings = None
        if self.broker:
            self.broker.detach(self)

    def publish(self, topic: str, payload: bytes, qos: int = QOS_AT_LEAST_ONCE) -> None:
        self.calls.append(('publish', topic))
        if self.fail_publish:
            raise TransportError('broken pipe')
        self.published.append((topic, payload, qos))
        if self.broker:
            self.broker.route(self, topic, payload)

    def subscribe(self, topic: str, qos: int = QOS_AT_LEAST_ONCE, no_local: bool = True) -> None:
        self.calls.append(('subscribe', topic))
        self.subscriptions.append((topic, qos, no_local))
        if self.broker:
            self.broker.attach(self, topic, no_local)


class FakeBroker:
    """Delivers publishes to subscribed transports on the running loop"""

    def __init__(self, honor_no_local: bool = True):
        self.honor_no_local = honor_no_local
        self.subscribers: List[Tuple[FakeTransport, str, bool]] = []

    def attach(self, transport: FakeTransport, topic: str, no_local: bool) -> None:
        self.subscribers.append((transport, topic, no_local))

    def detach(self, transport: FakeTransport) -> None:
        self.subscribers = [s for s in self.subscribers if s[0] is not transport]

    def route(self, sender: FakeTransport, topic: str, payload: bytes) -> None:
        loop = asyncio.get_running_loop()
        for transport, sub_topic, no_local in self.subscribers:
            if sub_topic != topic:
                continue
            if no_local and self.honor_no_local and transport is sender:
                continue
            loop.create_task(transport.listener.handle_message(topic, payload))
