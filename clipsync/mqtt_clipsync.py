#!/usr/bin/env python
# -*- coding:utf-8 -*-
"""
clipsync - clipboard text sync between machines over MQTT
Main entry point that imports from modular components
"""

from .core.version import __version__
from .core.cipher import KeyMaterial, decrypt, derive_key_material, encrypt
from .core.protocol import SyncMessage
from .core.config import ConnectionSettings
from .core.clipboard import ClipboardWatcher, PyperclipClipboard, SystemClipboard
from .core.events import (
    ConnectionState,
    EventNotifier,
    EventObserver,
    SyncDirection,
    SyncHistory,
    SyncRecord,
)
from .core.identity import DeviceIdentity
from .core.settings_store import SettingsStore
from .client.transport import MqttTransport, Transport
from .client.sync_client import ConnectionManager
from .app.clipboard_sync import ClipboardSync
from .cli.main import main

__all__ = [
    '__version__',
    'KeyMaterial',
    'derive_key_material',
    'encrypt',
    'decrypt',
    'SyncMessage',
    'ConnectionSettings',
    'SystemClipboard',
    'PyperclipClipboard',
    'ClipboardWatcher',
    'ConnectionState',
    'EventNotifier',
    'EventObserver',
    'SyncDirection',
    'SyncHistory',
    'SyncRecord',
    'DeviceIdentity',
    'SettingsStore',
    'Transport',
    'MqttTransport',
    'ConnectionManager',
    'ClipboardSync',
    'main',
]

if __name__ == "__main__":
    main()
