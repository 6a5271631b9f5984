#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Exception classes for clipsync
"""


class ClipSyncError(Exception):
    """Base exception"""
    pass


class CryptoError(ClipSyncError):
    """Payload could not be encrypted or decrypted"""
    pass


class ProtocolError(ClipSyncError):
    """Decoded payload is not a valid sync message"""
    pass


class TransportError(ClipSyncError):
    """Broker connect/publish/subscribe failure"""
    pass


class ConfigurationError(ClipSyncError):
    """Invalid connection settings"""
    pass


class ClipboardAccessError(ClipSyncError):
    """System clipboard could not be read or written"""
    pass
