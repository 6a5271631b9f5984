#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Message protocol and data structures for clipsync
"""
import json
import time
from dataclasses import dataclass
from typing import Any, Dict

from . import cipher
from .cipher import KeyMaterial
from .exceptions import CryptoError, ProtocolError

TEXT_TYPE = 'text'

# wire key -> (attribute, expected type)
_WIRE_FIELDS = {
    'deviceID': ('device_id', str),
    'content': ('content', str),
    'timestamp': ('timestamp', int),
    'type': ('type', str),
}


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SyncMessage:
    """One clipboard change as sent over the wire"""

    device_id: str
    content: str
    timestamp: int
    type: str = TEXT_TYPE

    @classmethod
    def create(cls, device_id: str, content: str) -> 'SyncMessage':
        """Stamp new content with the current time"""
        return cls(device_id=device_id, content=content, timestamp=now_millis())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'deviceID': self.device_id,
            'content': self.content,
            'timestamp': self.timestamp,
            'type': self.type,
        }

    def to_json(self) -> bytes:
        """Serialize to compact UTF-8 JSON"""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(',', ':')).encode('utf-8')

    @classmethod
    def from_dict(cls, data: Any) -> 'SyncMessage':
        """Validate decoded JSON; unknown keys are ignored"""
        if not isinstance(data, dict):
            raise ProtocolError(f'Expected a JSON object, got {type(data).__name__}')

        missing_fields = set(_WIRE_FIELDS) - set(data.keys())
        if missing_fields:
            raise ProtocolError(f'Message is missing required fields: {sorted(missing_fields)}')

        values = {}
        for wire_name, (attr, expected) in _WIRE_FIELDS.items():
            value = data[wire_name]
            # bool is an int subclass but never a valid timestamp
            if isinstance(value, bool) or not isinstance(value, expected):
                raise ProtocolError(
                    f'Field {wire_name} must be {expected.__name__}, got {type(value).__name__}'
                )
            values[attr] = value

        if not values['content']:
            raise ProtocolError('Message content is empty')
        return cls(**values)

    @classmethod
    def from_json(cls, raw: bytes) -> 'SyncMessage':
        try:
            data = json.loads(raw.decode('utf-8'))
        except UnicodeDecodeError as e:
            raise ProtocolError(f'Payload is not valid UTF-8: {e}') from e
        except json.JSONDecodeError as e:
            raise ProtocolError(f'Invalid JSON: {e}') from e
        except RecursionError as e:
            raise ProtocolError('JSON nesting is too deep') from e
        return cls.from_dict(data)


def encode(message: SyncMessage, key: KeyMaterial) -> bytes:
    """Serialize and encrypt a message into a transport payload"""
    return cipher.encrypt(message.to_json(), key)


def decode(payload: bytes, key: KeyMaterial) -> SyncMessage:
    """Decrypt and parse a transport payload"""
    try:
        plaintext = cipher.decrypt(payload, key)
    except CryptoError as e:
        raise ProtocolError(f'Unable to decrypt message: {e}') from e
    return SyncMessage.from_json(plaintext)
