#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Configuration management for clipsync
"""

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Tuple

from .cipher import KeyMaterial, derive_key_material
from .exceptions import ConfigurationError

DEFAULT_PORT = 8883
DEFAULT_TOPIC = 'clipboard'
DEFAULT_KEEP_ALIVE = 60


@dataclass(frozen=True)
class ConnectionSettings:
    """Broker connection settings snapshot"""

    host: str = ''
    port: int = DEFAULT_PORT
    enable_tls: bool = True
    topic: str = DEFAULT_TOPIC
    username: str = ''
    password: str = ''
    secret_key: str = ''  # pre-shared passphrase
    keep_alive: int = DEFAULT_KEEP_ALIVE

    def validate(self) -> None:
        """Raise ConfigurationError if these settings cannot be used to connect"""
        if not self.host or not self.host.strip():
            raise ConfigurationError('Broker host must not be empty')
        if not (1 <= self.port <= 65535):
            raise ConfigurationError(f'Port must be in the range 1-65535, got: {self.port}')
        if not self.topic:
            raise ConfigurationError('Topic must not be empty')
        if '#' in self.topic or '+' in self.topic:
            raise ConfigurationError(f'Topic must not contain wildcards: {self.topic}')
        if not (1 <= self.keep_alive <= 65535):
            raise ConfigurationError(
                f'Keep-alive must be in the range 1-65535 seconds, got: {self.keep_alive}'
            )
        if not self.secret_key:
            raise ConfigurationError('Secret key must not be empty')

    def with_overrides(self, **overrides: Any) -> 'ConnectionSettings':
        """Copy with every non-None override applied"""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConnectionSettings':
        """Build settings from stored data, ignoring unknown keys"""
        known = {f.name: f for f in fields(cls)}
        values = {}
        for name, value in data.items():
            if name not in known:
                continue
            default = known[name].default
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ConfigurationError(f'Setting {name} must be a boolean')
            elif isinstance(default, int):
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigurationError(f'Setting {name} must be an integer')
            elif not isinstance(value, str):
                raise ConfigurationError(f'Setting {name} must be a string')
            values[name] = value
        return cls(**values)


@dataclass(frozen=True)
class ActiveConfig:
    """Settings together with the key material derived from them"""

    settings: ConnectionSettings
    key_material: KeyMaterial

    @classmethod
    def from_settings(cls, settings: ConnectionSettings) -> 'ActiveConfig':
        """Validate settings and derive their key material"""
        settings.validate()
        return cls(settings=settings, key_material=derive_key_material(settings.secret_key))

    def connection_fields(self) -> Tuple:
        s = self.settings
        return (
            s.host,
            s.port,
            s.enable_tls,
            s.topic,
            s.username,
            s.password,
            self.key_material.key,
            s.keep_alive,
        )
