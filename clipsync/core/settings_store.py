#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
On-disk settings persistence for clipsync
"""
import json
import os
from pathlib import Path
from typing import Union

import click

from .config import ConnectionSettings
from .exceptions import ConfigurationError
from .logging_utils import get_logger

APP_NAME = 'clipsync'
SETTINGS_FILE = 'settings.json'


def default_settings_path() -> Path:
    return Path(click.get_app_dir(APP_NAME)) / SETTINGS_FILE


class SettingsStore:
    """JSON file holding one ConnectionSettings snapshot"""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path else default_settings_path()
        self.logger = get_logger('settings-store')

    def load(self) -> ConnectionSettings:
        """Load settings, falling back to defaults if none are stored"""
        if not self.path.exists():
            return ConnectionSettings()

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return ConnectionSettings.from_dict(data if isinstance(data, dict) else {})
        except (OSError, json.JSONDecodeError, ConfigurationError) as e:
            self.logger.warning(f'Failed to load settings from {self.path}, using defaults: {e}')
            return ConnectionSettings()

    def save(self, settings: ConnectionSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix('.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(settings.to_dict(), f, indent=2, ensure_ascii=False)
        # holds the broker password and passphrase
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)
        self.logger.info(f'Settings saved to {self.path}')
