#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Version management for clipsync
"""
import os
import sys
import tomllib
from importlib import metadata
from pathlib import Path

DISTRIBUTION = 'mqtt-clipsync'


def get_version():
    """Return the application version"""
    # 1. Explicit override, e.g. injected by a packaging build
    env_version = os.getenv('CLIPSYNC_VERSION')
    if env_version:
        return env_version

    # 2. Installed distribution metadata
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        pass

    # 3. pyproject.toml next to the sources, or inside a PyInstaller bundle
    if getattr(sys, 'frozen', False):
        base_path = Path(sys._MEIPASS)
    else:
        base_path = Path(__file__).resolve().parent.parent.parent

    toml_path = base_path / 'pyproject.toml'
    if toml_path.exists():
        try:
            with open(toml_path, 'rb') as f:
                return tomllib.load(f).get('project', {}).get('version', 'unknown')
        except (OSError, tomllib.TOMLDecodeError):
            pass

    return 'unknown'


__version__ = get_version()
