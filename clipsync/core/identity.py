#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Device identity for clipsync
"""
import platform
import re
import subprocess
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .logging_utils import get_logger

_MACHINE_ID_PATHS = (Path('/etc/machine-id'), Path('/var/lib/dbus/machine-id'))
_IOREG_UUID = re.compile(r'"IOPlatformUUID"\s*=\s*"([^"]+)"')


@dataclass(frozen=True)
class DeviceIdentity:
    """Stable identity of this machine for the lifetime of the process"""

    device_id: str
    device_name: str

    @classmethod
    def detect(cls) -> 'DeviceIdentity':
        return cls(device_id=hardware_id(), device_name=platform.node() or 'Unknown')


def _linux_machine_id() -> Optional[str]:
    for path in _MACHINE_ID_PATHS:
        try:
            value = path.read_text(encoding='ascii').strip()
        except OSError:
            continue
        if value:
            return value
    return None


def _mac_platform_uuid() -> Optional[str]:
    try:
        output = subprocess.run(
            ['ioreg', '-rd1', '-c', 'IOPlatformExpertDevice'],
            capture_output=True, text=True, timeout=5, check=True,
        ).stdout
    except (OSError, subprocess.SubprocessError):
        return None
    match = _IOREG_UUID.search(output)
    return match.group(1) if match else None


def _windows_machine_guid() -> Optional[str]:
    try:
        import winreg

        with winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE, r'SOFTWARE\Microsoft\Cryptography'
        ) as key:
            value, _ = winreg.QueryValueEx(key, 'MachineGuid')
            return str(value)
    except (ImportError, OSError):
        return None


def hardware_id() -> str:
    """Return a hardware-derived identifier that is stable across restarts"""
    system = platform.system()
    if system == 'Darwin':
        value = _mac_platform_uuid()
    elif system == 'Windows':
        value = _windows_machine_guid()
    else:
        value = _linux_machine_id()

    if value:
        return value

    logger = get_logger('identity')
    logger.warning(f'No platform machine id available on {system}, falling back to MAC address')
    return f'{uuid.getnode():012x}'
