#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Logging utilities for clipsync
"""

import logging
import sys
from typing import Callable, Optional, Set

PREVIEW_LENGTH = 50

_log_level = logging.INFO
_logger_names: Set[str] = set()


class SyncLogger:
    """Logger that can mirror its lines to a callback"""

    def __init__(
        self, name: str = 'clipsync', log_callback: Optional[Callable[[str], None]] = None
    ):
        self.logger = logging.getLogger(name)
        self.log_callback = log_callback
        self._setup_logger()
        _logger_names.add(name)

    def _setup_logger(self):
        if not self.logger.handlers:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(_log_level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s', datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(formatter)

            self.logger.addHandler(console_handler)
            self.logger.setLevel(_log_level)
            self.logger.propagate = False

    def info(self, message: str):
        self.logger.info(message)
        if self.log_callback:
            self.log_callback(message)

    def warning(self, message: str):
        self.logger.warning(message)
        if self.log_callback:
            self.log_callback(f'WARNING: {message}')

    def error(self, message: str, exc_info: bool = False):
        self.logger.error(message, exc_info=exc_info)
        if self.log_callback:
            self.log_callback(f'ERROR: {message}')

    def debug(self, message: str):
        self.logger.debug(message)
        if self.log_callback and self.logger.isEnabledFor(logging.DEBUG):
            self.log_callback(f'DEBUG: {message}')


def get_logger(
    name: str = 'clipsync', log_callback: Optional[Callable[[str], None]] = None
) -> SyncLogger:
    """Return a logger for the given component name"""
    return SyncLogger(name, log_callback)


def set_log_level(level: int) -> None:
    """Apply a level to every clipsync logger, including ones created later"""
    global _log_level
    _log_level = level
    for name in _logger_names:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


def preview(content: str) -> str:
    """Shorten clipboard content for log lines"""
    return f'{content[:PREVIEW_LENGTH]}{"..." if len(content) > PREVIEW_LENGTH else ""}'
