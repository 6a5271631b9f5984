"""
Clipboard monitoring and management for clipsync
"""

import platform
import threading
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from .exceptions import ClipboardAccessError
from .logging_utils import get_logger, preview
from .scheduler import Ticker

POLL_INTERVAL = 1.0


class SystemClipboard(ABC):
    """Access to the system clipboard"""

    @abstractmethod
    def change_count(self) -> int:
        """Counter that increases whenever the clipboard content changes"""

    @abstractmethod
    def read_text(self) -> Optional[str]:
        """Current text content, or None if the clipboard holds no text"""

    @abstractmethod
    def write_text(self, text: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class PyperclipClipboard(SystemClipboard):
    """pyperclip backend

    pyperclip has no native change counter, so one is kept by comparing each
    read against the last value seen.
    """

    def __init__(self):
        self.logger = get_logger('clipboard')
        self._lock = threading.Lock()
        self._count = 0
        self._last_seen: Optional[str] = None
        self._setup_clipboard_backend()

    def _setup_clipboard_backend(self):
        import pyperclip

        self.clipboard_get = pyperclip.paste
        self.clipboard_set = pyperclip.copy
        self.logger.info(f'Clipboard backend initialized, current platform: {platform.system()}')

    def _safe_clipboard_get(self) -> str:
        try:
            return self.clipboard_get() or ''
        except Exception as e:
            raise ClipboardAccessError(f'Unable to read clipboard contents: {e}') from e

    def _safe_clipboard_set(self, content: str) -> None:
        try:
            self.clipboard_set(content)
        except Exception as e:
            raise ClipboardAccessError(f'Unable to set clipboard contents: {e}') from e

    def _observe(self, content: str) -> None:
        if content != self._last_seen:
            self._last_seen = content
            self._count += 1

    def change_count(self) -> int:
        content = self._safe_clipboard_get()
        with self._lock:
            self._observe(content)
            return self._count

    def read_text(self) -> Optional[str]:
        content = self._safe_clipboard_get()
        with self._lock:
            self._observe(content)
        return content or None

    def write_text(self, text: str) -> None:
        self._safe_clipboard_set(text)
        with self._lock:
            self._observe(text)

    def clear(self) -> None:
        self.write_text('')


class ClipboardWatcher:
    """Clipboard listener

    Reports local text changes to `callback` once per tick while `is_active()`
    holds, and writes remote content without reporting it back.
    """

    def __init__(
        self,
        clipboard: SystemClipboard,
        callback: Callable[[str], Awaitable[None]],
        interval: float = POLL_INTERVAL,
        is_active: Callable[[], bool] = lambda: True,
    ):
        self.clipboard = clipboard
        self.callback = callback
        self.is_active = is_active
        self.logger = get_logger('clipboard-watcher')
        self._lock = threading.Lock()
        self._last_change: Optional[int] = None
        self._ticker = Ticker(interval, self._tick, name='clipboard-poll')

    @property
    def monitoring(self) -> bool:
        return self._ticker.running

    def start_monitoring(self) -> None:
        """Start polling; the current clipboard content is not reported"""
        if self.monitoring:
            return
        try:
            with self._lock:
                self._last_change = self.clipboard.change_count()
        except ClipboardAccessError as e:
            self.logger.warning(f'Failed to read initial clipboard state: {e}')
        self._ticker.start()
        self.logger.info('Start listening for clipboard changes')

    def stop_monitoring(self) -> None:
        if self.monitoring:
            self.logger.info('Stop listening for clipboard changes')
        self._ticker.stop()

    def poll_once(self) -> Optional[str]:
        """Return new text if the clipboard changed since the last poll or suppressed write"""
        with self._lock:
            count = self.clipboard.change_count()
            if count == self._last_change:
                return None
            self._last_change = count
            text = self.clipboard.read_text()
        # non-text and empty content is skipped silently
        return text or None

    def write_suppressed(self, text: str) -> None:
        """Write to the clipboard and mark the change as our own"""
        with self._lock:
            self.clipboard.write_text(text)
            self._last_change = self.clipboard.change_count()
        self.logger.debug(f'Clipboard content has been updated: {preview(text)}')

    async def _tick(self) -> None:
        if not self.is_active():
            return
        try:
            text = self.poll_once()
        except ClipboardAccessError as e:
            self.logger.warning(f'Failed to read clipboard. Continue listening: {e}')
            return
        if text is not None:
            await self.callback(text)
