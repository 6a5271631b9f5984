#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Command-line interface for clipsync
"""
import datetime
import logging
import signal
import sys
from pathlib import Path

import click

from ..app.clipboard_sync import ClipboardSync
from ..core.events import ConnectionState, EventObserver, SyncDirection, SyncRecord
from ..core.exceptions import ClipSyncError, ConfigurationError, TransportError
from ..core.identity import DeviceIdentity
from ..core.logging_utils import get_logger, preview, set_log_level
from ..core.settings_store import SettingsStore
from ..core.version import __version__

STATE_LABELS = {
    ConnectionState.DISCONNECTED: 'Disconnected',
    ConnectionState.CONNECTING: 'Connecting...',
    ConnectionState.CONNECTED: 'Connected',
    ConnectionState.CONNECTION_FAILURE: 'Connection failed',
}


def cli_log(message: str) -> None:
    """Print a timestamped line to stdout"""
    timestamp = datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    click.echo(f'[{timestamp}] {message}')


class ConsoleObserver(EventObserver):
    """Echoes connection state and sync records to the terminal"""

    def on_connection_state_changed(self, state: ConnectionState) -> None:
        cli_log(f'Status: {STATE_LABELS[state]}')

    def on_sync_record(self, record: SyncRecord) -> None:
        arrow = '<-' if record.direction is SyncDirection.INCOMING else '->'
        cli_log(f'{arrow} {preview(record.content)}')


@click.command()
@click.option('--config', '-c', 'config_path',
              type=click.Path(dir_okay=False, path_type=Path), default=None,
              help='Settings file (default: per-user app directory)')
@click.option('--host', '-h', default=None, help='MQTT broker host')
@click.option('--port', '-p', type=click.IntRange(1, 65535), default=None,
              help='MQTT broker port (default: 8883)')
@click.option('--tls/--no-tls', 'enable_tls', default=None,
              help='Use TLS for the broker connection (default: on)')
@click.option('--topic', '-t', default=None, help='Topic shared by all devices (default: clipboard)')
@click.option('--username', '-u', default=None, help='Broker username')
@click.option('--password', envvar='CLIPSYNC_PASSWORD', default=None, help='Broker password')
@click.option('--secret', '-s', 'secret_key', envvar='CLIPSYNC_SECRET', default=None,
              help='Shared passphrase used to encrypt clipboard content')
@click.option('--keep-alive', type=click.IntRange(1, 65535), default=None,
              help='Keep-alive interval in seconds (default: 60)')
@click.option('--save', is_flag=True, help='Store the resulting settings before connecting')
@click.option('--show-id', is_flag=True, help='Print this device identity and exit')
@click.option('--verbose', is_flag=True, help='Enable debug logging')
@click.version_option(__version__, '--version', '-v',
                      message='clipsync %(version)s - clipboard sync over MQTT')
def main(config_path, host, port, enable_tls, topic, username, password, secret_key,
         keep_alive, save, show_id, verbose):
    """
    clipsync - share clipboard text between machines through an MQTT broker

    Clipboard content is encrypted with a passphrase shared by all devices
    and published to a common topic.

    \b
    Examples:
      clipsync --host broker.example.com --secret 'my passphrase' --save
      clipsync                      # reuse the saved settings
      clipsync --no-tls --port 1883 --host 192.168.1.10
    """
    if verbose:
        set_log_level(logging.DEBUG)
    logger = get_logger('cli')

    identity = DeviceIdentity.detect()
    if show_id:
        click.echo(f'Device name: {identity.device_name}')
        click.echo(f'Device ID:   {identity.device_id}')
        return

    store = SettingsStore(config_path)
    settings = store.load().with_overrides(
        host=host,
        port=port,
        enable_tls=enable_tls,
        topic=topic,
        username=username,
        password=password,
        secret_key=secret_key,
        keep_alive=keep_alive,
    )

    try:
        settings.validate()
    except ConfigurationError as e:
        logger.error(f'Configuration error: {e}')
        sys.exit(1)

    if save:
        try:
            store.save(settings)
        except OSError as e:
            logger.error(f'Failed to save settings: {e}')
            sys.exit(1)

    logger.info(f'clipsync {__version__} on {identity.device_name} ({identity.device_id})')
    logger.info(f'Broker: {settings.host}:{settings.port}, topic: {settings.topic}')
    logger.info('Press Ctrl+C to exit')

    sync = ClipboardSync(settings, identity=identity, observers=[ConsoleObserver()])

    def signal_handler(signum, frame):
        logger.info('Received exit signal, stopping...')
        sync.stop_sync()

    previous_handlers = {signal.SIGINT: signal.signal(signal.SIGINT, signal_handler)}
    if hasattr(signal, 'SIGTERM'):
        previous_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, signal_handler)

    try:
        sync.start_sync()
    except ConfigurationError as e:
        logger.error(f'Configuration error: {e}')
        sys.exit(1)
    except TransportError as e:
        logger.error(f'Connection error: {e}')
        sys.exit(1)
    except ClipSyncError as e:
        logger.error(f'clipsync error: {e}')
        sys.exit(1)
    finally:
        for signum, handler in previous_handlers.items():
            if handler is not None:
                signal.signal(signum, handler)


if __name__ == '__main__':
    main()
