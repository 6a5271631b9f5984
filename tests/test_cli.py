#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Tests for the clipsync command line
"""
import json
from unittest.mock import patch

from click.testing import CliRunner

from clipsync.cli.main import main
from clipsync.core.exceptions import TransportError


def test_show_id():
    result = CliRunner().invoke(main, ['--show-id'])
    assert result.exit_code == 0
    assert 'Device ID:' in result.output


def test_version():
    result = CliRunner().invoke(main, ['--version'])
    assert result.exit_code == 0
    assert 'clipsync' in result.output


def test_missing_host_is_a_configuration_error(tmp_path):
    with patch('clipsync.cli.main.ClipboardSync') as sync_cls:
        result = CliRunner().invoke(
            main, ['--config', str(tmp_path / 'settings.json'), '--secret', 'x']
        )
    assert result.exit_code == 1
    sync_cls.assert_not_called()


def test_save_and_run(tmp_path):
    config = tmp_path / 'settings.json'
    with patch('clipsync.cli.main.ClipboardSync') as sync_cls:
        result = CliRunner().invoke(main, [
            '--config', str(config), '--host', 'broker.local', '--no-tls', '--port', '1883',
            '--topic', 'work', '--secret', 'shh', '--save',
        ])

    assert result.exit_code == 0, result.output
    saved = json.loads(config.read_text(encoding='utf-8'))
    assert saved['host'] == 'broker.local'
    assert saved['enable_tls'] is False
    assert saved['port'] == 1883

    settings = sync_cls.call_args.args[0]
    assert settings.topic == 'work'
    assert settings.secret_key == 'shh'
    sync_cls.return_value.start_sync.assert_called_once()


def test_saved_settings_are_reused(tmp_path):
    config = tmp_path / 'settings.json'
    config.write_text(json.dumps({'host': 'saved.local', 'secret_key': 'kept'}), encoding='utf-8')
    with patch('clipsync.cli.main.ClipboardSync') as sync_cls:
        result = CliRunner().invoke(main, ['--config', str(config), '--topic', 'override'])

    assert result.exit_code == 0, result.output
    settings = sync_cls.call_args.args[0]
    assert settings.host == 'saved.local'
    assert settings.secret_key == 'kept'
    assert settings.topic == 'override'


def test_secret_from_environment(tmp_path):
    with patch('clipsync.cli.main.ClipboardSync') as sync_cls:
        result = CliRunner().invoke(
            main,
            ['--config', str(tmp_path / 's.json'), '--host', 'broker.local'],
            env={'CLIPSYNC_SECRET': 'from-env'},
        )
    assert result.exit_code == 0, result.output
    assert sync_cls.call_args.args[0].secret_key == 'from-env'


def test_connection_failure_exits_with_error(tmp_path):
    with patch('clipsync.cli.main.ClipboardSync') as sync_cls:
        sync_cls.return_value.start_sync.side_effect = TransportError('refused')
        result = CliRunner().invoke(
            main, ['--config', str(tmp_path / 's.json'), '--host', 'h', '--secret', 'x']
        )
    assert result.exit_code == 1


def test_aggregate_module_exposes_public_api():
    from clipsync import mqtt_clipsync

    assert mqtt_clipsync.main is main
    for name in mqtt_clipsync.__all__:
        assert hasattr(mqtt_clipsync, name)
