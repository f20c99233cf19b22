"""
Configuration Tests

Defaults, config file merging and environment overrides.

Run: python -m pytest test/test_config.py -v
"""

import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from labbell.config import DEFAULT_CONFIG, loadConfig


class TestLoadConfig:

    def test_defaults(self):
        config = loadConfig(env={})
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG
        assert config['port'] == 3000
        assert config['onlineThresholdMs'] == 90_000
        assert config['rateLimit'] == {'windowMs': 10_000, 'max': 8}
        assert config['cooldownMs'] == 3000

    def test_defaults_not_mutated(self):
        config = loadConfig(env={'LOG_LEVEL': 'DEBUG'})
        config['rateLimit']['max'] = 1
        assert DEFAULT_CONFIG['rateLimit']['max'] == 8
        assert DEFAULT_CONFIG['logging']['level'] == 'INFO'

    def test_file_merge(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'labs': ['LAB01', 'LAB02'], 'rateLimit': {'max': 3}}))

        config = loadConfig(str(path), env={})
        assert config['labs'] == ['LAB01', 'LAB02']
        assert config['rateLimit'] == {'windowMs': 10_000, 'max': 3}

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'port': 8080, 'labs': 'LAB09'}))

        config = loadConfig(str(path), env={
            'PORT': '9000',
            'LABS': 'LAB01,LAB02',
            'ONLINE_THRESHOLD_MS': '30000',
            'ADMIN_PASSWORD': 'letmein',
            'LAB_STATUS_FILE': '/var/lib/labbell/lab_status.json',
            'TRUST_FORWARDED_FOR': 'yes',
            'LOG_DIR': '/var/log/labbell'
        })
        assert config['port'] == 9000
        assert config['labs'] == 'LAB01,LAB02'
        assert config['onlineThresholdMs'] == 30000
        assert config['adminPassword'] == 'letmein'
        assert config['overridesPath'] == '/var/lib/labbell/lab_status.json'
        assert config['trustForwardedFor'] is True
        assert config['logging']['logDir'] == '/var/log/labbell'

    def test_mqtt_url_wins_over_bus_uri(self):
        config = loadConfig(env={'BUS_URI': 'memory://local', 'MQTT_URL': 'mqtt://broker:1883'})
        assert config['busUri'] == 'mqtt://broker:1883'

        config = loadConfig(env={'BUS_URI': 'memory://local'})
        assert config['busUri'] == 'memory://local'

    def test_invalid_number_ignored(self):
        config = loadConfig(env={'PORT': 'eighty', 'ONLINE_THRESHOLD_MS': ''})
        assert config['port'] == 3000
        assert config['onlineThresholdMs'] == 90_000

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            loadConfig(str(tmp_path / 'absent.json'), env={})

    def test_non_object_file(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('[1, 2]')
        with pytest.raises(ValueError):
            loadConfig(str(path), env={})
