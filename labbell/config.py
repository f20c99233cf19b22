"""
Configuration loading.

Precedence (lowest to highest):
    DEFAULT_CONFIG < JSON config file (--config) < environment variables
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import orjson

from labsdk.logging import getLogger

DEFAULT_CONFIG: Dict[str, Any] = {
    'host': '0.0.0.0',
    'port': 3000,
    'busUri': 'mqtt://broker.emqx.io:1883',
    'onlineThresholdMs': 90_000,
    'adminPassword': '123456',
    'labs': 'LAPADA',
    'labNames': {},
    'overridesPath': './lab_status.json',
    'sessionTtlMs': 60 * 60 * 1000,
    'rateLimit': {'windowMs': 10_000, 'max': 8},
    'cooldownMs': 3000,
    'presenceTopics': ['lab/+/alive', 'lab/+/status'],
    'presenceQueueSize': 1024,
    'publishTimeoutSeconds': 5.0,
    'trustForwardedFor': False,
    'logging': {'level': 'INFO', 'logDir': None}
}

# env var -> (config path, parser)
_ENV_OVERRIDES = {
    'HOST': (('host',), str),
    'PORT': (('port',), int),
    'BUS_URI': (('busUri',), str),
    'MQTT_URL': (('busUri',), str),
    'ONLINE_THRESHOLD_MS': (('onlineThresholdMs',), int),
    'ADMIN_PASSWORD': (('adminPassword',), str),
    'LABS': (('labs',), str),
    'LAB_STATUS_FILE': (('overridesPath',), str),
    'TRUST_FORWARDED_FOR': (('trustForwardedFor',), lambda v: v.strip().lower() in ('1', 'true', 'yes', 'on')),
    'LOG_LEVEL': (('logging', 'level'), str),
    'LOG_DIR': (('logging', 'logDir'), str),
}


def _deepMerge(base: Dict[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in update.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _deepMerge(base[key], value)
        else:
            base[key] = value
    return base


def loadConfig(configPath: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Build the effective configuration; raises if a given config file is unreadable"""
    log = getLogger()
    config = copy.deepcopy(DEFAULT_CONFIG)

    if configPath:
        with open(Path(configPath), 'rb') as f:
            fileConfig = orjson.loads(f.read())
        if not isinstance(fileConfig, dict):
            raise ValueError(f"Config file must contain a JSON object: {configPath}")
        _deepMerge(config, fileConfig)

    env = os.environ if env is None else env
    # MQTT_URL wins over BUS_URI when both are set
    for name in sorted(_ENV_OVERRIDES, key=lambda n: n == 'MQTT_URL'):
        raw = env.get(name)
        if raw is None or raw == '':
            continue
        path, parse = _ENV_OVERRIDES[name]
        try:
            value = parse(raw)
        except ValueError:
            log.warning(f"[Config] Ignoring invalid {name}={raw!r}")
            continue

        target = config
        for key in path[:-1]:
            target = target.setdefault(key, {})
        target[path[-1]] = value

    return config
