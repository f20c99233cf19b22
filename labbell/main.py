"""
labbell main entry point.

Runs the doorbell service and its HTTP edge in one asyncio process:
- Transport: bus link chosen by busUri scheme (mqtt://, memory://)
- DoorbellService: presence, overrides, sessions, ring dispatch
- LabBellServer: aiohttp routes

Usage:
    labbell [--config path/to/config.json]

Environment variables (PORT, MQTT_URL, LABS, ADMIN_PASSWORD, ...) override
the config file; see labbell.config.
"""

import asyncio
import argparse
import signal
import sys
from urllib.parse import urlparse

from labbell import __version__
from labbell.config import loadConfig
from labbell.core import DoorbellService
from labbell.server import LabBellServer
from labsdk.logging import getLogger, configureLogging
from labsdk.transport import createTransport


def buildTransport(config: dict):
    """Create (not connect) the transport for config['busUri']"""
    busUri = config['busUri']
    opts = {'publishTimeout': config.get('publishTimeoutSeconds', 5.0)}
    if urlparse(busUri).scheme.lower() == 'mqtt':
        opts['qos'] = 1
    return createTransport(busUri, **opts)


async def runService(config: dict):
    log = getLogger()
    busUri = config['busUri']

    transport = buildTransport(config)
    await transport.connect(busUri)
    log.info(f"[Main] Bus: {busUri}")

    service = DoorbellService(config, transport)
    server = LabBellServer(config, service)

    stopEvent = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stopEvent.set)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    try:
        await server.start()
        log.info("[Main] labbell running (Ctrl+C to stop)")
        await stopEvent.wait()
        log.info("[Main] Shutdown signal received")
    finally:
        await server.stop()
        await transport.close()
        log.info("[Main] labbell stopped")


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='labbell - lab doorbell web service')
    parser.add_argument('--config', default=None, help='Path to JSON config file')
    args = parser.parse_args()

    try:
        config = loadConfig(args.config)
    except (OSError, ValueError) as e:
        print(f"Failed to load config {args.config}: {e}", file=sys.stderr)
        sys.exit(1)

    loggingConfig = config.get('logging', {})
    configureLogging(logDir=loggingConfig.get('logDir'), level=loggingConfig.get('level', 'INFO'))
    log = getLogger()
    log.info("=" * 60)
    log.info(f"labbell {__version__}")
    log.info("=" * 60)
    if args.config:
        log.info(f"Config: {args.config}")

    try:
        asyncio.run(runService(config))
    except KeyboardInterrupt:
        log.info("[Main] Shutdown signal received")
    except Exception as e:
        log.error(f"[Main] Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
