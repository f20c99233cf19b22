"""
Device Simulator Tests

A simulated board and the doorbell service sharing one in-memory bus.

Run: python -m pytest test/test_simulator.py -v
"""

import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from labbell.config import DEFAULT_CONFIG
from labbell.core import DoorbellService
from labbell.simulator import LabDevice
from labsdk.transport import MemoryTransport

NOW = 1_700_000_000_000


class TestLabDevice:

    @pytest.mark.asyncio
    async def test_heartbeat_and_ring(self, tmp_path):
        transport = MemoryTransport()
        await transport.connect('memory://test')

        config = json.loads(json.dumps(DEFAULT_CONFIG))
        config.update({'labs': 'LAB01', 'overridesPath': str(tmp_path / 'lab_status.json')})
        service = DoorbellService(config, transport, clock=lambda: NOW)
        await service.start()

        device = LabDevice('LAB01', transport, heartbeatInterval=3600)
        await device.start()
        try:
            assert await device.sendHeartbeat() is True
            await service.pump.drain()
            assert service.presence.lastSeen('LAB01') == NOW

            token = service.bootstrap('10.0.0.1')['token']
            await service.ring('LAB01', token, '10.0.0.1')
            assert device.rings[-1] == 3000
        finally:
            await device.stop()
            await service.stop()
            await transport.close()

    @pytest.mark.asyncio
    async def test_heartbeat_while_disconnected(self):
        transport = MemoryTransport()
        await transport.connect('memory://test')
        device = LabDevice('LAB01', transport)

        transport.disconnect()
        assert await device.sendHeartbeat() is False

    @pytest.mark.asyncio
    async def test_heartbeat_is_retained(self):
        transport = MemoryTransport()
        await transport.connect('memory://test')
        device = LabDevice('LAB01', transport)

        assert await device.sendHeartbeat() is True
        assert transport.retained == {'lab/LAB01/status': b'online'}
