"""
Lab device simulator.

Behaves like one doorbell board on the bus:
- publishes a retained 'online' to lab/<LabId>/status every 10 s
- listens on lab/<LabId>/ring and logs how long the bell would sound

Usage:
    labbell-sim --lab LAB01 [--bus mqtt://broker.emqx.io:1883]
"""

import asyncio
import argparse
import sys

from labbell.core.labs import normalizeLab
from labbell.core.topics import (HEARTBEAT_INTERVAL_SECONDS, HEARTBEAT_PAYLOAD, parseRingDuration,
                                 ringTopic, statusTopic)
from labsdk.logging import getLogger, configureLogging
from labsdk.transport import TransportBase, TransportNotConnected, createTransport


class LabDevice:
    """One simulated doorbell board"""

    def __init__(self, labId: str, transport: TransportBase,
                 heartbeatInterval: float = HEARTBEAT_INTERVAL_SECONDS):
        self.labId = labId
        self.transport = transport
        self.heartbeatInterval = heartbeatInterval
        self.log = getLogger()
        self.rings = []  # durations in ms, newest last
        self._heartbeatTask = None
        self._ringHandle = None

    async def start(self):
        self._ringHandle = await self.transport.subscribe(ringTopic(self.labId), self.onRing)
        self._heartbeatTask = asyncio.create_task(self._heartbeatLoop(), name=f'heartbeat-{self.labId}')
        self.log.info(f"[Device] {self.labId} up", ring=ringTopic(self.labId), status=statusTopic(self.labId))

    async def stop(self):
        if self._heartbeatTask:
            self._heartbeatTask.cancel()
            try:
                await self._heartbeatTask
            except asyncio.CancelledError:
                pass
            self._heartbeatTask = None
        if self._ringHandle:
            await self._ringHandle.unsubscribe()
            self._ringHandle = None

    async def onRing(self, topic: str, payload: bytes):
        durationMs = parseRingDuration(payload)
        self.rings.append(durationMs)
        self.log.info(f"[Device] {self.labId} RING for {durationMs} ms")

    async def sendHeartbeat(self) -> bool:
        try:
            await self.transport.publish(statusTopic(self.labId), HEARTBEAT_PAYLOAD.encode('utf-8'), retain=True)
        except (TransportNotConnected, asyncio.TimeoutError) as e:
            self.log.warning(f"[Device] Heartbeat not sent: {e!r}")
            return False
        return True

    async def _heartbeatLoop(self):
        while True:
            await self.sendHeartbeat()
            await asyncio.sleep(self.heartbeatInterval)


async def runDevice(labId: str, busUri: str):
    transport = createTransport(busUri)
    await transport.connect(busUri)
    device = LabDevice(labId, transport)
    try:
        await device.start()
        await asyncio.Event().wait()
    finally:
        await device.stop()
        await transport.close()


def main():
    parser = argparse.ArgumentParser(description='labbell device simulator')
    parser.add_argument('--lab', required=True, help='Lab id this device answers for')
    parser.add_argument('--bus', default='mqtt://broker.emqx.io:1883', help='Bus URI')
    parser.add_argument('--log-level', default='INFO')
    args = parser.parse_args()

    configureLogging(level=args.log_level)
    log = getLogger()

    labId = normalizeLab(args.lab)
    if labId is None:
        log.error(f"Invalid lab id: {args.lab!r}")
        sys.exit(2)

    try:
        asyncio.run(runDevice(labId, args.bus))
    except KeyboardInterrupt:
        log.info("[Device] Stopped")


if __name__ == '__main__':
    main()
