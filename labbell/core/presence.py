"""
Presence tracking from device heartbeats.

Bus messages are not applied to state directly: the transport handler only
enqueues (topic, receivedAt) on a bounded queue, and a single consumer task
applies them to the PresenceTracker.

Retained status messages replayed by the broker on (re)subscribe say nothing
about when the device was last alive; the service subscribes with
includeRetained=False so only live heartbeats reach the pump.
"""

import asyncio
from typing import Dict, Optional, Tuple

from labsdk.logging import getLogger
from .clock import Clock, nowMs
from .labs import LabRegistry
from .topics import parsePresenceTopic


class PresenceTracker:
    """LabId -> last heartbeat instant (epoch ms)"""

    def __init__(self):
        self._lastSeen: Dict[str, int] = {}

    def recordHeartbeat(self, labId: str, at: int):
        self._lastSeen[labId] = at

    def lastSeen(self, labId: str) -> Optional[int]:
        return self._lastSeen.get(labId)

    def isAutoOnline(self, labId: str, now: int, thresholdMs: int) -> bool:
        """Online iff a heartbeat arrived within thresholdMs; never seen means offline"""
        seen = self._lastSeen.get(labId)
        if seen is None:
            return False
        return now - seen <= thresholdMs


class HeartbeatPump:
    """
    Bounded queue between the bus and the PresenceTracker.

    Heartbeats whose lab segment is malformed or unregistered are dropped
    silently. When the queue is full new heartbeats are dropped and counted.
    """

    def __init__(self, tracker: PresenceTracker, registry: LabRegistry,
                 maxSize: int = 1024, clock: Clock = nowMs):
        self.tracker = tracker
        self.registry = registry
        self.clock = clock
        self.log = getLogger()
        self.queue: asyncio.Queue[Tuple[str, int]] = asyncio.Queue(maxsize=maxSize)
        self.applied = 0
        self.discarded = 0
        self.overflowed = 0
        self._task: Optional[asyncio.Task] = None

    async def onMessage(self, topic: str, payload: bytes):
        """Transport handler: stamp arrival time and enqueue"""
        try:
            self.queue.put_nowait((topic, self.clock()))
        except asyncio.QueueFull:
            self.overflowed += 1
            if self.overflowed % 100 == 1:
                self.log.warning('[Presence] Heartbeat queue full, dropping', dropped=self.overflowed)

    def apply(self, topic: str, receivedAt: int) -> Optional[str]:
        """Apply one heartbeat; returns the LabId it counted for"""
        labId = self.registry.resolve(parsePresenceTopic(topic))
        if labId is None:
            self.discarded += 1
            self.log.debug('[Presence] Ignoring heartbeat', topic=topic)
            return None

        self.tracker.recordHeartbeat(labId, receivedAt)
        self.applied += 1
        return labId

    async def drain(self):
        """Apply everything currently queued (used by tests and on shutdown)"""
        while not self.queue.empty():
            topic, receivedAt = self.queue.get_nowait()
            self.apply(topic, receivedAt)
            self.queue.task_done()

    def start(self):
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name='heartbeat-pump')

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        await self.drain()

    async def _run(self):
        while True:
            topic, receivedAt = await self.queue.get()
            try:
                self.apply(topic, receivedAt)
            except Exception as e:
                self.log.error(f'[Presence] Failed to apply heartbeat: {e}', topic=topic, exc_info=True)
            finally:
                self.queue.task_done()

    def status(self) -> dict:
        return {
            'queued': self.queue.qsize(),
            'applied': self.applied,
            'discarded': self.discarded,
            'overflowed': self.overflowed
        }
