"""
DoorbellService - owns every piece of doorbell state.

Constructed once at startup from the merged config and a (connecting or
connected) transport. All components are reachable only through this object;
nothing here is module-global.
"""

import asyncio
from typing import Any, Dict, List, Optional

from labsdk.logging import getLogger
from labsdk.transport import TransportBase, SubscriptionHandle
from .admin import AdminGate, OverrideAdmin
from .clock import Clock, nowMs
from .dispatcher import RingDispatcher, RingResult
from .guard import RateLimiter, CooldownGate
from .labs import LabRegistry
from .overrides import OverrideStore
from .presence import PresenceTracker, HeartbeatPump
from .sessions import SessionManager
from .status import StatusBoard
from .topics import PRESENCE_PATTERNS

HOUSEKEEPING_INTERVAL_SECONDS = 60


class DoorbellService:

    def __init__(self, config: Dict[str, Any], transport: TransportBase, clock: Clock = nowMs):
        self.config = config
        self.transport = transport
        self.clock = clock
        self.log = getLogger()

        self.registry = LabRegistry.fromSetting(config.get('labs'), config.get('labNames'))
        self.presence = PresenceTracker()
        self.overrides = OverrideStore(config.get('overridesPath', './lab_status.json'))
        self.overrides.prune(self.registry.sorted())
        self.sessions = SessionManager(ttlMs=config.get('sessionTtlMs', 60 * 60 * 1000))

        rateConfig = config.get('rateLimit', {})
        self.rateLimiter = RateLimiter(windowMs=rateConfig.get('windowMs', 10_000),
                                       maxHits=rateConfig.get('max', 8))
        self.cooldown = CooldownGate(cooldownMs=config.get('cooldownMs', 3000))

        self.dispatcher = RingDispatcher(self.registry, self.sessions, self.rateLimiter, self.cooldown,
                                         transport, publishTimeout=config.get('publishTimeoutSeconds', 5.0),
                                         clock=clock)
        self.admin = OverrideAdmin(AdminGate(config.get('adminPassword', '123456')),
                                   self.registry, self.overrides)
        self.statusBoard = StatusBoard(self.registry, self.presence, self.overrides, self.sessions,
                                       onlineThresholdMs=config.get('onlineThresholdMs', 90_000))
        self.pump = HeartbeatPump(self.presence, self.registry,
                                  maxSize=config.get('presenceQueueSize', 1024), clock=clock)

        self._subscriptions: List[SubscriptionHandle] = []
        self._housekeepingTask: Optional[asyncio.Task] = None

    async def start(self):
        """Subscribe to heartbeats and start background tasks"""
        self.pump.start()
        for pattern in self.config.get('presenceTopics', PRESENCE_PATTERNS):
            handle = await self.transport.subscribe(pattern, self.pump.onMessage, includeRetained=False)
            self._subscriptions.append(handle)
            self.log.info(f"[Service] Listening for heartbeats on {pattern}")

        self._housekeepingTask = asyncio.create_task(self._housekeeping(), name='housekeeping')
        self.log.info(f"[Service] Labs active: {', '.join(self.registry.sorted())}")
        self.log.info(f"[Service] ONLINE_THRESHOLD_MS = {self.statusBoard.onlineThresholdMs} ms")

    async def stop(self):
        if self._housekeepingTask:
            self._housekeepingTask.cancel()
            try:
                await self._housekeepingTask
            except asyncio.CancelledError:
                pass
            self._housekeepingTask = None

        for handle in self._subscriptions:
            await handle.unsubscribe()
        self._subscriptions.clear()

        await self.pump.stop()

    # ===== Operations =====
    def bootstrap(self, clientAddress: str) -> Dict[str, Any]:
        return self.statusBoard.bootstrap(clientAddress, self.clock())

    async def ring(self, lab, token, clientAddress: str) -> RingResult:
        return await self.dispatcher.ring(lab, token, clientAddress)

    def updateOverride(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return self.admin.apply(body)

    def listOverrides(self, adminPwd) -> Dict[str, Any]:
        return self.admin.listOverrides(adminPwd)

    def health(self) -> Dict[str, Any]:
        return {
            'status': 'ok',
            'labs': len(self.registry),
            'sessions': len(self.sessions),
            'bus': self.transport.status(),
            'presence': self.pump.status()
        }

    async def _housekeeping(self):
        while True:
            await asyncio.sleep(HOUSEKEEPING_INTERVAL_SECONDS)
            now = self.clock()
            self.sessions.purgeExpired(now)
            self.rateLimiter.purgeIdle(now)
