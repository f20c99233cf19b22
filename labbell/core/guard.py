"""
Admission control in front of the ring action.

RateLimiter: per client address, fixed window that resets once it has
elapsed (not sliding; up to 2x max can pass around a window boundary).
CooldownGate: per lab, minimum spacing between successful rings, whoever rings.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Set

from .errors import RateLimitExceeded, CooldownActive

RATE_WINDOW_MS = 10_000
RATE_MAX_HITS = 8
COOLDOWN_MS = 3000


@dataclass
class RateWindow:
    count: int
    startedAt: int


class RateLimiter:

    def __init__(self, windowMs: int = RATE_WINDOW_MS, maxHits: int = RATE_MAX_HITS):
        self.windowMs = windowMs
        self.maxHits = maxHits
        self._windows: Dict[str, RateWindow] = {}

    def hit(self, clientAddress: str, now: int):
        """Count one attempt; raises RateLimitExceeded past maxHits in the window"""
        window = self._windows.get(clientAddress)
        if window is None:
            window = self._windows[clientAddress] = RateWindow(count=0, startedAt=now)
        if now - window.startedAt > self.windowMs:
            window.count = 0
            window.startedAt = now

        window.count += 1
        if window.count > self.maxHits:
            raise RateLimitExceeded('Too many rings. Please wait a moment.')

    def purgeIdle(self, now: int) -> int:
        idle = [addr for addr, w in self._windows.items() if now - w.startedAt > self.windowMs]
        for addr in idle:
            del self._windows[addr]
        return len(idle)


class CooldownGate:

    def __init__(self, cooldownMs: int = COOLDOWN_MS):
        self.cooldownMs = cooldownMs
        self._lastRingAt: Dict[str, int] = {}
        self._inFlight: Set[str] = set()

    def check(self, labId: Optional[str], now: int):
        """Raises CooldownActive when the lab rang too recently or is ringing now"""
        if labId is None:
            return
        if labId in self._inFlight:
            raise CooldownActive('Doorbell is in cooldown.')
        last = self._lastRingAt.get(labId)
        if last is not None and now - last < self.cooldownMs:
            raise CooldownActive('Doorbell is in cooldown.')

    def begin(self, labId: str):
        self._inFlight.add(labId)

    def end(self, labId: str):
        self._inFlight.discard(labId)

    def record(self, labId: str, now: int):
        self._lastRingAt[labId] = now

    def lastRingAt(self, labId: str) -> Optional[int]:
        return self._lastRingAt.get(labId)
