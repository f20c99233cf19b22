"""
Ring Dispatcher - from a ring request to a bus publish.

Order of checks for ring(lab, token, clientAddress):
    1. RateLimiter (client address)
    2. CooldownGate (lab, including a ring already in flight)
    3. Lab id valid and registered          -> InputValidationError
    4. Session token valid for the address  -> SessionAuthError
    5. Publish 'ms=3000' to lab/<LabId>/ring -> TransportFailure on any bus error
    6. Record the lab's cooldown

Admission gates run before any validation.
"""

from dataclasses import dataclass, asdict
from typing import Optional

from labsdk.logging import getLogger
from labsdk.transport import TransportBase
from .clock import Clock, nowMs
from .errors import InputValidationError, SessionAuthError, TransportFailure
from .guard import RateLimiter, CooldownGate
from .labs import LabRegistry, normalizeLab
from .sessions import SessionManager
from .topics import RING_PAYLOAD, ringTopic


@dataclass
class RingResult:
    topic: str
    payload: str

    def toDict(self) -> dict:
        return {'ok': True, **asdict(self)}


class RingDispatcher:

    def __init__(self, registry: LabRegistry, sessions: SessionManager, rateLimiter: RateLimiter,
                 cooldown: CooldownGate, transport: TransportBase,
                 publishTimeout: Optional[float] = None, clock: Clock = nowMs):
        self.registry = registry
        self.sessions = sessions
        self.rateLimiter = rateLimiter
        self.cooldown = cooldown
        self.transport = transport
        self.publishTimeout = publishTimeout
        self.clock = clock
        self.log = getLogger()

    async def ring(self, labRaw, token, clientAddress: str, now: Optional[int] = None) -> RingResult:
        clockDriven = now is None
        if clockDriven:
            now = self.clock()

        self.rateLimiter.hit(clientAddress, now)
        self.cooldown.check(normalizeLab(labRaw), now)

        labId = self.registry.resolve(labRaw)
        if labId is None:
            raise InputValidationError('Invalid lab.')

        if not self.sessions.validate(token, clientAddress, now):
            raise SessionAuthError('Invalid or expired token.')

        topic = ringTopic(labId)
        self.cooldown.begin(labId)
        try:
            await self.transport.publish(topic, RING_PAYLOAD.encode('utf-8'), timeout=self.publishTimeout)
        except Exception as e:
            self.log.error(f'[Ring] Publish failed for {labId}: {e!r}', topic=topic)
            raise TransportFailure('Failed to publish to the message bus.') from e
        finally:
            self.cooldown.end(labId)

        # Cooldown starts when the publish completed
        self.cooldown.record(labId, self.clock() if clockDriven else now)
        self.log.info(f'[Ring] {labId} rang', topic=topic)
        return RingResult(topic=topic, payload=RING_PAYLOAD)
