"""
Memory Transport Adapter

In-process loopback bus: every publish is delivered to matching subscribers
of the same transport instance before publish() returns.

Retained messages behave like an MQTT broker's: the last one per topic is kept
(an empty retained payload clears it) and replayed with retained=True to
each new subscription and to every subscription after reconnect().

URI Schemes:
    memory://<name>   (name is informational only)

Used for running the service without a broker and by the test suite.
"""


# Imports
import asyncio
import time
from collections import deque
from typing import Dict, Optional, Deque, Tuple
from urllib.parse import urlparse

# Local imports
from .transportBase import TransportBase, SubscriptionHandle, MessageHandler, TransportNotConnected, topicMatches


class MemoryTransport(TransportBase):
    """Loopback pub/sub transport."""

    def __init__(self, publishTimeout: float = 5.0, historySize: int = 256):
        super().__init__()
        self.publishTimeout = publishTimeout
        self.history: Deque[Tuple[str, bytes]] = deque(maxlen=historySize)
        self.retained: Dict[str, bytes] = {}

    @property
    def transportType(self) -> str:
        return 'memory'

    async def connect(self, uri: str = 'memory://local', **opts) -> None:
        if self._state == 'READY':
            raise RuntimeError('MemoryTransport already connected')
        if opts:
            raise ValueError(f"Unknown options for MemoryTransport: {set(opts)}")

        parsed = urlparse(uri)
        if parsed.scheme.lower() != 'memory':
            raise ValueError(f"Unsupported memory scheme '{parsed.scheme}'")

        self._endpoint = uri
        self._state = 'READY'
        self._connectedAt = time.time()
        self._log('MemoryTransport connected', event='connect')

    async def publish(self, subject: str, payload: bytes, timeout: Optional[float] = None,
                      retain: bool = False) -> None:
        if self._state != 'READY':
            self._publishFailures += 1
            raise TransportNotConnected('MemoryTransport not connected')

        if isinstance(payload, str):
            payload = payload.encode('utf-8')

        self._publishCount += 1
        self.history.append((subject, bytes(payload)))
        if retain:
            if payload:
                self.retained[subject] = bytes(payload)
            else:
                self.retained.pop(subject, None)
        await asyncio.wait_for(self._dispatch(subject, bytes(payload)), timeout=timeout or self.publishTimeout)

    async def subscribe(self, subject: str, handler: MessageHandler,
                        includeRetained: bool = True) -> SubscriptionHandle:
        if self._state != 'READY':
            raise TransportNotConnected('MemoryTransport not connected')

        handle = self._addHandle(subject, handler, includeRetained)
        self._log(f'Subscribed: {subject}', event='subscribe')

        for topic, payload in list(self.retained.items()):
            if not topicMatches(subject, topic):
                continue
            try:
                await handle.deliver(topic, payload, retained=True)
            except Exception as e:
                self._log(f'Handler error: {e}', level='ERROR', topic=topic)
        return handle

    async def close(self, timeout: Optional[float] = None) -> None:
        if self._state == 'CLOSED':
            return
        self._state = 'CLOSED'
        self._subscriptions.clear()
        self._log('MemoryTransport closed', event='close')

    def disconnect(self):
        """Simulate a dropped link; subscriptions are kept"""
        self._state = 'CONNECTING'

    async def reconnect(self):
        """Restore the link; retained messages are replayed to existing subscriptions"""
        self._state = 'READY'
        for topic, payload in list(self.retained.items()):
            await self._dispatch(topic, payload, retained=True)
