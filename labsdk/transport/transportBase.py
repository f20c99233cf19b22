"""
TransportBase: abstract pub/sub bus adapter, bytes in / bytes out.

connect(uri, **opts) -> start talking to the bus (may finish in the background)
publish(topic, bytes, retain), subscribe(pattern, handler, includeRetained), close()

Topics use MQTT syntax everywhere above this layer: '/' separates levels,
'+' matches one level, '#' matches the remaining levels. Adapters for other
buses translate.

Retained messages replayed by the bus on subscribe are delivered with
retained=True and skipped by subscriptions made with includeRetained=False.
"""


# Imports
import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Optional, Dict, Any, List

from labsdk.logging import getLogger


MessageHandler = Callable[[str, bytes], Any]


class TransportNotConnected(RuntimeError):
    """Raised by publish/subscribe when the bus link is down"""
    pass


def topicMatches(pattern: str, topic: str) -> bool:
    """
    Match an MQTT topic against a subscription pattern.

    >>> topicMatches('lab/+/alive', 'lab/LAB01/alive')
    True
    >>> topicMatches('lab/#', 'lab/LAB01/ring')
    True
    """
    patternParts = pattern.split('/')
    topicParts = topic.split('/')

    for i, part in enumerate(patternParts):
        if part == '#':
            return True
        if i >= len(topicParts):
            return False
        if part != '+' and part != topicParts[i]:
            return False

    return len(patternParts) == len(topicParts)


class SubscriptionHandle:
    """
    Lightweight subscription handle for local lifecycle control.

    Read-only fields:
        - subject: The subscription pattern
        - active: Whether this subscription is currently active
        - messagesSeen: Messages delivered to this handle's handler
        - includeRetained: Whether retained replays reach the handler"""

    def __init__(self, subject: str, handler: MessageHandler, unsubscribeCallback: Callable,
                 includeRetained: bool = True):
        self._subject = subject
        self._handler = handler
        self._active = True
        self._messagesSeen = 0
        self._unsubscribeCallback = unsubscribeCallback
        self.includeRetained = includeRetained

    @property
    def subject(self) -> str:
        return self._subject

    @property
    def active(self) -> bool:
        return self._active

    @property
    def messagesSeen(self) -> int:
        return self._messagesSeen

    async def deliver(self, topic: str, payload: bytes, retained: bool = False):
        """Invoke the handler (sync or async) for one message"""
        if not self._active or (retained and not self.includeRetained):
            return
        self._messagesSeen += 1
        result = self._handler(topic, payload)
        if asyncio.iscoroutine(result):
            await result

    async def unsubscribe(self):
        """Unsubscribe this handle (local instance only)."""
        if self._active:
            self._active = False
            await self._unsubscribeCallback(self)


class TransportBase(ABC):
    """
    Abstract base class for transport adapters.

    Lifecycle States:
        - CONNECTING: connect() called, link not (yet, or any longer) up
        - READY: link up, publish allowed
        - CLOSED: not started or shut down"""

    def __init__(self):
        self._logger = getLogger()
        self._state = 'CLOSED'
        self._endpoint = None
        self._connectedAt = None
        self._instanceId = str(uuid.uuid4())[:8]
        self._subscriptions: Dict[str, List[SubscriptionHandle]] = {}
        self._publishCount = 0
        self._publishFailures = 0

    # ===== Core Abstract Methods =====
    @abstractmethod
    async def connect(self, uri: str, **opts) -> None:
        pass

    @abstractmethod
    async def publish(self, subject: str, payload: bytes, timeout: Optional[float] = None,
                      retain: bool = False) -> None:
        pass

    @abstractmethod
    async def subscribe(self, subject: str, handler: MessageHandler,
                        includeRetained: bool = True) -> SubscriptionHandle:
        pass

    @abstractmethod
    async def close(self, timeout: Optional[float] = None) -> None:
        pass

    # ===== Core Properties =====
    @property
    @abstractmethod
    def transportType(self) -> str:
        pass

    @property
    def state(self) -> str:
        return self._state

    @property
    def isConnected(self) -> bool:
        return self._state == 'READY'

    def status(self) -> Dict[str, Any]:
        return {
            'transport': self.transportType,
            'state': self._state,
            'endpoint': self._endpoint,
            'sinceTs': self._connectedAt,
            'subs': sum(1 for handles in self._subscriptions.values() for h in handles if h.active),
            'published': self._publishCount,
            'publishFailures': self._publishFailures
        }

    # ===== Helper Methods =====
    def _log(self, message: str, level: str = 'INFO', **fields):
        fields.setdefault('transport', self.transportType)
        fields.setdefault('endpoint', self._endpoint)
        fields.setdefault('instanceId', self._instanceId)
        getattr(self._logger, level.lower(), self._logger.info)(message, **fields)

    def _addHandle(self, subject: str, handler: MessageHandler, includeRetained: bool = True) -> SubscriptionHandle:
        if not callable(handler):
            raise ValueError(f"Handler must be callable, got {type(handler)}")
        handle = SubscriptionHandle(subject, handler, self._unsubscribeHandle, includeRetained)
        self._subscriptions.setdefault(subject, []).append(handle)
        return handle

    async def _unsubscribeHandle(self, handle: SubscriptionHandle):
        handles = self._subscriptions.get(handle.subject, [])
        if handle in handles:
            handles.remove(handle)
        if not handles:
            self._subscriptions.pop(handle.subject, None)

    async def _dispatch(self, topic: str, payload: bytes, retained: bool = False):
        """Deliver one inbound message to every matching subscription"""
        for subject, handles in list(self._subscriptions.items()):
            if not topicMatches(subject, topic):
                continue
            for handle in list(handles):
                try:
                    await handle.deliver(topic, payload, retained)
                except Exception as e:
                    self._log(f'Handler error: {e}', level='ERROR', topic=topic)

    # ===== Context Manager Support =====
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
