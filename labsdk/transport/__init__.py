"""labsdk.transport - pub/sub bus adapters selected by URI scheme.

Public API:
    - TransportBase: Abstract base class for transport adapters
    - SubscriptionHandle: Lightweight subscription handle
    - TransportNotConnected: Raised when publishing on a link that is down
    - topicMatches: MQTT wildcard matching ('+', '#')
    - createTransport: Factory function for creating transports from URIs
    - registerAdapter: Register custom transport adapters

Default Adapters:
    - MqttTransport: 'mqtt'
    - MemoryTransport: 'memory' (in-process loopback)

Usage:
    from labsdk.transport import createTransport

    transport = createTransport('mqtt://broker.emqx.io:1883', qos=1)
    await transport.connect('mqtt://broker.emqx.io:1883')

    async def onAlive(topic, payload):
        ...

    handle = await transport.subscribe('lab/+/alive', onAlive)
    await transport.publish('lab/LAB01/ring', b'ms=3000')

    await handle.unsubscribe()
    await transport.close()
"""

from .transportBase import TransportBase, SubscriptionHandle, TransportNotConnected, topicMatches
from .transportFactory import (
    createTransport,
    registerAdapter,
    TransportRegistry,
    getDefaultRegistry
)
from .memoryTransport import MemoryTransport
from .mqttTransport import MqttTransport

# Register default adapters
registerAdapter('memory', MemoryTransport)
registerAdapter('mqtt', MqttTransport)

__all__ = [
    'TransportBase',
    'SubscriptionHandle',
    'TransportNotConnected',
    'topicMatches',
    'createTransport',
    'registerAdapter',
    'TransportRegistry',
    'getDefaultRegistry',
    'MemoryTransport',
    'MqttTransport'
]
