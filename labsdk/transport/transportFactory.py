"""
TransportFactory: selects a transport adapter by URI scheme.

Usage: createTransport('mqtt://broker:1883') -> MqttTransport (not yet connected)
"""


# Imports
from typing import Dict, Type, Optional, List
from urllib.parse import urlparse

# Local imports
from .transportBase import TransportBase


class TransportRegistry:
    """TransportRegistry() -> registry for URI scheme -> adapter class"""

    def __init__(self):
        self._adapters: Dict[str, Type[TransportBase]] = {}

    def register(self, scheme: str, adapterClass: Type[TransportBase]) -> None:
        if not issubclass(adapterClass, TransportBase):
            raise TypeError(f"Adapter {adapterClass} must be a TransportBase subclass")
        self._adapters[scheme.lower()] = adapterClass

    def get(self, scheme: str) -> Optional[Type[TransportBase]]:
        return self._adapters.get(scheme.lower())

    def schemes(self) -> List[str]:
        return sorted(self._adapters.keys())


# Global default registry (tests may pass their own)
_defaultRegistry = TransportRegistry()


def registerAdapter(scheme: str, adapterClass: Type[TransportBase]) -> None:
    _defaultRegistry.register(scheme, adapterClass)


def getDefaultRegistry() -> TransportRegistry:
    return _defaultRegistry


def createTransport(uri: str, registry: Optional[TransportRegistry] = None, **opts) -> TransportBase:
    """
    Instantiate the adapter registered for the URI's scheme.

    Constructor options (e.g. qos, publishTimeout) are passed through;
    connection happens separately via `await transport.connect(uri)`.
    """
    parsed = urlparse(uri or '')
    if not parsed.scheme:
        raise ValueError(f"Bus URI must include a scheme (e.g. 'mqtt://', 'memory://'): {uri!r}")

    reg = registry or _defaultRegistry
    adapterClass = reg.get(parsed.scheme)
    if not adapterClass:
        available = ', '.join(reg.schemes()) or 'none'
        raise ValueError(f"No adapter registered for scheme '{parsed.scheme}'. Available schemes: {available}")

    try:
        return adapterClass(**opts)
    except TypeError as e:
        raise TypeError(f"Failed to instantiate {adapterClass.__name__}: {e}. "
                        f"Check that provided options match adapter constructor.") from e
