"""
Request logging context.

Carries the client address and route of the HTTP request being handled so
every record logged while serving it can be correlated.
"""

import logging
from typing import Optional
from contextvars import ContextVar

_client_address: ContextVar[Optional[str]] = ContextVar('client_address', default=None)
_route: ContextVar[Optional[str]] = ContextVar('route', default=None)


class RequestContextFilter(logging.Filter):
    """Logging filter that adds request context to records"""

    def filter(self, record):
        clientAddress = _client_address.get()
        route = _route.get()

        if clientAddress and not hasattr(record, 'clientAddress'):
            record.clientAddress = clientAddress
        if route and not hasattr(record, 'route'):
            record.route = route

        return True


def setRequestContext(clientAddress: Optional[str], route: Optional[str] = None):
    """
    Set request-level context for logging

    Args:
        clientAddress: Address the request is attributed to
        route: Route being served (e.g. 'POST /api/ring')
    """
    _client_address.set(clientAddress)
    _route.set(route)


def getRequestContext() -> dict:
    """Get current request context"""
    return {
        'clientAddress': _client_address.get(),
        'route': _route.get()
    }


def clearRequestContext():
    """Clear request context"""
    _client_address.set(None)
    _route.set(None)
