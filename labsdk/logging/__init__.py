"""
labsdk.logging - hierarchical logger with structured fields.

API:
    from labsdk.logging import getLogger

    class RingDispatcher:
        def __init__(self):
            self.log = getLogger()  # Auto: 'labbell.core.dispatcher.RingDispatcher'

        def ring(self, lab):
            self.log.info("Ring published", lab=lab)

    # Once at app startup
    from labsdk.logging import configureLogging
    configureLogging(logDir='./logs', level='INFO')

    # Per HTTP request (stamps clientAddress/route on every record)
    from labsdk.logging import setRequestContext, clearRequestContext
"""

from .logger import getLogger, configureLogging
from .context import (
    setRequestContext,
    getRequestContext,
    clearRequestContext,
    RequestContextFilter
)

__all__ = [
    'getLogger',
    'configureLogging',
    'setRequestContext',
    'getRequestContext',
    'clearRequestContext',
    'RequestContextFilter'
]
