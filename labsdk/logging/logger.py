"""
Hierarchical logger with automatic name detection and structured fields.

Features:
- Logger name detected from the call stack (computed once, cached by stdlib)
- Optional rotating log file per top-level app
- Structured keyword fields appended to the message
- Request context (client address, route) stamped by a filter

Usage:
    from labsdk.logging import getLogger

    log = getLogger()  # module level: 'labbell.core.labs'

    def loadLabs():
        log.warning("[Labs] Dropping invalid lab id", raw=raw)
"""

# Imports
import inspect, logging, logging.handlers, socket
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone as tz

from .context import RequestContextFilter


# Global state
_hostname = socket.gethostname()
_configured = False
_fileHandlers = {}  # logPath -> handler
_contextFilter = RequestContextFilter()
_config = {
    'logDir': None,                 # None = console only
    'maxBytes': 10_000_000,
    'backupCount': 5,
    'console': True,
    'level': logging.INFO,
    'utc': False
}


def configureLogging(logDir: Optional[str] = None, level: str = 'INFO', console: bool = True,
                     maxBytes: int = 10_000_000, backupCount: int = 5, utc: bool = False):
    """
    Configure global logging settings (call once at app startup).

    Loggers already handed out by getLogger() are re-attached to the new
    handlers and level.

    Args:
        logDir: Directory for rotating log files (None disables file logging)
        level: Minimum log level name (default: 'INFO')
        console: Also log to stderr (default: True)
        maxBytes: Size per log file before rotation
        backupCount: Rotated files kept per app
        utc: Use UTC timestamps
    """
    global _configured

    levelNo = logging.getLevelName(str(level).upper())
    if not isinstance(levelNo, int):
        levelNo = logging.INFO

    _config.update({'logDir': logDir, 'maxBytes': maxBytes, 'backupCount': backupCount,
                    'console': console, 'level': levelNo, 'utc': utc})

    if logDir:
        Path(logDir).mkdir(parents=True, exist_ok=True)
    _configured = True

    for handler in _fileHandlers.values():
        handler.close()
    _fileHandlers.clear()

    for logger in list(logging.Logger.manager.loggerDict.values()):
        if isinstance(logger, logging.Logger) and getattr(logger, '_configured_by_labsdk', False):
            for handler in [h for h in logger.handlers if getattr(h, '_labsdk', False)]:
                logger.removeHandler(handler)
            _attachHandlers(logger)


def _autoDetectName() -> str:
    """Logger name from the first caller outside this package, e.g. 'labbell.core.guard.RateLimiter'"""

    frame = inspect.currentframe()
    try:
        current = frame
        while current is not None:
            current = current.f_back
            if current is None:
                break

            module = inspect.getmodule(current)
            if module is None:
                continue

            moduleName = module.__name__

            if moduleName.startswith('labsdk.logging'):
                continue
            if moduleName.startswith('importlib') or moduleName == '__main__':
                continue

            parts = moduleName.split('.')
            if parts and parts[0] == 'labsdk' and len(parts) > 1:
                parts = parts[1:]

            className = None
            if current.f_locals:
                if 'self' in current.f_locals:
                    className = current.f_locals['self'].__class__.__name__
                elif 'cls' in current.f_locals:
                    className = current.f_locals['cls'].__name__

            hierarchy = '.'.join(parts) if parts else 'unknown'
            if className:
                hierarchy = f"{hierarchy}.{className}"

            return hierarchy

        return 'unknown'
    finally:
        del frame


class StructuredFormatter(logging.Formatter):
    """Formatter adding hostname and structured fields.
    Format: timestamp - hostname - logger.name - level - message [field1=value1, field2=value2]"""

    _excluded = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'message', 'pathname', 'process', 'processName',
        'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'hostname', 'asctime', 'taskName'
    }

    def __init__(self, fmt=None, datefmt=None, utc=False):
        super().__init__(fmt, datefmt)
        self.utc = utc

    def formatTime(self, record, datefmt=None):
        if self.utc:
            ct = datetime.fromtimestamp(record.created, tz=tz.utc)
        else:
            ct = datetime.fromtimestamp(record.created)

        if datefmt:
            return ct.strftime(datefmt)
        return f"{ct.strftime('%Y-%m-%d %H:%M:%S')},{int(record.msecs):03d}"

    def format(self, record):
        record.hostname = _hostname

        structuredFields = [f"{key}={value}" for key, value in record.__dict__.items()
                            if key not in self._excluded and not key.startswith('_')]

        # Leave record.msg untouched for other handlers
        originalMsg = record.msg
        if structuredFields:
            record.msg = f"{originalMsg} [{', '.join(structuredFields)}]"
        try:
            return super().format(record)
        finally:
            record.msg = originalMsg


def getLogger(name: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger, detecting its hierarchical name when not given.

    The returned logger accepts structured fields as keyword arguments:
        log.info("Ring published", lab='LAB01', topic='lab/LAB01/ring')
    """
    if not _configured:
        configureLogging()

    if name is None:
        name = _autoDetectName()

    logger = logging.getLogger(name)
    logger.propagate = False

    if not logger.handlers and not getattr(logger, '_configured_by_labsdk', False):
        _attachHandlers(logger)
        logger._configured_by_labsdk = True

    return _wrapLogger(logger)


def _attachHandlers(logger: logging.Logger):
    """Set level and attach the file/console handlers for the current _config"""
    logger.setLevel(_config['level'])

    if _config['logDir']:
        appName = logger.name.split('.')[0]
        logPath = str(Path(_config['logDir']) / f"{appName}.log")

        if logPath not in _fileHandlers:
            fileHandler = logging.handlers.RotatingFileHandler(
                logPath,
                maxBytes=_config['maxBytes'],
                backupCount=_config['backupCount'],
                encoding='utf-8'
            )
            fileHandler.setLevel(_config['level'])
            fileHandler.setFormatter(StructuredFormatter(
                '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s',
                utc=_config['utc']
            ))
            fileHandler.addFilter(_contextFilter)
            fileHandler._labsdk = True
            _fileHandlers[logPath] = fileHandler

        logger.addHandler(_fileHandlers[logPath])

    if _config['console']:
        consoleHandler = logging.StreamHandler()
        consoleHandler.setLevel(_config['level'])
        consoleHandler.setFormatter(StructuredFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            utc=_config['utc']
        ))
        consoleHandler.addFilter(_contextFilter)
        consoleHandler._labsdk = True
        logger.addHandler(consoleHandler)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """
    Let the standard level methods take structured fields as **kwargs.

    log.info("Message", lab=x) instead of log.info("Message", extra={'lab': x})
    """
    if getattr(logger, '_is_wrapped', False):
        return logger

    def wrap(original):
        def method(msg, *args, **kwargs):
            excInfo = kwargs.pop('exc_info', False)
            if kwargs:
                original(msg, *args, extra=kwargs, exc_info=excInfo)
            else:
                original(msg, *args, exc_info=excInfo)
        return method

    logger.debug = wrap(logger.debug)
    logger.info = wrap(logger.info)
    logger.warning = wrap(logger.warning)
    logger.error = wrap(logger.error)
    logger.critical = wrap(logger.critical)
    logger._is_wrapped = True

    return logger
