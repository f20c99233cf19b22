"""
labbell.core - doorbell domain state and rules.

Everything here is transport-agnostic and takes the current time explicitly,
so it can be driven deterministically from tests.
"""

from .errors import (
    LabBellError,
    InputValidationError,
    AuthorizationError,
    SessionAuthError,
    AdminAuthError,
    AdmissionControlError,
    RateLimitExceeded,
    CooldownActive,
    TransportFailure
)
from .labs import LabRegistry, normalizeLab
from .service import DoorbellService

__all__ = [
    'LabBellError',
    'InputValidationError',
    'AuthorizationError',
    'SessionAuthError',
    'AdminAuthError',
    'AdmissionControlError',
    'RateLimitExceeded',
    'CooldownActive',
    'TransportFailure',
    'LabRegistry',
    'normalizeLab',
    'DoorbellService'
]
