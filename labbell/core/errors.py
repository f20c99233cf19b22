"""
Error taxonomy for ring and admin operations.

Each error carries the HTTP status the server answers with. Persistence
failures are not errors here: they are reported through PersistResult and
never reach an HTTP caller.
"""


class LabBellError(Exception):
    """Base for client-facing doorbell errors"""
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def toDict(self) -> dict:
        return {'ok': False, 'error': self.message}


class InputValidationError(LabBellError):
    """Malformed or unregistered lab id, malformed request shape"""
    status = 400


class AuthorizationError(LabBellError):
    status = 403


class SessionAuthError(AuthorizationError):
    """Unknown, foreign or expired session token"""
    status = 403


class AdminAuthError(AuthorizationError):
    """Wrong or missing admin secret"""
    status = 401


class AdmissionControlError(LabBellError):
    """Retry later"""
    status = 429


class RateLimitExceeded(AdmissionControlError):
    pass


class CooldownActive(AdmissionControlError):
    pass


class TransportFailure(LabBellError):
    """Bus publish failed, timed out, or the bus is disconnected"""
    status = 500
