"""
Admin Gate and override mutation.

Every override read or write presents the shared admin secret first; a wrong
or missing secret fails before anything else in the request is looked at.
"""

import hmac
from typing import Any, Dict, Optional

from labsdk.logging import getLogger
from .errors import AdminAuthError, InputValidationError
from .labs import LabRegistry
from .overrides import OverrideStore, OVERRIDE_VALUES, PersistResult


class AdminGate:

    def __init__(self, secret: str):
        self._secret = str(secret)

    def check(self, presented):
        """Exact match against the configured secret, else AdminAuthError"""
        if not isinstance(presented, str) or not hmac.compare_digest(
                presented.encode('utf-8'), self._secret.encode('utf-8')):
            raise AdminAuthError('Invalid admin password.')


class OverrideAdmin:
    """Authenticated front of the OverrideStore"""

    def __init__(self, gate: AdminGate, registry: LabRegistry, store: OverrideStore):
        self.gate = gate
        self.registry = registry
        self.store = store
        self.log = getLogger()

    def listOverrides(self, adminPwd) -> Dict[str, Any]:
        self.gate.check(adminPwd)
        return {'ok': True, 'overrides': self.store.snapshot()}

    def apply(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Handle {lab, status: 'online'|'offline', adminPwd} or {lab, action: 'clear', adminPwd}.
        """
        self.gate.check(body.get('adminPwd'))

        labId = self.registry.resolve(body.get('lab'))
        if labId is None:
            raise InputValidationError('Invalid lab.')

        if body.get('action') == 'clear':
            return self.clearOverride(labId)

        status = body.get('status')
        if status in OVERRIDE_VALUES:
            return self.setOverride(labId, status)

        raise InputValidationError('Invalid request. Use {lab, status: "online"|"offline"} '
                                   'or {lab, action: "clear"} with adminPwd.')

    def setOverride(self, labId: str, status: str) -> Dict[str, Any]:
        result = self.store.set(labId, status)
        self._report(labId, result)
        return {'ok': True, 'lab': labId, 'overridden': True, 'overrideValue': status}

    def clearOverride(self, labId: str) -> Dict[str, Any]:
        result = self.store.clear(labId)
        if not result.changed:
            return {'ok': True, 'lab': labId, 'overridden': False, 'note': 'no override was set'}
        self._report(labId, result)
        return {'ok': True, 'lab': labId, 'overridden': False}

    def _report(self, labId: str, result: PersistResult):
        if not result.persisted:
            self.log.warning(f'[Admin] Override for {labId} applied in memory only', reason=result.error)
