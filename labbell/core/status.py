"""
Bootstrap / status aggregation.

Effective status: the lab's override when one is set, otherwise automatic
presence (heartbeat within the online threshold).
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from .labs import LabRegistry
from .overrides import OverrideStore, ONLINE
from .presence import PresenceTracker
from .sessions import SessionManager

LOGO_PATH = '/logos/{labId}.png'


@dataclass
class LabStatus:
    id: str
    name: str
    logo: str
    online: bool
    overridden: bool
    overrideValue: Optional[str]
    autoOnline: bool

    def toDict(self) -> Dict[str, Any]:
        return asdict(self)


class StatusBoard:

    def __init__(self, registry: LabRegistry, presence: PresenceTracker, overrides: OverrideStore,
                 sessions: SessionManager, onlineThresholdMs: int):
        self.registry = registry
        self.presence = presence
        self.overrides = overrides
        self.sessions = sessions
        self.onlineThresholdMs = onlineThresholdMs

    def labStatus(self, labId: str, now: int) -> LabStatus:
        autoOnline = self.presence.isAutoOnline(labId, now, self.onlineThresholdMs)
        override = self.overrides.get(labId)
        return LabStatus(
            id=labId,
            name=self.registry.displayName(labId),
            logo=LOGO_PATH.format(labId=labId),
            online=(override == ONLINE) if override else autoOnline,
            overridden=override is not None,
            overrideValue=override,
            autoOnline=autoOnline
        )

    def labs(self, now: int) -> List[LabStatus]:
        return [self.labStatus(labId, now) for labId in self.registry.sorted()]

    def bootstrap(self, clientAddress: str, now: int) -> Dict[str, Any]:
        """Fresh session token plus the status of every registered lab"""
        token = self.sessions.issue(clientAddress, now)
        return {'labs': [s.toDict() for s in self.labs(now)], 'token': token}
