"""
Ephemeral ring sessions.

A token is bound to the client address that bootstrapped it and expires a
fixed time after issuance. Sessions live in memory only.
"""

import secrets
from dataclasses import dataclass
from typing import Dict

from labsdk.logging import getLogger

SESSION_TTL_MS = 60 * 60 * 1000


@dataclass
class Session:
    clientAddress: str
    expiresAt: int


class SessionManager:
    """token -> Session"""

    def __init__(self, ttlMs: int = SESSION_TTL_MS):
        self.ttlMs = ttlMs
        self.log = getLogger()
        self._sessions: Dict[str, Session] = {}

    def issue(self, clientAddress: str, now: int) -> str:
        token = secrets.token_urlsafe(32)
        self._sessions[token] = Session(clientAddress=clientAddress, expiresAt=now + self.ttlMs)
        return token

    def validate(self, token, clientAddress: str, now: int) -> bool:
        """
        True iff the token exists, was issued to clientAddress and has not expired.

        An expired session is evicted as a side effect.
        """
        if not isinstance(token, str):
            return False
        session = self._sessions.get(token)
        if session is None:
            return False
        if session.clientAddress != clientAddress:
            self.log.warning('[Sessions] Token presented from another address', clientAddress=clientAddress)
            return False
        if session.expiresAt < now:
            del self._sessions[token]
            return False
        return True

    def purgeExpired(self, now: int) -> int:
        """Drop sessions that expired without being presented again"""
        expired = [token for token, s in self._sessions.items() if s.expiresAt < now]
        for token in expired:
            del self._sessions[token]
        if expired:
            self.log.debug(f'[Sessions] Purged {len(expired)} expired sessions')
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
