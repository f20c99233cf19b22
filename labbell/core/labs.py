"""
Lab registry.

Lab ids are normalized (trimmed, uppercased) and must match [A-Z0-9_-]{3,20}.
The registered set is fixed at startup from a comma-separated list; the
service never runs with zero labs.
"""

import re
from typing import Dict, Iterable, List, Optional, Union

from labsdk.logging import getLogger

LAB_ID_PATTERN = re.compile(r'^[A-Z0-9_-]{3,20}$')
FALLBACK_LAB = 'LAPADA'


def normalizeLab(raw) -> Optional[str]:
    """
    Normalize a raw lab identifier.

    Returns the LabId, or None when the input cannot be one.
    Idempotent: normalizeLab(normalizeLab(x)) == normalizeLab(x).
    """
    if raw is None:
        return None
    labId = str(raw).upper().strip()
    if not LAB_ID_PATTERN.match(labId):
        return None
    return labId


class LabRegistry:
    """Static set of valid LabIds plus their display names"""

    def __init__(self, labIds: Iterable[str], names: Optional[Dict[str, str]] = None):
        self.log = getLogger()
        self._labs = set()

        for raw in labIds:
            labId = normalizeLab(raw)
            if labId:
                self._labs.add(labId)
            else:
                self.log.warning(f'[Labs] Ignoring lab with invalid name: "{raw}"')

        if not self._labs:
            self._labs.add(FALLBACK_LAB)
            self.log.warning(f'[Labs] No valid lab configured; using fallback ["{FALLBACK_LAB}"]')

        self._names: Dict[str, str] = {}
        for raw, name in (names or {}).items():
            labId = normalizeLab(raw)
            if labId in self._labs and name:
                self._names[labId] = str(name)

    @classmethod
    def fromSetting(cls, setting: Union[str, Iterable[str], None],
                    names: Optional[Dict[str, str]] = None) -> 'LabRegistry':
        """Build from 'LAB01, LAB02' or a list of ids"""
        if setting is None:
            parts = []
        elif isinstance(setting, str):
            parts = [p.strip() for p in setting.split(',')]
        else:
            parts = [str(p).strip() for p in setting]
        return cls([p for p in parts if p], names)

    def isRegistered(self, labId: Optional[str]) -> bool:
        return labId is not None and labId in self._labs

    def resolve(self, raw) -> Optional[str]:
        """Normalized LabId when valid and registered, else None"""
        labId = normalizeLab(raw)
        return labId if self.isRegistered(labId) else None

    def displayName(self, labId: str) -> str:
        return self._names.get(labId, labId)

    def sorted(self) -> List[str]:
        return sorted(self._labs)

    def __contains__(self, labId) -> bool:
        return self.isRegistered(labId)

    def __len__(self) -> int:
        return len(self._labs)
