"""
Override Store - manual online/offline status per lab, persisted to JSON.

File layout (rewritten in full on every mutation):
{
    "LAB01": "online",
    "LAB02": "offline"
}

Durability is best effort: a failed write is logged and reported through
PersistResult, but the in-memory change stands. Writes go to a temp file
that replaces the old one, so a crash mid-write leaves the previous file.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional

from labsdk.logging import getLogger
from .labs import normalizeLab

ONLINE = 'online'
OFFLINE = 'offline'
OVERRIDE_VALUES = (ONLINE, OFFLINE)


@dataclass
class PersistResult:
    """Outcome of a mutation: memory is always updated, disk maybe"""
    changed: bool
    persisted: bool
    error: Optional[str] = None


class OverrideStore:
    """LabId -> 'online' | 'offline'; absent means no override"""

    def __init__(self, filePath: str = './lab_status.json'):
        self.filePath = Path(filePath)
        self.log = getLogger()
        self._overrides: Dict[str, str] = {}
        self._load()

    def _load(self):
        """Load overrides; a missing or malformed file means no overrides"""
        if not self.filePath.exists():
            self.log.info(f"[Overrides] No overrides file at {self.filePath}, starting empty")
            return

        try:
            with open(self.filePath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.log.error(f"[Overrides] Failed to read overrides: {e}")
            return

        if not isinstance(data, dict):
            self.log.error(f"[Overrides] Overrides file is not a JSON object, ignoring: {self.filePath}")
            return

        for rawLab, value in data.items():
            labId = normalizeLab(rawLab)
            if labId is None or value not in OVERRIDE_VALUES:
                self.log.warning(f"[Overrides] Skipping invalid entry: {rawLab!r}={value!r}")
                continue
            self._overrides[labId] = value

        self.log.info(f"[Overrides] Loaded {len(self._overrides)} overrides")

    def _save(self) -> PersistResult:
        """Rewrite the whole mapping; failures are logged, not raised"""
        tmpPath = self.filePath.with_name(self.filePath.name + '.tmp')
        try:
            self.filePath.parent.mkdir(parents=True, exist_ok=True)
            with open(tmpPath, 'w', encoding='utf-8') as f:
                json.dump(self._overrides, f, indent=2)
            os.replace(tmpPath, self.filePath)
        except OSError as e:
            self.log.error(f"[Overrides] Failed to save overrides: {e}")
            return PersistResult(changed=True, persisted=False, error=str(e))
        return PersistResult(changed=True, persisted=True)

    def get(self, labId: str) -> Optional[str]:
        return self._overrides.get(labId)

    def set(self, labId: str, value: str) -> PersistResult:
        if value not in OVERRIDE_VALUES:
            raise ValueError(f"Invalid override value: {value!r}")
        self._overrides[labId] = value
        result = self._save()
        self.log.info(f"[Overrides] {labId} -> {value}", persisted=result.persisted)
        return result

    def clear(self, labId: str) -> PersistResult:
        """Remove an override; clearing a lab without one changes nothing"""
        if labId not in self._overrides:
            return PersistResult(changed=False, persisted=True)
        del self._overrides[labId]
        result = self._save()
        self.log.info(f"[Overrides] {labId} cleared", persisted=result.persisted)
        return result

    def prune(self, keep: Iterable[str]) -> PersistResult:
        """Drop overrides for labs outside `keep` (labs removed from the configuration)"""
        keep = set(keep)
        stale = sorted(labId for labId in self._overrides if labId not in keep)
        if not stale:
            return PersistResult(changed=False, persisted=True)
        for labId in stale:
            del self._overrides[labId]
        result = self._save()
        self.log.warning(f"[Overrides] Dropped overrides for unconfigured labs: {', '.join(stale)}",
                         persisted=result.persisted)
        return result

    def snapshot(self) -> Dict[str, str]:
        return dict(self._overrides)
