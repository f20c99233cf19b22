"""
Override Store Tests

Persistence of manual lab status overrides.

Run: python -m pytest test/test_overrides.py -v
"""

import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from labbell.core.overrides import OverrideStore, ONLINE, OFFLINE


@pytest.fixture
def overridesPath(tmp_path):
    return tmp_path / 'lab_status.json'


class TestOverrideStore:
    """Overrides survive a restart; bad files never stop the service"""

    def test_missing_file_starts_empty(self, overridesPath):
        store = OverrideStore(str(overridesPath))
        assert store.snapshot() == {}
        assert not overridesPath.exists()

    def test_set_persists(self, overridesPath):
        store = OverrideStore(str(overridesPath))
        result = store.set('LAB01', OFFLINE)

        assert result.changed and result.persisted
        assert store.get('LAB01') == OFFLINE
        assert json.loads(overridesPath.read_text()) == {'LAB01': 'offline'}

    def test_reload_after_restart(self, overridesPath):
        store = OverrideStore(str(overridesPath))
        store.set('LAB01', ONLINE)
        store.set('LAB02', OFFLINE)

        reloaded = OverrideStore(str(overridesPath))
        assert reloaded.snapshot() == {'LAB01': 'online', 'LAB02': 'offline'}

    def test_clear(self, overridesPath):
        store = OverrideStore(str(overridesPath))
        store.set('LAB01', ONLINE)

        result = store.clear('LAB01')
        assert result.changed
        assert store.get('LAB01') is None
        assert json.loads(overridesPath.read_text()) == {}

    def test_clear_without_override(self, overridesPath):
        store = OverrideStore(str(overridesPath))
        result = store.clear('LAB01')
        assert result.changed is False
        assert not overridesPath.exists()

    def test_invalid_value_rejected(self, overridesPath):
        store = OverrideStore(str(overridesPath))
        with pytest.raises(ValueError):
            store.set('LAB01', 'maybe')
        assert store.snapshot() == {}

    @pytest.mark.parametrize('content', ['{not json', '[1, 2, 3]', '"online"', ''])
    def test_malformed_file_loads_empty(self, overridesPath, content):
        overridesPath.write_text(content)
        store = OverrideStore(str(overridesPath))
        assert store.snapshot() == {}

    def test_invalid_entries_skipped(self, overridesPath):
        overridesPath.write_text(json.dumps({'lab01': 'online', 'LAB02': 'sideways', 'x': 'offline'}))
        store = OverrideStore(str(overridesPath))
        assert store.snapshot() == {'LAB01': 'online'}

    def test_write_failure_keeps_memory_state(self, tmp_path):
        # parent "directory" is a regular file, so every write fails
        blocker = tmp_path / 'blocker'
        blocker.write_text('')
        store = OverrideStore(str(blocker / 'lab_status.json'))

        result = store.set('LAB01', OFFLINE)
        assert result.changed is True
        assert result.persisted is False
        assert result.error
        assert store.get('LAB01') == OFFLINE

    def test_no_temp_file_left_behind(self, overridesPath):
        store = OverrideStore(str(overridesPath))
        store.set('LAB01', ONLINE)
        assert sorted(p.name for p in overridesPath.parent.iterdir()) == ['lab_status.json']

    def test_prune_drops_unconfigured_labs(self, overridesPath):
        overridesPath.write_text(json.dumps({'LAB01': 'offline', 'LAB99': 'online'}))
        store = OverrideStore(str(overridesPath))

        result = store.prune(['LAB01', 'LAB02'])

        assert result.changed and result.persisted
        assert store.snapshot() == {'LAB01': 'offline'}
        assert json.loads(overridesPath.read_text()) == {'LAB01': 'offline'}

    def test_prune_nothing_stale_leaves_file(self, overridesPath):
        overridesPath.write_text('{"LAB01": "offline"}')
        store = OverrideStore(str(overridesPath))

        result = store.prune(['LAB01', 'LAB02'])

        assert not result.changed
        assert overridesPath.read_text() == '{"LAB01": "offline"}'
