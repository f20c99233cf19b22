"""
Lab Registry Tests

Lab id normalization and the registered lab set.

Run: python -m pytest test/test_labs.py -v
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from labbell.core.labs import LabRegistry, normalizeLab, FALLBACK_LAB


class TestNormalizeLab:
    """normalizeLab: trim, uppercase, [A-Z0-9_-]{3,20}"""

    @pytest.mark.parametrize('raw, expected', [
        ('lab01', 'LAB01'),
        ('  Lab02 ', 'LAB02'),
        ('LAPADA', 'LAPADA'),
        ('a_b-c', 'A_B-C'),
        ('ABC', 'ABC'),
        ('A' * 20, 'A' * 20),
    ])
    def test_valid(self, raw, expected):
        assert normalizeLab(raw) == expected

    @pytest.mark.parametrize('raw', [
        None, '', '   ', 'ab', 'A' * 21, 'lab 01', 'lab/01', 'LAB#1', 'lab.01', 'läb01'
    ])
    def test_invalid(self, raw):
        assert normalizeLab(raw) is None

    def test_idempotent(self):
        for raw in ('  lab01', 'Lab_X', 'xx'):
            once = normalizeLab(raw)
            assert normalizeLab(once) == once

    def test_non_string_is_stringified(self):
        """Numbers in JSON bodies still normalize"""
        assert normalizeLab(12345) == '12345'


class TestLabRegistry:
    """LabRegistry: fixed set from configuration, never empty"""

    def test_from_comma_separated(self):
        registry = LabRegistry.fromSetting('LAB01, lab02,LAB03')
        assert registry.sorted() == ['LAB01', 'LAB02', 'LAB03']
        assert len(registry) == 3

    def test_from_list(self):
        registry = LabRegistry.fromSetting(['lab02', 'LAB01'])
        assert registry.sorted() == ['LAB01', 'LAB02']

    def test_invalid_entries_dropped(self):
        registry = LabRegistry.fromSetting('LAB01,x,bad lab,,LAB02')
        assert registry.sorted() == ['LAB01', 'LAB02']

    def test_duplicates_collapse(self):
        registry = LabRegistry.fromSetting('LAB01,lab01, LAB01 ')
        assert registry.sorted() == ['LAB01']

    @pytest.mark.parametrize('setting', [None, '', ' , ,', 'x,yy'])
    def test_empty_falls_back(self, setting):
        registry = LabRegistry.fromSetting(setting)
        assert registry.sorted() == [FALLBACK_LAB]

    def test_resolve(self):
        registry = LabRegistry.fromSetting('LAB01,LAB02')
        assert registry.resolve(' lab01 ') == 'LAB01'
        assert registry.resolve('LAB99') is None
        assert registry.resolve('x') is None
        assert registry.resolve(None) is None

    def test_contains(self):
        registry = LabRegistry.fromSetting('LAB01')
        assert 'LAB01' in registry
        assert 'LAB02' not in registry
        assert None not in registry

    def test_display_names(self):
        registry = LabRegistry.fromSetting('LAB01,LAB02', names={'lab01': 'Robotics Lab', 'LAB09': 'Ghost'})
        assert registry.displayName('LAB01') == 'Robotics Lab'
        assert registry.displayName('LAB02') == 'LAB02'
        assert registry.displayName('LAB09') == 'LAB09'
