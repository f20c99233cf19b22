"""
Admission Control Tests

Per-client rate limit and per-lab cooldown.

Run: python -m pytest test/test_guard.py -v
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from labbell.core.errors import RateLimitExceeded, CooldownActive, AdmissionControlError
from labbell.core.guard import RateLimiter, CooldownGate

NOW = 1_700_000_000_000


class TestRateLimiter:
    """Fixed window: 8 attempts per 10 s per client address"""

    def test_eight_pass_ninth_fails(self):
        limiter = RateLimiter(windowMs=10_000, maxHits=8)
        for i in range(8):
            limiter.hit('10.0.0.1', NOW + i)
        with pytest.raises(RateLimitExceeded):
            limiter.hit('10.0.0.1', NOW + 8)

    def test_clients_are_independent(self):
        limiter = RateLimiter(windowMs=10_000, maxHits=2)
        limiter.hit('10.0.0.1', NOW)
        limiter.hit('10.0.0.1', NOW)
        limiter.hit('10.0.0.2', NOW)

    def test_window_resets_after_elapsed(self):
        limiter = RateLimiter(windowMs=10_000, maxHits=1)
        limiter.hit('10.0.0.1', NOW)
        with pytest.raises(RateLimitExceeded):
            limiter.hit('10.0.0.1', NOW + 10_000)
        limiter.hit('10.0.0.1', NOW + 10_001)

    def test_rejected_attempts_still_count(self):
        limiter = RateLimiter(windowMs=10_000, maxHits=1)
        limiter.hit('10.0.0.1', NOW)
        for _ in range(3):
            with pytest.raises(RateLimitExceeded):
                limiter.hit('10.0.0.1', NOW + 1)

    def test_is_admission_control(self):
        limiter = RateLimiter(windowMs=10_000, maxHits=0)
        with pytest.raises(AdmissionControlError) as excInfo:
            limiter.hit('10.0.0.1', NOW)
        assert excInfo.value.status == 429

    def test_purge_idle(self):
        limiter = RateLimiter(windowMs=10_000, maxHits=8)
        limiter.hit('10.0.0.1', NOW)
        limiter.hit('10.0.0.2', NOW + 9_000)
        assert limiter.purgeIdle(NOW + 10_001) == 1


class TestCooldownGate:
    """3 s between successful rings of the same lab"""

    def test_no_history_passes(self):
        CooldownGate().check('LAB01', NOW)

    def test_within_cooldown_fails(self):
        gate = CooldownGate(cooldownMs=3000)
        gate.record('LAB01', NOW)
        with pytest.raises(CooldownActive):
            gate.check('LAB01', NOW + 2999)
        gate.check('LAB01', NOW + 3000)

    def test_labs_are_independent(self):
        gate = CooldownGate(cooldownMs=3000)
        gate.record('LAB01', NOW)
        gate.check('LAB02', NOW + 1)

    def test_in_flight_blocks(self):
        gate = CooldownGate(cooldownMs=3000)
        gate.begin('LAB01')
        with pytest.raises(CooldownActive):
            gate.check('LAB01', NOW)
        gate.end('LAB01')
        gate.check('LAB01', NOW)

    def test_unknown_lab_is_not_checked(self):
        CooldownGate().check(None, NOW)
