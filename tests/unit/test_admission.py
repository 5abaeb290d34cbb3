"""Tests for AdmissionDecision and the clock implementations."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from sales_kernel.domain.admission import AdmissionDecision, AdmissionOutcome
from sales_kernel.domain.clock import DeterministicClock, SystemClock


class TestAdmissionDecision:
    def test_admitted_computes_stock_after(self):
        decision = AdmissionDecision.admitted(10692, 10, 27, 31)

        assert decision.is_admitted
        assert decision.outcome is AdmissionOutcome.ADMITTED
        assert decision.stock_after == 4
        assert decision.attempts == 1

    def test_rejected_has_no_stock_after(self):
        decision = AdmissionDecision.rejected(10692, 77, 11, available=10, attempts=2)

        assert not decision.is_admitted
        assert decision.stock_before == 10
        assert decision.stock_after is None
        assert decision.attempts == 2

    def test_frozen(self):
        decision = AdmissionDecision.admitted(1, 1, 1, 5)
        with pytest.raises(FrozenInstanceError):
            decision.stock_after = 0


class TestClocks:
    def test_deterministic_clock_is_fixed(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        assert clock.now().tzinfo is not None

    def test_deterministic_clock_advance(self):
        start = datetime(2024, 6, 1, tzinfo=timezone.utc)
        clock = DeterministicClock(start)

        clock.advance(90)

        assert clock.now() == start + timedelta(seconds=90)

    def test_deterministic_clock_set_time(self):
        clock = DeterministicClock()
        target = datetime(2025, 1, 1, tzinfo=timezone.utc)
        clock.set_time(target)
        assert clock.now() == target

    def test_system_clock_is_utc(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)
