"""
Test suite for window policy and derived case phase

Test Command: pytest tests/test_policy.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from tribunal.context import CallContext, FixedClock, SystemClock, ensure_utc
from tribunal.dispute_store import DisputeRecord
from tribunal.errors import ConfigurationError
from tribunal.policy import (
    CasePhase,
    WindowPolicy,
    derive_phase,
    evidence_size,
    is_editable,
    is_executable,
    is_voting_open,
)

T0 = datetime(2025, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def policy():
    return WindowPolicy()


@pytest.fixture
def record():
    return DisputeRecord(
        case_id="P1",
        claimant=1,
        respondent=2,
        linked_reference="tx",
        claim_evidence="",
        created_at=T0,
        expires_at=T0 + timedelta(days=7),
    )


class TestWindowPolicy:
    """Test policy construction and limits."""

    def test_defaults(self, policy):
        assert policy.edit_window == timedelta(days=3)
        assert policy.min_reservation == timedelta(days=4)
        assert policy.max_evidence_bytes == 32767

    def test_reservation_must_exceed_edit_window(self):
        with pytest.raises(ConfigurationError):
            WindowPolicy(edit_window=timedelta(days=4), min_reservation=timedelta(days=4))

    def test_positive_edit_window(self):
        with pytest.raises(ConfigurationError):
            WindowPolicy(edit_window=timedelta(0))

    def test_positive_evidence_bound(self):
        with pytest.raises(ConfigurationError):
            WindowPolicy(max_evidence_bytes=0)

    def test_deadlines(self, policy):
        assert policy.edit_deadline(T0) == T0 + timedelta(days=3)
        assert policy.earliest_expiration(T0) == T0 + timedelta(days=4)

    def test_evidence_size_is_utf8_bytes(self, policy):
        assert evidence_size("abc") == 3
        assert evidence_size("é") == 2
        assert evidence_size("仲裁") == 6
        assert policy.evidence_fits("x" * 32767)
        assert not policy.evidence_fits("x" * 32768)


class TestDerivePhase:
    """Test phase boundaries."""

    def test_edit_window_until_deadline(self, record, policy):
        assert derive_phase(record, T0, policy) is CasePhase.EDIT_WINDOW
        assert derive_phase(record, T0 + timedelta(days=3, seconds=-1), policy) is CasePhase.EDIT_WINDOW

    def test_voting_from_deadline(self, record, policy):
        assert derive_phase(record, T0 + timedelta(days=3), policy) is CasePhase.VOTING
        assert derive_phase(record, T0 + timedelta(days=7, seconds=-1), policy) is CasePhase.VOTING

    def test_sealed_at_expiration(self, record, policy):
        phase = derive_phase(record, T0 + timedelta(days=7), policy)

        assert phase is CasePhase.SEALED
        assert not is_voting_open(phase)
        assert not is_executable(phase)
        assert not is_editable(phase)

    def test_executable_after_expiration(self, record, policy):
        assert derive_phase(record, T0 + timedelta(days=7, seconds=1), policy) is CasePhase.EXECUTABLE

    def test_voting_open_during_edit_window(self):
        assert is_voting_open(CasePhase.EDIT_WINDOW)
        assert is_voting_open(CasePhase.VOTING)


class TestClocks:
    """Test time sources."""

    def test_fixed_clock(self):
        clock = FixedClock(T0)
        clock.advance(days=1, seconds=5)

        assert clock.now() == T0 + timedelta(days=1, seconds=5)
        ctx = clock.context_for(9)
        assert ctx.caller == 9
        assert ctx.now == clock.now()

    def test_system_clock_is_utc_whole_seconds(self):
        now = SystemClock().now()

        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)
        assert now.microsecond == 0

    def test_ensure_utc(self):
        naive = datetime(2025, 1, 1, 12, 0)
        shifted = datetime(2025, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert ensure_utc(naive) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert ensure_utc(shifted).hour == 12

    def test_call_context_normalizes_now(self):
        ctx = CallContext(caller=1, now=datetime(2025, 6, 1, 9, 30))

        assert ctx.now == datetime(2025, 6, 1, 9, 30, tzinfo=timezone.utc)
        assert ctx.now.tzinfo is not None
