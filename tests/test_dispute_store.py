"""
Test suite for dispute records

Test Command: pytest tests/test_dispute_store.py -v --cov=tribunal/dispute_store
"""

from datetime import datetime, timedelta, timezone

import pytest

from tribunal.dispute_store import DisputeRecord, DisputeStore
from tribunal.errors import (
    AlreadyExists,
    EditWindowClosed,
    EvidenceTooLarge,
    ExpirationTooSoon,
    NotFound,
    NotOwner,
    UnknownAccount,
)
from tribunal.identity import AccountDirectory
from tribunal.storage import InMemoryBackend, UnitOfWork

T0 = datetime(2025, 2, 10, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return DisputeStore(AccountDirectory({"bob": 2}))


@pytest.fixture
def uow():
    return UnitOfWork(InMemoryBackend())


async def file_c1(store, uow, **overrides):
    params = dict(
        case_id="C1",
        claimant=1,
        respondent_name="bob",
        linked_reference="tx-7",
        evidence="damaged goods",
        expires_at=T0 + timedelta(days=5),
        now=T0,
    )
    params.update(overrides)
    return await store.file(uow, **params)


class TestDisputeRecord:
    """Test record serialization."""

    def test_dict_round_trip_keeps_utc(self):
        record = DisputeRecord("C1", 1, 2, "tx", "ev", T0, T0 + timedelta(days=5), "reply")

        restored = DisputeRecord.from_dict(record.to_dict())

        assert restored == record
        assert restored.created_at.tzinfo is not None

    def test_missing_response_defaults_empty(self):
        data = DisputeRecord("C1", 1, 2, "tx", "ev", T0, T0 + timedelta(days=5)).to_dict()
        del data["response_evidence"]

        assert DisputeRecord.from_dict(data).response_evidence == ""


class TestDisputeStore:
    """Test guarded mutations on the buffered unit of work."""

    @pytest.mark.asyncio
    async def test_file_resolves_respondent(self, store, uow):
        record = await file_c1(store, uow)

        assert record.respondent == 2
        assert (await store.get(uow, "C1")) == record

    @pytest.mark.asyncio
    async def test_existence_checked_before_respondent(self, store, uow):
        await file_c1(store, uow)

        with pytest.raises(AlreadyExists):
            await file_c1(store, uow, respondent_name="nobody")

    @pytest.mark.asyncio
    async def test_respondent_checked_before_evidence(self, store, uow):
        with pytest.raises(UnknownAccount):
            await file_c1(store, uow, respondent_name="nobody", evidence="x" * 40000)
        assert not uow.has_pending

    @pytest.mark.asyncio
    async def test_evidence_checked_before_expiration(self, store, uow):
        with pytest.raises(EvidenceTooLarge):
            await file_c1(store, uow, evidence="x" * 40000, expires_at=T0)

    @pytest.mark.asyncio
    async def test_naive_expiration_treated_as_utc(self, store, uow):
        naive = (T0 + timedelta(days=5)).replace(tzinfo=None)

        record = await file_c1(store, uow, expires_at=naive)

        assert record.expires_at == T0 + timedelta(days=5)

    @pytest.mark.asyncio
    async def test_get_missing(self, store, uow):
        with pytest.raises(NotFound):
            await store.get(uow, "C404")

    @pytest.mark.asyncio
    async def test_window_checked_before_owner(self, store, uow):
        await file_c1(store, uow)

        with pytest.raises(EditWindowClosed):
            await store.amend(uow, "C1", 99, "x", T0 + timedelta(days=6), T0 + timedelta(days=3))

    @pytest.mark.asyncio
    async def test_owner_checked_before_evidence(self, store, uow):
        await file_c1(store, uow)

        with pytest.raises(NotOwner):
            await store.amend(uow, "C1", 2, "x" * 40000, T0, T0 + timedelta(hours=1))

    @pytest.mark.asyncio
    async def test_amend_expiration_floor(self, store, uow):
        await file_c1(store, uow)

        with pytest.raises(ExpirationTooSoon):
            await store.amend(uow, "C1", 1, "x", T0 + timedelta(days=4), T0 + timedelta(hours=1))

    @pytest.mark.asyncio
    async def test_remove(self, store, uow):
        await file_c1(store, uow)

        store.remove(uow, "C1")

        assert not await store.exists(uow, "C1")
