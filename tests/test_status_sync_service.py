from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from core.status_constants import AccountRole, LifecycleStatus, StorageStatus
from services.backend.protocols import AccountRecord, RecordNotFoundError
from services.status_sync_service import StatusSynchronizer, SyncError

NOW = datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)
PAST = NOW - timedelta(days=3)
FUTURE = NOW + timedelta(days=20)


def _synchronizer(store) -> StatusSynchronizer:
    return StatusSynchronizer(store, now_fn=lambda: NOW)


def _reseller(account_id: str, end_date, stored_status: str) -> AccountRecord:
    return AccountRecord(
        id=account_id,
        role=AccountRole.RESELLER,
        plan_name="1 Mes",
        end_date=end_date,
        stored_status=stored_status,
        display_name=f"Reseller {account_id}",
    )


def test_expired_account_is_written_as_inactive(fake_store):
    fake_store.add_account(_reseller("r-1", PAST, "active"))

    outcome = asyncio.run(_synchronizer(fake_store).synchronize("r-1", PAST, "active"))

    assert outcome.status is LifecycleStatus.EXPIRED
    assert outcome.written_status is StorageStatus.INACTIVE
    written = [value for _, _, value in fake_store.calls]
    assert "expired" not in written
    assert ("canonical", "r-1", "inactive") in fake_store.calls


def test_reseller_side_effects_run_before_canonical_write(fake_store):
    fake_store.add_account(_reseller("r-1", FUTURE, "inactive"))

    asyncio.run(_synchronizer(fake_store).synchronize("r-1", FUTURE, "inactive"))

    assert [name for name, _, _ in fake_store.calls] == ["profile", "role", "canonical"]
    assert {value for _, _, value in fake_store.calls} == {"active"}


def test_client_has_no_side_effects(fake_store):
    fake_store.add_account(
        AccountRecord(id="c-1", role=AccountRole.CLIENT, plan_name="1 Mes", end_date=PAST, stored_status="active")
    )

    outcome = asyncio.run(_synchronizer(fake_store).synchronize("c-1", PAST, "active", role=AccountRole.CLIENT))

    assert fake_store.calls == [("canonical", "c-1", "inactive")]
    assert outcome.side_effect_failures == []


def test_side_effect_failures_do_not_fail_synchronize(fake_store):
    fake_store.add_account(_reseller("r-1", PAST, "active"))
    fake_store.fail_profile_write = True
    fake_store.fail_role_write = True

    outcome = asyncio.run(_synchronizer(fake_store).synchronize("r-1", PAST, "active"))

    assert outcome.signal is True
    assert [failure.name for failure in outcome.side_effect_failures] == ["profiles.status", "resellers.status"]
    assert "read-only" in outcome.side_effect_failures[0].error
    assert fake_store.accounts[(AccountRole.RESELLER, "r-1")].stored_status == "inactive"


@pytest.mark.parametrize("signal", [False, None, {"ok": True}, 1])
def test_non_true_signal_raises_sync_error(fake_store, signal):
    fake_store.add_account(_reseller("r-1", PAST, "active"))
    fake_store.status_signal = signal

    with pytest.raises(SyncError) as excinfo:
        asyncio.run(_synchronizer(fake_store).synchronize("r-1", PAST, "active"))

    assert excinfo.value.signal == signal
    assert excinfo.value.account_id == "r-1"


def test_canonical_exception_is_wrapped_in_sync_error(fake_store):
    fake_store.add_account(_reseller("r-1", PAST, "active"))
    fake_store.failing_canonical_ids.add("r-1")

    with pytest.raises(SyncError) as excinfo:
        asyncio.run(_synchronizer(fake_store).synchronize("r-1", PAST, "active"))

    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_unknown_account_raises_record_not_found(fake_store):
    with pytest.raises(RecordNotFoundError):
        asyncio.run(_synchronizer(fake_store).synchronize("missing", PAST, "active"))


def test_pending_status_is_written_back_as_pending(fake_store):
    fake_store.add_account(_reseller("r-1", PAST, "pending"))

    outcome = asyncio.run(_synchronizer(fake_store).synchronize("r-1", PAST, "pending"))

    assert outcome.written_status is StorageStatus.PENDING


def test_synchronize_account_reads_stored_values(fake_store):
    fake_store.add_account(_reseller("r-1", PAST, "active"))

    outcome = asyncio.run(_synchronizer(fake_store).synchronize_account("r-1", AccountRole.RESELLER))

    assert outcome.written_status is StorageStatus.INACTIVE


def test_synchronize_account_missing_record(fake_store):
    with pytest.raises(RecordNotFoundError):
        asyncio.run(_synchronizer(fake_store).synchronize_account("missing", AccountRole.CLIENT))


def test_sweep_counts_only_successful_changes(fake_store):
    fake_store.add_account(_reseller("a", FUTURE, "inactive"))  # renewed out of band
    fake_store.add_account(_reseller("b", PAST, "active"))  # lapsed
    fake_store.add_account(_reseller("c", PAST, "active"))  # lapsed, write fails
    fake_store.failing_canonical_ids.add("c")

    changed = asyncio.run(_synchronizer(fake_store).sweep_all())

    assert changed == 2
    assert fake_store.accounts[(AccountRole.RESELLER, "a")].stored_status == "active"
    assert fake_store.accounts[(AccountRole.RESELLER, "b")].stored_status == "inactive"
    assert fake_store.accounts[(AccountRole.RESELLER, "c")].stored_status == "active"


def test_sweep_skips_consistent_and_pending_records(fake_store):
    fake_store.add_account(_reseller("ok-active", FUTURE, "active"))
    fake_store.add_account(_reseller("ok-inactive", PAST, "inactive"))
    fake_store.add_account(_reseller("legacy-expired", PAST, "expired"))
    fake_store.add_account(_reseller("pending", PAST, "pending"))
    fake_store.add_account(_reseller("no-date", None, "active"))

    changed = asyncio.run(_synchronizer(fake_store).sweep_all())

    assert changed == 0
    assert fake_store.calls == []


def test_sweep_covers_clients_and_can_be_limited_by_role(fake_store):
    fake_store.add_account(_reseller("r-1", PAST, "active"))
    fake_store.add_account(
        AccountRecord(id="c-1", role=AccountRole.CLIENT, plan_name="1 Mes", end_date=PAST, stored_status="active")
    )

    assert asyncio.run(_synchronizer(fake_store).sweep_all([AccountRole.CLIENT])) == 1
    assert fake_store.accounts[(AccountRole.RESELLER, "r-1")].stored_status == "active"
    assert asyncio.run(_synchronizer(fake_store).sweep_all()) == 1


def test_sweep_survives_sync_error_signal(fake_store):
    fake_store.add_account(_reseller("b", PAST, "active"))
    fake_store.status_signal = False

    assert asyncio.run(_synchronizer(fake_store).sweep_all()) == 0


def test_set_status_activates_pending_account(fake_store):
    fake_store.add_account(_reseller("r-1", FUTURE, "pending"))
    synchronizer = _synchronizer(fake_store)

    outcome = asyncio.run(synchronizer.set_status("r-1", AccountRole.RESELLER, StorageStatus.ACTIVE))

    assert outcome.written_status is StorageStatus.ACTIVE
    assert outcome.status is LifecycleStatus.ACTIVE
    assert outcome.info.days_remaining == 20
    assert fake_store.calls == [("profile", "r-1", "active"), ("role", "r-1", "active"), ("canonical", "r-1", "active")]
    assert fake_store.accounts[(AccountRole.RESELLER, "r-1")].stored_status == "active"

    # Once activated, date reconciliation takes over again.
    assert asyncio.run(synchronizer.sweep_all()) == 0
    assert asyncio.run(synchronizer.synchronize_account("r-1")).written_status is StorageStatus.ACTIVE
    assert fake_store.accounts[(AccountRole.RESELLER, "r-1")].stored_status == "active"


def test_set_status_without_end_date(fake_store):
    fake_store.add_account(_reseller("r-1", None, "pending"))

    outcome = asyncio.run(_synchronizer(fake_store).set_status("r-1", AccountRole.RESELLER, StorageStatus.INACTIVE))

    assert outcome.status is LifecycleStatus.EXPIRED
    assert outcome.info.is_expired is True
    assert fake_store.accounts[(AccountRole.RESELLER, "r-1")].stored_status == "inactive"


def test_set_status_unknown_account_writes_nothing(fake_store):
    with pytest.raises(RecordNotFoundError):
        asyncio.run(_synchronizer(fake_store).set_status("ghost", AccountRole.CLIENT, StorageStatus.ACTIVE))
    assert fake_store.calls == []


def test_set_status_unconfirmed_raises_sync_error(fake_store):
    fake_store.add_account(_reseller("r-1", FUTURE, "pending"))
    fake_store.status_signal = None

    with pytest.raises(SyncError):
        asyncio.run(_synchronizer(fake_store).set_status("r-1", AccountRole.RESELLER, StorageStatus.ACTIVE))
    assert fake_store.accounts[(AccountRole.RESELLER, "r-1")].stored_status == "pending"
