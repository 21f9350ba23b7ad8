import os
from typing import Callable, Generator

import pytest

os.environ.setdefault("DATABASE_ALLOW_NON_POSTGRES", "1")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DATABASE_URL", os.getenv("DATABASE_URL", os.environ["TEST_DATABASE_URL"]))
os.environ.setdefault("SUPABASE_URL", "https://backend.test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-test-key")
os.environ.setdefault("SUBSCRIPTION_SWEEP_INTERVAL_SECONDS", "0")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from database import Base  # noqa: E402
from services.plan_config_store import clear_plan_table_cache  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "postgres: requires a PostgreSQL database")


@pytest.fixture(autouse=True)
def _isolated_plan_table(tmp_path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Point the plan table override at an empty temp path so defaults apply."""
    monkeypatch.setenv("PLAN_TABLE_FILE", str(tmp_path / "plan_table.json"))
    clear_plan_table_cache()
    try:
        yield
    finally:
        clear_plan_table_cache()


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    import models  # noqa: F401

    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: Callable[[], Session]) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class FakeAccountStore:
    """In-memory stand-in for the storage collaborators."""

    def __init__(self) -> None:
        from services.backend.protocols import PlanRecord

        self._plan_record = PlanRecord
        self.accounts = {}
        self.plans = {}
        self.lookup_months = {}
        self.lookup_error = None
        self.status_signal = True
        self.failing_canonical_ids = set()
        self.fail_profile_write = False
        self.fail_role_write = False
        self.calls = []

    def add_account(self, record) -> None:
        self.accounts[(record.role, record.id)] = record

    def _require(self, account_id, role):
        from services.backend.protocols import RecordNotFoundError

        record = self.accounts.get((role, account_id))
        if record is None:
            raise RecordNotFoundError(account_id, kind=role.value)
        return record

    async def update_account_status(self, account_id, role, status):
        self.calls.append(("canonical", account_id, status.value))
        record = self._require(account_id, role)
        if account_id in self.failing_canonical_ids:
            raise RuntimeError("rpc unavailable")
        if self.status_signal is True:
            record.stored_status = status.value
        return self.status_signal

    async def update_profile_status(self, account_id, status):
        self.calls.append(("profile", account_id, status.value))
        if self.fail_profile_write:
            raise RuntimeError("profiles table is read-only")

    async def update_role_status(self, account_id, role, status):
        self.calls.append(("role", account_id, status.value))
        if self.fail_role_write:
            raise RuntimeError("column status does not exist")

    async def get_account(self, account_id, role):
        return self._require(account_id, role)

    async def list_accounts_with_end_date(self, role):
        return [record for (record_role, _), record in self.accounts.items() if record_role is role and record.end_date is not None]

    async def list_accounts(self, role):
        return [record for (record_role, _), record in self.accounts.items() if record_role is role]

    async def update_account_plan(self, account_id, role, *, plan_name, start_date, end_date):
        record = self._require(account_id, role)
        self.calls.append(("plan", account_id, plan_name))
        if plan_name is not None:
            record.plan_name = plan_name
        record.end_date = end_date
        if start_date is not None:
            record.start_date = start_date
        return record

    async def count_plan_usage(self, plan_name):
        return sum(1 for record in self.accounts.values() if record.plan_name == plan_name)

    async def get_months_for_plan(self, name):
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.lookup_months.get(name)

    async def list_custom_plans(self):
        return list(self.plans.values())

    async def insert_plan(self, plan):
        stored = self._plan_record(name=plan.name, months=plan.months, price=plan.price, is_custom=True, id=f"plan-{len(self.plans) + 1}")
        self.plans[plan.name] = stored
        return stored

    async def delete_plan(self, name):
        return self.plans.pop(name, None) is not None


@pytest.fixture()
def fake_store() -> FakeAccountStore:
    return FakeAccountStore()
