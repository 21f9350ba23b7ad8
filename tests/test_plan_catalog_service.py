from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from types import MappingProxyType

import pytest

from core.status_constants import AccountRole
from services.backend.protocols import AccountRecord, PlanRecord
from services.plan_catalog_service import (
    PlanCatalogError,
    PlanCatalogResolver,
    PlanCatalogService,
    PlanConflictError,
    PlanInUseError,
    PlanNotFoundError,
)

BUILTINS = MappingProxyType({"Demo (24 Hrs)": 0, "1 Mes": 1, "3 Meses": 3})


class _ExplodingLookup:
    def __init__(self) -> None:
        self.calls = 0

    async def get_months_for_plan(self, name: str):
        self.calls += 1
        raise ConnectionError("catalog offline")


def test_resolver_prefers_builtin_table(fake_store):
    fake_store.lookup_months["3 Meses"] = 99
    resolver = PlanCatalogResolver(BUILTINS, lookup=fake_store)
    assert asyncio.run(resolver.resolve_months("3 Meses")) == 3
    assert asyncio.run(resolver.resolve_months("Demo (24 Hrs)")) == 0


def test_resolver_uses_lookup_for_custom_plans(fake_store):
    fake_store.lookup_months["Promo 5"] = 5
    resolver = PlanCatalogResolver(BUILTINS, lookup=fake_store)
    assert asyncio.run(resolver.resolve_months("Promo 5")) == 5


def test_resolver_defaults_when_lookup_raises():
    lookup = _ExplodingLookup()
    resolver = PlanCatalogResolver(BUILTINS, lookup=lookup)
    assert asyncio.run(resolver.resolve_months("UnknownCustomPlan")) == 1
    assert lookup.calls == 1


def test_resolver_defaults_when_lookup_returns_nothing(fake_store):
    resolver = PlanCatalogResolver(BUILTINS, lookup=fake_store)
    assert asyncio.run(resolver.resolve_months("Eliminado")) == 1


def test_resolver_defaults_without_lookup():
    resolver = PlanCatalogResolver(BUILTINS)
    assert asyncio.run(resolver.resolve_months("Eliminado")) == 1
    assert asyncio.run(resolver.resolve_months(None)) == 1
    assert asyncio.run(resolver.resolve_months("   ")) == 1


def test_sync_resolver_never_consults_lookup():
    lookup = _ExplodingLookup()
    resolver = PlanCatalogResolver(BUILTINS, lookup=lookup)
    assert resolver.resolve_months_sync("Promo 5") == 1
    assert resolver.resolve_months_sync("3 Meses") == 3
    assert lookup.calls == 0


def test_resolver_loads_configured_table_by_default():
    resolver = PlanCatalogResolver()
    assert resolver.resolve_months_sync("14 Meses") == 14


def test_list_plans_merges_custom_plans(fake_store):
    fake_store.plans["Promo 2"] = PlanRecord(name="Promo 2", months=2, price=15.0)
    fake_store.plans["1 Mes"] = PlanRecord(name="1 Mes", months=9)
    service = PlanCatalogService(fake_store, fake_store, builtin_months=BUILTINS)

    plans = asyncio.run(service.list_plans())

    assert [plan.name for plan in plans] == ["Demo (24 Hrs)", "1 Mes", "Promo 2", "3 Meses"]
    by_name = {plan.name: plan for plan in plans}
    assert by_name["1 Mes"].months == 1
    assert by_name["1 Mes"].is_custom is False
    assert by_name["Promo 2"].is_custom is True
    assert by_name["Demo (24 Hrs)"].is_trial is True


def test_create_custom_plan(fake_store):
    service = PlanCatalogService(fake_store, fake_store, builtin_months=BUILTINS)
    plan = asyncio.run(service.create_custom_plan("  Promo 5 ", 5, 20))
    assert plan.name == "Promo 5"
    assert plan.months == 5
    assert plan.is_custom is True
    assert "Promo 5" in fake_store.plans


@pytest.mark.parametrize(
    "name,months,price",
    [("", 1, 0), ("   ", 1, 0), ("Negativo", -1, 0), ("Precio", 1, -5), ("Decimal", 1.5, 0)],
)
def test_create_custom_plan_rejects_invalid_input(fake_store, name, months, price):
    service = PlanCatalogService(fake_store, fake_store, builtin_months=BUILTINS)
    with pytest.raises(PlanCatalogError):
        asyncio.run(service.create_custom_plan(name, months, price))


def test_create_custom_plan_rejects_duplicates(fake_store):
    service = PlanCatalogService(fake_store, fake_store, builtin_months=BUILTINS)
    with pytest.raises(PlanConflictError):
        asyncio.run(service.create_custom_plan("1 mes", 1))


def test_delete_builtin_plan_is_rejected(fake_store):
    service = PlanCatalogService(fake_store, fake_store, builtin_months=BUILTINS)
    with pytest.raises(PlanCatalogError):
        asyncio.run(service.delete_custom_plan("1 Mes"))


def test_delete_unknown_plan(fake_store):
    service = PlanCatalogService(fake_store, fake_store, builtin_months=BUILTINS)
    with pytest.raises(PlanNotFoundError):
        asyncio.run(service.delete_custom_plan("Fantasma"))


def test_delete_plan_in_use_is_rejected(fake_store):
    fake_store.plans["Promo 2"] = PlanRecord(name="Promo 2", months=2)
    for index in range(2):
        fake_store.add_account(
            AccountRecord(
                id=f"client-{index}",
                role=AccountRole.CLIENT,
                plan_name="Promo 2",
                end_date=datetime(2030, 1, 1, tzinfo=timezone.utc),
                stored_status="active",
            )
        )
    service = PlanCatalogService(fake_store, fake_store, builtin_months=BUILTINS)

    with pytest.raises(PlanInUseError) as excinfo:
        asyncio.run(service.delete_custom_plan("Promo 2"))

    assert excinfo.value.usage_count == 2
    assert "Promo 2" in fake_store.plans


def test_delete_unused_custom_plan(fake_store):
    fake_store.plans["Promo 2"] = PlanRecord(name="Promo 2", months=2)
    service = PlanCatalogService(fake_store, fake_store, builtin_months=BUILTINS)
    asyncio.run(service.delete_custom_plan("Promo 2"))
    assert fake_store.plans == {}
