"""Plan name to duration resolution and administration of custom plans."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from core.logging import get_logger
from core.status_constants import DEFAULT_PLAN_MONTHS
from services.backend.protocols import PlanCatalogStore, PlanLookup, PlanRecord
from services.plan_config_store import load_plan_table

logger = get_logger(__name__)


class CatalogUnavailableError(RuntimeError):
    """Internal marker for a failed custom-plan lookup. Never leaves the resolver."""


class PlanCatalogError(ValueError):
    """Raised when a catalog change is invalid."""

    def __init__(self, message: str = "El plan no es válido.") -> None:
        super().__init__(message)


class PlanConflictError(PlanCatalogError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Ya existe un plan con el nombre '{name}'.")
        self.name = name


class PlanNotFoundError(LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"El plan '{name}' no existe.")
        self.name = name


class PlanInUseError(RuntimeError):
    def __init__(self, name: str, usage_count: int) -> None:
        super().__init__(f"El plan '{name}' está asignado a {usage_count} cuenta(s) y no puede eliminarse.")
        self.name = name
        self.usage_count = usage_count


@dataclass(frozen=True)
class PlanDefinition:
    name: str
    months: int
    is_custom: bool
    price: float = 0.0

    @property
    def is_trial(self) -> bool:
        return self.months == 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "months": self.months, "isCustom": self.is_custom, "price": self.price}


class PlanCatalogResolver:
    """Resolve a plan's duration in months.

    The built-in table is consulted first. Unknown names go to the optional ``lookup``
    collaborator; any failure or empty answer there resolves to one month so that date
    calculations never block on catalog availability.
    """

    def __init__(
        self,
        builtin_months: Optional[Mapping[str, int]] = None,
        lookup: Optional[PlanLookup] = None,
        *,
        default_months: int = DEFAULT_PLAN_MONTHS,
    ) -> None:
        self._builtin: Mapping[str, int] = builtin_months if builtin_months is not None else load_plan_table()
        self._lookup = lookup
        self._default_months = default_months

    @property
    def builtin_months(self) -> Mapping[str, int]:
        return self._builtin

    def resolve_months_sync(self, plan_name: Optional[str]) -> int:
        """Built-in table only; unknown plans default without any lookup."""
        if plan_name is None:
            return self._default_months
        months = self._builtin.get(plan_name)
        if months is None:
            months = self._builtin.get(str(plan_name).strip())
        return self._default_months if months is None else months

    async def _lookup_months(self, plan_name: str) -> int:
        if self._lookup is None:
            raise CatalogUnavailableError("no plan lookup configured")
        try:
            months = await self._lookup.get_months_for_plan(plan_name)
        except Exception as exc:
            raise CatalogUnavailableError(str(exc) or exc.__class__.__name__) from exc
        if months is None or isinstance(months, bool) or months < 0:
            raise CatalogUnavailableError(f"no duration for plan '{plan_name}'")
        return int(months)

    async def resolve_months(self, plan_name: Optional[str]) -> int:
        if plan_name is not None:
            cleaned = str(plan_name).strip()
            builtin = self._builtin.get(plan_name, self._builtin.get(cleaned))
            if builtin is not None:
                return builtin
            if cleaned:
                try:
                    return await self._lookup_months(cleaned)
                except CatalogUnavailableError as exc:
                    logger.warning(
                        "Plan lookup unavailable for '%s' (%s). Using %d month(s).",
                        cleaned,
                        exc,
                        self._default_months,
                    )
        return self._default_months


class PlanCatalogService:
    """Admin operations over built-in and custom plans."""

    def __init__(self, store: PlanCatalogStore, usage_counter: Any, *, builtin_months: Optional[Mapping[str, int]] = None) -> None:
        self._store = store
        self._usage_counter = usage_counter
        self._builtin: Mapping[str, int] = builtin_months if builtin_months is not None else load_plan_table()

    async def list_plans(self) -> List[PlanDefinition]:
        plans: Dict[str, PlanDefinition] = {
            name: PlanDefinition(name=name, months=months, is_custom=False) for name, months in self._builtin.items()
        }
        for record in await self._store.list_custom_plans():
            if record.name in self._builtin:
                logger.warning("Custom plan '%s' shadows a built-in plan and is ignored.", record.name)
                continue
            plans[record.name] = PlanDefinition(
                name=record.name,
                months=record.months,
                is_custom=True,
                price=record.price,
            )
        return sorted(plans.values(), key=lambda plan: (plan.months, plan.name))

    async def create_custom_plan(self, name: str, months: int, price: float = 0.0) -> PlanDefinition:
        cleaned = (name or "").strip()
        if not cleaned:
            raise PlanCatalogError("El nombre del plan es obligatorio.")
        if isinstance(months, bool) or not isinstance(months, int) or months < 0:
            raise PlanCatalogError("La duración del plan debe ser un número entero de meses mayor o igual a 0.")
        if price < 0:
            raise PlanCatalogError("El precio del plan no puede ser negativo.")

        existing = {plan.name.lower() for plan in await self.list_plans()}
        if cleaned.lower() in existing:
            raise PlanConflictError(cleaned)

        record = await self._store.insert_plan(PlanRecord(name=cleaned, months=months, price=float(price)))
        logger.info("Custom plan '%s' created (%d months).", record.name, record.months)
        return PlanDefinition(name=record.name, months=record.months, is_custom=True, price=record.price)

    async def delete_custom_plan(self, name: str) -> None:
        cleaned = (name or "").strip()
        if cleaned in self._builtin:
            raise PlanCatalogError("Los planes predeterminados no pueden eliminarse.")

        custom = {record.name: record for record in await self._store.list_custom_plans()}
        if cleaned not in custom:
            raise PlanNotFoundError(cleaned)

        usage = await self._usage_counter.count_plan_usage(cleaned)
        if usage > 0:
            raise PlanInUseError(cleaned, usage)

        if not await self._store.delete_plan(cleaned):
            raise PlanNotFoundError(cleaned)
        logger.info("Custom plan '%s' deleted.", cleaned)


__all__ = [
    "CatalogUnavailableError",
    "PlanCatalogError",
    "PlanCatalogResolver",
    "PlanCatalogService",
    "PlanConflictError",
    "PlanDefinition",
    "PlanInUseError",
    "PlanNotFoundError",
]
