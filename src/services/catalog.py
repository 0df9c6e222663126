"""Read-only pricing catalog and plan identifiers."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from src.core.enums import BillingCycle, PlanTier
from src.core.exceptions import ValidationError


@dataclass(frozen=True)
class PlanType:
    """A plan tier paired with a billing cycle."""

    tier: PlanTier
    cycle: BillingCycle

    @property
    def token(self) -> str:
        return f"{self.tier.value}_{self.cycle.value}"

    @classmethod
    def parse(cls, token: str, default_tier: PlanTier = PlanTier.GROWTH) -> "PlanType":
        """Parse ``"GROWTH_ANNUAL"`` or a bare cycle such as ``"ANNUAL"``."""

        raw = (token or "").strip().upper()
        tier_part, _, cycle_part = raw.rpartition("_")
        try:
            cycle = BillingCycle(cycle_part)
        except ValueError as exc:
            raise ValidationError(f"Unknown plan type '{token}'") from exc
        if not tier_part:
            return cls(default_tier, cycle)
        try:
            tier = PlanTier(tier_part)
        except ValueError as exc:
            raise ValidationError(f"Unknown plan tier in '{token}'") from exc
        return cls(tier, cycle)


@dataclass(frozen=True)
class PlanEntry:
    tier: PlanTier
    cycle: BillingCycle
    name: str
    price: Decimal
    duration_days: int
    user_limit: int
    product_limit: int
    currency: str = "NGN"


@dataclass(frozen=True)
class ModuleEntry:
    code: str
    name: str
    monthly_price: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class BundleEntry:
    code: str
    name: str
    module_codes: FrozenSet[str]
    bundle_price: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class PricingCatalog:
    """Immutable snapshot of plans, modules and bundles used for quoting."""

    plans: Mapping[Tuple[PlanTier, BillingCycle], PlanEntry] = field(default_factory=dict)
    modules: Mapping[str, ModuleEntry] = field(default_factory=dict)
    bundles: Mapping[str, BundleEntry] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        plans: Iterable[PlanEntry],
        modules: Iterable[ModuleEntry] = (),
        bundles: Iterable[BundleEntry] = (),
    ) -> "PricingCatalog":
        plan_map: Dict[Tuple[PlanTier, BillingCycle], PlanEntry] = {
            (plan.tier, plan.cycle): plan for plan in plans
        }
        module_map = {module.code: module for module in modules}
        bundle_map = {bundle.code: bundle for bundle in bundles}
        for bundle in bundle_map.values():
            missing = bundle.module_codes - module_map.keys()
            if missing:
                raise ValidationError(
                    f"Bundle '{bundle.code}' references unknown modules: {sorted(missing)}"
                )
        return cls(plans=plan_map, modules=module_map, bundles=bundle_map)

    @classmethod
    def from_rows(cls, plans, modules, bundles) -> "PricingCatalog":
        """Build a catalog from ORM rows."""

        return cls.build(
            plans=(
                PlanEntry(
                    tier=row.tier,
                    cycle=row.cycle,
                    name=row.name,
                    price=Decimal(row.price),
                    duration_days=row.duration_days,
                    user_limit=row.user_limit,
                    product_limit=row.product_limit,
                    currency=row.currency,
                )
                for row in plans
            ),
            modules=(
                ModuleEntry(
                    code=row.code,
                    name=row.name,
                    monthly_price=Decimal(row.monthly_price),
                    description=row.description,
                )
                for row in modules
            ),
            bundles=(
                BundleEntry(
                    code=row.code,
                    name=row.name,
                    module_codes=frozenset(row.module_codes or ()),
                    bundle_price=Decimal(row.bundle_price),
                    description=row.description,
                )
                for row in bundles
            ),
        )

    def plan(self, plan_type: PlanType) -> PlanEntry:
        try:
            return self.plans[(plan_type.tier, plan_type.cycle)]
        except KeyError:
            raise ValidationError(f"Unknown plan '{plan_type.token}'") from None

    def module(self, code: str) -> ModuleEntry:
        try:
            return self.modules[code]
        except KeyError:
            raise ValidationError(f"Unknown module '{code}'") from None

    def bundle(self, code: str) -> BundleEntry:
        try:
            return self.bundles[code]
        except KeyError:
            raise ValidationError(f"Unknown bundle '{code}'") from None
