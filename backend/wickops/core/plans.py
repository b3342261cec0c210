"""
Plan catalog.

WHAT: Immutable description of billing plans, their seat limits and the
Stripe price ids that map onto them.

WHY: Seat limits used by onboarding and billing must come from one place.
The catalog is built once from settings and passed into the services that
need it; nothing mutates it at runtime.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from wickops.core.config import Settings, settings


@dataclass(frozen=True)
class PlanDefinition:
    """A single billing plan."""

    key: str
    max_users: int
    price_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PlanCatalog:
    """
    Immutable plan configuration.

    Attributes:
        plans: Plan definitions keyed by plan key
        default_plan: Plan assigned to freshly created organizations
        personal_seat_limit: Seat limit of a personal organization
        organization_seat_limit: Seat limit of a fresh multi-seat organization
    """

    plans: Dict[str, PlanDefinition] = field(default_factory=dict)
    default_plan: str = "Free"
    personal_seat_limit: int = 1
    organization_seat_limit: int = 5

    def get(self, key: Optional[str]) -> Optional[PlanDefinition]:
        """Case-insensitive plan lookup."""
        if not key:
            return None
        wanted = key.strip().lower()
        for plan in self.plans.values():
            if plan.key.lower() == wanted:
                return plan
        return None

    def plan_for_price(self, price_id: Optional[str]) -> Optional[PlanDefinition]:
        """Resolve the plan a Stripe price id belongs to."""
        if not price_id:
            return None
        for plan in self.plans.values():
            if price_id in plan.price_ids:
                return plan
        return None

    def initial_seat_limit(self, is_personal: bool) -> int:
        return self.personal_seat_limit if is_personal else self.organization_seat_limit


def _price_ids(*values: Optional[str]) -> Tuple[str, ...]:
    return tuple(v for v in values if v)


def build_plan_catalog(config: Settings = settings) -> PlanCatalog:
    """
    Build the plan catalog from settings.

    Args:
        config: Application settings holding Stripe price ids

    Returns:
        Frozen PlanCatalog
    """
    plans = (
        PlanDefinition(
            key="Personal",
            max_users=1,
            price_ids=_price_ids(
                config.STRIPE_PRICE_PERSONAL_MONTHLY,
                config.STRIPE_PRICE_PERSONAL_YEARLY,
            ),
        ),
        PlanDefinition(
            key="Department",
            max_users=5,
            price_ids=_price_ids(
                config.STRIPE_PRICE_DEPARTMENT_MONTHLY,
                config.STRIPE_PRICE_DEPARTMENT_YEARLY,
            ),
        ),
        PlanDefinition(
            key="Organization",
            max_users=15,
            price_ids=_price_ids(
                config.STRIPE_PRICE_ORGANIZATION_MONTHLY,
                config.STRIPE_PRICE_ORGANIZATION_YEARLY,
            ),
        ),
    )
    return PlanCatalog(plans={plan.key: plan for plan in plans})


DEFAULT_PLAN_CATALOG = build_plan_catalog()
