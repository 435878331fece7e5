from typing import Iterable, Iterator, Optional, Tuple, Union
from decimal import Decimal

from app.schemas.plan import Plan


class PlanCatalog:
    """
    Read-only, ordered set of plans.

    The backend validates requested amounts against this catalog and the
    client renders its plan selector from it, so both sides agree on prices.
    """

    def __init__(self, plans: Iterable[Plan]):
        self._plans: Tuple[Plan, ...] = tuple(plans)
        if not self._plans:
            raise ValueError("A plan catalog needs at least one plan")

        self._by_id = {}
        for plan in self._plans:
            if plan.id in self._by_id:
                raise ValueError(f"Duplicate plan id: {plan.id}")
            self._by_id[plan.id] = plan

    def get(self, plan_id: str) -> Optional[Plan]:
        return self._by_id.get(plan_id)

    def default(self) -> Plan:
        return self._plans[0]

    def has_price(self, amount: Union[int, float, Decimal]) -> bool:
        return any(Decimal(plan.price) == Decimal(str(amount)) for plan in self._plans)

    def __contains__(self, plan_id: object) -> bool:
        return plan_id in self._by_id

    def __iter__(self) -> Iterator[Plan]:
        return iter(self._plans)

    def __len__(self) -> int:
        return len(self._plans)


PLANS = PlanCatalog([
    Plan(
        id="plan_basic",
        name="Basic",
        price=999,
        features=("Up to 5 Projects", "Community Support", "10GB Storage"),
    ),
    Plan(
        id="plan_pro",
        name="Pro",
        price=2499,
        features=("Unlimited Projects", "Premium Support", "100GB Storage", "Custom Domains"),
    ),
])
