import logging
from typing import List, Optional, Tuple

from app.client.orchestrator import CheckoutOrchestrator, CheckoutState
from app.client.widget import CheckoutResult
from app.core.plans import PlanCatalog
from app.schemas.plan import Plan

logger = logging.getLogger(__name__)


def price_label(plan: Plan) -> str:
    return f"₹{plan.price}"


class PlanSelector:
    """
    View model for the pricing dialog.

    Exactly one plan is selected at all times, starting with the first plan
    of the catalog. Selection, confirmation and cancel are all locked while
    the orchestrator has an attempt in flight.

    A failed attempt counts as idle for confirmation: confirm stays enabled
    after a failure so the user can retry directly, with the error still
    shown. Only a success has to be dismissed first.
    """

    def __init__(self, orchestrator: CheckoutOrchestrator, catalog: Optional[PlanCatalog] = None):
        self.orchestrator = orchestrator
        self.catalog = catalog or orchestrator.catalog
        self.selected_id = self.catalog.default().id
        self.is_open = False
        orchestrator.subscribe(self._on_checkout_change)

    @property
    def selected_plan(self) -> Plan:
        return self.catalog.get(self.selected_id)

    @property
    def locked(self) -> bool:
        return self.orchestrator.is_loading

    @property
    def confirm_enabled(self) -> bool:
        return self.orchestrator.accepts_confirmation

    @property
    def confirm_label(self) -> str:
        return "Processing..." if self.locked else "Confirm Selection"

    def options(self) -> List[Tuple[Plan, bool]]:
        return [(plan, plan.id == self.selected_id) for plan in self.catalog]

    def open(self) -> None:
        self.is_open = True

    def cancel(self) -> bool:
        # Cancel applies before a request is sent, never mid-flight
        if self.locked:
            return False
        self.is_open = False
        return True

    def select(self, plan_id: str) -> None:
        if plan_id not in self.catalog:
            raise ValueError(f"Unknown plan: {plan_id}")
        if self.locked:
            logger.debug(f"Ignoring selection of {plan_id} during checkout")
            return
        self.selected_id = plan_id

    async def confirm(self) -> Optional[CheckoutResult]:
        if not self.confirm_enabled:
            return None
        return await self.orchestrator.confirm(self.selected_id)

    def _on_checkout_change(self, orchestrator: CheckoutOrchestrator) -> None:
        # The success view replaces the dialog
        if orchestrator.state == CheckoutState.SUCCEEDED:
            self.is_open = False
