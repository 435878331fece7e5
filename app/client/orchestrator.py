"""
Client-side checkout state machine.

    IDLE -> REQUESTING -> WIDGET_OPEN -> SUCCEEDED | FAILED | (cancelled) IDLE

A confirmation is accepted while IDLE or after a failure. Everything else is
ignored, so one orchestrator never has two attempts in flight. A success is
left with dismiss(); a cancelled widget goes straight back to IDLE.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol

from app.client.order_client import OrderClient
from app.client.widget import (
    CheckoutCancelled,
    CheckoutFailure,
    CheckoutOptions,
    CheckoutResult,
    CheckoutScriptLoader,
    CheckoutSuccess,
    WidgetFactory,
    WidgetSession,
)
from app.core.config import Settings
from app.core.exceptions import OrderRequestFailed, WidgetUnavailable
from app.core.plans import PLANS, PlanCatalog
from app.schemas.payment import OrderDescriptor
from app.schemas.plan import Plan

logger = logging.getLogger(__name__)

INVALID_PLAN = "Invalid plan selected"
VERIFICATION_FAILED = "Payment verification failed"


class CheckoutState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    WIDGET_OPEN = "widget_open"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OrderGateway(Protocol):
    async def create_order(self, amount: int) -> OrderDescriptor:
        ...

    async def verify_payment(self, success: CheckoutSuccess) -> bool:
        ...


Listener = Callable[["CheckoutOrchestrator"], None]


class CheckoutOrchestrator:
    def __init__(
        self,
        gateway: OrderGateway,
        widgets: CheckoutScriptLoader,
        public_key: str,
        catalog: PlanCatalog = PLANS,
        merchant_name: str = "My App Inc.",
        theme_color: Optional[str] = None,
        prefill: Optional[Dict[str, str]] = None,
        widget_timeout: Optional[float] = None,
        verify_payments: bool = False,
    ):
        self.gateway = gateway
        self.widgets = widgets
        self.public_key = public_key
        self.catalog = catalog
        self.merchant_name = merchant_name
        self.theme_color = theme_color
        self.prefill = dict(prefill or {})
        self.widget_timeout = widget_timeout
        self.verify_payments = verify_payments

        self.state = CheckoutState.IDLE
        self.result: Optional[CheckoutResult] = None
        self.order: Optional[OrderDescriptor] = None
        self._listeners: List[Listener] = []

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        widget_factory: WidgetFactory,
        **kwargs,
    ) -> "CheckoutOrchestrator":
        return cls(
            gateway=OrderClient(settings.BACKEND_URL, timeout=settings.ORDER_TIMEOUT_SECONDS),
            widgets=CheckoutScriptLoader(settings.CHECKOUT_SCRIPT_URL, widget_factory),
            public_key=settings.RAZORPAY_KEY_ID,
            merchant_name=settings.MERCHANT_NAME,
            theme_color=settings.CHECKOUT_THEME_COLOR,
            widget_timeout=settings.WIDGET_TIMEOUT_SECONDS,
            **kwargs,
        )

    # UI state

    @property
    def is_loading(self) -> bool:
        return self.state in (CheckoutState.REQUESTING, CheckoutState.WIDGET_OPEN)

    @property
    def accepts_confirmation(self) -> bool:
        return self.state in (CheckoutState.IDLE, CheckoutState.FAILED)

    @property
    def error(self) -> Optional[str]:
        if self.state == CheckoutState.FAILED and isinstance(self.result, CheckoutFailure):
            return self.result.reason
        return None

    @property
    def payment_id(self) -> Optional[str]:
        if self.state == CheckoutState.SUCCEEDED and isinstance(self.result, CheckoutSuccess):
            return self.result.payment_id
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, state: CheckoutState, result: Optional[CheckoutResult] = None) -> None:
        logger.info(f"Checkout {self.state.value} -> {state.value}")
        self.state = state
        self.result = result
        for listener in list(self._listeners):
            listener(self)

    def _settle(self, result: CheckoutResult) -> CheckoutResult:
        if isinstance(result, CheckoutSuccess):
            self._transition(CheckoutState.SUCCEEDED, result)
        elif isinstance(result, CheckoutCancelled):
            logger.info("Checkout closed by the user")
            self._transition(CheckoutState.IDLE, result)
        else:
            logger.warning(f"Checkout failed: {result.reason}")
            self._transition(CheckoutState.FAILED, result)
        self.order = None
        return result

    # Actions

    async def confirm(self, plan_id: str) -> Optional[CheckoutResult]:
        """
        Run one checkout attempt for `plan_id` and return its result.

        Returns the current result unchanged when an attempt is already in
        flight or a success has not been dismissed yet.
        """
        if not self.accepts_confirmation:
            logger.warning(f"Ignoring confirmation of {plan_id} while checkout is {self.state.value}")
            return self.result

        plan = self.catalog.get(plan_id)
        if plan is None:
            logger.warning(f"Unknown plan {plan_id!r}; not contacting the backend")
            return self._settle(CheckoutFailure(reason=INVALID_PLAN))

        self._transition(CheckoutState.REQUESTING)
        try:
            order = await self.gateway.create_order(plan.price)
        except OrderRequestFailed as e:
            return self._settle(CheckoutFailure(reason=e.public_message))
        except BaseException:
            # Cancellation included: never leave the attempt in flight
            self._settle(CheckoutFailure(reason=OrderRequestFailed.public_message))
            raise

        self.order = order
        self._transition(CheckoutState.WIDGET_OPEN)
        try:
            result = await self._run_widget(plan, order)
            if isinstance(result, CheckoutSuccess):
                result = await self._check_payment(result)
        except BaseException:
            self._settle(CheckoutFailure(reason=WidgetUnavailable.public_message))
            raise
        return self._settle(result)

    def dismiss(self) -> None:
        """Leave the success (or failure) view."""
        if self.state in (CheckoutState.SUCCEEDED, CheckoutState.FAILED):
            self._transition(CheckoutState.IDLE)

    async def _run_widget(self, plan: Plan, order: OrderDescriptor) -> CheckoutResult:
        options = CheckoutOptions(
            key=self.public_key,
            amount=order.amount,
            currency=order.currency,
            name=self.merchant_name,
            description=f"Upgrade to {plan.name} Plan",
            order_id=order.orderId,
            prefill=self.prefill,
            theme_color=self.theme_color,
        )
        try:
            widget = await self.widgets.widget_for(options)
            return await WidgetSession(widget).run(timeout=self.widget_timeout)
        except WidgetUnavailable as e:
            logger.error(f"Checkout unavailable for order {order.orderId}: {e}")
            return CheckoutFailure(reason=WidgetUnavailable.public_message)

    async def _check_payment(self, success: CheckoutSuccess) -> CheckoutResult:
        if not self.verify_payments:
            logger.warning(f"Payment {success.payment_id} accepted without server-side signature verification")
            return success

        try:
            verified = await self.gateway.verify_payment(success)
        except OrderRequestFailed as e:
            logger.error(f"Could not verify payment {success.payment_id}: {e}")
            verified = False
        if not verified:
            return CheckoutFailure(reason=VERIFICATION_FAILED)
        logger.info(f"Payment {success.payment_id} verified")
        return success
