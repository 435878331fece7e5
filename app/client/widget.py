"""
Razorpay checkout widget, seen from the client.

The widget itself (its UI, card handling and signatures) belongs to the
provider. This module covers the parts the client owns:

- the tagged result of one checkout attempt (success, failure, cancelled)
- the option payload the widget is opened with
- a single-shot bridge from the widget's callbacks to an awaitable result
- lazy loading of the checkout script with an explicit ready/unavailable state
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Literal, Optional, Protocol, Union
import httpx
from pydantic import BaseModel, Field

from app.core.exceptions import WidgetUnavailable

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "Payment failed"
TIMEOUT_REASON = "timeout"


class CheckoutSuccess(BaseModel):
    kind: Literal["success"] = "success"
    payment_id: str
    order_id: Optional[str] = None
    signature: Optional[str] = None


class CheckoutFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    reason: str


class CheckoutCancelled(BaseModel):
    kind: Literal["cancelled"] = "cancelled"


CheckoutResult = Union[CheckoutSuccess, CheckoutFailure, CheckoutCancelled]


def success_from_payload(payload: Dict[str, Any]) -> CheckoutResult:
    """Parse the widget's `handler` payload."""
    payment_id = payload.get("razorpay_payment_id") if isinstance(payload, dict) else None
    if not payment_id:
        logger.error("Checkout success callback carried no payment id")
        return CheckoutFailure(reason=DEFAULT_FAILURE_REASON)
    return CheckoutSuccess(
        payment_id=payment_id,
        order_id=payload.get("razorpay_order_id"),
        signature=payload.get("razorpay_signature"),
    )


def failure_from_payload(payload: Dict[str, Any]) -> CheckoutFailure:
    """Parse the `payment.failed` payload, e.g. {"error": {"description": "card declined"}}."""
    error = payload.get("error") if isinstance(payload, dict) else None
    description = error.get("description") if isinstance(error, dict) else None
    return CheckoutFailure(reason=description or DEFAULT_FAILURE_REASON)


class CheckoutOptions(BaseModel):
    key: str  # public key id, never the secret
    amount: int
    currency: str
    name: str
    description: str
    order_id: str
    prefill: Dict[str, str] = Field(default_factory=dict)
    theme_color: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "key": self.key,
            "amount": self.amount,
            "currency": self.currency,
            "name": self.name,
            "description": self.description,
            "order_id": self.order_id,
            "prefill": dict(self.prefill),
        }
        if self.theme_color:
            payload["theme"] = {"color": self.theme_color}
        return payload


class CheckoutWidget(Protocol):
    """
    An opened Razorpay checkout. Bindings wire `on_success` to the `handler`
    option, `on_failure` to the `payment.failed` event and `on_dismiss` to
    `modal.ondismiss`.
    """

    def open(
        self,
        on_success: Callable[[Dict[str, Any]], None],
        on_failure: Callable[[Dict[str, Any]], None],
        on_dismiss: Callable[[], None],
    ) -> None:
        ...


# (script source, options) -> widget
WidgetFactory = Callable[[str, CheckoutOptions], CheckoutWidget]


class WidgetSession:
    """
    One checkout attempt. The first terminal callback settles the session;
    anything the widget reports afterwards is logged and dropped.

    Callbacks may arrive from another thread, so they are handed to the event
    loop with call_soon_threadsafe. Construct inside a running loop.
    """

    def __init__(self, widget: CheckoutWidget):
        self._widget = widget
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()

    @property
    def settled(self) -> bool:
        return self._future.done()

    def _settle(self, result: CheckoutResult) -> None:
        if self._future.done():
            logger.warning(f"Ignoring late checkout callback ({result.kind})")
            return
        self._future.set_result(result)

    def on_success(self, payload: Dict[str, Any]) -> None:
        self._loop.call_soon_threadsafe(self._settle, success_from_payload(payload))

    def on_failure(self, payload: Dict[str, Any]) -> None:
        self._loop.call_soon_threadsafe(self._settle, failure_from_payload(payload))

    def on_dismiss(self) -> None:
        self._loop.call_soon_threadsafe(self._settle, CheckoutCancelled())

    async def run(self, timeout: Optional[float] = None) -> CheckoutResult:
        try:
            self._widget.open(self.on_success, self.on_failure, self.on_dismiss)
        except Exception as e:
            raise WidgetUnavailable(f"Checkout widget failed to open: {type(e).__name__}: {e}") from e

        try:
            return await asyncio.wait_for(self._future, timeout)
        except asyncio.TimeoutError:
            # wait_for cancelled the future, so late callbacks are dropped
            logger.warning(f"Checkout widget gave no result within {timeout}s")
            return CheckoutFailure(reason=TIMEOUT_REASON)


class ScriptState(str, Enum):
    PENDING = "pending"
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class CheckoutScriptLoader:
    """
    Fetches the Razorpay checkout script on demand.

    Nothing is fetched at construction. Call `preload()` once the page is
    interactive to warm it in the background; `widget_for()` waits for the
    fetch when it has not finished. A successful fetch is reused for every
    later attempt. A failed, timed out or cancelled fetch marks the loader
    unavailable and is retried by the next attempt.
    """

    def __init__(
        self,
        script_url: str,
        widget_factory: WidgetFactory,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.script_url = script_url
        self.widget_factory = widget_factory
        self.timeout = timeout
        self._transport = transport
        self.state = ScriptState.PENDING
        self.script: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def ready(self) -> bool:
        return self.state == ScriptState.READY

    def preload(self) -> asyncio.Task:
        return self._start()

    def _start(self) -> asyncio.Task:
        # A finished load that did not succeed (failed, timed out or cancelled) is retried
        if self._task is None or (self._task.done() and not self.ready):
            self._task = asyncio.get_running_loop().create_task(self._load())
        return self._task

    async def ensure_ready(self) -> bool:
        if self.ready:
            return True
        task = self._start()
        # asyncio.wait does not raise when the load task itself is cancelled
        await asyncio.wait({task})
        if task.cancelled():
            return False
        return task.result()

    async def _fetch(self) -> str:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.get(self.script_url)
            resp.raise_for_status()
            return resp.text

    async def _load(self) -> bool:
        self.state = ScriptState.LOADING
        try:
            script = await asyncio.wait_for(self._fetch(), self.timeout)
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.error(f"Error loading checkout script from {self.script_url}: {type(e).__name__}: {e}")
            self.state = ScriptState.UNAVAILABLE
            return False
        except asyncio.CancelledError:
            logger.warning(f"Loading checkout script from {self.script_url} was cancelled")
            self.state = ScriptState.UNAVAILABLE
            raise

        self.script = script
        self.state = ScriptState.READY
        logger.info(f"Checkout script loaded from {self.script_url}")
        return True

    async def widget_for(self, options: CheckoutOptions) -> CheckoutWidget:
        if not await self.ensure_ready():
            raise WidgetUnavailable(f"Checkout script unavailable: {self.script_url}")
        return self.widget_factory(self.script, options)
