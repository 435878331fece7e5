import asyncio
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from razorpay.errors import SignatureVerificationError as RazorpaySignatureError

from app.api.deps import get_payment_service
from app.client.widget import CheckoutOptions
from app.core.exceptions import OrderRequestFailed, WidgetUnavailable
from app.main import app
from app.schemas.payment import OrderDescriptor
from app.services.payment_service import PaymentService


class FakeOrders:
    """Stands in for razorpay.Client.order."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.response: Optional[Dict[str, Any]] = None
        self.error: Optional[Exception] = None

    def create(self, data=None):
        self.calls.append(data)
        if self.error is not None:
            raise self.error
        if self.response is not None:
            return self.response
        return {
            "id": "order_abc",
            "entity": "order",
            "amount": data["amount"],
            "amount_paid": 0,
            "currency": data["currency"],
            "receipt": data["receipt"],
            "status": "created",
            "notes": [],
        }


class FakeUtility:
    def __init__(self):
        self.valid = True
        self.calls: List[Dict[str, Any]] = []

    def verify_payment_signature(self, params):
        self.calls.append(params)
        if not self.valid:
            raise RazorpaySignatureError("Razorpay Signature Verification Failed")
        return True


class FakeRazorpayClient:
    def __init__(self):
        self.order = FakeOrders()
        self.utility = FakeUtility()


class FakeGateway:
    """Order gateway that records calls and can be held open with `gate`."""

    def __init__(self, order: Optional[OrderDescriptor] = None):
        self.order = order or OrderDescriptor(orderId="order_abc", amount=99900, currency="INR")
        self.error: Optional[Exception] = None
        self.verified = True
        self.calls: List[int] = []
        self.verify_calls: List[Any] = []
        self.gate: Optional[asyncio.Event] = None

    async def create_order(self, amount: int) -> OrderDescriptor:
        self.calls.append(amount)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.order

    async def verify_payment(self, success) -> bool:
        self.verify_calls.append(success)
        return self.verified


class FakeWidget:
    """Runs `script(on_success, on_failure, on_dismiss)` when opened."""

    def __init__(self, script: Optional[Callable] = None):
        self.script = script
        self.opened = 0

    def open(self, on_success, on_failure, on_dismiss) -> None:
        self.opened += 1
        if self.script is not None:
            self.script(on_success, on_failure, on_dismiss)


class FakeLoader:
    def __init__(self, widget: Optional[FakeWidget] = None, available: bool = True):
        self.widget = widget or FakeWidget()
        self.available = available
        self.options: List[CheckoutOptions] = []

    async def widget_for(self, options: CheckoutOptions) -> FakeWidget:
        self.options.append(options)
        if not self.available:
            raise WidgetUnavailable("script failed to load")
        return self.widget


def pays(payment_id: str = "pay_123") -> Callable:
    def script(on_success, on_failure, on_dismiss):
        on_success({
            "razorpay_payment_id": payment_id,
            "razorpay_order_id": "order_abc",
            "razorpay_signature": "sig",
        })
    return script


def declines(description: str = "card declined") -> Callable:
    def script(on_success, on_failure, on_dismiss):
        on_failure({"error": {"code": "BAD_REQUEST_ERROR", "description": description}})
    return script


def closes(on_success, on_failure, on_dismiss):
    on_dismiss()


def hanging_transport(hangs: int = 1):
    """Script transport whose first `hangs` requests never get a response."""
    seen = []

    async def handler(request):
        seen.append(request)
        if len(seen) <= hangs:
            await asyncio.Event().wait()
        return httpx.Response(200, text="window.Razorpay = {};")

    return httpx.MockTransport(handler), seen


@pytest.fixture()
def razorpay_client():
    return FakeRazorpayClient()


@pytest.fixture()
def payment_service(razorpay_client):
    return PaymentService(razorpay_client)


@pytest.fixture()
def client(payment_service):
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def server_error():
    return OrderRequestFailed(
        "create-order returned 500",
        public_message="Internal Server Error while creating order.",
    )
