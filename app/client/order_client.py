import logging
from typing import Any, Optional
import httpx
from pydantic import ValidationError as SchemaError

from app.client.widget import CheckoutSuccess
from app.core.exceptions import OrderRequestFailed
from app.schemas.payment import OrderDescriptor

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 200


def _error_message(resp: httpx.Response) -> str:
    """The server's short `error` string, or the generic message."""
    try:
        data: Any = resp.json()
    except ValueError:
        return OrderRequestFailed.public_message
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, str) and error.strip():
        return error.strip()[:MAX_ERROR_LENGTH]
    return OrderRequestFailed.public_message


class OrderClient:
    """
    Talks to the order endpoints of the backend.

    Errors of any kind surface as OrderRequestFailed whose public_message is
    safe to show to the user.
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def create_order(self, amount: int) -> OrderDescriptor:
        try:
            async with self._client() as client:
                resp = await client.post("/api/create-order", json={"amount": amount})
        except httpx.TimeoutException as e:
            logger.error(f"Order request for amount {amount} timed out after {self.timeout}s")
            raise OrderRequestFailed(f"create-order timed out: {e}", public_message="timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"Order request for amount {amount} failed: {type(e).__name__}: {e}")
            raise OrderRequestFailed(f"create-order transport error: {type(e).__name__}") from e

        if resp.is_error:
            message = _error_message(resp)
            logger.error(f"Order request for amount {amount} returned {resp.status_code}: {message}")
            raise OrderRequestFailed(f"create-order returned {resp.status_code}", public_message=message)

        try:
            return OrderDescriptor.model_validate(resp.json())
        except (ValueError, SchemaError) as e:
            logger.error(f"Malformed order response: {type(e).__name__}")
            raise OrderRequestFailed("create-order returned a malformed body") from e

    async def verify_payment(self, success: CheckoutSuccess) -> bool:
        if not success.order_id or not success.signature:
            logger.warning(f"Payment {success.payment_id} has no order id or signature to verify")
            return False

        body = {
            "razorpay_order_id": success.order_id,
            "razorpay_payment_id": success.payment_id,
            "razorpay_signature": success.signature,
        }
        try:
            async with self._client() as client:
                resp = await client.post("/api/verify-payment", json=body)
        except httpx.HTTPError as e:
            logger.error(f"Verification request for payment {success.payment_id} failed: {type(e).__name__}")
            return False

        if resp.is_error:
            logger.warning(
                f"Payment {success.payment_id} was not verified ({resp.status_code}): {_error_message(resp)}"
            )
            return False
        return True
