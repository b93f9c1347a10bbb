import asyncio
import logging

import aiohttp

import config
from db import session_scope
from exceptions.payment import PaymentNotConfiguredException, PaymentInitializationException
from models.payment import PaymentInitDTO
from repositories.order import OrderRepository

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Outbound call into the hosted payment provider (Paystack).

    Only transaction initialization lives here; the provider's own transaction
    lifecycle (webhooks, verification, refunds) is handled elsewhere.
    """

    def __init__(self, secret_key: str | None = None, public_key: str | None = None,
                 api_url: str | None = None, timeout_seconds: int | None = None):
        self.secret_key = config.PAYSTACK_SECRET_KEY if secret_key is None else secret_key
        self.public_key = config.PAYSTACK_PUBLIC_KEY if public_key is None else public_key
        self.api_url = (api_url or config.PAYSTACK_API_URL).rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or config.PAYSTACK_TIMEOUT_SECONDS)

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    @staticmethod
    def build_callback_url(order_id: str, origin: str | None) -> str:
        base = (config.FRONTEND_URL or origin or "").rstrip('/')
        return f"{base}/order-confirmation?order={order_id}&status=success"

    async def _post(self, path: str, payload: dict) -> dict:
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json"
        }
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(f"{self.api_url}{path}", json=payload, headers=headers) as response:
                body = await response.json(content_type=None)
                if response.status >= 400 and isinstance(body, dict):
                    body.setdefault("status", False)
                return body

    async def initialize_transaction(self, order_id: str, email: str, amount: int,
                                     origin: str | None = None) -> PaymentInitDTO:
        """
        Open a hosted transaction for an order and store the provider reference on it.

        Args:
            order_id: Order identifier, also sent as the transaction reference
            email: Customer email
            amount: Order total in main currency units (sent in sub-units)
            origin: Request origin, used for the callback URL when FRONTEND_URL is unset

        Raises:
            PaymentNotConfiguredException: no secret key configured
            PaymentInitializationException: provider unreachable or rejected the request
        """
        if not self.is_configured:
            raise PaymentNotConfiguredException(order_id)

        payload = {
            "email": email,
            "amount": int(round(amount * 100)),
            "reference": order_id,
            "callback_url": self.build_callback_url(order_id, origin),
            "metadata": {
                "order_id": order_id,
                "custom_fields": [
                    {"display_name": "Order ID", "variable_name": "order_id", "value": order_id}
                ]
            }
        }

        try:
            body = await self._post("/transaction/initialize", payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Payment provider unreachable for order {order_id}: {e}")
            raise PaymentInitializationException(order_id, str(e) or e.__class__.__name__) from e

        if not body or not body.get("status"):
            reason = (body or {}).get("message") or "Paystack initialization failed"
            logger.error(f"Payment initialization rejected for order {order_id}: {reason}")
            raise PaymentInitializationException(order_id, reason)

        data = body.get("data") or {}
        reference = data.get("reference") or order_id
        async with session_scope() as session:
            await OrderRepository.update_payment_reference(order_id, reference, session)

        logger.info(f"Payment initialized for order {order_id} (reference {reference})")
        return PaymentInitDTO(
            access_code=data.get("access_code"),
            authorization_url=data.get("authorization_url"),
            reference=reference,
            public_key=self.public_key or None
        )
