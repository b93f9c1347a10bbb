"""
API router for the storefront checkout core.

Endpoints:
- POST /api/orders                  create an order (re-price, reserve, persist, confirm, pay)
- POST /api/orders/lookup           order lookup by id + customer email
- POST /api/coupons/validate        standalone discount code check
- GET  /api/inventory/{id}/stock    live stock for one color x size variant

Failures raise StorefrontException subclasses; app.py renders them as
{"success": false, "error": ..., "code": ...}.
"""

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Request, Query, status
from pydantic import BaseModel, ConfigDict, Field

from exceptions.coupon import CouponNotFoundException
from models.checkout import CheckoutRequestDTO, EMAIL_PATTERN
from services.coupon import CouponService
from services.inventory import InventoryService
from services.order import OrderService
from utils.variant import make_variant_key

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api", tags=["api"])


def generate_correlation_id() -> str:
    """Generate unique correlation ID for request tracing."""
    return f"{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:8]}"


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_inventory_service(request: Request) -> InventoryService:
    return request.app.state.inventory_service


def request_origin(request: Request) -> str:
    return request.headers.get("origin") or str(request.base_url).rstrip('/')


class OrderLookupPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId", min_length=1, max_length=50)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=254)


class CouponValidatePayload(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    subtotal: int = Field(..., ge=0, le=10_000_000)


@api_router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(request: Request, payload: CheckoutRequestDTO):
    """
    Create an order from a submitted cart.

    Returns:
        201: {"success": true, "orderId", "state", "subtotal", "shippingCost", "discount", "total", "paystack"}
        400: INVALID_PRODUCT, PRICE_MISMATCH, VALIDATION_ERROR
        409: INSUFFICIENT_STOCK
        502/503: PAYMENT_INIT_FAILED / PAYMENT_NOT_CONFIGURED (order already created)
    """
    correlation_id = generate_correlation_id()
    logger.info(f"[{correlation_id}] Checkout started ({len(payload.items)} line(s), {payload.payment_method.value})")

    result = await get_order_service(request).create_order(payload, origin=request_origin(request))

    logger.info(f"[{correlation_id}] ✅ Order {result.order_id} created ({result.state.value})")
    return {"success": True, **result.model_dump(mode="json", by_alias=True)}


@api_router.post("/orders/lookup")
async def lookup_order(request: Request, payload: OrderLookupPayload):
    order = await get_order_service(request).lookup_order(payload.order_id, payload.email)
    return {"success": True, "order": order.model_dump(mode="json")}


@api_router.post("/coupons/validate")
async def validate_coupon(payload: CouponValidatePayload):
    """
    Same check the checkout path applies. An unknown or inactive code is a 404;
    a known code that fails a rule answers valid=false with the reason.
    """
    result = await CouponService.validate(payload.code, payload.subtotal)
    if result.coupon is None:
        raise CouponNotFoundException(payload.code.upper())
    return {
        "success": True,
        "valid": result.valid,
        "discount": result.discount,
        "reason": result.reason,
        "code": result.coupon.code,
        "type": result.coupon.type.value,
    }


@api_router.get("/inventory/{product_id}/stock")
async def get_variant_stock(request: Request, product_id: str,
                            color: str = Query(..., min_length=1, max_length=50),
                            size: str = Query(..., min_length=1, max_length=50)):
    variant_key = make_variant_key(color, size)
    stock = await get_inventory_service(request).get_stock(product_id, variant_key)
    return {"success": True, "productId": product_id, "variantKey": variant_key, **stock.model_dump()}
