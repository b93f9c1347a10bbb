"""
Admin router for stock operations.

Endpoints:
- GET  /api/admin/inventory/low-stock                 variants at or below a restock threshold
- POST /api/admin/inventory/release/{order_id}        drop every hold an order has
- GET  /api/admin/inventory/reservations/{order_id}   holds currently stored for an order
- PUT  /api/admin/inventory/{id}/stock                set the absolute total of one variant

Authentication sits in front of this router and is not handled here.
"""

from fastapi import APIRouter, Request, Query
from pydantic import BaseModel, Field

import config
from utils.variant import make_variant_key
from web.api_router import get_inventory_service

admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


class StockUpdatePayload(BaseModel):
    color: str = Field(..., min_length=1, max_length=50)
    size: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(..., le=1_000_000)


@admin_router.get("/inventory/low-stock")
async def get_low_stock(request: Request, threshold: int | None = Query(None, ge=0)):
    """
    Raw totals, reservations ignored. Threshold defaults to LOW_STOCK_THRESHOLD.
    """
    if threshold is None:
        threshold = config.LOW_STOCK_THRESHOLD
    low_stock = await get_inventory_service(request).get_low_stock(threshold)
    return {"success": True, "lowStock": [item.model_dump() for item in low_stock], "threshold": threshold}


@admin_router.post("/inventory/release/{order_id}")
async def release_reservation(request: Request, order_id: str):
    released = await get_inventory_service(request).cancel_reservation(order_id)
    return {"success": True, "message": "Reservation released", "released": released}


@admin_router.get("/inventory/reservations/{order_id}")
async def get_reservations(request: Request, order_id: str):
    reservations = await get_inventory_service(request).get_reservations(order_id)
    return {"success": True, "reservations": [r.model_dump(mode="json") for r in reservations]}


@admin_router.put("/inventory/{product_id}/stock")
async def update_stock(request: Request, product_id: str, payload: StockUpdatePayload):
    """
    Absolute set, clamped to 0. Existing holds are left alone.

    Returns:
        200: {"success": true, "productId", "variantKey", "total"}
        404: PRODUCT_NOT_FOUND
    """
    variant_key = make_variant_key(payload.color, payload.size)
    total = await get_inventory_service(request).update_stock(product_id, variant_key, payload.quantity)
    return {"success": True, "productId": product_id, "variantKey": variant_key, "total": total}
