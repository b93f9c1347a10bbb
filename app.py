import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from db import create_db_and_tables
from exceptions.base import StorefrontException
from exceptions.payment import PaymentException
from jobs.reservation_sweep_job import ReservationSweepJob
from repositories.reservation import ReservationLedger, create_reservation_ledger
from services.inventory import InventoryService
from services.order import OrderService
from services.payment import PaymentService
from web.admin_router import admin_router
from web.api_router import api_router

logger = logging.getLogger(__name__)


def create_app(ledger: ReservationLedger | None = None,
               payment_service: PaymentService | None = None,
               run_sweeper: bool = True) -> FastAPI:
    """
    Build the application.

    Services are created here so the router can reach them through app.state
    without a lifespan run (tests drive the app through an ASGI transport).
    The lifespan creates tables and owns the reservation sweep task.
    """
    ledger = ledger or create_reservation_ledger()
    inventory_service = InventoryService(ledger)
    order_service = OrderService(inventory_service, payment_service or PaymentService())
    sweep_job = ReservationSweepJob(inventory_service)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan event handler for startup and shutdown."""
        await create_db_and_tables()
        if run_sweeper:
            await sweep_job.start()
            logging.info("[Startup] Reservation sweep job started")
        yield
        logging.warning('Shutting down..')
        await sweep_job.stop()
        logging.warning('Bye!')

    app = FastAPI(lifespan=lifespan)
    app.state.ledger = ledger
    app.state.inventory_service = inventory_service
    app.state.order_service = order_service
    app.state.sweep_job = sweep_job

    app.include_router(api_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.exception_handler(StorefrontException)
    async def storefront_exception_handler(request: Request, exc: StorefrontException):
        content = {"success": False, "error": exc.message, "code": exc.code}
        # The order exists even though payment could not start
        if isinstance(exc, PaymentException) and exc.details.get('order_id'):
            content["orderId"] = exc.details['order_id']
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc!r}")
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(part) for part in error["loc"] if part != "body"), "message": error["msg"]}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Validation failed", "code": "VALIDATION_ERROR", "details": errors}
        )

    @app.exception_handler(Exception)
    async def exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"}
        )

    return app
