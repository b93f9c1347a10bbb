import logging
import secrets

import config
from db import session_scope
from enums.checkout_state import CheckoutState
from enums.order_status import OrderStatus
from enums.payment_status import PaymentStatus
from exceptions.base import StorefrontException
from exceptions.order import InvalidProductException, PriceMismatchException, OrderNotFoundException
from exceptions.payment import PaymentException
from models.checkout import CheckoutRequestDTO, CheckoutResultDTO
from models.coupon import CouponDTO
from models.order import OrderDTO, OrderItemDTO
from models.payment import PaymentInitDTO
from repositories.order import OrderRepository
from repositories.product import ProductRepository
from services.coupon import CouponService
from services.inventory import InventoryService
from services.payment import PaymentService
from utils.checkout_state_machine import CheckoutStateMachine

logger = logging.getLogger(__name__)


class OrderService:
    """
    Transactional boundary around checkout.

    Pricing, discount and totals are always recomputed from the catalog; the client's
    figures are only compared against them. Stock moves through the inventory service:
    reserve, then persist + confirm in one transaction, then payment initialization.
    """

    def __init__(self, inventory_service: InventoryService, payment_service: PaymentService,
                 price_tolerance: int | None = None):
        self.inventory = inventory_service
        self.payment = payment_service
        self.price_tolerance = config.PRICE_MISMATCH_TOLERANCE if price_tolerance is None else price_tolerance

    @staticmethod
    def generate_order_id() -> str:
        return 'LV-' + secrets.token_hex(4).upper()

    async def create_order(self, request: CheckoutRequestDTO, origin: str | None = None) -> CheckoutResultDTO:
        """
        Orchestrates order creation with stock reservation.

        Flow:
        1. Re-price every line from the catalog (unknown product -> InvalidProductException)
        2. Re-validate the discount code and recompute the discount
        3. Recompute total = subtotal + shipping - discount, compare with client total
        4. Reserve stock for every line (all or nothing)
        5-7. In one transaction: persist order, record coupon usage, confirm reservation
        8. Initialize the hosted payment if the payment method needs one

        Any failure after step 4 and before step 7 commits releases the order's holds.
        A failure in step 8 leaves the confirmed order in place and raises
        PaymentInitializationException carrying the order id.

        Args:
            request: Validated checkout payload
            origin: Request origin, used for the payment callback URL

        Returns:
            CheckoutResultDTO with server-computed figures and the payment handle (if any)

        Raises:
            InvalidProductException, PriceMismatchException, InsufficientStockException,
            PaymentNotConfiguredException, PaymentInitializationException
            (each with details['checkout_state'] set to the state the attempt ended in)
        """
        order_id = self.generate_order_id()
        checkout = CheckoutStateMachine(order_id)

        try:
            # 1-2. Authoritative pricing and discount
            items, subtotal = await self._price_items(request)
            discount, coupon = await self._resolve_discount(request.discount_code, subtotal)
            checkout.advance(CheckoutState.PRICED)

            # 3. Total check
            total = subtotal + request.shipping_cost - discount
            if abs(total - request.total) > self.price_tolerance:
                logger.warning(
                    f"Price mismatch for order {order_id}: calculated={total} submitted={request.total}"
                )
                raise PriceMismatchException(total, request.total, self.price_tolerance)

            # 4. Hold stock
            await self.inventory.reserve_items(items, order_id)
            checkout.advance(CheckoutState.RESERVED)

            # 5-7. Persist, record coupon usage, deduct stock
            async with session_scope() as session:
                order_dto = OrderDTO(
                    id=order_id,
                    customer_name=request.customer_name,
                    customer_email=request.customer_email,
                    customer_phone=request.customer_phone,
                    shipping_address=request.shipping_address.model_dump(),
                    items=items,
                    subtotal=subtotal,
                    shipping_cost=request.shipping_cost,
                    discount=discount,
                    total=total,
                    payment_method=request.payment_method,
                    payment_status=PaymentStatus.PENDING,
                    order_status=OrderStatus.PENDING,
                    notes=request.notes or None
                )
                await OrderRepository.create(order_dto, session)
                checkout.advance(CheckoutState.PERSISTED)

                if coupon is not None and discount > 0:
                    await CouponService.record_usage(coupon, order_id, request.customer_email, discount, session)

                await self.inventory.confirm_reservation(order_id, items, session=session)
            checkout.advance(CheckoutState.CONFIRMED)

        except Exception as e:
            if checkout.has_reserved:
                try:
                    await self.inventory.cancel_reservation(order_id)
                except Exception as cancel_error:
                    logger.critical(f"Failed to release reservations for order {order_id}: {cancel_error}")
            checkout.fail()
            if isinstance(e, StorefrontException):
                e.details['checkout_state'] = checkout.state.value
            logger.info(f"Checkout for order {order_id} ended in {checkout.state.value}: {e}")
            raise

        logger.info(f"✅ Order {order_id} created (total {total}, discount {discount}, "
                    f"payment {request.payment_method.value})")

        # 8. Hosted payment; the confirmed order stays even if this fails
        paystack: PaymentInitDTO | None = None
        if request.payment_method.requires_hosted_transaction:
            try:
                paystack = await self.payment.initialize_transaction(
                    order_id, request.customer_email, total, origin
                )
            except PaymentException as e:
                e.details['checkout_state'] = checkout.state.value
                e.details['order_id'] = order_id
                logger.error(f"Order {order_id} confirmed but payment initialization failed: {e}")
                raise
            checkout.advance(CheckoutState.PAYMENT_INITIATED)

        return CheckoutResultDTO(
            order_id=order_id,
            state=checkout.state,
            subtotal=subtotal,
            shipping_cost=request.shipping_cost,
            discount=discount,
            total=total,
            paystack=paystack
        )

    @staticmethod
    async def _price_items(request: CheckoutRequestDTO) -> tuple[list[OrderItemDTO], int]:
        """Replace client prices and names with catalog values; returns (items, subtotal)."""
        async with session_scope() as session:
            products = await ProductRepository.get_by_ids([line.id for line in request.items], session)

        items = []
        subtotal = 0
        for line in request.items:
            product = products.get(line.id)
            if product is None:
                raise InvalidProductException(line.id, line.name or None)
            items.append(OrderItemDTO(
                id=line.id,
                name=product.name,
                color=line.color,
                size=line.size,
                quantity=line.quantity,
                price=product.price
            ))
            subtotal += product.price * line.quantity
        return items, subtotal

    @staticmethod
    async def _resolve_discount(discount_code: str | None, subtotal: int) -> tuple[int, CouponDTO | None]:
        # An unusable code is not an error: the order proceeds at full price
        if not discount_code:
            return 0, None
        validation = await CouponService.validate(discount_code, subtotal)
        if not validation.valid:
            logger.info(f"Discount code {discount_code} ignored: {validation.reason}")
            return 0, None
        return validation.discount, validation.coupon

    @staticmethod
    async def lookup_order(order_id: str, email: str) -> OrderDTO:
        """
        Order by id for the customer who placed it. The email must match exactly (case-sensitive).

        Raises:
            OrderNotFoundException: no order with that id and email
        """
        async with session_scope() as session:
            order = await OrderRepository.get_by_id_and_email(order_id, email, session)
        if order is None:
            raise OrderNotFoundException(order_id)
        return order
