from pydantic import BaseModel, ConfigDict, Field

from enums.checkout_state import CheckoutState
from enums.payment_method import PaymentMethod
from models.payment import PaymentInitDTO

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CartLineDTO(BaseModel):
    """A submitted cart line. `price` is the client's view and is never trusted."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, max_length=50)
    name: str = Field("", max_length=200)
    color: str = Field(..., min_length=1, max_length=50)
    size: str = Field(..., min_length=1, max_length=50)
    quantity: int = Field(..., ge=1, le=100)
    price: int | None = Field(None, ge=0, le=1_000_000)

    @property
    def variant_key(self) -> str:
        return f"{self.color}-{self.size}"


class ShippingAddressDTO(BaseModel):
    address: str = Field(..., min_length=5, max_length=200)
    city: str = Field(..., min_length=2, max_length=50)
    state: str = Field(..., min_length=2, max_length=50)
    zip: str = Field(..., pattern=r"^[\w\-\s]{3,10}$")


class CheckoutRequestDTO(BaseModel):
    """Order creation payload (camelCase on the wire, snake_case in code)."""
    model_config = ConfigDict(populate_by_name=True)

    customer_name: str = Field(..., alias="customerName", min_length=2, max_length=100)
    customer_email: str = Field(..., alias="customerEmail", pattern=EMAIL_PATTERN, max_length=254)
    customer_phone: str | None = Field(None, alias="customerPhone", pattern=r"^[\d\s\-\+\(\)]{7,20}$")
    shipping_address: ShippingAddressDTO = Field(..., alias="shippingAddress")
    items: list[CartLineDTO] = Field(..., min_length=1, max_length=50)
    subtotal: int = Field(..., ge=0, le=10_000_000)
    shipping_cost: int = Field(0, alias="shippingCost", ge=0, le=10_000_000)
    discount: int = Field(0, ge=0)  # Client's figure; recomputed server-side
    total: int = Field(..., ge=0, le=10_000_000)
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")
    discount_code: str | None = Field(None, alias="discountCode", max_length=50)
    notes: str | None = Field(None, max_length=1000)


class CheckoutResultDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., serialization_alias="orderId")
    state: CheckoutState
    subtotal: int
    shipping_cost: int = Field(..., serialization_alias="shippingCost")
    discount: int
    total: int
    paystack: PaymentInitDTO | None = None
