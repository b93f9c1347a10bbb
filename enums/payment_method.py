from enum import Enum


class PaymentMethod(Enum):
    MANUAL = "manual"        # Bank transfer, confirmed by admin
    PAYSTACK = "paystack"    # Hosted card/bank popup
    CASH = "cash"            # Cash on delivery

    @property
    def requires_hosted_transaction(self) -> bool:
        return self == PaymentMethod.PAYSTACK
