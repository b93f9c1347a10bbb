from enum import Enum


class CheckoutState(Enum):
    STARTED = "STARTED"                        # Request accepted
    PRICED = "PRICED"                          # Items re-priced, discount recomputed
    RESERVED = "RESERVED"                      # Stock held in the reservation ledger
    PERSISTED = "PERSISTED"                    # Order row written (uncommitted)
    CONFIRMED = "CONFIRMED"                    # Reservation converted into a stock deduction
    PAYMENT_INITIATED = "PAYMENT_INITIATED"    # Hosted payment transaction created
    ABORTED = "ABORTED"                        # Rejected before any side effect
    ROLLED_BACK = "ROLLED_BACK"                # Reservation released, no order row
