"""
Checkout State Machine for tracking a single checkout attempt.

This module implements a finite state machine over the phases of one order
creation, so the orchestrator can tell exactly how far an attempt got when it
fails, and every phase change is logged.
"""

import logging
from datetime import datetime
from typing import Dict, List, Set

from enums.checkout_state import CheckoutState
from exceptions.order import InvalidCheckoutTransitionException

logger = logging.getLogger(__name__)


class CheckoutTransition:
    """Represents a valid state transition with metadata"""

    def __init__(self, from_state: CheckoutState, to_state: CheckoutState, description: str = ""):
        self.from_state = from_state
        self.to_state = to_state
        self.description = description

    def __repr__(self):
        return f"{self.from_state.value} -> {self.to_state.value}"


class CheckoutStateMachine:
    """
    Finite state machine for one checkout attempt.

    Valid transitions:
    - STARTED -> PRICED -> RESERVED -> PERSISTED -> CONFIRMED -> PAYMENT_INITIATED (success)
    - STARTED | PRICED -> ABORTED (nothing written)
    - RESERVED | PERSISTED -> ROLLED_BACK (holds released, no order row)

    CONFIRMED is a successful outcome for orders that need no hosted payment, but it
    is not final: it can still advance to PAYMENT_INITIATED, and fail() keeps it.
    """

    VALID_TRANSITIONS: List[CheckoutTransition] = [
        CheckoutTransition(CheckoutState.STARTED, CheckoutState.PRICED,
                           description="Cart re-priced from catalog and discount recomputed"),
        CheckoutTransition(CheckoutState.STARTED, CheckoutState.ABORTED,
                           description="Rejected while pricing (unknown product)"),
        CheckoutTransition(CheckoutState.PRICED, CheckoutState.RESERVED,
                           description="All lines held in the reservation ledger"),
        CheckoutTransition(CheckoutState.PRICED, CheckoutState.ABORTED,
                           description="Rejected before any hold (price mismatch, insufficient stock)"),
        CheckoutTransition(CheckoutState.RESERVED, CheckoutState.PERSISTED,
                           description="Order row written"),
        CheckoutTransition(CheckoutState.RESERVED, CheckoutState.ROLLED_BACK,
                           description="Failure after reserving, holds released"),
        CheckoutTransition(CheckoutState.PERSISTED, CheckoutState.CONFIRMED,
                           description="Holds converted into stock deductions"),
        CheckoutTransition(CheckoutState.PERSISTED, CheckoutState.ROLLED_BACK,
                           description="Failure before confirmation, order discarded and holds released"),
        CheckoutTransition(CheckoutState.CONFIRMED, CheckoutState.PAYMENT_INITIATED,
                           description="Hosted payment transaction opened"),
    ]

    FINAL_STATES: Set[CheckoutState] = {
        CheckoutState.PAYMENT_INITIATED,
        CheckoutState.ABORTED,
        CheckoutState.ROLLED_BACK,
    }

    _transition_map: Dict[CheckoutState, Dict[CheckoutState, CheckoutTransition]] = None

    @classmethod
    def _build_transition_map(cls):
        """Build internal transition map for fast lookups"""
        if cls._transition_map is None:
            cls._transition_map = {}
            for transition in cls.VALID_TRANSITIONS:
                cls._transition_map.setdefault(transition.from_state, {})[transition.to_state] = transition

    @classmethod
    def is_valid_transition(cls, from_state: CheckoutState, to_state: CheckoutState) -> bool:
        cls._build_transition_map()
        return to_state in cls._transition_map.get(from_state, {})

    @classmethod
    def get_valid_transitions(cls, from_state: CheckoutState) -> List[CheckoutState]:
        cls._build_transition_map()
        return list(cls._transition_map.get(from_state, {}).keys())

    @classmethod
    def is_final_state(cls, state: CheckoutState) -> bool:
        return state in cls.FINAL_STATES

    def __init__(self, order_id: str):
        self.order_id = order_id
        self.state = CheckoutState.STARTED
        self.history: List[tuple[CheckoutState, datetime]] = [(CheckoutState.STARTED, datetime.now())]

    @property
    def has_reserved(self) -> bool:
        """True once holds exist that a failure path must release."""
        return self.state in (CheckoutState.RESERVED, CheckoutState.PERSISTED)

    def advance(self, to_state: CheckoutState) -> CheckoutState:
        """
        Move the attempt to `to_state`.

        Raises:
            InvalidCheckoutTransitionException: if the transition is not allowed
        """
        from_state = self.state
        if not self.is_valid_transition(from_state, to_state):
            logger.error(f"Invalid checkout transition for order {self.order_id}: "
                         f"{from_state.value} -> {to_state.value}")
            raise InvalidCheckoutTransitionException(from_state.value, to_state.value)

        self.state = to_state
        self.history.append((to_state, datetime.now()))
        logger.info(f"CHECKOUT_TRANSITION: Order {self.order_id} {from_state.value} -> {to_state.value}")
        return to_state

    def fail(self) -> CheckoutState:
        """Move to the failure state matching how far the attempt got."""
        if self.has_reserved:
            return self.advance(CheckoutState.ROLLED_BACK)
        if self.state in (CheckoutState.STARTED, CheckoutState.PRICED):
            return self.advance(CheckoutState.ABORTED)
        return self.state
