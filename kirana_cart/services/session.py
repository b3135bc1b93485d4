# session.py
import asyncio
import logging
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Optional, Sequence

from ..errors import CheckoutCancelledError, EmptyCartError, InvalidTransitionError
from ..models.cart import Receipt, StableCart, price_cart
from ..models.detection import Prediction
from ..models.product import PriceCatalog
from .capture_loop import DetectorStatus

logger = logging.getLogger(__name__)


class SessionState(Enum):
    SCANNING = "scanning"
    CHECKING_OUT = "checking_out"
    COMPLETE = "complete"


class CartSession:
    """
    One customer transaction: stable cart, pricing and the checkout state machine

    Scanning -> CheckingOut (checkout requested, capture suspended, cart frozen)
    -> Complete (after the checkout delay, receipt available) -> Scanning
    (acknowledged, cart and history cleared, capture resumed).

    Renderers subscribe to events and never touch session state directly.
    """

    def __init__(self, catalog: PriceCatalog, capture, checkout_delay: float = 2.0, currency: str = "Rs."):
        """
        Initialize session

        Args:
            catalog: Price catalog used at checkout
            capture: Capture loop controller feeding this session
            checkout_delay: Seconds spent in CheckingOut before Complete
            currency: Currency label for receipts
        """
        self.catalog = catalog
        self.capture = capture
        self.checkout_delay = checkout_delay
        self.currency = currency

        self.state = SessionState.SCANNING
        self.status = "Initializing..."
        self.receipt: Optional[Receipt] = None
        self.current_objects: List[Prediction] = []
        self._stable_cart: Dict[str, int] = {}
        self._completion: Optional[asyncio.Task] = None
        self._observers: List[Callable[[dict], None]] = []

        capture.attach(self)

    @property
    def stable_cart(self) -> StableCart:
        return MappingProxyType(dict(self._stable_cart))

    # ---------- Observers ----------

    def subscribe(self, callback: Callable[[dict], None]) -> Callable[[], None]:
        """
        Register an observer for session events

        Args:
            callback: Called with one event dict per change

        Returns:
            Function that removes the observer
        """
        self._observers.append(callback)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(self, event_type: str, **payload) -> None:
        event = {'type': event_type, **payload}
        for callback in list(self._observers):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Observer failed handling {event_type} event")

    def _set_state(self, state: SessionState) -> None:
        previous, self.state = self.state, state
        logger.info(f"Session state {previous.value} -> {state.value}")
        self._notify('state_changed', state=state.value, previous=previous.value)

    def set_status(self, status: str) -> None:
        if status == self.status:
            return
        self.status = status
        self._notify('status', status=status)

    def _status_for_cart(self) -> str:
        if self.capture.detector_status is DetectorStatus.UNREACHABLE:
            return "Detector Unreachable"
        return "Products Detected" if self._stable_cart else "No Products Detected"

    # ---------- Updates from the capture loop ----------

    def publish(self, cart: StableCart, snapshot: Sequence[Prediction] = ()) -> None:
        """Replace the stable cart with a freshly stabilized one"""
        if self.state is not SessionState.SCANNING:
            logger.debug(f"Cart frozen while {self.state.value}, update discarded")
            return

        self._stable_cart = dict(cart)
        self.current_objects = list(snapshot)
        self._notify('detections', predictions=[p.to_dict() for p in self.current_objects])
        self._notify('cart_updated', **self.summary())
        self.set_status(self._status_for_cart())

    def report_detector(self, status: DetectorStatus) -> None:
        if self.state is SessionState.SCANNING:
            self.set_status(self._status_for_cart())
        self._notify('detector_status', status=status.value)

    # ---------- Checkout state machine ----------

    def begin_checkout(self) -> Receipt:
        """
        Freeze the cart, price it and schedule completion

        Returns:
            Receipt for the frozen cart

        Raises:
            InvalidTransitionError: not in Scanning
            EmptyCartError: no stable items; state is unchanged
        """
        if self.state is not SessionState.SCANNING:
            raise InvalidTransitionError("request checkout", self.state)
        if not self._stable_cart:
            logger.info("Checkout rejected: cart is empty")
            raise EmptyCartError()

        self._set_state(SessionState.CHECKING_OUT)
        self.capture.suspend()
        self.receipt = price_cart(self._stable_cart, self.catalog, self.currency)
        if self.receipt.unpriced:
            logger.warning(f"No price configured for {', '.join(self.receipt.unpriced)}; priced at 0")
        logger.info(f"Checkout started: {self.receipt}")
        self.set_status("Processing Checkout...")

        self._completion = asyncio.get_running_loop().create_task(self._complete_after(self.checkout_delay))
        return self.receipt

    async def _complete_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._completion = None
        self._set_state(SessionState.COMPLETE)
        self.set_status("Checkout Complete")
        self._notify('checkout_complete', receipt=self.receipt.to_dict())

    async def request_checkout(self) -> Receipt:
        """
        Run a whole checkout: freeze, wait out the checkout delay, complete

        Returns:
            The receipt, once the session is Complete

        Raises:
            InvalidTransitionError: not in Scanning
            EmptyCartError: no stable items; state is unchanged
            CheckoutCancelledError: cancel_checkout() ran before completion
        """
        receipt = self.begin_checkout()
        completion = self._completion
        await asyncio.wait({completion})
        if completion.cancelled():
            raise CheckoutCancelledError("Checkout was cancelled")
        return receipt

    def cancel_checkout(self) -> None:
        """Abort a pending checkout and go back to scanning with the cart unfrozen"""
        if self.state is not SessionState.CHECKING_OUT:
            raise InvalidTransitionError("cancel checkout", self.state)

        self._completion.cancel()
        self._completion = None
        self.receipt = None
        self._set_state(SessionState.SCANNING)
        self.capture.resume()
        self.set_status(self._status_for_cart())

    def acknowledge(self) -> None:
        """Close the completed transaction and start scanning for the next customer"""
        if self.state is not SessionState.COMPLETE:
            raise InvalidTransitionError("acknowledge", self.state)

        self._stable_cart = {}
        self.current_objects = []
        self.receipt = None
        self.capture.clear_history()
        self._set_state(SessionState.SCANNING)
        self.capture.resume()
        self._notify('cart_updated', **self.summary())
        self.set_status("Ready for Next Customer")

    def close(self) -> None:
        """Drop a pending checkout completion, used at shutdown"""
        if self._completion is not None:
            self._completion.cancel()
            self._completion = None

    # ---------- Views ----------

    def preview(self) -> Receipt:
        """Price the current cart without recording catalog misses"""
        return price_cart(self._stable_cart, self.catalog, self.currency, record_misses=False)

    def summary(self) -> dict:
        preview = self.preview()
        return {
            'items': preview.to_dict()['items'],
            'total': preview.total,
            'state': self.state.value
        }

    def to_dict(self) -> dict:
        data = self.summary()
        data['status'] = self.status
        data['receipt'] = self.receipt.to_dict() if self.receipt else None
        return data
