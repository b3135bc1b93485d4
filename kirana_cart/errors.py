# errors.py


class KiranaCartError(Exception):
    """Base class for all kirana cart errors"""


class ConfigError(KiranaCartError):
    """Settings or catalog file is missing, unreadable or invalid"""


class SnapshotError(KiranaCartError):
    """Acquiring one detection snapshot failed (camera, transport or decoding)"""


class EmptyCartError(KiranaCartError):
    """Checkout requested while no items are detected in the cart"""

    def __init__(self, message: str = "No items detected in cart!"):
        super().__init__(message)


class InvalidTransitionError(KiranaCartError):
    """Session operation requested from a state that does not allow it"""

    def __init__(self, operation: str, state):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while {state.value}")


class CycleInFlightError(KiranaCartError):
    """A capture cycle was entered while another one is still running"""


class CheckoutCancelledError(KiranaCartError):
    """A pending checkout was cancelled before it completed"""
