"""Error taxonomy shared by the order store, the monitor and the HTTP layer."""


class OrderBotError(Exception):
    """Base class for every error raised by the order engine."""


class ValidationError(OrderBotError):
    """Malformed order spec; the order is not created."""


class NotFoundError(OrderBotError):
    """Operation referenced an unknown order id."""


class InvalidStateError(OrderBotError):
    """Operation is illegal for the order's current status."""


class TransientExternalError(OrderBotError):
    """Price lookup or trade submission failed or timed out."""


class PersistenceError(OrderBotError):
    """The order store is unreachable or rejected the operation."""
