# orderflow/domain/errors.py
"""
Hierarchia bledow domeny zamowien.

Kazdy blad niesie status HTTP, handler w main.py tlumaczy go na odpowiedz.
ValidationError / NotFound / Forbidden / Conflict to decyzje zamkniete,
nigdy nie sa ponawiane automatycznie.
"""


class OrderError(Exception):
    status_code = 500
    code = "order_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


class ValidationError(OrderError):
    """Invalid request"""
    status_code = 400
    code = "validation_error"


class EmptyCart(ValidationError):
    """Order must contain at least one item"""
    code = "empty_cart"


class InvalidPaymentMethod(ValidationError):
    """Unsupported payment method"""
    code = "invalid_payment_method"


class NotFound(OrderError):
    """Not found"""
    status_code = 404
    code = "not_found"


class OrderNotFound(NotFound):
    """Order not found"""
    code = "order_not_found"


class RestaurantUnavailable(NotFound):
    """Restaurant does not exist or is not active"""
    code = "restaurant_unavailable"


class ItemUnavailable(NotFound):
    """Menu item is not available"""
    code = "item_unavailable"


class Forbidden(OrderError):
    """Not authorized to perform this action"""
    status_code = 403
    code = "forbidden"


class Conflict(OrderError):
    """Request conflicts with the current order state"""
    status_code = 409
    code = "conflict"


class InvalidTransition(Conflict):
    """Status transition is not allowed"""
    code = "invalid_transition"


class ConcurrentUpdate(Conflict):
    """Order was modified by another request"""
    code = "concurrent_update"


class UpstreamFailure(OrderError):
    """Upstream service failed"""
    status_code = 502
    code = "upstream_failure"


class UpstreamTimeout(UpstreamFailure):
    """Upstream service timed out"""
    status_code = 504
    code = "upstream_timeout"


class IdGenerationExhausted(OrderError):
    """Could not generate a unique order code"""
    status_code = 503
    code = "id_generation_exhausted"
