class StorefrontError(Exception):
    """Base error; carries the HTTP status and the message shown to clients."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthenticated(StorefrontError):
    status_code = 401
    message = "Unauthorized Access"


class Forbidden(StorefrontError):
    status_code = 403
    message = "Forbidden Access"


class InvalidToken(Forbidden):
    message = "Invalid token"


class ExpiredToken(Forbidden):
    message = "Token expired"


class NotFound(StorefrontError):
    status_code = 404
    message = "Not found"


class UserNotFound(NotFound):
    message = "User not found"


class OrderNotFound(NotFound):
    message = "Order not found"


class NoChange(StorefrontError):
    status_code = 400
    message = "No changes made, the status may already be updated"


class InvalidWebhook(StorefrontError):
    status_code = 400
    message = "Invalid webhook"


class IllegalTransition(StorefrontError):
    status_code = 409

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move order from '{current}' to '{requested}'")


class GatewayError(StorefrontError):
    status_code = 502
    message = "Payment gateway error"


class StoreError(StorefrontError):
    status_code = 500
    message = "Internal server error"
