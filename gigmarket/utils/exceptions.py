class ServiceError(Exception):
    status = 400

    def __init__(self, code="SERVICE_ERROR", message="Service error", details=None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed input, rejected before any write."""
    status = 422

    def __init__(self, message="Invalid input", details=None, code="VALIDATION_ERROR"):
        super().__init__(code, message, details)


class ConflictError(ServiceError):
    """Someone else already handled it (lost a race, duplicate). Safe to refresh."""
    status = 409

    def __init__(self, code="CONFLICT", message="Already handled", details=None):
        super().__init__(code, message, details)


class InvalidStateError(ServiceError):
    """The operation is not allowed in the entity's current state."""
    status = 400

    def __init__(self, code="INVALID_STATE", message="Invalid in current state", details=None):
        super().__init__(code, message, details)


class PaymentError(ServiceError):
    status = 502

    def __init__(self, code="PAYMENT_ERROR", message="Payment processor error", details=None):
        super().__init__(code, message, details)


class FilterRejection(ServiceError):
    status = 422

    def __init__(self, reason, message, details=None):
        self.reason = reason
        super().__init__("MESSAGE_BLOCKED", message, dict(details or {}, reason=reason))


class NotFoundError(ServiceError):
    status = 404

    def __init__(self, message="Resource not found", details=None):
        super().__init__("NOT_FOUND", message, details)


class ForbiddenError(ServiceError):
    status = 403

    def __init__(self, message="Forbidden", details=None):
        super().__init__("FORBIDDEN", message, details)
