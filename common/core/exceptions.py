class AppException(Exception):
    """Base application exception."""

    pass


class NotFoundError(AppException):
    """Resource not found exception."""

    pass


class ValidationError(AppException):
    """Validation error exception."""

    pass


class PaymentGatewayError(AppException):
    """Payment gateway error exception."""

    pass


class SigningError(PaymentGatewayError):
    """Gateway signing configuration is missing or unusable."""

    pass


class InvalidSignatureError(PaymentGatewayError):
    """Gateway callback signature did not verify."""

    pass
