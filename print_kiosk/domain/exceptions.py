class DomainException(Exception):
    pass


class ValidationError(DomainException):
    pass


class NotFoundError(DomainException):
    pass


class InvalidStateError(DomainException):
    pass


class ExpiredError(DomainException):
    pass


class AlreadyPrintedError(DomainException):
    pass


class NoAssetsError(DomainException):
    pass


class SignatureError(DomainException):
    def __init__(self):
        super().__init__("Invalid payment signature")


class PreconditionFailed(DomainException):
    """Текущий статус заказа не совпал с ожидаемым — перечитать и повторить"""
    def __init__(self, order_id: str, expected, actual=None):
        self.order_id = order_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Order {order_id}: expected {expected}, found {actual}")


class DuplicateError(DomainException):
    pass


class StorageError(DomainException):
    pass


class PaymentServiceError(DomainException):
    pass
