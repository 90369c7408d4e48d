"""
Error taxonomy for order processing

Business errors carry an error_code and the HTTP status the API layer
responds with. Infrastructure errors also subclass the matching builtin
(ConnectionError / TimeoutError) so generic handlers keep working.
"""
from typing import List, Optional, Union


class OrderProcessingError(Exception):
    """Base class for every business-rule failure"""

    error_code = "order_processing_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            "status": "error",
            "error_code": self.error_code,
            "message": self.message,
        }


class OrderValidationError(OrderProcessingError):
    """Malformed or incomplete order input, rejected before any transaction"""

    error_code = "validation_error"
    status_code = 422


class IdentityConflict(OrderProcessingError):
    """An email already on record was submitted with a different name"""

    error_code = "identity_conflict"
    status_code = 409

    def __init__(self, email: str, existing_name: Optional[str], submitted_name: str):
        self.email = email
        self.existing_name = existing_name
        self.submitted_name = submitted_name
        if existing_name is None:
            message = f"Email {email} is already registered to another customer"
        else:
            message = (
                f'Email {email} already exists with a different name: "{existing_name}". '
                f'Expected: "{submitted_name}"'
            )
        super().__init__(message)


class CustomerNotFound(OrderProcessingError):
    error_code = "customer_not_found"
    status_code = 404

    def __init__(self, customer_id: int):
        self.customer_id = customer_id
        super().__init__(f"Customer with ID {customer_id} not found")


class ProductNotFound(OrderProcessingError):
    error_code = "product_not_found"
    status_code = 404

    def __init__(self, product: Union[str, int]):
        self.product = product
        if isinstance(product, int):
            message = f"Product with ID {product} not found"
        else:
            message = f'Product "{product}" not found in inventory'
        super().__init__(message)


class ProductAlreadyExists(OrderProcessingError):
    error_code = "product_already_exists"
    status_code = 409

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Product "{name}" already exists')


class InsufficientStock(OrderProcessingError):
    """Requested quantity exceeds the units on hand"""

    error_code = "insufficient_stock"
    status_code = 409

    def __init__(self, product: str, available: int, requested: int):
        self.product = product
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient stock for "{product}". Current stock: {available}, requested: {requested}'
        )


class ReferentialIntegrityError(OrderProcessingError):
    """The store rejected a dangling customer or product reference"""

    error_code = "referential_integrity_error"
    status_code = 409

    def __init__(self, reference: str, reference_id: Optional[int]):
        self.reference = reference
        self.reference_id = reference_id
        super().__init__(f"{reference.capitalize()} with ID {reference_id} not found")


class SimulatedFailure(OrderProcessingError):
    """Failure injected on request to exercise the rollback path"""

    error_code = "simulated_failure"
    status_code = 500

    def __init__(self, message: str = "Simulated error: payment system failure"):
        super().__init__(message)


class OrderNotFound(OrderProcessingError):
    error_code = "order_not_found"
    status_code = 404

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order with ID {order_id} not found")


class AlreadyCancelled(OrderProcessingError):
    error_code = "already_cancelled"
    status_code = 409

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} is already cancelled")


class SequentialTransactionError(OrderProcessingError):
    """A unit in a sequence failed; the units before it stay committed"""

    error_code = "sequential_transaction_error"

    def __init__(self, index: int, original: Exception):
        self.index = index
        self.original = original
        super().__init__(f"Transaction {index + 1} failed: {original}")


# ============================================================================
# Infrastructure errors
# ============================================================================

class DatabaseConfigurationError(Exception):
    """Required database settings are missing"""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(
            "Missing database environment variables: " + ", ".join(missing)
            + ". Set DATABASE_URL or define them in .env"
        )


class DatabaseConnectionError(ConnectionError):
    """The database is unreachable or the connection broke mid-statement"""


class PoolTimeoutError(TimeoutError):
    """No pooled connection became available within the acquire timeout"""


class StatementTimeoutError(TimeoutError):
    """The server cancelled a statement after statement_timeout"""
