"""
Order Service
Business workflow for placing, cancelling and reporting orders.

Every write path runs inside one TransactionManager unit of work:
resolve the customer, validate every product and its stock, then persist
order lines and decrement stock. Any failure rolls the whole unit back,
including a customer created earlier in the same call.
"""
import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from order_tx.core.exceptions import (
    AlreadyCancelled,
    CustomerNotFound,
    InsufficientStock,
    OrderNotFound,
    OrderValidationError,
    ProductNotFound,
    SimulatedFailure,
)
from order_tx.domain.customer import Customer, CustomerInput
from order_tx.domain.order import Order, OrderLine, OrderRequest
from order_tx.domain.product import Product
from order_tx.domain.results import (
    BatchItemResult,
    BatchResult,
    CancellationResult,
    OrderResult,
    OrderResultSummary,
    OrderSummaryReport,
    ProcessedProduct,
)
from order_tx.repositories.customer_repository import CustomerRepository
from order_tx.repositories.order_repository import OrderRepository
from order_tx.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)

OrderItems = Union[OrderLine, Mapping, Sequence[Union[OrderLine, Mapping]]]


class OrderService:
    """
    Service for transactional order processing

    Handles:
    - Customer creation/reuse by email
    - Product and stock validation before any write
    - Order line creation and stock decrement
    - Cancellation with stock restoration
    - Batch processing, one transaction per request
    """

    def __init__(
        self,
        transaction_manager,
        customer_repo: Optional[CustomerRepository] = None,
        product_repo: Optional[ProductRepository] = None,
        order_repo: Optional[OrderRepository] = None,
    ):
        self.tx = transaction_manager
        self.pool = transaction_manager.pool
        self.customer_repo = customer_repo or CustomerRepository()
        self.product_repo = product_repo or ProductRepository()
        self.order_repo = order_repo or OrderRepository()

    # ------------------------------------------------------------------
    # Input normalization
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_items(items: Optional[OrderItems]) -> List[OrderLine]:
        """
        Turn single-product or multi-product input into a list of OrderLine

        Accepts one {product, quantity} mapping / OrderLine, or a non-empty
        list of them.

        Raises:
            OrderValidationError: missing, empty or malformed product input
        """
        if items is None:
            raise OrderValidationError(
                'Missing product data. Provide either "product" + "quantity" or a "products" list'
            )

        if isinstance(items, (OrderLine, Mapping)):
            raw_items = [items]
        elif isinstance(items, (list, tuple)):
            raw_items = list(items)
        else:
            raise OrderValidationError(f"Unsupported product input: {type(items).__name__}")

        if not raw_items:
            raise OrderValidationError("The products list must contain at least one item")

        lines = []
        for position, item in enumerate(raw_items, start=1):
            if isinstance(item, OrderLine):
                lines.append(item)
                continue
            try:
                lines.append(OrderLine.model_validate(item))
            except ValidationError as e:
                raise OrderValidationError(
                    f'Invalid product at position {position}: each item needs "product" '
                    f'and a positive integer "quantity"'
                ) from e

        return lines

    @staticmethod
    def normalize_customer(customer: Union[CustomerInput, Mapping]) -> CustomerInput:
        if isinstance(customer, CustomerInput):
            return customer
        if not isinstance(customer, Mapping):
            raise OrderValidationError("Missing customer data (name, email)")
        try:
            return CustomerInput.model_validate(customer)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            raise OrderValidationError(f"Invalid customer data: {fields or 'name, email'}") from e

    # ------------------------------------------------------------------
    # Order placement
    # ------------------------------------------------------------------

    def process_order(
        self,
        customer: Union[CustomerInput, Mapping],
        items: OrderItems,
        simulate_error: bool = False,
    ) -> OrderResult:
        """
        Place an order in a single transaction

        Steps:
        1. Create or reuse the customer (by email)
        2. Validate every product and its stock
        3. Optionally raise SimulatedFailure (rollback exercise)
        4. Create one order row per line and decrement stock

        Args:
            customer: name, email, phone?, address?
            items: one {product, quantity} or a list of them
            simulate_error: fail after validation, before any order is written

        Returns:
            OrderResult with customer, updated products, orders and summary

        Raises:
            OrderValidationError, IdentityConflict, ProductNotFound,
            InsufficientStock, ReferentialIntegrityError, SimulatedFailure
        """
        customer_input = self.normalize_customer(customer)
        lines = self.normalize_items(items)

        context = {
            "customer": customer_input.name,
            "products": [line.product for line in lines],
            "quantity": sum(line.quantity for line in lines),
        }

        def place(conn) -> OrderResult:
            logger.info("1. Resolving customer...")
            resolved = self.customer_repo.create_or_reuse(conn, customer_input)
            logger.info(f"[OK] Customer: {resolved.name} (ID: {resolved.id})")
            return self._place_lines(conn, resolved, lines, simulate_error)

        result = self.tx.run_in_transaction(place, context=context, operation="order")

        logger.info(
            f"Order processed successfully: customer {result.customer.id}, "
            f"{len(result.orders)} order(s), total {result.summary.total_value}"
        )
        return result

    def process_order_for_customer(
        self,
        customer_id: int,
        items: OrderItems,
        simulate_error: bool = False,
    ) -> OrderResult:
        """
        Place an order for a customer that already exists

        Raises:
            CustomerNotFound plus everything process_order raises
        """
        lines = self.normalize_items(items)
        context = {"customer_id": customer_id, "products": [line.product for line in lines]}

        def place(conn) -> OrderResult:
            customer = self.customer_repo.find_by_id(conn, customer_id)
            if not customer:
                raise CustomerNotFound(customer_id)
            return self._place_lines(conn, customer, lines, simulate_error)

        return self.tx.run_in_transaction(place, context=context, operation="order")

    def _place_lines(
        self,
        conn,
        customer: Customer,
        lines: List[OrderLine],
        simulate_error: bool,
    ) -> OrderResult:
        # Validate everything before the first write
        logger.info("2. Validating products and stock...")
        products: "OrderedDict[str, Product]" = OrderedDict()
        requested: "OrderedDict[str, int]" = OrderedDict()

        for line in lines:
            product = products.get(line.product)
            if product is None:
                product = self.product_repo.find_by_name(conn, line.product)
                if not product:
                    raise ProductNotFound(line.product)
                products[line.product] = product

            # Repeated products are checked against their running total
            quantity = requested.get(line.product, 0) + line.quantity
            if not self.product_repo.check_stock(conn, product.id, quantity):
                raise InsufficientStock(line.product, product.stock, quantity)
            requested[line.product] = quantity
            logger.info(f"[OK] {line.product}: stock {product.stock}, requested {quantity}")

        if simulate_error:
            logger.warning("Simulating failure to exercise ROLLBACK...")
            raise SimulatedFailure()

        logger.info("3. Creating orders and updating inventory...")
        orders: List[Order] = []
        processed: List[ProcessedProduct] = []
        current_stock = {name: product.stock for name, product in products.items()}
        updated_products: "OrderedDict[int, Product]" = OrderedDict()
        total_value = Decimal('0')

        for line in lines:
            product = products[line.product]

            order = self.order_repo.create(conn, customer.id, product.id, line.quantity, product.price)
            updated = self.product_repo.decrement_stock(conn, product.id, line.quantity)

            processed.append(ProcessedProduct(
                product_id=product.id,
                product=product.name,
                quantity=line.quantity,
                unit_price=order.unit_price,
                line_total=order.total,
                previous_stock=current_stock[line.product],
                new_stock=updated.stock,
            ))
            current_stock[line.product] = updated.stock
            updated_products[product.id] = updated
            orders.append(order)
            total_value += order.total

            logger.info(
                f"[OK] Order {order.id}: {line.quantity} x {product.name} = {order.total} "
                f"(stock now {updated.stock})"
            )

        summary = OrderResultSummary(
            customer_name=customer.name,
            orders_created=len(orders),
            total_quantity=sum(line.quantity for line in lines),
            total_value=total_value,
            products=processed,
        )

        return OrderResult(
            customer=customer,
            products=list(updated_products.values()),
            orders=orders,
            summary=summary,
        )

    def batch_process_orders(
        self,
        requests: Iterable[Union[OrderRequest, Mapping]],
        stop_on_first_error: bool = True,
    ) -> BatchResult:
        """
        Process independent order requests, each in its own transaction

        A failing request never rolls back the ones committed before it.

        Args:
            requests: OrderRequest objects or equivalent dicts
            stop_on_first_error: stop at the first failure instead of
                collecting every outcome
        """
        requests = list(requests)
        results: List[BatchItemResult] = []

        logger.info(f"Processing batch of {len(requests)} orders...")

        for index, request in enumerate(requests):
            logger.info(f"Processing order {index + 1}/{len(requests)}...")
            try:
                if not isinstance(request, OrderRequest):
                    try:
                        request = OrderRequest.model_validate(request)
                    except ValidationError as e:
                        raise OrderValidationError(f"Invalid order request: {e.error_count()} error(s)") from e

                result = self.process_order(
                    request.customer,
                    request.requested_items(),
                    simulate_error=request.simulate_error,
                )
                results.append(BatchItemResult(index=index, success=True, result=result))
                logger.info(f"[OK] Order {index + 1} processed")

            except Exception as e:
                results.append(BatchItemResult(
                    index=index,
                    success=False,
                    error=str(e),
                    error_type=type(e).__name__,
                ))
                logger.error(f"Error in order {index + 1}: {e}")

                if stop_on_first_error:
                    logger.info("Stopping batch at first error")
                    break

        successful = sum(1 for r in results if r.success)
        return BatchResult(
            total=len(requests),
            processed=len(results),
            successful=successful,
            failed=len(results) - successful,
            results=results,
        )

    # ------------------------------------------------------------------
    # Cancellation and reporting
    # ------------------------------------------------------------------

    def cancel_order(self, order_id: int) -> CancellationResult:
        """
        Cancel an order and put its units back in stock, atomically

        Raises:
            OrderNotFound: no order with that ID
            AlreadyCancelled: order status is already cancelled
        """
        def cancel(conn) -> CancellationResult:
            order = self.order_repo.find_by_id(conn, order_id)
            if not order:
                raise OrderNotFound(order_id)
            if order.is_cancelled:
                raise AlreadyCancelled(order_id)

            self.order_repo.cancel(conn, order_id)
            restored = self.product_repo.restore_stock(conn, order.product_id, order.quantity)

            return CancellationResult(
                order=order,
                product=restored,
                message=f"Order {order_id} cancelled and stock restored",
            )

        return self.tx.run_in_transaction(cancel, context={"order_id": order_id}, operation="cancellation")

    def get_summary(self, recent_limit: int = 10) -> OrderSummaryReport:
        """Statistics, most recent orders and low stock products from one consistent read"""
        def summarize(conn) -> OrderSummaryReport:
            return OrderSummaryReport(
                statistics=self.order_repo.get_statistics(conn),
                recent_orders=self.order_repo.list_all(conn, limit=recent_limit),
                low_stock_products=self.product_repo.list_low_stock(conn),
            )

        return self.tx.run_in_transaction(summarize, operation="summary")

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    def list_customers(self) -> List[Customer]:
        with self.pool.connection() as conn:
            return self.customer_repo.list_all(conn)

    def list_products(self) -> List[Product]:
        with self.pool.connection() as conn:
            return self.product_repo.list_all(conn)

    def list_low_stock_products(self) -> List[Product]:
        with self.pool.connection() as conn:
            return self.product_repo.list_low_stock(conn)

    def list_orders(
        self,
        limit: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[Order]:
        """
        Raises:
            OrderValidationError: from_date is after to_date
        """
        if from_date and to_date and from_date > to_date:
            raise OrderValidationError("from_date must not be after to_date")
        with self.pool.connection() as conn:
            return self.order_repo.list_all(conn, limit=limit, from_date=from_date, to_date=to_date)

    def list_customer_orders(self, customer_id: int) -> List[Order]:
        with self.pool.connection() as conn:
            return self.order_repo.list_by_customer(conn, customer_id)

    def get_order(self, order_id: int) -> Order:
        with self.pool.connection() as conn:
            order = self.order_repo.find_by_id(conn, order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order
