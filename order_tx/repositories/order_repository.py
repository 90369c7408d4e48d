"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models
joined with customer and product display fields.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import psycopg2.errors

from order_tx.core.database import db_cursor
from order_tx.core.exceptions import OrderNotFound, ReferentialIntegrityError
from order_tx.domain.order import Order, OrderStatistics
from order_tx.domain.results import CancelledOrder

logger = logging.getLogger(__name__)

ORDER_COLUMNS = "id, customer_id, product_id, quantity, unit_price, total, status, created_at"

ORDER_WITH_DETAILS = """
    SELECT
        o.id, o.customer_id, o.product_id,
        o.quantity, o.unit_price, o.total,
        o.status, o.created_at,
        c.name as customer_name,
        c.email as customer_email,
        p.name as product_name,
        p.description as product_description
    FROM orders o
    JOIN customers c ON o.customer_id = c.id
    JOIN products p ON o.product_id = p.id
"""


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    """

    def create(self, conn, customer_id: int, product_id: int, quantity: int, unit_price: Decimal) -> Order:
        """
        Insert an order line

        The total is computed here from quantity and the captured unit price,
        never taken from the caller.

        Raises:
            ReferentialIntegrityError: customer or product does not exist
        """
        unit_price = Decimal(str(unit_price))
        total = unit_price * quantity

        try:
            with db_cursor(conn) as cursor:
                cursor.execute(f"""
                    INSERT INTO orders (customer_id, product_id, quantity, unit_price, total)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {ORDER_COLUMNS}
                """, (customer_id, product_id, quantity, unit_price, total))
                row = cursor.fetchone()
        except psycopg2.errors.ForeignKeyViolation as e:
            detail = (e.diag.message_detail or "") if e.diag else ""
            if "customers" in detail:
                raise ReferentialIntegrityError("customer", customer_id) from e
            if "products" in detail:
                raise ReferentialIntegrityError("product", product_id) from e
            raise

        return Order(**dict(row))

    def find_by_id(self, conn, order_id: int) -> Optional[Order]:
        """
        Find order by ID with customer and product info

        Returns:
            Order or None if not found
        """
        with db_cursor(conn) as cursor:
            cursor.execute(ORDER_WITH_DETAILS + " WHERE o.id = %s", (order_id,))
            row = cursor.fetchone()

        return Order(**dict(row)) if row else None

    def list_all(
        self,
        conn,
        limit: Optional[int] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[Order]:
        """All orders, most recent first, optionally within a created_at range"""
        conditions = []
        params = []
        if from_date is not None:
            conditions.append("o.created_at >= %s")
            params.append(from_date)
        if to_date is not None:
            conditions.append("o.created_at <= %s")
            params.append(to_date)

        query = ORDER_WITH_DETAILS
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY o.created_at DESC, o.id DESC"
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)

        with db_cursor(conn) as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()

        return [Order(**dict(row)) for row in rows]

    def list_by_customer(self, conn, customer_id: int) -> List[Order]:
        with db_cursor(conn) as cursor:
            cursor.execute(
                ORDER_WITH_DETAILS + " WHERE o.customer_id = %s ORDER BY o.created_at DESC, o.id DESC",
                (customer_id,)
            )
            rows = cursor.fetchall()

        return [Order(**dict(row)) for row in rows]

    def update_status(self, conn, order_id: int, status: str) -> Order:
        """
        Raises:
            OrderNotFound: no order with that ID
        """
        with db_cursor(conn) as cursor:
            cursor.execute(f"""
                UPDATE orders
                SET status = %s
                WHERE id = %s
                RETURNING {ORDER_COLUMNS}
            """, (status, order_id))
            row = cursor.fetchone()

        if not row:
            raise OrderNotFound(order_id)
        return Order(**dict(row))

    def cancel(self, conn, order_id: int) -> CancelledOrder:
        """
        Cancel an order by deleting its row

        Returns:
            CancelledOrder with the row as it was before deletion

        Raises:
            OrderNotFound: no order with that ID
        """
        with db_cursor(conn) as cursor:
            cursor.execute(f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = %s", (order_id,))
            row = cursor.fetchone()
            if not row:
                raise OrderNotFound(order_id)

            cursor.execute("DELETE FROM orders WHERE id = %s", (order_id,))
            deleted = cursor.rowcount > 0

        logger.info(f"Order {order_id} deleted")
        return CancelledOrder(order=Order(**dict(row)), success=deleted)

    def get_statistics(self, conn) -> OrderStatistics:
        """Order count, revenue, average order value and distinct customers"""
        with db_cursor(conn) as cursor:
            cursor.execute("""
                SELECT
                    COUNT(*) as total_orders,
                    COALESCE(SUM(total), 0) as total_revenue,
                    COALESCE(AVG(total), 0) as average_order_value,
                    COUNT(DISTINCT customer_id) as unique_customers
                FROM orders
            """)
            row = cursor.fetchone()

        return OrderStatistics(**dict(row))
