"""
Transaction Manager

Runs a unit of work atomically on one pooled connection:
BEGIN, work, COMMIT on success; ROLLBACK and re-raise on any failure.
The connection goes back to the pool on every path.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from order_tx.core.exceptions import SequentialTransactionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionManager:
    """
    Wraps ConnectionPool begin/commit/rollback around a unit of work

    Usage:
        tx = TransactionManager(pool)
        order = tx.run_in_transaction(
            lambda conn: order_repo.create(conn, customer_id, product_id, 2, price),
            context={"customer": "Juan Pérez", "product": "Laptop Gaming", "quantity": 2},
        )
    """

    def __init__(self, pool):
        self.pool = pool

    def run_in_transaction(
        self,
        unit_of_work: Callable[[Any], T],
        context: Optional[Dict[str, Any]] = None,
        operation: str = "transaction",
    ) -> T:
        """
        Execute unit_of_work(conn) inside a transaction

        Args:
            unit_of_work: Callable receiving the active connection
            context: Advisory data attached to every log entry
            operation: Label for log entries (order, cancellation, summary...)

        Returns:
            Whatever unit_of_work returns, after COMMIT

        Raises:
            The original exception raised by unit_of_work, after ROLLBACK
        """
        with self.transaction(context=context, operation=operation) as conn:
            return unit_of_work(conn)

    @contextmanager
    def transaction(self, context: Optional[Dict[str, Any]] = None, operation: str = "transaction"):
        """Context-manager form of run_in_transaction"""
        log_extra = {"operation": operation, "context": context or {}}

        conn = self.pool.acquire()
        try:
            logger.info(f"Starting {operation}: {context or {}}", extra=log_extra)
            self.pool.begin(conn)
            logger.debug("BEGIN executed", extra=log_extra)

            try:
                yield conn
                self.pool.commit(conn)
            except BaseException as e:
                if self.pool.rollback(conn):
                    logger.warning(f"ROLLBACK executed - {operation} reverted", extra=log_extra)
                else:
                    logger.error(
                        f"ROLLBACK failed - {operation} state unknown, connection will be discarded",
                        extra=log_extra,
                    )
                logger.error(
                    f"Error in {operation}: {e}",
                    extra={
                        **log_extra,
                        "error_type": type(e).__name__,
                        "pgcode": getattr(e, "pgcode", None),
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    },
                )
                raise

            logger.info(f"COMMIT executed - {operation} completed", extra=log_extra)
        finally:
            self.pool.release(conn)
            logger.debug("Connection released to pool", extra=log_extra)

    def run_sequential(
        self,
        units: Iterable[Callable[[Any], T]],
        context: Optional[Dict[str, Any]] = None,
    ) -> List[T]:
        """
        Run each unit in its own transaction, in order

        Stops at the first failure. Units that already committed stay
        committed.

        Raises:
            SequentialTransactionError: carrying the failing index and error
        """
        units = list(units)
        results = []

        for index, unit in enumerate(units):
            logger.info(f"Running transaction {index + 1} of {len(units)}")
            try:
                results.append(
                    self.run_in_transaction(unit, context=context, operation=f"transaction {index + 1}")
                )
            except Exception as e:
                logger.error(f"Transaction {index + 1} failed: {e}")
                raise SequentialTransactionError(index, e) from e

        return results
