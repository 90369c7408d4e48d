"""
Order Transactions - Backend API
Transactional order processing over PostgreSQL
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from order_tx.api import customers, inventory, orders
from order_tx.core.config import settings
from order_tx.core.database import create_pool
from order_tx.core.exceptions import (
    DatabaseConnectionError,
    OrderProcessingError,
    PoolTimeoutError,
    StatementTimeoutError,
)
from order_tx.core.transaction import TransactionManager
from order_tx.services.order_service import OrderService

logger = logging.getLogger(__name__)


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(order_service: Optional[OrderService] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        order_service: Pre-built service (tests). When omitted, a connection
            pool is created on startup and closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pool = None
        if order_service is None:
            logger.info("Initializing connection pool...")
            pool = create_pool(settings)
            app.state.order_service = OrderService(TransactionManager(pool))
        else:
            app.state.order_service = order_service
        logger.info("Ready for API requests")

        yield

        if pool is not None:
            logger.info("Shutting down: closing connection pool")
            pool.close()

    app = FastAPI(
        title=settings.API_TITLE,
        version=settings.API_VERSION,
        description=settings.API_DESCRIPTION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(OrderProcessingError)
    async def order_error_handler(request: Request, exc: OrderProcessingError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(DatabaseConnectionError)
    @app.exception_handler(PoolTimeoutError)
    @app.exception_handler(StatementTimeoutError)
    async def database_error_handler(request: Request, exc: Exception):
        logger.error(f"Database unavailable: {exc}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "error",
                "error_code": "database_unavailable",
                "message": str(exc),
            },
        )

    app.include_router(orders.router, prefix="/api/v1/orders", tags=["Orders"])
    app.include_router(inventory.router, prefix="/api/v1/inventory", tags=["Inventory"])
    app.include_router(customers.router, prefix="/api/v1/customers", tags=["Customers"])

    @app.get("/")
    def root():
        return {
            "name": settings.API_TITLE,
            "status": "online",
            "version": settings.API_VERSION,
        }

    @app.get("/health")
    def health(request: Request):
        """Health check - tests database connectivity"""
        service: OrderService = request.app.state.order_service
        start_time = time.time()

        db_latency_ms = None
        db_error = None
        try:
            service.pool.ping()
            db_latency_ms = round((time.time() - start_time) * 1000, 2)
            db_status = "connected"
        except Exception as e:
            db_status = "disconnected"
            db_error = str(e)

        return {
            "status": "healthy" if db_status == "connected" else "unhealthy",
            "version": settings.API_VERSION,
            "database": {"status": db_status, "latency_ms": db_latency_ms, "error": db_error},
            "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        }

    return app


configure_logging()
app = create_app()
