"""FastAPI application entrypoint."""

import logging

from fastapi import FastAPI

from portfolio_api.core.config import resolve_log_level
from portfolio_api.routes import allocation, health, root

logging.basicConfig(
    level=resolve_log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Portfolio API",
    description="Hierarchical Risk Parity allocation and backtesting service",
    version="0.1.0",
)

app.include_router(root.router)
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(allocation.router, prefix="/allocation", tags=["allocation"])
