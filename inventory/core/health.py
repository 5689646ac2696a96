"""
Health checks and process metrics

Liveness, readiness and startup probes in the Health Check Response Format
for HTTP APIs draft, plus a JSON metrics endpoint with process figures and
inventory row counts.
"""

import logging
import os
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import psutil
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, inspect, select, text
from sqlalchemy.engine import Engine

from inventory.domain.models import Base, Location, Product, Stock, StockMovement

logger = logging.getLogger(__name__)

SUPPORTED_DIALECTS = ("postgresql", "sqlite")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


def _result(status_val: HealthStatus, component_type: str, **fields: Any) -> Dict[str, Any]:
    return {"status": status_val, "componentType": component_type, **fields, "time": _now()}


def _graded(value: float, fail_below: float, warn_below: float) -> HealthStatus:
    if value < fail_below:
        return HealthStatus.FAIL
    if value < warn_below:
        return HealthStatus.WARN
    return HealthStatus.PASS


class ServiceHealth:
    """Builds the health router for the inventory service and its database."""

    MIN_DISK_GB = (1, 5)
    MIN_MEMORY_MB = (100, 500)

    def __init__(self, service_name: str, engine: Engine, version: str = "1.0.0",
                 low_stock_threshold: Optional[int] = None):
        self.service_name = service_name
        self.engine = engine
        self.version = version
        self.low_stock_threshold = low_stock_threshold
        self.start_time = time.time()
        self.checks_performed = 0

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])

        @router.get("/health")
        def health_check() -> Dict[str, Any]:
            """Basic liveness probe - no dependency checks"""
            return {
                "status": HealthStatus.PASS,
                "service": self.service_name,
                "version": self.version,
                "releaseId": os.getenv("RELEASE_ID", "unknown"),
                "timestamp": _now(),
            }

        @router.get("/health/live")
        def liveness() -> Dict[str, Any]:
            return {"status": "alive"}

        @router.get("/health/ready")
        def readiness() -> JSONResponse:
            """Readiness probe - database round trip, disk and memory headroom"""
            checks = self.perform_readiness_checks()
            overall = self.calculate_overall_status(checks)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE if overall == HealthStatus.FAIL
                else status.HTTP_200_OK,
                content={
                    "status": overall,
                    "version": self.version,
                    "serviceId": self.service_name,
                    "checks": checks,
                    "timestamp": _now(),
                },
            )

        @router.get("/health/startup")
        def startup() -> JSONResponse:
            checks = self.perform_startup_checks()
            if self.calculate_overall_status(checks) == HealthStatus.FAIL:
                return JSONResponse(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    content={"status": "starting", "checks": checks},
                )
            return JSONResponse(content={"status": "started", "checks": checks})

        @router.get("/metrics")
        def metrics() -> Dict[str, Any]:
            process = psutil.Process()
            with process.oneshot():
                memory = process.memory_info()
                system = {
                    "memory_rss_bytes": memory.rss,
                    "memory_vms_bytes": memory.vms,
                    "cpu_percent": process.cpu_percent(),
                    "num_threads": process.num_threads(),
                }
            return {
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": round(time.time() - self.start_time, 3),
                "checks_performed": self.checks_performed,
                "timestamp": _now(),
                "system": system,
                "inventory": self.collect_inventory_counts(),
            }

        return router

    def perform_readiness_checks(self) -> Dict[str, Dict[str, Any]]:
        self.checks_performed += 1
        return self._run({
            "database:connectivity": self._check_database,
            "storage:disk_space": self._check_disk_space,
            "system:memory": self._check_memory,
        })

    def perform_startup_checks(self) -> Dict[str, Dict[str, Any]]:
        return self._run({
            "database:migrations": self._check_schema,
            "service:configuration": self._check_configuration,
        })

    def collect_inventory_counts(self) -> Dict[str, Optional[int]]:
        """Row counts per table; ``None`` for all of them if the store is unreachable"""
        tables = {"products": Product, "locations": Location, "stock": Stock, "stock_movements": StockMovement}
        try:
            with self.engine.connect() as conn:
                counts = {
                    name: conn.execute(select(func.count()).select_from(model)).scalar_one()
                    for name, model in tables.items()
                }
                if self.low_stock_threshold is not None:
                    counts["low_stock_rows"] = conn.execute(
                        select(func.count()).select_from(Stock).where(Stock.quantity < self.low_stock_threshold)
                    ).scalar_one()
                return counts
        except Exception as e:
            logger.warning(f"Inventory metrics unavailable: {type(e).__name__}")
            return {name: None for name in tables}

    @staticmethod
    def _run(checks: Dict[str, Callable[[], Dict[str, Any]]]) -> Dict[str, Dict[str, Any]]:
        return {name: check() for name, check in checks.items()}

    def _check_database(self) -> Dict[str, Any]:
        started = time.perf_counter()
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
        except Exception as e:
            logger.error(f"Database health check failed: {type(e).__name__}")
            return _result(HealthStatus.FAIL, "datastore", output=type(e).__name__)
        elapsed_ms = (time.perf_counter() - started) * 1000
        return _result(HealthStatus.PASS, "datastore", observedValue=f"{elapsed_ms:.2f}", observedUnit="ms")

    def _check_disk_space(self) -> Dict[str, Any]:
        try:
            free_gb = psutil.disk_usage('/').free / (1024 ** 3)
        except OSError as e:
            return _result(HealthStatus.WARN, "system", output=str(e))
        return _result(_graded(free_gb, *self.MIN_DISK_GB), "system",
                       observedValue=f"{free_gb:.2f}", observedUnit="GB")

    def _check_memory(self) -> Dict[str, Any]:
        available_mb = psutil.virtual_memory().available / (1024 ** 2)
        return _result(_graded(available_mb, *self.MIN_MEMORY_MB), "system",
                       observedValue=f"{available_mb:.2f}", observedUnit="MB")

    def _check_schema(self) -> Dict[str, Any]:
        """All inventory tables exist; a missing alembic_version only warns"""
        try:
            with self.engine.connect() as conn:
                tables = set(inspect(conn).get_table_names())
        except Exception as e:
            return _result(HealthStatus.FAIL, "datastore", output=type(e).__name__)

        missing = set(Base.metadata.tables) - tables
        if missing:
            return _result(HealthStatus.FAIL, "datastore", output=f"Missing tables: {', '.join(sorted(missing))}")
        if "alembic_version" not in tables:
            return _result(HealthStatus.WARN, "datastore", output="Migrations table not found")
        return _result(HealthStatus.PASS, "datastore")

    def _check_configuration(self) -> Dict[str, Any]:
        dialect = self.engine.dialect.name
        if dialect not in SUPPORTED_DIALECTS:
            return _result(HealthStatus.FAIL, "component", output=f"Unsupported database dialect: {dialect}")
        if self.low_stock_threshold is not None and self.low_stock_threshold < 0:
            return _result(HealthStatus.WARN, "component", output="LOW_STOCK_THRESHOLD is negative")
        return _result(HealthStatus.PASS, "component", observedValue=dialect)

    @staticmethod
    def calculate_overall_status(checks: Dict[str, Dict[str, Any]]) -> HealthStatus:
        statuses = {check.get("status", HealthStatus.PASS) for check in checks.values()}
        for candidate in (HealthStatus.FAIL, HealthStatus.WARN):
            if candidate in statuses:
                return candidate
        return HealthStatus.PASS
