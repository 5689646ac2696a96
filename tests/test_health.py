import io
import json
import logging

from sqlalchemy import create_engine

from inventory.core.health import HealthStatus, ServiceHealth
from inventory.core.logging_config import StructuredFormatter, get_logger, set_request_context, setup_logging


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "pass"
    assert response.json()["service"] == "inventory-service"


def test_liveness(client):
    assert client.get("/health/live").json() == {"status": "alive"}


def test_readiness_reports_database(client):
    response = client.get("/health/ready")
    assert response.status_code in (200, 503)
    assert response.json()["checks"]["database:connectivity"]["status"] == "pass"


def test_startup_without_migrations_warns(client):
    response = client.get("/health/startup")
    assert response.status_code == 200
    checks = response.json()["checks"]
    assert checks["database:migrations"]["status"] == "warn"
    assert checks["service:configuration"]["observedValue"] == "sqlite"


def test_metrics_include_inventory_counts(client, warehouse, ledger):
    product, wh1, _ = warehouse
    ledger.add_stock(product.id, wh1.id, 3)

    body = client.get("/metrics").json()
    assert body["service"] == "inventory-service"
    assert body["system"]["memory_rss_bytes"] > 0
    assert body["inventory"] == {
        "products": 1, "locations": 2, "stock": 1, "stock_movements": 1, "low_stock_rows": 1,
    }


def test_schema_check_fails_on_empty_database():
    health = ServiceHealth("inventory-service", create_engine("sqlite://"))
    checks = health.perform_startup_checks()
    assert checks["database:migrations"]["status"] == HealthStatus.FAIL
    assert "stock_movements" in checks["database:migrations"]["output"]


def test_overall_status():
    pass_ = {"status": HealthStatus.PASS}
    warn = {"status": HealthStatus.WARN}
    fail = {"status": HealthStatus.FAIL}
    assert ServiceHealth.calculate_overall_status({"a": pass_}) == HealthStatus.PASS
    assert ServiceHealth.calculate_overall_status({"a": pass_, "b": warn}) == HealthStatus.WARN
    assert ServiceHealth.calculate_overall_status({"a": warn, "b": fail}) == HealthStatus.FAIL


def test_structured_formatter_includes_context():
    set_request_context(request_id="req-1")
    try:
        record = logging.LogRecord("inventory.test", logging.INFO, __file__, 10, "Stock added", None, None)
        record.extra_fields = {"product_id": 1, "quantity": 5}
        payload = json.loads(StructuredFormatter("inventory-service", "test", "1.0.0").format(record))
    finally:
        set_request_context()

    assert payload["message"] == "Stock added"
    assert payload["level"] == "INFO"
    assert payload["service"] == {"name": "inventory-service", "environment": "test", "version": "1.0.0"}
    assert payload["trace"] == {"request_id": "req-1"}
    assert payload["custom"] == {"product_id": 1, "quantity": 5}


def test_setup_logging_writes_redacted_json_lines():
    stream = io.StringIO()
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(service_name="inventory-service", level="INFO", stream=stream)
        logger = get_logger("inventory.test", component="ledger")
        logger.warning(
            "Cannot reach postgresql+psycopg2://inventory:s3cret@db:5432/inventory",
            extra={'extra_fields': {'sku': "ABC123", 'DATABASE_URL': "sqlite:///x.db"}},
        )
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)

    line = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert line["level"] == "WARNING"
    assert "s3cret" not in line["message"]
    assert "inventory:***REDACTED***@db" in line["message"]
    assert line["custom"] == {"component": "ledger", "sku": "ABC123", "DATABASE_URL": "***REDACTED***"}
