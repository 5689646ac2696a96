"""
Command-line interface for the inventory service.

Usage:
    inventory add-product PROD001 "Laptop" "High-performance laptop" 1299.99
    inventory find-product PROD001
    inventory list-products
    inventory add-location WH-01
    inventory list-locations
    inventory add-stock 1 1 50
    inventory remove-stock 1 1 5
    inventory move-stock 1 1 2 10
    inventory generate-report low-stock 10
    inventory list-movements --product-id 1
    inventory migrate
    inventory serve --port 8080

The database comes from DATABASE_URL (or the POSTGRES_* settings), e.g.
DATABASE_URL=sqlite:///inventory.db for a local file.
"""

import argparse
import sys
from typing import Callable, Optional, Sequence

from inventory.application.container import ServiceContainer, build_container
from inventory.core.logging_config import setup_logging
from inventory.core_settings import get_settings
from inventory.domain.errors import InventoryError
from inventory.infrastructure.db import init_models, run_migrations

W = 60


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")
    return number


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError("cannot be negative")
    return number


# =============================================================================
# Commands
# =============================================================================


def cmd_add_product(container: ServiceContainer, args: argparse.Namespace) -> None:
    product = container.products.create_product(args.sku, args.name, args.description, args.price)
    print("Product created successfully!")
    print(f"   ID: {product.id}")
    print(f"   SKU: {product.sku}")
    print(f"   Name: {product.name}")
    print(f"   Price: ${product.price:.2f}")


def cmd_find_product(container: ServiceContainer, args: argparse.Namespace) -> None:
    product = container.products.get_by_sku(args.sku)
    print("Product found:")
    print(f"   ID: {product.id}")
    print(f"   SKU: {product.sku}")
    print(f"   Name: {product.name}")
    print(f"   Description: {product.description or ''}")
    print(f"   Price: ${product.price:.2f}")
    if product.created_at is not None:
        print(f"   Created: {product.created_at:%Y-%m-%d %H:%M:%S}")


def cmd_list_products(container: ServiceContainer, args: argparse.Namespace) -> None:
    products = container.products.list_products()
    if not products:
        print("No products found.")
        return
    print(f"Products in Inventory ({len(products)} items):")
    print(f"{'ID':<6} {'SKU':<15} {'Name':<30} {'Price':<10}")
    print(f"{'-' * 6} {'-' * 15} {'-' * 30} {'-' * 10}")
    for product in products:
        print(f"{product.id:<6} {product.sku:<15} {product.name:<30} ${product.price:<9.2f}")


def cmd_add_location(container: ServiceContainer, args: argparse.Namespace) -> None:
    location = container.locations.create_location(args.name)
    print("Location created successfully!")
    print(f"   ID: {location.id}")
    print(f"   Name: {location.name}")


def cmd_list_locations(container: ServiceContainer, args: argparse.Namespace) -> None:
    locations = container.locations.list_locations()
    if not locations:
        print("No locations found.")
        return
    print(f"Locations ({len(locations)}):")
    print(f"{'ID':<6} {'Name':<30}")
    print(f"{'-' * 6} {'-' * 30}")
    for location in locations:
        print(f"{location.id:<6} {location.name:<30}")


def cmd_add_stock(container: ServiceContainer, args: argparse.Namespace) -> None:
    stock = container.stock.add_stock(args.product_id, args.location_id, args.quantity)
    print("Stock added successfully!")
    print(f"   Product ID: {stock.product_id}")
    print(f"   Location ID: {stock.location_id}")
    print(f"   New Quantity: {stock.quantity}")


def cmd_remove_stock(container: ServiceContainer, args: argparse.Namespace) -> None:
    stock = container.stock.remove_stock(args.product_id, args.location_id, args.quantity)
    print("Stock removed successfully!")
    print(f"   Product ID: {stock.product_id}")
    print(f"   Location ID: {stock.location_id}")
    print(f"   New Quantity: {stock.quantity}")


def cmd_move_stock(container: ServiceContainer, args: argparse.Namespace) -> None:
    stock = container.stock.move_stock(args.product_id, args.from_location_id, args.to_location_id, args.quantity)
    print("Stock moved successfully!")
    print(f"   Product ID: {stock.product_id}")
    print(f"   From Location: {args.from_location_id} -> To Location: {args.to_location_id}")
    print(f"   Quantity Moved: {args.quantity}")
    print(f"   New Quantity at Destination: {stock.quantity}")


def cmd_generate_report(container: ServiceContainer, args: argparse.Namespace) -> None:
    threshold = args.threshold
    if threshold is None:
        threshold = container.settings.LOW_STOCK_THRESHOLD

    stocks = container.stock.get_low_stock_report(threshold)
    if not stocks:
        print(f"No products found with stock below threshold {threshold}.")
        return

    print(f"Low Stock Report (Threshold: {threshold} items)")
    print(f"{'ID':<6} {'Product':<12} {'Location':<12} {'Quantity':<10}")
    print(f"{'-' * 6} {'-' * 12} {'-' * 12} {'-' * 10}")
    for stock in stocks:
        print(f"{stock.id:<6} {stock.product_id:<12} {stock.location_id:<12} {stock.quantity:<10}")


def cmd_list_movements(container: ServiceContainer, args: argparse.Namespace) -> None:
    movements = container.stock.list_movements(product_id=args.product_id, location_id=args.location_id)
    if not movements:
        print("No stock movements recorded.")
        return
    print(f"{'ID':<6} {'Type':<8} {'Product':<8} {'From':<6} {'To':<6} {'Qty':<8} Created")
    print("-" * W)
    for movement in movements:
        created = f"{movement.created_at:%Y-%m-%d %H:%M:%S}" if movement.created_at else ""
        print(
            f"{movement.id:<6} {movement.movement_type:<8} {movement.product_id:<8} "
            f"{movement.from_location_id or '-'!s:<6} {movement.to_location_id or '-'!s:<6} "
            f"{movement.quantity:<8} {created}"
        )


def cmd_migrate(container: ServiceContainer, args: argparse.Namespace) -> None:
    run_migrations(container.engine, args.revision)
    print(f"Database migrated to {args.revision}.")


def cmd_init_db(container: ServiceContainer, args: argparse.Namespace) -> None:
    init_models(container.engine)
    print("Database tables created.")


def cmd_serve(container: ServiceContainer, args: argparse.Namespace) -> None:
    import uvicorn
    from inventory.main import create_app

    app = create_app(container)
    print(f"Starting server on {args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


# =============================================================================
# Parser
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inventory",
        description="Manage products, locations, stock levels and stock movements.",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    def command(name: str, handler: Callable, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text, description=help_text)
        p.set_defaults(handler=handler)
        return p

    p = command("add-product", cmd_add_product, "Create a new product")
    p.add_argument("sku")
    p.add_argument("name")
    p.add_argument("description")
    p.add_argument("price", help="Unit price, e.g. 9.99")

    p = command("find-product", cmd_find_product, "Show a product by SKU")
    p.add_argument("sku")

    command("list-products", cmd_list_products, "List all products")

    p = command("add-location", cmd_add_location, "Create a new location")
    p.add_argument("name")

    command("list-locations", cmd_list_locations, "List all locations")

    p = command("add-stock", cmd_add_stock, "Add stock for a product at a location")
    p.add_argument("product_id", type=int)
    p.add_argument("location_id", type=int)
    p.add_argument("quantity", type=positive_int)

    p = command("remove-stock", cmd_remove_stock, "Remove stock for a product at a location")
    p.add_argument("product_id", type=int)
    p.add_argument("location_id", type=int)
    p.add_argument("quantity", type=positive_int)

    p = command("move-stock", cmd_move_stock, "Move stock between two locations atomically")
    p.add_argument("product_id", type=int)
    p.add_argument("from_location_id", type=int)
    p.add_argument("to_location_id", type=int)
    p.add_argument("quantity", type=positive_int)

    p = command("generate-report", cmd_generate_report, "Generate an inventory report")
    p.add_argument("report", choices=["low-stock"])
    p.add_argument("threshold", nargs="?", type=non_negative_int,
                   help="Report rows with quantity below this (default from LOW_STOCK_THRESHOLD)")

    p = command("list-movements", cmd_list_movements, "Show the stock movement audit trail")
    p.add_argument("--product-id", type=int)
    p.add_argument("--location-id", type=int)

    p = command("migrate", cmd_migrate, "Apply database migrations")
    p.add_argument("--revision", default="head")

    command("init-db", cmd_init_db, "Create missing tables without migrations")

    p = command("serve", cmd_serve, "Start the HTTP API server")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8080)

    return parser


def main(argv: Optional[Sequence[str]] = None, container: Optional[ServiceContainer] = None) -> int:
    args = build_parser().parse_args(argv)

    owns_container = container is None
    if owns_container:
        settings = get_settings()
        setup_logging(service_name=settings.SERVICE_NAME, level="WARNING", environment=settings.ENVIRONMENT,
                      version=settings.SERVICE_VERSION, stream=sys.stderr)
        container = build_container(settings)

    try:
        args.handler(container, args)
    except InventoryError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    finally:
        if owns_container:
            container.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
