from decimal import Decimal

import pytest

from inventory.domain.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    LocationNotFoundError,
    ProductNotFoundError,
)


def test_create_product(products):
    product = products.create_product("ABC123", "Widget", "Blue widget", "9.99")
    assert product.id is not None
    assert product.sku == "ABC123"
    assert product.name == "Widget"
    assert product.description == "Blue widget"
    assert product.price == Decimal("9.99")
    assert product.created_at is not None


def test_create_product_accepts_float_price(products):
    product = products.create_product("FLT1", "Float priced", None, 9.99)
    assert product.price == Decimal("9.99")


def test_create_product_duplicate_sku(products):
    products.create_product("ABC123", "Widget")
    with pytest.raises(AlreadyExistsError):
        products.create_product("ABC123", "Another widget")
    assert len(products.list_products()) == 1


@pytest.mark.parametrize("sku,name", [("", "Widget"), ("ABC123", ""), ("   ", "Widget"), (None, "Widget")])
def test_create_product_requires_sku_and_name(products, sku, name):
    with pytest.raises(InvalidArgumentError):
        products.create_product(sku, name)
    assert products.list_products() == []


@pytest.mark.parametrize("price", ["-0.01", "abc", "NaN"])
def test_create_product_rejects_bad_price(products, price):
    with pytest.raises(InvalidArgumentError):
        products.create_product("ABC123", "Widget", None, price)


def test_get_by_sku_and_id(products):
    created = products.create_product("ABC123", "Widget")
    assert products.get_by_sku("ABC123").id == created.id
    assert products.get_by_id(created.id).sku == "ABC123"


def test_get_by_sku_is_repeatable(products):
    products.create_product("ABC123", "Widget", "Blue widget", "9.99")
    first = products.get_by_sku("ABC123")
    second = products.get_by_sku("ABC123")
    assert (first.id, first.sku, first.name, first.description, first.price, first.created_at) == \
        (second.id, second.sku, second.name, second.description, second.price, second.created_at)


def test_missing_product(products):
    with pytest.raises(ProductNotFoundError):
        products.get_by_sku("NOPE")
    with pytest.raises(ProductNotFoundError) as exc:
        products.get_by_id(42)
    assert "42" in exc.value.message


def test_list_products_in_insertion_order(products):
    products.create_product("B", "Second")
    products.create_product("A", "First")
    assert [p.sku for p in products.list_products()] == ["B", "A"]


def test_create_location(locations):
    location = locations.create_location("WH-01")
    assert location.name == "WH-01"
    assert locations.get_by_name("WH-01").id == location.id
    assert locations.get_by_id(location.id).name == "WH-01"


def test_create_location_duplicate_name(locations):
    locations.create_location("WH-01")
    with pytest.raises(AlreadyExistsError):
        locations.create_location("WH-01")
    assert len(locations.list_locations()) == 1


def test_create_location_requires_name(locations):
    with pytest.raises(InvalidArgumentError):
        locations.create_location("  ")


def test_missing_location(locations):
    with pytest.raises(LocationNotFoundError):
        locations.get_by_name("WH-99")
    with pytest.raises(LocationNotFoundError):
        locations.get_by_id(99)


def test_create_product_rejects_oversized_fields(products):
    with pytest.raises(InvalidArgumentError):
        products.create_product("S" * 51, "Widget")
    with pytest.raises(InvalidArgumentError):
        products.create_product("ABC123", "W" * 256)
    with pytest.raises(InvalidArgumentError):
        products.create_product("ABC123", "Widget", None, "99999999.995")
    with pytest.raises(InvalidArgumentError):
        products.create_product("ABC123", "Widget", None, "100000000")
    assert products.list_products() == []


def test_create_product_at_column_limits(products):
    product = products.create_product("S" * 50, "W" * 255, None, "99999999.99")
    assert product.price == Decimal("99999999.99")


def test_create_product_rounds_price_to_cents(products):
    assert products.create_product("ABC123", "Widget", None, "9.999").price == Decimal("10.00")


def test_create_location_rejects_long_name(locations):
    with pytest.raises(InvalidArgumentError):
        locations.create_location("L" * 256)
    assert locations.create_location("L" * 255).name == "L" * 255
