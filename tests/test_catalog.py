from decimal import Decimal

import pytest
from pydantic import ValidationError

from order_placement.catalog import CatalogStore
from order_placement.errors import InsufficientStockError, ProductNotFoundError
from order_placement.models import Product


def test_seeded_catalog_lists_in_id_order(catalog):
    products = catalog.list_all()
    assert [p.id for p in products] == [1, 2, 3, 4, 5]
    assert products[0].price == Decimal("999.99")


def test_get_unknown_product():
    with pytest.raises(ProductNotFoundError):
        CatalogStore().get(1)


def test_duplicate_product_rejected(catalog):
    with pytest.raises(ValueError, match="already exists"):
        catalog.add(Product(id=1, name="Dup", price=Decimal("1"), stock=1, category="X"))


def test_decrement_returns_new_snapshot(catalog):
    before = catalog.get(3)

    after = catalog.decrement_stock(3, 5)

    assert after.stock == 20
    assert before.stock == 25
    assert catalog.get(3).stock == 20


def test_decrement_rechecks_stock(catalog):
    with pytest.raises(InsufficientStockError) as excinfo:
        catalog.decrement_stock(1, 11)

    assert excinfo.value.available == 10
    assert excinfo.value.requested == 11
    assert catalog.get(1).stock == 10


def test_decrement_can_empty_stock(catalog):
    assert catalog.decrement_stock(1, 10).stock == 0
    with pytest.raises(InsufficientStockError):
        catalog.decrement_stock(1, 1)


def test_decrement_unknown_product(catalog):
    with pytest.raises(ProductNotFoundError):
        catalog.decrement_stock(99, 1)


def test_products_are_read_only(catalog):
    product = catalog.get(1)
    with pytest.raises(ValidationError):
        product.stock = 0
    assert catalog.get(1).stock == 10
