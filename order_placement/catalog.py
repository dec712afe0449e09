import logging
import threading
from collections.abc import Iterable
from decimal import Decimal

from .errors import InsufficientStockError, ProductNotFoundError
from .models import Product

logger = logging.getLogger(__name__)

SEED_PRODUCTS = (
    Product(id=1, name="Laptop", price=Decimal("999.99"), stock=10, category="Electronics"),
    Product(id=2, name="Smartphone", price=Decimal("699.99"), stock=15, category="Electronics"),
    Product(id=3, name="Headphones", price=Decimal("149.99"), stock=25, category="Electronics"),
    Product(id=4, name="Book", price=Decimal("19.99"), stock=50, category="Books"),
    Product(id=5, name="Coffee Maker", price=Decimal("79.99"), stock=20, category="Appliances"),
)


class CatalogStore:
    """In-memory product catalog.

    Products are frozen models, so every read hands out a snapshot that later
    stock changes cannot alter. All writes go through ``_lock``.
    """

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._lock = threading.Lock()
        self._products: dict[int, Product] = {}
        for product in products:
            self.add(product)

    # --- COMMANDS (Write Operations) ---
    def add(self, product: Product) -> Product:
        with self._lock:
            if product.id in self._products:
                msg = f"Product {product.id} already exists"
                raise ValueError(msg)
            self._products[product.id] = product
        return product

    def decrement_stock(self, product_id: int, quantity: int) -> Product:
        """Take ``quantity`` units out of stock, re-checking availability under the lock."""
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            if product.stock < quantity:
                raise InsufficientStockError(available=product.stock, requested=quantity)
            updated = product.model_copy(update={"stock": product.stock - quantity})
            self._products[product_id] = updated

        logger.info(
            "Reserved %s unit(s) of product %s, %s left",
            quantity,
            product_id,
            updated.stock,
        )
        return updated

    # --- QUERIES (Read Operations) ---
    def get(self, product_id: int) -> Product:
        with self._lock:
            product = self._products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def list_all(self) -> list[Product]:
        with self._lock:
            return sorted(self._products.values(), key=lambda p: p.id)
