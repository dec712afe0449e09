import logging
import threading

from .errors import OrderNotFoundError
from .models import Order, OrderDraft

logger = logging.getLogger(__name__)


class OrderLedger:
    """Append-only record of completed orders with sequential ids starting at 1."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._orders: list[Order] = []
        self._next_id = 1

    # --- COMMANDS (Write Operations) ---
    def append(self, draft: OrderDraft) -> Order:
        with self._lock:
            order = Order(id=self._next_id, **draft.model_dump())
            self._orders.append(order)
            self._next_id += 1

        logger.info("Recorded order %s for user %s", order.id, order.user_id)
        return order

    # --- QUERIES (Read Operations) ---
    def list_all(self) -> list[Order]:
        with self._lock:
            return list(self._orders)

    def get(self, order_id: int) -> Order:
        # ids are dense and start at 1, so the id is the list position plus one
        with self._lock:
            if 1 <= order_id <= len(self._orders):
                return self._orders[order_id - 1]
        raise OrderNotFoundError(order_id)

    def list_by_user(self, user_id: int) -> list[Order]:
        with self._lock:
            return [order for order in self._orders if order.user_id == user_id]
