"""
Order placement.

    validate request
    look up product, check stock           -> local catalog (read only)
    verify user exists, check balance      -> user service (read only)
    debit balance                          -> user service (write)
    take stock out of the catalog          -> local catalog (write)
    record the order                       -> local ledger (write)

Every step either succeeds or raises, and nothing after a failing step runs.
Nothing is written anywhere before the debit, so a failure up to and
including the debit leaves both services untouched. The debit and the stock
decrement are not one transaction: if the decrement loses a race after the
debit went through, the money is gone without goods reserved. That case is
logged at CRITICAL and counted so an operator can re-credit the user.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal

from .catalog import CatalogStore
from .errors import (
    InsufficientBalanceError,
    InsufficientStockError,
    InvalidRequestError,
    OrderPlacementError,
    PaymentFailedError,
    ServiceUnavailableError,
    UserVerificationError,
)
from .ledger import OrderLedger
from .metrics import MetricsRecorder
from .models import Order, OrderDraft, OrderStatusEnum, Product
from .user_client import BalanceOperation, UserDirectory

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class OrderPlacementCoordinator:
    def __init__(
        self,
        catalog: CatalogStore,
        ledger: OrderLedger,
        users: UserDirectory,
        metrics: MetricsRecorder,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.catalog = catalog
        self.ledger = ledger
        self.users = users
        self.metrics = metrics
        self.clock = clock

    def place_order(self, product_id: object, quantity: object, user_id: object) -> Order:
        try:
            order = self._place(product_id, quantity, user_id)
        except OrderPlacementError as err:
            self.metrics.record_failure(err.kind)
            logger.warning(
                "Order placement failed for user %s, product %s: %s",
                user_id,
                product_id,
                err.message,
            )
            raise

        self.metrics.record_order(order.status.value, order.total)
        logger.info(
            "Order %s placed: user %s bought %s x product %s for %s",
            order.id,
            order.user_id,
            order.quantity,
            order.product_id,
            order.total,
        )
        return order

    def _place(self, product_id: object, quantity: object, user_id: object) -> Order:
        self._validate(product_id, quantity, user_id)

        product = self.catalog.get(product_id)
        if product.stock < quantity:
            raise InsufficientStockError(available=product.stock, requested=quantity)

        try:
            user = self.users.fetch_user(user_id)
        except ServiceUnavailableError as err:
            raise UserVerificationError(err.message) from err

        total = product.price * quantity
        if user.balance < total:
            raise InsufficientBalanceError(available=user.balance, required=total)

        try:
            self.users.adjust_balance(user_id, total, BalanceOperation.DEDUCT)
        except PaymentFailedError:
            raise
        except OrderPlacementError as err:
            raise PaymentFailedError(err.message) from err
        except Exception as err:
            logger.exception("Unexpected error while debiting user %s", user_id)
            raise PaymentFailedError(str(err)) from err

        # From here on the user has paid.
        try:
            self.catalog.decrement_stock(product.id, quantity)
        except OrderPlacementError as err:
            self._report_orphaned_debit(user_id, product, quantity, total, err)
            raise

        draft = OrderDraft(
            user_id=user_id,
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            price_per_unit=product.price,
            total=total,
            status=OrderStatusEnum.COMPLETED,
            timestamp=self.clock(),
        )
        return self.ledger.append(draft)

    @staticmethod
    def _validate(product_id: object, quantity: object, user_id: object) -> None:
        if not _is_int(product_id) or not _is_int(quantity) or quantity <= 0:
            msg = "productId and a positive quantity are required"
            raise InvalidRequestError(msg)
        if not _is_int(user_id):
            msg = "userId is required"
            raise InvalidRequestError(msg)

    def _report_orphaned_debit(
        self,
        user_id: int,
        product: Product,
        quantity: int,
        total: Decimal,
        err: OrderPlacementError,
    ) -> None:
        self.metrics.record_orphaned_debit()
        logger.critical(
            "ORPHANED DEBIT: user %s was charged %s for %s x product %s (%s) "
            "but stock could not be reserved: %s. Manual re-credit required.",
            user_id,
            total,
            quantity,
            product.id,
            product.name,
            err.message,
        )
