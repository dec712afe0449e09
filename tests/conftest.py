import threading
import time
from collections.abc import Iterator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from order_placement.catalog import SEED_PRODUCTS, CatalogStore
from order_placement.config import Settings
from order_placement.errors import PaymentFailedError, UserNotFoundError
from order_placement.ledger import OrderLedger
from order_placement.main import create_app
from order_placement.metrics import MetricsRecorder
from order_placement.models import RemoteUser
from order_placement.placement import OrderPlacementCoordinator
from order_placement.user_client import BalanceOperation


class StubUserDirectory:
    """In-process stand-in for the user service.

    Records every call, can be told to fail either call and can add latency
    to widen race windows.
    """

    def __init__(self, balances: dict[int, Decimal] | None = None) -> None:
        self.balances: dict[int, Decimal] = dict(balances or {})
        self.fetch_calls: list[int] = []
        self.adjust_calls: list[tuple[int, Decimal, BalanceOperation]] = []
        self.fetch_error: Exception | None = None
        self.adjust_error: Exception | None = None
        self.latency = 0.0
        self._lock = threading.Lock()

    def fetch_user(self, user_id: int) -> RemoteUser:
        with self._lock:
            self.fetch_calls.append(user_id)
        if self.latency:
            time.sleep(self.latency)
        if self.fetch_error is not None:
            raise self.fetch_error
        with self._lock:
            if user_id not in self.balances:
                raise UserNotFoundError(user_id)
            balance = self.balances[user_id]
        return RemoteUser(
            id=user_id,
            name=f"User {user_id}",
            email=f"user{user_id}@example.com",
            balance=balance,
        )

    def adjust_balance(self, user_id: int, amount: Decimal, operation: BalanceOperation) -> None:
        with self._lock:
            self.adjust_calls.append((user_id, amount, operation))
        if self.latency:
            time.sleep(self.latency)
        if self.adjust_error is not None:
            raise self.adjust_error
        with self._lock:
            if user_id not in self.balances:
                raise PaymentFailedError("User not found")
            balance = self.balances[user_id]
            if operation == BalanceOperation.DEDUCT:
                if balance < amount:
                    raise PaymentFailedError("Insufficient balance")
                self.balances[user_id] = balance - amount
            else:
                self.balances[user_id] = balance + amount


@pytest.fixture
def settings() -> Settings:
    return Settings(
        USER_SERVICE_URL="http://fake-users",
        CB_USER_SERVICE_FAIL_MAX=2,
        CB_USER_SERVICE_RESET_TIMEOUT=60,
    )


@pytest.fixture
def catalog() -> CatalogStore:
    return CatalogStore(SEED_PRODUCTS)


@pytest.fixture
def ledger() -> OrderLedger:
    return OrderLedger()


@pytest.fixture
def metrics() -> MetricsRecorder:
    return MetricsRecorder()


@pytest.fixture
def users() -> StubUserDirectory:
    return StubUserDirectory({1: Decimal("1000"), 2: Decimal("10")})


@pytest.fixture
def coordinator(catalog, ledger, users, metrics) -> OrderPlacementCoordinator:
    return OrderPlacementCoordinator(catalog, ledger, users, metrics)


@pytest.fixture
def app(settings, users, catalog):
    return create_app(settings=settings, users=users, catalog=catalog)


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
