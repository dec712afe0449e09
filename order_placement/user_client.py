import enum
import logging
from decimal import Decimal
from typing import Protocol

import httpx
from pybreaker import CircuitBreakerError
from pydantic import ValidationError

from .circuit_breaker import CircuitBreakerFactory
from .config import Settings
from .errors import PaymentFailedError, ServiceUnavailableError, UserNotFoundError
from .models import RemoteUser

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_SERVER_ERROR = 500


class BalanceOperation(str, enum.Enum):
    ADD = "add"
    DEDUCT = "deduct"


class UserDirectory(Protocol):
    """What the order service needs from the user service."""

    def fetch_user(self, user_id: int) -> RemoteUser: ...

    def adjust_balance(
        self,
        user_id: int,
        amount: Decimal,
        operation: BalanceOperation,
    ) -> None: ...


def _is_client_error(exc: BaseException) -> bool:
    # 4xx answers are business outcomes, not an unhealthy user service
    return (
        isinstance(exc, httpx.HTTPStatusError)
        and exc.response.status_code < HTTP_SERVER_ERROR
    )


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text or f"HTTP {response.status_code}"


class UserServiceClient:
    """Blocking HTTP client for the user service.

    Every call is attempted exactly once. Transport errors, timeouts and 5xx
    answers count against the ``USER_SERVICE`` circuit breaker; while it is
    open calls fail immediately with ``ServiceUnavailableError``.

    ``USER_SERVICE_TIMEOUT`` bounds each phase of a call (connect, write,
    read, pool wait) separately. httpx has no whole-request deadline, so a
    server that keeps trickling bytes can hold a call past that figure; the
    read timeout only fires once the connection goes quiet for that long.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.Client | None = None,
        breakers: CircuitBreakerFactory | None = None,
    ) -> None:
        self.base_url = settings.USER_SERVICE_URL
        self.client = client or httpx.Client(
            base_url=settings.USER_SERVICE_URL,
            timeout=httpx.Timeout(settings.USER_SERVICE_TIMEOUT),
            headers={"Accept": "application/json"},
        )
        breakers = breakers or CircuitBreakerFactory(settings)
        self.breaker = breakers.get_breaker("USER_SERVICE", exclude=[_is_client_error])

    def close(self) -> None:
        self.client.close()

    def fetch_user(self, user_id: int) -> RemoteUser:
        logger.info("Contacting User service at %s for user %s", self.base_url, user_id)

        def _do_request() -> httpx.Response:
            response = self.client.get(f"/users/{user_id}")
            response.raise_for_status()
            return response

        try:
            response = self.breaker.call(_do_request)
        except httpx.HTTPStatusError as err:
            if err.response.status_code == HTTP_NOT_FOUND:
                raise UserNotFoundError(user_id) from err
            logger.warning(
                "User service answered %s for user %s",
                err.response.status_code,
                user_id,
            )
            msg = f"User service returned HTTP {err.response.status_code}"
            raise ServiceUnavailableError(msg) from err
        except CircuitBreakerError as err:
            logger.error("User service circuit is open, rejecting lookup of user %s", user_id)
            msg = "User service is currently unavailable."
            raise ServiceUnavailableError(msg) from err
        except httpx.RequestError as err:
            logger.exception("User service is unavailable for user %s: %s", user_id, err)
            msg = f"User service request failed: {err!s} ({type(err).__name__})"
            raise ServiceUnavailableError(msg) from err

        try:
            body = response.json(parse_float=Decimal)
            payload = body.get("data", body) if isinstance(body, dict) else body
            return RemoteUser.model_validate(payload)
        except (ValueError, ValidationError) as err:
            msg = f"User service returned a malformed user payload: {err}"
            raise ServiceUnavailableError(msg) from err

    def adjust_balance(
        self,
        user_id: int,
        amount: Decimal,
        operation: BalanceOperation,
    ) -> None:
        operation = BalanceOperation(operation)
        logger.info(
            "Requesting %s of %s on balance of user %s",
            operation.value,
            amount,
            user_id,
        )

        def _do_request() -> httpx.Response:
            response = self.client.patch(
                f"/users/{user_id}/balance",
                json={"amount": float(amount), "operation": operation.value},
            )
            response.raise_for_status()
            return response

        try:
            self.breaker.call(_do_request)
        except httpx.HTTPStatusError as err:
            reason = _error_detail(err.response)
            logger.warning("User service rejected %s for user %s: %s", operation.value, user_id, reason)
            raise PaymentFailedError(reason) from err
        except CircuitBreakerError as err:
            logger.error("User service circuit is open, rejecting %s for user %s", operation.value, user_id)
            msg = "User service is currently unavailable."
            raise ServiceUnavailableError(msg) from err
        except httpx.RequestError as err:
            logger.exception("User service is unavailable for user %s: %s", user_id, err)
            msg = f"User service request failed: {err!s} ({type(err).__name__})"
            raise ServiceUnavailableError(msg) from err
        else:
            logger.info("Balance %s for user %s succeeded", operation.value, user_id)
