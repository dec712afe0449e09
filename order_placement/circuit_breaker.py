import logging
from collections.abc import Callable, Iterable

from pybreaker import CircuitBreaker, CircuitBreakerListener, CircuitBreakerState

from .config import Settings

logger = logging.getLogger(__name__)


class MonitoringListener(CircuitBreakerListener):
    def state_change(
        self,
        cb: CircuitBreaker,
        old_state: CircuitBreakerState,
        new_state: CircuitBreakerState,
    ) -> None:
        logger.warning(
            "CircuitBreaker '%s' state changed: '%s' -> '%s'",
            cb.name,
            old_state.name if old_state else None,
            new_state.name,
        )

    def failure(self, cb: CircuitBreaker, exc: BaseException) -> None:
        logger.error(
            "CircuitBreaker '%s' recorded failure (%s). Count: %d",
            cb.name,
            type(exc).__name__,
            cb.fail_counter,
        )


class CircuitBreakerFactory:
    """Hands out one breaker per downstream service, configured from settings.

    Thresholds are looked up as ``CB_<SERVICE>_FAIL_MAX`` and
    ``CB_<SERVICE>_RESET_TIMEOUT``.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._breakers: dict[str, CircuitBreaker] = {}
        self._listener = MonitoringListener()

    def get_breaker(
        self,
        service_name: str,
        exclude: Iterable[type[BaseException] | Callable[[BaseException], bool]] = (),
    ) -> CircuitBreaker:
        service_name = service_name.upper()
        if service_name not in self._breakers:
            fail_max = getattr(self._settings, f"CB_{service_name}_FAIL_MAX")
            reset_timeout = getattr(self._settings, f"CB_{service_name}_RESET_TIMEOUT")

            breaker = CircuitBreaker(
                fail_max=fail_max,
                reset_timeout=reset_timeout,
                exclude=list(exclude),
                throw_new_error_on_trip=False,
                listeners=[self._listener],
                name=service_name,
            )
            self._breakers[service_name] = breaker
            logger.info(
                "Initialized breaker for '%s': fail_max=%s, reset_timeout=%s",
                service_name,
                fail_max,
                reset_timeout,
            )

        return self._breakers[service_name]
