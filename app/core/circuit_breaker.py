"""
Circuit breaker around the backing database.

When the database stops answering, every request would otherwise wait for a
connection timeout. After DEFAULT_FAIL_MAX consecutive connectivity failures
the breaker opens and calls fail fast with UnavailableError until
DEFAULT_RESET_TIMEOUT has passed, then one trial call is let through.

Uses the pybreaker library.

Circuit Breaker States:
- CLOSED: Requests pass through normally
- OPEN: Requests fail immediately with UnavailableError
- HALF_OPEN: One request allowed to test if the database has recovered
"""
from functools import wraps
from typing import Callable

from pybreaker import CircuitBreaker, CircuitBreakerError
from sqlalchemy.exc import DBAPIError, OperationalError

from app.core import metrics
from app.core.exceptions import PicksError, UnavailableError
from app.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FAIL_MAX = 5  # Number of failures before opening circuit
DEFAULT_RESET_TIMEOUT = 30  # Seconds before attempting to close circuit


def _is_domain_error(exc: BaseException) -> bool:
    """Domain errors and query bugs are not connectivity failures."""
    if isinstance(exc, PicksError):
        return True
    if isinstance(exc, DBAPIError):
        return not (isinstance(exc, OperationalError) or exc.connection_invalidated)
    return True


database_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    exclude=[_is_domain_error],
    name="database",
)


def get_breaker_state(breaker: CircuitBreaker = database_breaker) -> str:
    """Current state: 'closed', 'open', or 'half-open'."""
    return breaker.current_state


def reset_breaker(breaker: CircuitBreaker = database_breaker) -> None:
    """Manually close a breaker. Only do this once the database is back."""
    breaker.close()
    logger.warning(f"Circuit breaker '{breaker.name}' manually reset to CLOSED state")


def store_protected(func: Callable) -> Callable:
    """
    Run a store-touching function behind the database breaker.

    Connectivity failures and an open breaker both surface as
    UnavailableError; domain errors pass through untouched.

    Example:
        @store_protected
        def games_by_date(self, game_date):
            ...
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return database_breaker.call(func, *args, **kwargs)
        except CircuitBreakerError as e:
            logger.warning(f"Circuit breaker '{database_breaker.name}' is OPEN - rejecting {func.__name__}")
            raise UnavailableError("Data store is temporarily unavailable") from e
        except DBAPIError as e:
            if isinstance(e, OperationalError) or e.connection_invalidated:
                metrics.record_store_failure(type(e.orig).__name__ if e.orig is not None else "unknown")
                logger.error(f"Data store unreachable during {func.__name__}: {e}")
                raise UnavailableError("Data store is unreachable") from e
            raise

    return wrapper
