# src/linkverify/engine/retry.py
"""Task attempt retries with tenacity.

A failed map or reduce attempt is re-run from scratch. Attempt output is
only committed on success, so retries cannot double count.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from linkverify.core.config import EngineSettings

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from linkverify.contracts.errors import StorageAccessError

T = TypeVar("T")


class MaxRetriesExceeded(Exception):
    """Raised when a task has used all of its attempts."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Max attempts ({attempts}) exceeded: {last_error}")


def is_retryable(error: BaseException) -> bool:
    """Transient infrastructure failures are retried; anything else is a bug."""
    return isinstance(error, StorageAccessError | OSError)


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for task attempts.

    max_attempts is the TOTAL number of tries, not the number of retries.
    """

    max_attempts: int = 2
    base_delay: float = 0.5  # seconds
    max_delay: float = 10.0  # seconds
    jitter: float = 0.5  # seconds
    exponential_base: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def from_settings(cls, settings: "EngineSettings") -> "RetryConfig":
        return cls(
            max_attempts=settings.task_attempts,
            base_delay=settings.retry_initial_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        )


class RetryManager:
    """Runs an operation under tenacity with exponential backoff and jitter.

    Example:
        manager = RetryManager(RetryConfig(max_attempts=3))

        output = manager.execute_with_retry(
            operation=lambda attempt: run_map_attempt(split, attempt),
            is_retryable=is_retryable,
            on_retry=lambda attempt, error: log_failure(attempt, error),
        )
    """

    def __init__(self, config: RetryConfig) -> None:
        self._config = config

    def execute_with_retry(
        self,
        operation: Callable[[int], T],
        *,
        is_retryable: Callable[[BaseException], bool],
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """Execute operation, passing it the 1-based attempt number.

        Raises:
            MaxRetriesExceeded: If every attempt failed with a retryable error
            Exception: The first non-retryable error, unchanged
        """
        attempt = 0
        last_error: BaseException | None = None

        try:
            for attempt_state in Retrying(
                stop=stop_after_attempt(self._config.max_attempts),
                wait=wait_exponential_jitter(
                    initial=self._config.base_delay,
                    max=self._config.max_delay,
                    exp_base=self._config.exponential_base,
                    jitter=self._config.jitter,
                ),
                retry=retry_if_exception(is_retryable),
                reraise=False,
            ):
                with attempt_state:
                    attempt = attempt_state.retry_state.attempt_number
                    try:
                        return operation(attempt)
                    except Exception as e:
                        last_error = e
                        if is_retryable(e) and on_retry:
                            on_retry(attempt, e)
                        raise

        except RetryError as e:
            final_error = last_error or e.last_attempt.exception()
            assert final_error is not None, "RetryError without exception is impossible"
            raise MaxRetriesExceeded(attempt, final_error) from e

        raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover
