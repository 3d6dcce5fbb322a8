"""Bounded exponential backoff with jitter for upstream calls (tenacity)"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry policy for external calls.

    max_attempts=1 means no retry: the first failure propagates.
    Waits grow as base_delay * 2**n plus up to ``jitter`` seconds, capped at max_delay.
    Only exceptions in ``retry_on`` are retried; anything else is raised at once.
    """
    max_attempts: int = 1
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("delays must be non-negative")

    def retrying(self, description: str = "call") -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(initial=self.base_delay, max=self.max_delay, jitter=self.jitter),
            retry=retry_if_exception_type(self.retry_on),
            sleep=self.sleep,
            before_sleep=lambda retry_state: logger.warning(
                f"{description} failed (attempt {retry_state.attempt_number}/{self.max_attempts}): "
                f"{retry_state.outcome.exception()}. Retrying"
            ),
            reraise=True,
        )

    async def run(self, call: Callable[[], Awaitable[T]], description: str = "call") -> T:
        async for attempt in self.retrying(description):
            with attempt:
                return await call()
