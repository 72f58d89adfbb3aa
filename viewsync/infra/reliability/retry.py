# =============================================================================
# File: viewsync/infra/reliability/retry.py
# Description: Retry mechanism with exponential backoff and jitter
# =============================================================================

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar

from viewsync.config.reliability_config import RetryConfig

logger = logging.getLogger("viewsync.retry")

T = TypeVar('T')


class JitterStrategy(ABC):
    """Base class for jitter strategies."""

    @abstractmethod
    def apply(self, base_delay: float) -> float:
        """Apply jitter to base delay."""
        pass


class FullJitter(JitterStrategy):
    """Full jitter: delay = random(0, base_delay)."""

    def apply(self, base_delay: float) -> float:
        return random.uniform(0, base_delay)


class EqualJitter(JitterStrategy):
    """Equal jitter: delay = base_delay/2 + random(0, base_delay/2)."""

    def apply(self, base_delay: float) -> float:
        half = base_delay / 2
        return half + random.uniform(0, half)


def get_jitter_strategy(jitter_type: str) -> JitterStrategy:
    """Get jitter strategy by name."""
    strategies = {
        'full': FullJitter(),
        'equal': EqualJitter(),
    }
    return strategies.get(jitter_type, FullJitter())


def compute_delay_ms(retry_config: RetryConfig, attempt: int,
                     jitter_strategy: Optional[JitterStrategy] = None) -> float:
    """Backoff delay before the attempt following `attempt` (1-based)."""
    base_delay_ms = min(
        retry_config.initial_delay_ms * (retry_config.backoff_factor ** (attempt - 1)),
        retry_config.max_delay_ms
    )
    if jitter_strategy:
        return jitter_strategy.apply(base_delay_ms)
    return base_delay_ms


async def retry_async(
        func: Callable[..., Awaitable[T]],
        *args: Any,
        retry_config: Optional[RetryConfig] = None,
        context: str = "operation",
        **kwargs: Any
) -> T:
    """
    Execute async function with retry logic.

    Errors rejected by `retry_config.retry_condition` are re-raised at once;
    the last error is re-raised when attempts are exhausted.
    """
    if retry_config is None:
        retry_config = RetryConfig()

    jitter_strategy = get_jitter_strategy(retry_config.jitter_type) if retry_config.jitter else None

    for attempt in range(1, retry_config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if retry_config.retry_condition and not retry_config.retry_condition(e):
                raise

            if attempt >= retry_config.max_attempts:
                logger.warning(
                    f"Retry exhausted for {context} after {attempt} attempts. Last error: {e}"
                )
                raise

            delay_seconds = compute_delay_ms(retry_config, attempt, jitter_strategy) / 1000

            logger.info(
                f"Retry attempt {attempt}/{retry_config.max_attempts} for {context} "
                f"after error: {e}. Waiting {delay_seconds:.2f}s before retry."
            )

            await asyncio.sleep(delay_seconds)

    raise RuntimeError(f"Retry loop for {context} ran with max_attempts={retry_config.max_attempts}")
