"""Run independent coroutines with a cap on how many are in flight."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TaskOutcome(Generic[T]):
    """Result slot for one task: either a value or the exception it raised."""
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, re-raising the task's exception if it failed."""
        if self.error is not None:
            raise self.error
        return self.value


async def gather_limited(
    factories: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
) -> list[TaskOutcome[T]]:
    """Run task factories with at most ``limit`` running at once.

    Tasks are admitted in input order as slots free up. Failures are isolated:
    a task that raises fills its own slot with the error and its siblings keep
    running. Results are returned in input order regardless of completion order.

    Args:
        factories: Zero-argument callables each returning an awaitable
        limit: Maximum number of tasks in flight

    Returns:
        One TaskOutcome per factory, in input order
    """
    if limit < 1:
        raise ValueError(f"Concurrency limit must be at least 1, got {limit}")

    semaphore = asyncio.Semaphore(limit)

    async def run(index: int, factory: Callable[[], Awaitable[T]]) -> TaskOutcome[T]:
        async with semaphore:
            try:
                return TaskOutcome(value=await factory())
            except Exception as e:
                logger.debug(f"Task {index} failed: {e}")
                return TaskOutcome(error=e)

    return list(await asyncio.gather(*(run(i, f) for i, f in enumerate(factories))))


def unwrap_all(outcomes: Sequence[TaskOutcome[Any]]) -> list[Any]:
    """Return all values, raising the first error in input order."""
    return [outcome.unwrap() for outcome in outcomes]
