"""Run a batch of independent remote calls and wait for all of them."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Sequence, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class StageFailure:
    """Placeholder for a task that raised instead of returning a result."""

    error: str


def run_stage(
    tasks: Sequence[Callable[[], T]],
    max_workers: int = 8,
    name: str = "stage",
) -> List[Union[T, StageFailure]]:
    """Execute zero-argument callables concurrently.

    Results come back in submission order once every task has settled. A
    task that raises yields a ``StageFailure`` and does not affect the others.
    """

    if not tasks:
        return []
    workers = max(1, min(max_workers, len(tasks)))
    logger.debug("Running %s: %d task(s) on %d worker(s)", name, len(tasks), workers)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=name) as pool:
        futures = [pool.submit(task) for task in tasks]
        results: List[Union[T, StageFailure]] = []
        for future in futures:
            try:
                results.append(future.result())
            except Exception as exc:
                logger.debug("Task in %s raised", name, exc_info=True)
                results.append(StageFailure(error=str(exc) or exc.__class__.__name__))
    return results
