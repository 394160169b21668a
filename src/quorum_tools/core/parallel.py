from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence, TypeVar

from quorum_tools.errors import BatchError
from quorum_tools.utils.logger import logger

T = TypeVar("T")
R = TypeVar("R")


def do_work_in_parallel(
    title: str,
    elements: Sequence[T],
    callback: Callable[[T], R],
    *,
    summary: str = BatchError.DEFAULT_SUMMARY,
    max_workers: Optional[int] = None,
) -> List[R]:
    """
    Run ``callback`` for every element concurrently and wait for all of them.

    One worker thread is used per element unless ``max_workers`` bounds the
    pool. Workers only return or raise; the calling thread is the only one
    that counts outcomes, so nothing is shared between workers.

    Every element is allowed to finish before this returns, even when some
    have already failed. If any callback raised, a :class:`BatchError` is
    raised carrying the success count and every error message in the order
    the failures completed.

    Args:
        title: Batch name used in logs and in the aggregate error.
        elements: Elements to process. An empty sequence is a no-op.
        callback: Action applied to each element.
        summary: Format of the count line, with ``{done}`` and ``{total}``.
        max_workers: Optional cap on concurrent workers.

    Returns:
        The results of successful callbacks, in completion order.
    """
    logger.debug(title)
    total = len(elements)
    if total == 0:
        return []

    workers = total if max_workers is None else max(1, min(max_workers, total))
    results: List[R] = []
    errors: List[str] = []

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="qctl-worker") as pool:
        futures = [pool.submit(callback, el) for el in elements]
        for future in as_completed(futures):
            try:
                results.append(future.result())
            except Exception as e:
                errors.append(str(e))

    if errors:
        raise BatchError(title, len(results), total, errors, summary=summary)
    return results


__all__ = ["do_work_in_parallel"]
