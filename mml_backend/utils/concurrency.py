from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Settled(Generic[R]):
    ok: bool
    value: R | None = None
    error: BaseException | None = None


def map_settled(fn: Callable[[T], R], items: Iterable[T], *, concurrency: int = 5) -> list[Settled[R]]:
    """
    Apply `fn` to every item with at most `concurrency` workers in flight.

    Results come back in input order, one `Settled` per item. Exceptions raised by
    `fn` are captured on the result instead of propagating.
    """

    pending = list(items)
    if not pending:
        return []

    results: list[Settled[R] | None] = [None] * len(pending)
    workers = max(1, min(int(concurrency), len(pending)))

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(fn, item): index for index, item in enumerate(pending)}
        for fut in as_completed(futures):
            index = futures[fut]
            try:
                results[index] = Settled(ok=True, value=fut.result())
            except Exception as exc:
                results[index] = Settled(ok=False, error=exc)

    return [r for r in results if r is not None]
