from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


def chunks(seq: Iterable[T], size: int) -> Iterable[list[T]]:
    buf: list[T] = []
    for x in seq:
        buf.append(x)
        if len(buf) >= size:
            yield buf
            buf = []
    if buf:
        yield buf


async def gather_in_batches(
    items: Sequence[T], fn: Callable[[T], Awaitable[R]], batch_size: int
) -> list[R]:
    """Run ``fn`` over ``items`` with at most ``batch_size`` calls in flight.

    Batches run one after another; results keep the input order.
    """
    out: list[R] = []
    for group in chunks(items, max(1, batch_size)):
        out.extend(await asyncio.gather(*[fn(x) for x in group]))
    return out
