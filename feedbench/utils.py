"""
Utility Functions for the feed propagation benchmark.

This module provides the small pure helpers the benchmark is built on:

- Deterministic pseudo-random topic generation
- Reference buffers and their counter-style increment
- Canonical feed index strings
- Timing of a single awaited network call

Functions:
    lehmer_random: Seeded minstd generator returning floats in [0, 1).
    random_byte_array: Reproducible pseudo-random bytes for a seed.
    make_bytes: Zero-filled mutable buffer.
    increment_bytes: In-place multi-byte counter increment.
    feed_index_string: Fixed-width hex form of a feed update index.
    fan_out: Await several calls concurrently, all or nothing.
    measure_async: Await a coroutine factory and time it.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable, List, Tuple

from feedbench.config import FEED_INDEX_WIDTH

LEHMER_MULTIPLIER = 48271
LEHMER_MODULUS = 2 ** 31 - 1
_UINT32_MASK = 0xFFFFFFFF

MAX_FEED_INDEX = 2 ** (FEED_INDEX_WIDTH * 4) - 1


def lehmer_random(seed: int) -> Callable[[], float]:
    """Lehmer random number generator with seed (minstd_rand).

    Very fast but not well distributed, and NOT suitable for any security
    purpose. The product is kept as a wrapping 32-bit value and only its low
    31 bits are used for the output, so the same seed yields the same stream
    in every implementation that follows this rule.

    Args:
        seed: Seed for the pseudo-random generator.

    Returns:
        A function returning the next float in [0, 1) on each call.
    """
    state = seed & _UINT32_MASK

    def next_uniform() -> float:
        nonlocal state
        state = (LEHMER_MULTIPLIER * state) & _UINT32_MASK
        return (state & LEHMER_MODULUS) / 2 ** 31

    return next_uniform


def random_byte_array(length: int, seed: int = 500) -> bytes:
    """Generate reproducible pseudo-random bytes.

    !!! NOT CRYPTO SAFE !!! Use ``os.urandom`` or ``secrets`` for that.

    Args:
        length: Number of bytes to generate.
        seed: Seed for the pseudo-random generator.

    Returns:
        ``length`` bytes, identical for identical (length, seed) pairs.
    """
    rand = lehmer_random(seed)
    return bytes(int(rand() * 0xff) for _ in range(length))


def make_bytes(length: int) -> bytearray:
    """Return a new zero-filled buffer of the given length."""
    return bytearray(length)


def increment_bytes(buf: bytearray) -> None:
    """Increment ``buf`` in place as a big-endian counter.

    The last byte below 0xFF is incremented and every byte after it is reset
    to zero. A buffer where every byte is 0xFF is left unchanged; no overflow
    is signalled and the buffer never grows.
    """
    for i in range(len(buf) - 1, -1, -1):
        if buf[i] < 0xff:
            buf[i] += 1
            for j in range(i + 1, len(buf)):
                buf[j] = 0
            return


def feed_index_string(index: int) -> str:
    """Canonical feed index as returned by the storage network.

    Lowercase hexadecimal zero-padded to 16 characters (64-bit index space).

    Raises:
        ValueError: If the index is negative or does not fit in 64 bits.
    """
    if index < 0:
        raise ValueError(f"Feed index must be non-negative, got {index}")
    if index > MAX_FEED_INDEX:
        raise ValueError(f"Feed index {index} does not fit in {FEED_INDEX_WIDTH} hex digits")
    return format(index, f"0{FEED_INDEX_WIDTH}x")


async def fan_out(awaitables: Iterable[Awaitable[Any]]) -> List[Any]:
    """Await all concurrently and return results in order.

    The first failure cancels the calls still outstanding and is re-raised.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # Drain the cancelled tasks so none is left pending
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def measure_async(hook: Callable[[], Awaitable[Any]],
                        clock: Callable[[], float] = time.perf_counter) -> Tuple[float, Any]:
    """Await ``hook()`` once and return (elapsed seconds, returned value)."""
    start_time = clock()
    return_value = await hook()
    return clock() - start_time, return_value
