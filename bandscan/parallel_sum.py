"""Sum a vector sequentially and with threads, and compare the two."""

from __future__ import annotations

import os
import sys
import threading
from typing import Iterable, Sequence

from bandscan.timing import get_cycle_count

__all__ = ["partition", "sequential_sum", "parallel_sum", "main"]

USAGE = "usage: parallel-sum-ex number-of-threads number-of-procs length-of-vector"


def _pin_to_processor(cpu: int) -> None:
    if not hasattr(os, "sched_setaffinity"):
        raise RuntimeError("processor affinity is not supported here")
    try:
        os.sched_setaffinity(0, {cpu})
    except OSError as exc:
        raise RuntimeError(f"Can't setaffinity to processor {cpu}: {exc}") from exc


def _running_total(values: Iterable[float]) -> float:
    total = 0.0
    for value in values:
        total += value
    return total


def partition(length: int, num_threads: int) -> list[range]:
    """Split ``range(length)`` into equal blocks; the last block takes the leftover."""
    if num_threads < 1:
        raise ValueError(f"need at least one thread, got {num_threads}")
    if length < 0:
        raise ValueError(f"length must not be negative, got {length}")
    block = length // num_threads
    runs = [range(i * block, (i + 1) * block) for i in range(num_threads - 1)]
    runs.append(range((num_threads - 1) * block, length))
    return runs


def sequential_sum(vector: Sequence[float]) -> float:
    """Add the elements one after another, left to right."""
    return _running_total(vector)


def parallel_sum(
    vector: Sequence[float], num_threads: int, num_processors: int | None = None
) -> float:
    """Sum ``vector`` with one thread per block, then add the partial sums.

    When ``num_processors`` is given, thread ``i`` is pinned to processor
    ``i % num_processors``.
    """
    if num_processors is not None and num_processors < 1:
        raise ValueError(f"need at least one processor, got {num_processors}")
    runs = partition(len(vector), num_threads)
    partial = [0.0] * num_threads
    errors: list[BaseException] = []

    def worker(thread_id: int, run: range) -> None:
        try:
            if num_processors is not None:
                _pin_to_processor(thread_id % num_processors)
            partial[thread_id] = _running_total(vector[run.start:run.stop])
        except BaseException as exc:  # reported by the caller after joining
            errors.append(exc)

    threads = [
        threading.Thread(target=worker, args=(thread_id, run))
        for thread_id, run in enumerate(runs)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    if errors:
        raise errors[0]
    return _running_total(partial)


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 3:
        print(USAGE, file=sys.stderr)
        return -1
    try:
        num_threads, num_processors, length = (int(a) for a in args)
    except ValueError:
        print(USAGE, file=sys.stderr)
        return -1
    if num_threads < 1 or num_processors < 1 or length < 0:
        print(USAGE, file=sys.stderr)
        return -1

    vector = [float(i) for i in range(length)]

    start = get_cycle_count()
    seq = sequential_sum(vector)
    sequential_time = get_cycle_count() - start

    start = get_cycle_count()
    try:
        par = parallel_sum(vector, num_threads, num_processors)
    except RuntimeError as exc:
        print(exc, file=sys.stderr)
        return -1
    parallel_time = get_cycle_count() - start

    print(
        f"Sequential sum:   {seq:f} ({sequential_time} cycles)\n"
        f"Parallel sum:     {par:f} ({parallel_time} cycles)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())