"""Start threads that pin themselves to processors, sleep a while and finish."""

from __future__ import annotations

import os
import random
import sys
import threading
import time
from typing import Callable, Sequence, TextIO

__all__ = ["run_threads", "main"]

USAGE = "usage: pthread-ex number-of-threads number-of-procs"


def _pin_to_processor(cpu: int) -> None:
    if not hasattr(os, "sched_setaffinity"):
        raise RuntimeError("processor affinity is not supported here")
    try:
        os.sched_setaffinity(0, {cpu})
    except OSError as exc:
        raise RuntimeError(f"Can't setaffinity to processor {cpu}: {exc}") from exc


def run_threads(
    num_threads: int,
    num_processors: int | None = None,
    out: TextIO | None = None,
    sleep: Callable[[float], object] | None = None,
    rng: random.Random | None = None,
) -> list[int]:
    """Run ``num_threads`` sleeping threads and return each one's sleep in seconds.

    Each thread sleeps between 1 and 10 seconds. When ``num_processors`` is
    given, thread ``i`` is pinned to processor ``i % num_processors``.
    """
    if num_threads < 1:
        raise ValueError(f"need at least one thread, got {num_threads}")
    if num_processors is not None and num_processors < 1:
        raise ValueError(f"need at least one processor, got {num_processors}")
    out = sys.stdout if out is None else out
    sleep = time.sleep if sleep is None else sleep
    rng = random.Random(int(time.time())) if rng is None else rng

    lock = threading.Lock()
    durations = [0] * num_threads
    errors: list[BaseException] = []

    def say(line: str) -> None:
        with lock:
            print(line, file=out)

    def worker(myid: int) -> None:
        with lock:
            mytime = 1 + rng.randrange(10)
        durations[myid] = mytime
        say(f"Hello from thread {myid} (tid {threading.get_ident()})")
        if num_processors is not None:
            cpu = myid % num_processors
            say(f"Thread {myid} is putting itself onto processor {cpu}")
            try:
                _pin_to_processor(cpu)
            except RuntimeError as exc:
                errors.append(exc)
                return
        say(f"Thread {myid} now sleeping for {mytime} seconds")
        sleep(mytime)
        say(f"Thread {myid} done sleeping and now exiting")

    where = (
        f" on {num_processors} processors (hardware threads)"
        if num_processors is not None
        else ""
    )
    say(f"Starting {num_threads} software threads{where}")

    threads: list[threading.Thread | None] = []
    for i in range(num_threads):
        thread = threading.Thread(target=worker, args=(i,))
        try:
            thread.start()
        except RuntimeError as exc:
            say(f"Failed to start thread {i}")
            say(f"Failed to start thread: {exc}")
            threads.append(None)
        else:
            say(f"Started thread {i}, tid {thread.ident}")
            threads.append(thread)

    started = sum(1 for t in threads if t is not None)
    say(f"Finished starting threads ({started} started)")
    say("Now joining")

    for i, thread in enumerate(threads):
        if thread is None:
            say(f"Skipping {i} (wasn't started successfully)")
            continue
        say(f"Joining with {i}, tid {thread.ident}")
        thread.join()
        say(f"Done joining with {i}")

    say("Done!")
    if errors:
        raise errors[0]
    return durations


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        if len(args) != 2:
            raise ValueError("wrong number of arguments")
        num_threads, num_processors = (int(a) for a in args)
        if num_threads < 1 or num_processors < 1:
            raise ValueError("counts must be positive")
    except ValueError:
        print(USAGE, file=sys.stderr)
        return -1
    try:
        run_threads(num_threads, num_processors)
    except RuntimeError as exc:
        print(exc, file=sys.stderr)
        return -1
    return 0


if __name__ == "__main__":
    sys.exit(main())