"""Wall-clock, cycle-count and resource-usage measurement."""

from __future__ import annotations

import enum
import resource
import time
from dataclasses import dataclass

__all__ = [
    "CPU_KHZ",
    "ResourceScope",
    "Resources",
    "get_seconds",
    "get_seconds_diff",
    "get_cycle_count",
    "get_cycle_count_diff",
    "cycles_to_seconds",
    "timing_overhead",
    "get_resources",
    "get_resources_diff",
]

CPU_KHZ = 2792847  # nominal clock rate used to convert between cycles and seconds


def get_seconds() -> float:
    """Elapsed wall-clock time in seconds since the epoch."""
    return time.time()


def get_seconds_diff(first: float) -> float:
    """Seconds elapsed since ``first``."""
    return get_seconds() - first


def get_cycle_count() -> int:
    """Monotonic cycle count at the nominal clock rate."""
    return time.perf_counter_ns() * CPU_KHZ // 1_000_000


def get_cycle_count_diff(first: int) -> int:
    """Cycles elapsed since ``first``."""
    return get_cycle_count() - first


def cycles_to_seconds(count: int) -> float:
    """Convert a cycle count to seconds at the nominal clock rate."""
    return count / (1000.0 * CPU_KHZ)


def timing_overhead() -> int:
    """Measure and report the cost of reading the cycle counter."""
    start = get_cycle_count()
    end = get_cycle_count()
    print(f"timing overhead is at least {end - start} cycles")
    return end - start


class ResourceScope(enum.Enum):
    THIS_PROCESS = "process"
    THIS_THREAD = "thread"


@dataclass(frozen=True)
class Resources:
    """Resources consumed by a process or thread."""

    usertime: float = 0.0
    systime: float = 0.0
    pagefaults: int = 0
    pageswaps: int = 0
    ioblocks: int = 0
    sigs: int = 0
    contextswitches: int = 0

    def __sub__(self, other: Resources) -> Resources:
        if not isinstance(other, Resources):
            return NotImplemented
        return Resources(
            usertime=self.usertime - other.usertime,
            systime=self.systime - other.systime,
            pagefaults=self.pagefaults - other.pagefaults,
            pageswaps=self.pageswaps - other.pageswaps,
            ioblocks=self.ioblocks - other.ioblocks,
            sigs=self.sigs - other.sigs,
            contextswitches=self.contextswitches - other.contextswitches,
        )


def get_resources(scope: ResourceScope = ResourceScope.THIS_PROCESS) -> Resources:
    """Return the resources the calling process or thread has used so far."""
    if scope is ResourceScope.THIS_PROCESS:
        who = resource.RUSAGE_SELF
    else:
        if not hasattr(resource, "RUSAGE_THREAD"):
            raise OSError("per-thread resource usage is not supported here")
        who = resource.RUSAGE_THREAD
    ru = resource.getrusage(who)
    return Resources(
        usertime=ru.ru_utime,
        systime=ru.ru_stime,
        pagefaults=ru.ru_minflt + ru.ru_majflt,
        pageswaps=ru.ru_nswap,
        ioblocks=ru.ru_inblock + ru.ru_oublock,
        sigs=ru.ru_nsignals,
        contextswitches=ru.ru_nvcsw + ru.ru_nivcsw,
    )


def get_resources_diff(first: Resources, second: Resources) -> Resources:
    """Resources used between two measurements."""
    return second - first