"""Scan a signal's spectrum band by band for unusually strong bands."""

from __future__ import annotations

import math
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import MutableSequence, Sequence, TextIO

from bandscan.fir import convolve_and_compute_power, generate_band_pass, hamming_window
from bandscan.signal_io import (
    Signal,
    SignalError,
    load_binary_format_signal,
    load_text_format_signal,
    map_binary_format_signal,
)
from bandscan.timing import (
    ResourceScope,
    cycles_to_seconds,
    get_cycle_count,
    get_resources,
    get_resources_diff,
    get_seconds,
    timing_overhead,
)

__all__ = [
    "MAXWIDTH",
    "THRESHOLD",
    "ALIENS_LOW",
    "ALIENS_HIGH",
    "BandResult",
    "ScanResult",
    "avg_power",
    "max_of",
    "avg_of",
    "remove_dc",
    "partition_bands",
    "compute_band_powers",
    "analyze_signal",
    "load_signal",
    "main",
]

MAXWIDTH = 40
THRESHOLD = 2.0
ALIENS_LOW = 50000.0
ALIENS_HIGH = 150000.0

USAGE = "usage: band_scan text|bin|mmap signal_file Fs filter_order num_bands"
_EDGE = 0.0001  # keeps band edges strictly inside (0, Fs/2)

_KIND_NAMES = {"T": "Text", "B": "Binary", "M": "Mapped Binary"}
_LOADERS = {
    "T": load_text_format_signal,
    "B": load_binary_format_signal,
    "M": map_binary_format_signal,
}


@dataclass(frozen=True)
class BandResult:
    """Power found in one band."""

    index: int
    low: float
    high: float
    power: float
    of_interest: bool
    wow: bool


@dataclass
class ScanResult:
    """Outcome of a band scan."""

    dc: float
    signal_power: float
    bands: list[BandResult] = field(default_factory=list)
    wow: bool = False
    low: float = -1.0
    high: float = -1.0

    @property
    def center(self) -> float:
        return (self.low + self.high) / 2.0


def avg_power(data: Sequence[float]) -> float:
    """Mean of the squared samples."""
    if not data:
        raise ValueError("average power of an empty signal")
    return sum(v * v for v in data) / len(data)


def max_of(data: Sequence[float]) -> float:
    if not data:
        raise ValueError("maximum of an empty sequence")
    return max(data)


def avg_of(data: Sequence[float]) -> float:
    if not data:
        raise ValueError("average of an empty sequence")
    return sum(data) / len(data)


def remove_dc(data: MutableSequence[float]) -> float:
    """Subtract the mean from every sample in place and return that mean."""
    dc = avg_of(data)
    for i, value in enumerate(data):
        data[i] = value - dc
    return dc


def partition_bands(num_bands: int, num_threads: int) -> list[range]:
    """Split the bands into contiguous runs, one per thread, sizes within one."""
    if num_threads < 1:
        raise ValueError(f"need at least one thread, got {num_threads}")
    if num_bands < 0:
        raise ValueError(f"number of bands must not be negative, got {num_bands}")
    base, remainder = divmod(num_bands, num_threads)
    runs = []
    for i in range(num_threads):
        start = i * base + min(i, remainder)
        runs.append(range(start, start + base + (1 if i < remainder else 0)))
    return runs


def _band_edges(fs: float, num_bands: int, band: int) -> tuple[float, float]:
    bandwidth = (fs / 2) / num_bands
    return band * bandwidth + _EDGE, (band + 1) * bandwidth - _EDGE


def _pin_to_processor(cpu: int) -> None:
    if not hasattr(os, "sched_setaffinity"):
        raise RuntimeError("processor affinity is not supported here")
    try:
        os.sched_setaffinity(0, {cpu})
    except OSError as exc:
        raise RuntimeError(f"Can't setaffinity to processor {cpu}: {exc}") from exc


def _scan_run(
    sig: Signal,
    filter_order: int,
    num_bands: int,
    bands: range,
    thread_id: int,
    num_processors: int | None,
) -> list[float]:
    if num_processors is not None:
        _pin_to_processor(thread_id % num_processors)
    powers = []
    for band in bands:
        low, high = _band_edges(sig.fs, num_bands, band)
        coeffs = hamming_window(generate_band_pass(sig.fs, low, high, filter_order))
        powers.append(convolve_and_compute_power(sig.data, coeffs))
    return powers


def compute_band_powers(
    sig: Signal,
    filter_order: int,
    num_bands: int,
    num_threads: int = 1,
    num_processors: int | None = None,
) -> list[float]:
    """Filter the signal into ``num_bands`` equal bands and return each band's power.

    The bands are shared out among ``num_threads`` threads; when
    ``num_processors`` is given, thread ``i`` is pinned to processor
    ``i % num_processors``.
    """
    if num_bands < 1:
        raise ValueError(f"need at least one band, got {num_bands}")
    if num_processors is not None and num_processors < 1:
        raise ValueError(f"need at least one processor, got {num_processors}")
    runs = partition_bands(num_bands, num_threads)
    with ThreadPoolExecutor(max_workers=num_threads) as pool:
        futures = [
            pool.submit(
                _scan_run, sig, filter_order, num_bands, run, thread_id, num_processors
            )
            for thread_id, run in enumerate(runs)
        ]
        powers: list[float] = []
        for future in futures:
            powers.extend(future.result())
    return powers


def _in_alien_range(freq: float) -> bool:
    return ALIENS_LOW <= freq <= ALIENS_HIGH


def _star_count(power: float, max_power: float) -> int:
    scaled = MAXWIDTH * (power / max_power) if max_power else 0.0
    return math.ceil(scaled) if scaled > 0 else 0


def analyze_signal(
    sig: Signal,
    filter_order: int,
    num_bands: int,
    num_threads: int = 1,
    num_processors: int | None = None,
    out: TextIO | None = None,
) -> ScanResult:
    """Remove DC, measure every band's power, report it and flag strong bands."""
    out = sys.stdout if out is None else out

    dc = remove_dc(sig.data)
    print(f"Removing DC component of {dc:f}", file=out)
    signal_power = avg_power(sig.data)
    print(f"signal average power:     {signal_power:f}", file=out)

    rstart = get_resources(ResourceScope.THIS_PROCESS)
    start = get_seconds()
    tstart = get_cycle_count()

    powers = compute_band_powers(
        sig, filter_order, num_bands, num_threads, num_processors
    )

    tend = get_cycle_count()
    end = get_seconds()
    rdiff = get_resources_diff(rstart, get_resources(ResourceScope.THIS_PROCESS))

    max_band_power = max_of(powers)
    avg_band_power = avg_of(powers)
    result = ScanResult(dc=dc, signal_power=signal_power)

    for band, power in enumerate(powers):
        low, high = _band_edges(sig.fs, num_bands, band)
        of_interest = _in_alien_range(low) or _in_alien_range(high)
        wow = of_interest and power > THRESHOLD * avg_band_power
        if wow:
            result.wow = True
            if result.low < 0:
                result.low = low
            result.high = high
        result.bands.append(BandResult(band, low, high, power, of_interest, wow))
        stars = "*" * _star_count(power, max_band_power)
        tag = "(WOW)" if wow else "(meh)"
        print(f"{band:5d} {low:20f} to {high:20f} Hz: {power:20f} {stars}{tag}", file=out)

    print(
        "Resource usages:\n"
        f"User time        {rdiff.usertime:f} seconds\n"
        f"System time      {rdiff.systime:f} seconds\n"
        f"Page faults      {rdiff.pagefaults}\n"
        f"Page swaps       {rdiff.pageswaps}\n"
        f"Blocks of I/O    {rdiff.ioblocks}\n"
        f"Signals caught   {rdiff.sigs}\n"
        f"Context switches {rdiff.contextswitches}",
        file=out,
    )
    overhead = timing_overhead()
    cycles = tend - tstart
    print(
        f"Analysis took {cycles} cycles ({cycles_to_seconds(cycles):f} seconds) "
        f"by cycle count, timing overhead={overhead} cycles\n"
        "Note that cycle count only makes sense if the thread stayed on one core",
        file=out,
    )
    print(f"Analysis took {end - start:f} seconds by basic timing", file=out)
    return result


def load_signal(kind: str, path: str | os.PathLike) -> Signal:
    """Load or map a signal; ``kind`` starts with t (text), b (binary) or m (mapped)."""
    loader = _LOADERS.get(kind[:1].upper())
    if loader is None:
        raise ValueError(f"Unknown signal type {kind!r}")
    return loader(path)


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) not in (5, 7):
        print(USAGE)
        return -1
    threaded = len(args) == 7

    kind, path = args[0], args[1]
    try:
        fs = float(args[2])
        filter_order = int(args[3])
        num_bands = int(args[4])
        num_threads = int(args[5]) if threaded else 1
        num_processors = int(args[6]) if threaded else None
    except ValueError as exc:
        print(f"invalid argument: {exc}")
        print(USAGE)
        return -1

    problems = []
    if not fs > 0.0:
        problems.append("Fs must be positive")
    if filter_order <= 0 or filter_order % 2:
        problems.append("filter_order must be a positive even number")
    if num_bands <= 0:
        problems.append("num_bands must be positive")
    if threaded and (num_threads <= 0 or num_processors <= 0):
        problems.append("threads and processors must be positive")
    if problems:
        for problem in problems:
            print(problem)
        return -1

    kind_name = _KIND_NAMES.get(kind[:1].upper(), "UNKNOWN TYPE")
    if threaded:
        print(
            f"type:        {kind_name}\n"
            f"file:        {path}\n"
            f"Fs:          {fs:f} Hz\n"
            f"order:       {filter_order}\n"
            f"bands:       {num_bands}\n"
            f"threads:     {num_threads}\n"
            f"processors: {num_processors}"
        )
    else:
        print(
            f"type:     {kind_name}\n"
            f"file:     {path}\n"
            f"Fs:       {fs:f} Hz\n"
            f"order:    {filter_order}\n"
            f"bands:    {num_bands}"
        )

    print("Load or map file")
    try:
        sig = load_signal(kind, path)
    except ValueError:
        print("Unknown signal type")
        return -1
    except SignalError as exc:
        print(exc, file=sys.stderr)
        print("Unable to load or map file")
        return -1

    with sig:
        sig.fs = fs
        try:
            result = analyze_signal(
                sig, filter_order, num_bands, num_threads, num_processors
            )
        except (ValueError, RuntimeError) as exc:
            print(f"Analysis failed: {exc}")
            return -1

    if result.wow:
        print(
            f"POSSIBLE ALIENS {result.low:f}-{result.high:f} HZ "
            f"(CENTER {result.center:f} HZ)"
        )
    else:
        print("no aliens")
    return 0


if __name__ == "__main__":
    sys.exit(main())