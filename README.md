# bandscan

`bandscan` splits a sampled signal into equal-width frequency bands, filters each
band with a Hamming-windowed FIR band-pass filter and reports the average power
in every band. Bands that have an edge between 50 kHz and 150 kHz and whose power
is more than twice the average band power are flagged as `(WOW)`. A run that
finds any such band prints `POSSIBLE ALIENS` with the frequency range and its
centre. Otherwise it prints `no aliens`.

The package also holds the filter toolkit the scan is built on. That covers
low-pass, high-pass, band-pass and band-stop FIR design, convolution,
Butterworth design and zero-phase filtering. It also has timing and
resource-usage helpers and two small threading demonstrations.

It is written for Linux. Resource usage comes from the standard `resource`
module. Pinning threads to processors uses `os.sched_setaffinity`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Signal files

Signals are read in one of three forms:

* `text`: whitespace-separated decimal samples. Reading stops at the first token that is not a number.
* `bin`: raw native-endian 64-bit floats, with no header.
* `mmap`: the same binary file, memory-mapped instead of read. Changes to the samples are written back to the file.

Only the first letter of the kind counts, in either case.

## Command line

```
band-scan KIND SIGNAL_FILE FS FILTER_ORDER NUM_BANDS [NUM_THREADS NUM_PROCESSORS]
```

* `FS` is the sample rate in Hz and must be positive.
* `FILTER_ORDER` must be a positive even number.
* `NUM_BANDS` must be positive.
* `NUM_THREADS` and `NUM_PROCESSORS` must be given together, and both must be positive.
  * They spread the bands across worker threads.
  * Thread `i` is pinned to processor `i % NUM_PROCESSORS`.
  * On a platform without processor affinity the analysis fails.
  * Without these two arguments the scan runs in one thread and pins nothing.

The command exits with status 0 on success. It exits with status 255 on bad
arguments, on an unknown signal kind, on a file that cannot be loaded, or on a
failed analysis.

Example:

```
band-scan text samples.txt 400000 32 20 4 4
```

The demos:

```
parallel-sum NUM_THREADS NUM_PROCESSORS VECTOR_LENGTH
thread-demo NUM_THREADS NUM_PROCESSORS
```

`parallel-sum` adds up `0, 1, ..., VECTOR_LENGTH-1` twice:

* once sequentially;
* once split into equal blocks, one per thread, where the last thread also takes the leftover.

It prints both sums with their cycle counts.

`thread-demo` starts threads that pin themselves to processors. Each thread
sleeps for a random one to ten seconds, and the command then joins them all
again, reporting each step.

## Library use

```python
from bandscan.fir import generate_band_pass, hamming_window, convolve_and_compute_power
from bandscan.signal_io import load_text_format_signal
from bandscan.band_scan import analyze_signal

coeffs = hamming_window(generate_band_pass(1000.0, 100.0, 200.0, 16))
power = convolve_and_compute_power([0.0, 1.0, 0.0, -1.0] * 50, coeffs)

with load_text_format_signal("samples.txt") as sig:
    sig.fs = 400000.0
    result = analyze_signal(sig, 32, 20, 4, 4)
    print(result.wow, result.low, result.high, result.center)
```

### `bandscan.band_scan`

* `analyze_signal` returns a `ScanResult`. It holds the removed DC offset, the signal power, and one `BandResult` per band.
* `compute_band_powers` returns only the band powers.
* `partition_bands` shows how the bands are shared out among threads.
* `load_signal(kind, path)` picks the loader from the kind's first letter.

### `bandscan.fir`

* `butter(n, fcf)` returns the numerator and denominator coefficients of an order-`n` Butterworth low-pass filter. `fcf` is a fraction of the Nyquist frequency.
* `apply_filter(a, b, x)` runs that filter forwards.
* `filtfilt(a, b, x)` runs it forwards and then backwards.

### `bandscan.signal_io`

* It loads, saves and maps signals.
* Failures raise `SignalError`.
* `save_binary_format_signal` writes over the start of an existing file and does not truncate it.

### `bandscan.timing`

* It offers wall-clock and cycle-count timers.
* `get_resources` returns a `Resources` value. `Resources` values can be subtracted to see what a piece of work cost.

## What it does not do

The "cycle counts" are not read from a processor counter. They are derived
from Python's monotonic nanosecond clock, scaled by a fixed nominal clock rate
of 2,792,847 kHz (`bandscan.timing.CPU_KHZ`). They are estimates of elapsed time
and no more.

Band filtering is plain Python. It runs in worker threads, but those threads do
not make it faster.