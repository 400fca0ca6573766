"""FIR filter design by windowed sincs, convolution and Butterworth IIR filters."""

from __future__ import annotations

import math
from typing import Sequence

__all__ = [
    "generate_low_pass",
    "generate_high_pass",
    "generate_band_pass",
    "generate_band_stop",
    "hamming_window",
    "convolve",
    "convolve_and_compute_power",
    "butter",
    "apply_filter",
    "filtfilt",
]


def _check_order(order: int) -> None:
    if order <= 0 or order % 2:
        raise ValueError(f"filter order must be a positive even number, got {order}")


def _check_frequency(fs: float, *critical: float) -> None:
    if fs <= 0:
        raise ValueError(f"sample rate must be positive, got {fs}")
    for fc in critical:
        if not 0 < fc < fs / 2:
            raise ValueError(
                f"critical frequency {fc} must lie strictly between 0 and {fs / 2}"
            )


def _sinc(ft: float, k: int) -> float:
    """Ideal low-pass impulse response at offset ``k`` (non-zero) from the centre."""
    return math.sin(2 * math.pi * ft * k) / (math.pi * k)


def _offsets(order: int) -> range:
    half = order // 2
    return range(-half, order - half + 1)


def generate_low_pass(fs: float, fc: float, order: int) -> list[float]:
    """Return the ``order + 1`` coefficients of a low-pass sinc filter."""
    _check_order(order)
    _check_frequency(fs, fc)
    ft = fc / fs
    return [2 * ft if k == 0 else _sinc(ft, k) for k in _offsets(order)]


def generate_high_pass(fs: float, fc: float, order: int) -> list[float]:
    """Return the ``order + 1`` coefficients of a high-pass sinc filter."""
    _check_order(order)
    _check_frequency(fs, fc)
    ft = fc / fs
    return [1 - 2 * ft if k == 0 else -_sinc(ft, k) for k in _offsets(order)]


def generate_band_pass(fs: float, fcl: float, fch: float, order: int) -> list[float]:
    """Return the ``order + 1`` coefficients of a band-pass sinc filter."""
    _check_order(order)
    _check_frequency(fs, fcl, fch)
    ftl = fcl / fs
    fth = fch / fs
    return [
        2 * (fth - ftl) if k == 0 else _sinc(fth, k) - _sinc(ftl, k)
        for k in _offsets(order)
    ]


def generate_band_stop(fs: float, fcl: float, fch: float, order: int) -> list[float]:
    """Return the ``order + 1`` coefficients of a band-stop (notch) sinc filter."""
    _check_order(order)
    _check_frequency(fs, fcl, fch)
    ftl = fcl / fs
    fth = fch / fs
    return [
        1 - 2 * (fth - ftl) if k == 0 else _sinc(ftl, k) - _sinc(fth, k)
        for k in _offsets(order)
    ]


def hamming_window(coeffs: Sequence[float]) -> list[float]:
    """Return the coefficients smoothed by a Hamming window."""
    order = len(coeffs) - 1
    _check_order(order)
    return [
        c * (0.54 - 0.46 * math.cos(2 * math.pi * n / order))
        for n, c in enumerate(coeffs)
    ]


def _causal_outputs(samples: Sequence[float], coeffs: Sequence[float]):
    order = len(coeffs) - 1
    for i in range(len(samples)):
        total = 0.0
        # Aperiodic, causal model: inputs before the start are taken as zero.
        for j in range(min(order, i), -1, -1):
            total += samples[i - j] * coeffs[j]
        yield total


def convolve(samples: Sequence[float], coeffs: Sequence[float]) -> list[float]:
    """Causal convolution; the output has the same length as the input."""
    return list(_causal_outputs(samples, coeffs))


def convolve_and_compute_power(
    samples: Sequence[float], coeffs: Sequence[float]
) -> float:
    """Convolve and return the average power of the filtered signal."""
    if not samples:
        raise ValueError("cannot compute the power of an empty signal")
    total = 0.0
    for value in _causal_outputs(samples, coeffs):
        total += value * value
    return total / len(samples)


def _binomial_mult(poles: Sequence[complex]) -> list[complex]:
    """Expand (x + p0)(x + p1)...(x + pn-1); return the non-leading coefficients."""
    a = [0j] * len(poles)
    for i, p in enumerate(poles):
        for j in range(i, 0, -1):
            a[j] += p * a[j - 1]
        a[0] += p
    return a


def _ccof_bwlp(n: int) -> list[float]:
    ccof = [0.0] * (n + 1)
    ccof[0] = 1.0
    ccof[1] = float(n)
    for i in range(2, n // 2 + 1):
        ccof[i] = (n - i + 1) * ccof[i - 1] / i
        ccof[n - i] = ccof[i]
    ccof[n - 1] = float(n)
    ccof[n] = 1.0
    return ccof


def _dcof_bwlp(n: int, fcf: float) -> list[float]:
    theta = math.pi * fcf
    st = math.sin(theta)
    ct = math.cos(theta)
    poles = []
    for k in range(n):
        parg = math.pi * (2 * k + 1) / (2 * n)
        a = 1.0 + st * math.sin(parg)
        poles.append(complex(-ct / a, -st * math.cos(parg) / a))
    return [1.0] + [c.real for c in _binomial_mult(poles)]


def _sf_bwlp(n: int, fcf: float) -> float:
    omega = math.pi * fcf
    fomega = math.sin(omega)
    parg0 = math.pi / (2 * n)
    sf = 1.0
    for k in range(n // 2):
        sf *= 1.0 + fomega * math.sin((2 * k + 1) * parg0)
    fomega = math.sin(omega / 2.0)
    if n % 2:
        sf *= fomega + math.cos(omega / 2.0)
    return fomega**n / sf


def butter(n: int, fcf: float) -> tuple[list[float], list[float]]:
    """Design an order-``n`` Butterworth low-pass filter.

    ``fcf`` is the cutoff as a fraction of the Nyquist frequency. Returns the
    numerator ``b`` and denominator ``a`` coefficients, ``n + 1`` of each.
    """
    if n < 1:
        raise ValueError(f"Butterworth order must be at least 1, got {n}")
    sf = _sf_bwlp(n, fcf)
    b = [c * sf for c in _ccof_bwlp(n)]
    a = _dcof_bwlp(n, fcf)
    return b, a


def apply_filter(
    a: Sequence[float], b: Sequence[float], x: Sequence[float]
) -> list[float]:
    """Apply the IIR filter ``(b, a)`` to ``x``: ``y = filter(b, a, x)``."""
    if len(a) != len(b) or not b:
        raise ValueError("a and b must be non-empty and of equal length")
    order = len(b) - 1
    y: list[float] = []
    for i in range(len(x)):
        span = min(i, order)
        value = 0.0
        for j in range(span + 1):
            value += b[j] * x[i - j]
        for j in range(span):
            value -= a[j + 1] * y[i - j - 1]
        y.append(value)
    return y


def filtfilt(a: Sequence[float], b: Sequence[float], x: Sequence[float]) -> list[float]:
    """Zero-phase filtering: filter forwards, then backwards."""
    forward = apply_filter(a, b, x)
    backward = apply_filter(a, b, forward[::-1])
    return backward[::-1]