"""Loading, saving and memory-mapping sampled signals in text and binary form."""

from __future__ import annotations

import mmap
import os
from array import array
from typing import BinaryIO, Iterable, MutableSequence

__all__ = [
    "SignalError",
    "Signal",
    "load_text_format_signal",
    "save_text_format_signal",
    "load_binary_format_signal",
    "save_binary_format_signal",
    "map_binary_format_signal",
    "unmap_binary_format_signal",
]

_SAMPLE_SIZE = array("d").itemsize
_OFFSET_TO_DATA = 0


class SignalError(Exception):
    """A signal could not be loaded, saved, mapped or unmapped."""


class Signal:
    """A sampled signal: its samples and its sample rate.

    The samples are a list for loaded signals and a writable view of the file
    for mapped ones; writes to a mapped signal go through to the file.
    """

    def __init__(self, data: Iterable[float] = (), fs: float = 0.0) -> None:
        self.data: MutableSequence[float] = (
            data if isinstance(data, memoryview) else list(data)
        )
        self.fs = float(fs)
        self._file: BinaryIO | None = None
        self._mmap: mmap.mmap | None = None
        self._base_view: memoryview | None = None

    @classmethod
    def _mapped(cls, file: BinaryIO, mapping: mmap.mmap) -> Signal:
        base = memoryview(mapping)
        sig = cls(base.cast("d"))
        sig._file = file
        sig._mmap = mapping
        sig._base_view = base
        return sig

    @property
    def num_samples(self) -> int:
        return len(self.data)

    @property
    def mapped(self) -> bool:
        return self._mmap is not None

    def close(self) -> None:
        """Release the signal; a mapped signal is unmapped."""
        if self.mapped:
            unmap_binary_format_signal(self)

    def __enter__(self) -> Signal:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        kind = "mapped" if self.mapped else "loaded"
        return f"Signal({kind}, num_samples={self.num_samples}, fs={self.fs})"


def _parse_samples(text: str) -> list[float]:
    """Read leading numbers, stopping at the first token that is not one."""
    samples = []
    for token in text.split():
        if "_" in token:
            break
        try:
            samples.append(float(token))
        except ValueError:
            break
    return samples


def load_text_format_signal(path: str | os.PathLike) -> Signal:
    """Load whitespace-separated samples from a text file."""
    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError as exc:
        raise SignalError(f"Cannot open file {path}: {exc}") from exc
    samples = _parse_samples(text)
    print(f"Found {len(samples)} samples")
    sig = Signal(samples)
    print(f"Read {sig.num_samples} samples")
    return sig


def save_text_format_signal(path: str | os.PathLike, sig: Signal) -> None:
    """Write one sample per line with six decimal places."""
    try:
        with open(path, "w") as f:
            f.writelines(f"{value:f}\n" for value in sig.data)
    except OSError as exc:
        raise SignalError(f"Cannot write file {path}: {exc}") from exc


def _num_samples_in_binary_file(path: str | os.PathLike) -> int:
    try:
        size = os.lstat(path).st_size
    except OSError as exc:
        raise SignalError(f"cannot stat file {path}: {exc}") from exc
    num = (size - _OFFSET_TO_DATA) // _SAMPLE_SIZE
    if num <= 0:
        raise SignalError(f"{path} holds no samples")
    return num


def load_binary_format_signal(path: str | os.PathLike) -> Signal:
    """Load native-endian doubles from a binary file."""
    num = _num_samples_in_binary_file(path)
    try:
        with open(path, "rb") as f:
            f.seek(_OFFSET_TO_DATA)
            raw = f.read(num * _SAMPLE_SIZE)
    except OSError as exc:
        raise SignalError(f"Cannot read file {path}: {exc}") from exc
    if len(raw) != num * _SAMPLE_SIZE:
        raise SignalError(f"Read failure on {path}")
    samples = array("d")
    samples.frombytes(raw)
    print(f"Read {num} samples")
    return Signal(samples.tolist())


def save_binary_format_signal(path: str | os.PathLike, sig: Signal) -> None:
    """Write the samples as native-endian doubles, over the start of the file."""
    payload = array("d", sig.data).tobytes()
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT, 0o644)
        with os.fdopen(fd, "wb") as f:
            f.seek(_OFFSET_TO_DATA)
            f.write(payload)
    except OSError as exc:
        raise SignalError(f"Cannot write file {path}: {exc}") from exc
    print(f"Wrote {sig.num_samples} samples")


def map_binary_format_signal(path: str | os.PathLike) -> Signal:
    """Map a binary signal file; changes to the samples are written back."""
    num = _num_samples_in_binary_file(path)
    try:
        file = open(path, "r+b")
    except OSError as exc:
        raise SignalError(f"Cannot open file {path}: {exc}") from exc
    try:
        mapping = mmap.mmap(
            file.fileno(),
            num * _SAMPLE_SIZE,
            access=mmap.ACCESS_WRITE,
            offset=_OFFSET_TO_DATA,
        )
    except (OSError, ValueError) as exc:
        file.close()
        raise SignalError(f"Cannot mmap {path}: {exc}") from exc
    return Signal._mapped(file, mapping)


def unmap_binary_format_signal(sig: Signal) -> None:
    """Unmap a mapped signal, flushing its samples to the file."""
    if not sig.mapped:
        raise SignalError("not mapped")
    if isinstance(sig.data, memoryview):
        sig.data.release()
    if sig._base_view is not None:
        sig._base_view.release()
    try:
        sig._mmap.flush()
        sig._mmap.close()
    except BufferError as exc:
        raise SignalError("mapped samples are still referenced") from exc
    finally:
        sig._file.close()
        sig._file = None
        sig._mmap = None
        sig._base_view = None
        sig.data = []