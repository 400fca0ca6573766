from array import array

import pytest

from bandscan.signal_io import (
    Signal,
    SignalError,
    load_binary_format_signal,
    load_text_format_signal,
    map_binary_format_signal,
    save_binary_format_signal,
    save_text_format_signal,
    unmap_binary_format_signal,
)

VALUES = [1.5, -2.25, 3.0, 0.125]


def test_text_round_trip(tmp_path):
    path = tmp_path / "sig.txt"
    save_text_format_signal(path, Signal(VALUES, 10.0))
    sig = load_text_format_signal(path)
    assert sig.data == pytest.approx(VALUES)
    assert sig.num_samples == len(VALUES)
    assert sig.fs == 0.0


def test_text_format_uses_six_decimals(tmp_path):
    path = tmp_path / "sig.txt"
    save_text_format_signal(path, Signal([1.5]))
    assert path.read_text() == "1.500000\n"


def test_text_load_stops_at_first_non_number(tmp_path):
    path = tmp_path / "sig.txt"
    path.write_text("1 2\nabc 3\n")
    sig = load_text_format_signal(path)
    assert sig.data == [1.0, 2.0]


def test_text_load_missing_file(tmp_path):
    with pytest.raises(SignalError):
        load_text_format_signal(tmp_path / "missing.txt")


def test_binary_round_trip_is_exact(tmp_path):
    path = tmp_path / "sig.bin"
    save_binary_format_signal(path, Signal(VALUES))
    assert path.read_bytes() == array("d", VALUES).tobytes()
    assert load_binary_format_signal(path).data == VALUES


def test_binary_ignores_trailing_partial_sample(tmp_path):
    path = tmp_path / "sig.bin"
    path.write_bytes(array("d", VALUES[:2]).tobytes() + b"\x01\x02\x03")
    assert load_binary_format_signal(path).data == VALUES[:2]


def test_binary_empty_file_fails(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    with pytest.raises(SignalError):
        load_binary_format_signal(path)
    with pytest.raises(SignalError):
        map_binary_format_signal(path)


def test_binary_missing_file_fails(tmp_path):
    with pytest.raises(SignalError):
        load_binary_format_signal(tmp_path / "missing.bin")


def test_map_reads_and_writes_through(tmp_path):
    path = tmp_path / "sig.bin"
    save_binary_format_signal(path, Signal(VALUES))
    with map_binary_format_signal(path) as sig:
        assert sig.mapped
        assert list(sig.data) == VALUES
        sig.data[0] = 42.0
    assert not sig.mapped
    assert sig.num_samples == 0
    assert load_binary_format_signal(path).data == [42.0] + VALUES[1:]


def test_unmap_twice_fails(tmp_path):
    path = tmp_path / "sig.bin"
    save_binary_format_signal(path, Signal(VALUES))
    sig = map_binary_format_signal(path)
    unmap_binary_format_signal(sig)
    with pytest.raises(SignalError):
        unmap_binary_format_signal(sig)


def test_unmap_loaded_signal_fails():
    with pytest.raises(SignalError):
        unmap_binary_format_signal(Signal(VALUES))


def test_close_loaded_signal_keeps_data():
    sig = Signal(VALUES, 8.0)
    sig.close()
    assert sig.data == VALUES
    assert sig.fs == 8.0