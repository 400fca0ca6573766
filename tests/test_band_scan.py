import io
import math
from unittest import mock

import pytest

from bandscan.band_scan import (
    MAXWIDTH,
    analyze_signal,
    avg_of,
    avg_power,
    compute_band_powers,
    load_signal,
    main,
    max_of,
    partition_bands,
    remove_dc,
)
from bandscan.signal_io import Signal, save_text_format_signal

FS = 400000.0
ORDER = 32
BANDS = 4


def tone(freq, fs=FS, n=256, offset=0.0):
    return [offset + math.sin(2 * math.pi * freq * i / fs) for i in range(n)]


def test_basic_statistics():
    assert avg_of([2.0, 2.0, 2.0]) == 2.0
    assert max_of([1.0, 5.0, 3.0]) == 5.0
    assert avg_power([1.0, -1.0, 1.0]) == 1.0


def test_statistics_of_empty_data_raise():
    with pytest.raises(ValueError):
        max_of([])
    with pytest.raises(ValueError):
        avg_of([])
    with pytest.raises(ValueError):
        avg_power([])


def test_remove_dc_centres_data():
    data = [3.0, 5.0, 10.0]
    expected_dc = avg_of(data)
    dc = remove_dc(data)
    assert dc == expected_dc
    assert avg_of(data) == pytest.approx(0.0)


def test_partition_bands_covers_all_bands():
    runs = partition_bands(10, 3)
    assert [len(r) for r in runs] == [4, 3, 3]
    assert [b for r in runs for b in r] == list(range(10))


def test_partition_bands_more_threads_than_bands():
    runs = partition_bands(2, 5)
    assert len(runs) == 5
    assert [b for r in runs for b in r] == [0, 1]
    assert max(len(r) for r in runs) - min(len(r) for r in runs) <= 1


def test_partition_bands_rejects_no_threads():
    with pytest.raises(ValueError):
        partition_bands(4, 0)


def test_band_powers_find_tone_band():
    sig = Signal(tone(250.0, fs=1000.0, n=300), 1000.0)
    powers = compute_band_powers(sig, 16, 5)
    assert len(powers) == 5
    assert powers.index(max(powers)) == 2


def test_threaded_powers_match_single_thread():
    sig = Signal(tone(75000.0), FS)
    single = compute_band_powers(sig, ORDER, BANDS)
    threaded = compute_band_powers(sig, ORDER, BANDS, num_threads=3)
    assert threaded == pytest.approx(single)


def test_threads_are_pinned_round_robin():
    sig = Signal(tone(75000.0, n=64), FS)
    single = compute_band_powers(sig, ORDER, BANDS)
    with mock.patch("os.sched_setaffinity", create=True) as pin:
        powers = compute_band_powers(
            sig, ORDER, BANDS, num_threads=4, num_processors=2
        )
    assert len(powers) == BANDS
    assert powers == pytest.approx(single)
    cpus = sorted(min(c.args[1]) for c in pin.call_args_list)
    assert cpus == [0, 0, 1, 1]


def test_analyze_detects_aliens():
    sig = Signal(tone(75000.0, offset=3.0), FS)
    out = io.StringIO()
    result = analyze_signal(sig, ORDER, BANDS, out=out)
    assert result.wow
    assert result.dc == pytest.approx(3.0, abs=0.05)
    assert result.low == result.bands[1].low
    assert result.high == result.bands[1].high
    assert result.center == pytest.approx((result.low + result.high) / 2)
    assert avg_of(sig.data) == pytest.approx(0.0)
    lines = out.getvalue().splitlines()
    band_lines = [line for line in lines if " Hz: " in line]
    assert len(band_lines) == BANDS
    assert band_lines[1].endswith("(WOW)")
    assert band_lines[1].count("*") == MAXWIDTH


def test_analyze_without_aliens():
    sig = Signal(tone(25000.0), FS)
    result = analyze_signal(sig, ORDER, BANDS, out=io.StringIO())
    assert not result.wow
    assert result.low == -1
    assert result.high == -1
    assert not result.bands[0].of_interest
    assert result.bands[1].of_interest


def test_load_signal_by_kind(tmp_path):
    path = tmp_path / "sig.txt"
    save_text_format_signal(path, Signal([1.0, 2.0]))
    assert load_signal("text", path).data == [1.0, 2.0]
    with pytest.raises(ValueError):
        load_signal("xml", path)


def test_main_wrong_argument_count(capsys):
    assert main(["text", "file"]) == -1
    assert "usage" in capsys.readouterr().out


def test_main_rejects_odd_order(tmp_path, capsys):
    path = tmp_path / "sig.txt"
    save_text_format_signal(path, Signal([1.0, 2.0]))
    assert main(["text", str(path), "1000", "3", "4"]) == -1


def test_main_unknown_type(tmp_path, capsys):
    assert main(["xml", str(tmp_path / "x"), "1000", "4", "4"]) == -1
    assert "Unknown signal type" in capsys.readouterr().out


def test_main_reports_aliens(tmp_path, capsys):
    path = tmp_path / "sig.txt"
    save_text_format_signal(path, Signal(tone(75000.0)))
    assert main(["text", str(path), str(FS), str(ORDER), str(BANDS)]) == 0
    assert "POSSIBLE ALIENS" in capsys.readouterr().out


def test_main_threaded_no_aliens(tmp_path, capsys):
    path = tmp_path / "sig.txt"
    save_text_format_signal(path, Signal(tone(25000.0)))
    with mock.patch("os.sched_setaffinity", create=True):
        code = main(["t", str(path), str(FS), str(ORDER), str(BANDS), "2", "2"])
    assert code == 0
    output = capsys.readouterr().out
    assert "threads:     2" in output
    assert "no aliens" in output