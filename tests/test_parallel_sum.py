import re
from unittest import mock

import pytest

from bandscan.parallel_sum import main, parallel_sum, partition, sequential_sum


@pytest.mark.parametrize(
    "length,threads", [(0, 1), (1, 3), (10, 3), (100, 7), (64, 8), (5, 5)]
)
def test_partition_covers_everything_in_order(length, threads):
    runs = partition(length, threads)
    assert len(runs) == threads
    covered = [i for run in runs for i in run]
    assert covered == list(range(length))


@pytest.mark.parametrize("length,threads", [(10, 3), (100, 7), (3, 5)])
def test_partition_last_block_takes_leftover(length, threads):
    runs = partition(length, threads)
    block = length // threads
    assert all(len(run) == block for run in runs[:-1])
    assert len(runs[-1]) == length - block * (threads - 1)


def test_partition_example():
    assert partition(10, 3) == [range(0, 3), range(3, 6), range(6, 10)]


def test_partition_rejects_bad_arguments():
    with pytest.raises(ValueError):
        partition(10, 0)
    with pytest.raises(ValueError):
        partition(-1, 2)


def test_sequential_sum_of_empty_is_zero():
    assert sequential_sum([]) == 0.0


@pytest.mark.parametrize("threads", [1, 2, 3, 8])
def test_parallel_matches_sequential(threads):
    vector = [float(i) for i in range(1000)]
    assert parallel_sum(vector, threads) == sequential_sum(vector)


def test_parallel_sum_more_threads_than_elements():
    vector = [1.5, 2.5]
    assert parallel_sum(vector, 6) == sequential_sum(vector)


def test_parallel_sum_pins_threads_round_robin():
    with mock.patch("os.sched_setaffinity", create=True) as pin:
        vector = [float(i) for i in range(20)]
        assert parallel_sum(vector, 4, 2) == sequential_sum(vector)
    cpus = sorted(next(iter(c.args[1])) for c in pin.call_args_list)
    assert cpus == [0, 0, 1, 1]
    assert all(c.args[0] == 0 for c in pin.call_args_list)


def test_parallel_sum_affinity_failure_raises():
    with mock.patch("os.sched_setaffinity", create=True, side_effect=OSError("no")):
        with pytest.raises(RuntimeError):
            parallel_sum([1.0, 2.0], 2, 1)


def test_parallel_sum_rejects_zero_processors():
    with pytest.raises(ValueError):
        parallel_sum([1.0], 1, 0)


@pytest.mark.parametrize("argv", [[], ["2", "1"], ["a", "1", "10"], ["0", "1", "10"]])
def test_main_usage_errors(argv, capsys):
    assert main(argv) == -1
    assert "usage" in capsys.readouterr().err


def test_main_prints_equal_sums(capsys):
    with mock.patch("os.sched_setaffinity", create=True):
        assert main(["3", "2", "100"]) == 0
    out = capsys.readouterr().out
    seq = re.search(r"Sequential sum:\s+(\S+) \(\d+ cycles\)", out)
    par = re.search(r"Parallel sum:\s+(\S+) \(\d+ cycles\)", out)
    assert seq and par
    assert seq.group(1) == par.group(1)
    assert float(seq.group(1)) == sequential_sum([float(i) for i in range(100)])