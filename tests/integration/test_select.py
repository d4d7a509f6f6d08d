# Copyright 2024 NVIDIA Corporation
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

import numpy as np
import pytest
from utils.comparisons import is_partitioned
from utils.generators import iter_lanes, lane_shapes, mk_shuffled_array

import ndstats as nds

DTYPES = (
    np.int8,
    np.int32,
    np.int64,
    np.uint16,
    np.float16,
    np.float32,
    np.float64,
)


def test_single_rank_example():
    a = np.array([3, 1, 4, 1, 5])
    nds.select_rank(a, 2)
    assert a[2] == 3
    assert np.all(a[:2] <= 3)
    assert np.all(a[3:] >= 3)
    assert sorted(a.tolist()) == [1, 1, 3, 4, 5]


@pytest.mark.parametrize("rank", (0, 7, 19))
@pytest.mark.parametrize("dtype", (np.int32, np.float64))
def test_select_rank_idempotent(dtype, rank):
    a = mk_shuffled_array((6, 20), dtype=dtype)
    expected = np.sort(a, axis=1)
    nds.select_rank(a, rank, axis=1)
    snapshot = a[:, rank].copy()
    nds.select_rank(a, rank, axis=1)
    assert np.array_equal(a[:, rank], snapshot)
    for lane, sorted_lane in zip(a, expected):
        assert is_partitioned(lane, rank, sorted_lane)


@pytest.mark.parametrize("dtype", DTYPES)
@pytest.mark.parametrize("shape, axis", list(lane_shapes(9)))
def test_select_ranks_partitions_every_lane(dtype, shape, axis):
    a = mk_shuffled_array(shape, dtype=dtype)
    expected = np.sort(a, axis=axis)
    ranks = (0, 4, 8)
    nds.select_ranks(a, ranks, axis=axis)

    # lanes keep their multiset of values
    assert np.array_equal(np.sort(a, axis=axis), expected)
    for lane, sorted_lane in zip(
        iter_lanes(a, axis), iter_lanes(expected, axis)
    ):
        for rank in ranks:
            assert is_partitioned(lane, rank, sorted_lane)


@pytest.mark.parametrize("num_ranks", (1, 2, 5, 17))
def test_many_ranks_one_pass(num_ranks):
    a = mk_shuffled_array((200,), distinct=True)
    expected = np.sort(a)
    ranks = np.linspace(0, 199, num_ranks).astype(int)
    nds.select_ranks(a, ranks)
    for rank in ranks:
        assert is_partitioned(a, rank, expected)


def test_duplicate_ranks():
    a = mk_shuffled_array((30,))
    expected = np.sort(a)
    nds.select_ranks(a, [7, 7, 3, 7])
    assert is_partitioned(a, 3, expected)
    assert is_partitioned(a, 7, expected)


def test_all_equal_lane():
    a = np.full((4, 10), 2.5)
    nds.select_ranks(a, [0, 5, 9], axis=1)
    assert np.all(a == 2.5)


def test_sorted_and_reversed_input():
    a = np.arange(1000, dtype=np.float64)
    nds.select_rank(a, 500)
    assert a[500] == 500
    b = np.arange(1000, dtype=np.float64)[::-1].copy()
    nds.select_rank(b, 10)
    assert b[10] == 10


def test_axis_none_selects_flattened():
    a = mk_shuffled_array((5, 6), distinct=True)
    expected = np.sort(a, axis=None)
    nds.select_rank(a, 17, axis=None)
    assert is_partitioned(a.reshape(-1), 17, expected)


def test_non_contiguous_lanes_written_back():
    base = mk_shuffled_array((8, 12), distinct=True)
    view = base[:, ::2]
    expected = np.sort(view, axis=0)
    nds.select_rank(view, 3, axis=0)
    assert np.array_equal(view[3], expected[3])
    assert np.array_equal(np.sort(view, axis=0), expected)


def test_bool_lanes():
    a = np.array([True, False, True, False, False])
    nds.select_rank(a, 2)
    assert a[2] == np.False_
    assert a.dtype == np.bool_
    assert a.sum() == 2


def test_lane_of_length_one_is_noop():
    a = np.array([[7.0], [3.0]])
    nds.select_rank(a, 0, axis=1)
    assert a.tolist() == [[7.0], [3.0]]


def test_zero_lanes_is_noop():
    a = np.empty((0, 5))
    nds.select_rank(a, 4, axis=1)
    assert a.shape == (0, 5)


def test_many_lanes_in_parallel(monkeypatch):
    monkeypatch.setattr(nds.settings, "num_threads", 4)
    monkeypatch.setattr(nds.settings, "min_parallel_lanes", 1)
    a = mk_shuffled_array((300, 21))
    expected = np.sort(a, axis=1)
    nds.select_ranks(a, [5, 10], axis=1)
    assert np.array_equal(a[:, 5], expected[:, 5])
    assert np.array_equal(a[:, 10], expected[:, 10])


class TestSelectErrors:
    def test_rank_out_of_bounds(self):
        a = np.array([3, 1, 4])
        with pytest.raises(nds.RankOutOfBoundsError) as exc:
            nds.select_rank(a, 3)
        assert exc.value.rank == 3
        assert exc.value.length == 3
        assert a.tolist() == [3, 1, 4]

    def test_negative_rank(self):
        a = np.array([3, 1, 4])
        with pytest.raises(nds.RankOutOfBoundsError):
            nds.select_ranks(a, [0, -1])

    def test_empty_lane(self):
        with pytest.raises(nds.EmptyLaneError):
            nds.select_rank(np.empty((3, 0)), 0)

    def test_nan_leaves_array_untouched(self):
        a = np.array([[5.0, 1.0, 3.0], [2.0, np.nan, 0.0]])
        before = a.copy()
        with pytest.raises(nds.InvalidOrderingError):
            nds.select_rank(a, 1)
        assert np.array_equal(a, before, equal_nan=True)

    def test_complex(self):
        with pytest.raises(TypeError):
            nds.select_rank(np.array([1 + 1j, 2]), 0)

    def test_not_an_ndarray(self):
        with pytest.raises(TypeError):
            nds.select_rank([3, 1, 2], 0)

    def test_read_only(self):
        a = np.array([3, 1, 2])
        a.flags.writeable = False
        with pytest.raises(ValueError):
            nds.select_rank(a, 0)

    def test_bad_axis(self):
        with pytest.raises(np.exceptions.AxisError):
            nds.select_rank(np.array([3, 1, 2]), 0, axis=1)


class TestPartition:
    @pytest.mark.parametrize("kth", (0, 3, -1, [1, 5]))
    @pytest.mark.parametrize("axis", (0, 1, -1, None))
    def test_matches_numpy(self, kth, axis):
        a = mk_shuffled_array((6, 7), distinct=True)
        result = nds.partition(a, kth, axis=axis)
        expected = np.partition(a, kth, axis=axis)
        kths = [kth] if np.ndim(kth) == 0 else kth
        ax = 0 if axis is None else axis
        for k in kths:
            assert np.array_equal(
                np.take(result, k, axis=ax), np.take(expected, k, axis=ax)
            )

    def test_input_untouched(self):
        a = [5, 4, 3, 2, 1]
        result = nds.partition(a, 2)
        assert a == [5, 4, 3, 2, 1]
        assert result[2] == 3


class TestExtrema:
    @pytest.mark.parametrize("axis", (None, 0, 1))
    def test_matches_numpy(self, axis):
        a = mk_shuffled_array((5, 8))
        assert np.array_equal(nds.amin(a, axis=axis), np.amin(a, axis=axis))
        assert np.array_equal(nds.amax(a, axis=axis), np.amax(a, axis=axis))
        assert np.array_equal(
            nds.argmin(a, axis=axis), np.argmin(a, axis=axis)
        )
        assert np.array_equal(
            nds.argmax(a, axis=axis), np.argmax(a, axis=axis)
        )

    def test_ties_resolve_to_first_index(self):
        assert nds.argmin([2, 0, 1, 0]) == 1
        assert nds.argmax([2, 5, 5, 1]) == 1

    def test_keepdims(self):
        a = mk_shuffled_array((3, 4))
        assert nds.amax(a, axis=1, keepdims=True).shape == (3, 1)

    def test_nan(self):
        with pytest.raises(nds.InvalidOrderingError):
            nds.amin([1.0, np.nan])

    def test_empty(self):
        with pytest.raises(nds.EmptyLaneError):
            nds.amax(np.empty((2, 0)), axis=1)


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(sys.argv))
