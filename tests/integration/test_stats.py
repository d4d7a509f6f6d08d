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
from utils.comparisons import allclose
from utils.generators import mk_shuffled_array

import ndstats as nds


def _moments(a, axis):
    centered = a - a.mean(axis=axis, keepdims=True)
    m2 = (centered**2).mean(axis=axis)
    m3 = (centered**3).mean(axis=axis)
    m4 = (centered**4).mean(axis=axis)
    return m2, m3, m4


@pytest.mark.parametrize("axis", (None, 0, 1, -1))
@pytest.mark.parametrize("keepdims", (False, True))
def test_mean_var_std(axis, keepdims):
    a = mk_shuffled_array((7, 11)) + 0.25
    assert allclose(
        nds.mean(a, axis=axis, keepdims=keepdims),
        np.mean(a, axis=axis, keepdims=keepdims),
    )
    for ddof in (0, 1):
        assert allclose(
            nds.var(a, axis=axis, ddof=ddof, keepdims=keepdims),
            np.var(a, axis=axis, ddof=ddof, keepdims=keepdims),
        )
        assert allclose(
            nds.std(a, axis=axis, ddof=ddof, keepdims=keepdims),
            np.std(a, axis=axis, ddof=ddof, keepdims=keepdims),
        )


def test_variance_is_stable_with_large_offset():
    a = 1e9 + np.array([4.0, 7.0, 13.0, 16.0])
    assert nds.var(a, ddof=1) == pytest.approx(30.0, rel=1e-9)


def test_single_element_variance_is_zero():
    assert nds.var([5.0]) == 0.0


def test_dtypes():
    assert nds.var(np.array([1, 2, 3], dtype=np.int32)).dtype == np.float64
    assert nds.var(np.array([1, 2, 3], dtype=np.float32)).dtype == np.float32
    assert nds.mean(np.array([True, False])) == 0.5


@pytest.mark.parametrize("axis", (None, 0, 1))
def test_skewness_and_kurtosis(axis):
    a = mk_shuffled_array((9, 12), distinct=True) ** 1.5
    m2, m3, m4 = _moments(a, axis)
    assert allclose(nds.skewness(a, axis=axis), m3 / m2**1.5)
    assert allclose(nds.kurtosis(a, axis=axis), m4 / m2**2)
    assert allclose(nds.kurtosis(a, axis=axis, fisher=True), m4 / m2**2 - 3)


def test_bias_corrections():
    a = np.array([2.0, 8.0, 0.0, 4.0, 1.0, 9.0, 9.0, 0.0])
    n = a.size
    m2, m3, m4 = _moments(a, None)
    g1 = m3 / m2**1.5
    g2 = m4 / m2**2 - 3
    assert nds.skewness(a, bias=False) == pytest.approx(
        g1 * np.sqrt(n * (n - 1)) / (n - 2)
    )
    assert nds.kurtosis(a, fisher=True, bias=False) == pytest.approx(
        ((n + 1) * g2 + 6) * (n - 1) / ((n - 2) * (n - 3))
    )


def test_symmetric_data_has_no_skew():
    assert nds.skewness([1.0, 2.0, 3.0, 4.0, 5.0]) == pytest.approx(0.0)


def test_biased_kurtosis_of_few_values():
    assert nds.kurtosis([1.0, 2.0, 4.0]) == pytest.approx(1.5)
    assert nds.kurtosis([1.0, 2.0, 4.0], fisher=True) == pytest.approx(-1.5)
    assert nds.kurtosis([1.0, 3.0]) == pytest.approx(1.0)
    a = np.array([[1.0, 2.0, 4.0], [0.0, 5.0, 6.0]])
    m2, _, m4 = _moments(a, 1)
    assert allclose(nds.kurtosis(a, axis=1), m4 / m2**2)


@pytest.mark.parametrize("order", (0, 1, 2, 3, 5))
def test_central_moment(order):
    a = mk_shuffled_array((6, 10)) * 0.1
    expected = ((a - a.mean(axis=1, keepdims=True)) ** order).mean(axis=1)
    assert allclose(
        nds.central_moment(a, order, axis=1), expected, atol=1e-10
    )


def test_central_moments():
    a = mk_shuffled_array((4, 10))
    result = nds.central_moments(a, 4, axis=1)
    assert result.shape == (5, 4)
    for k in range(5):
        assert allclose(
            result[k], nds.central_moment(a, k, axis=1), atol=1e-10
        )


def test_harmonic_and_geometric_mean():
    a = np.array([[1.0, 2.0, 4.0], [3.0, 3.0, 3.0]])
    assert allclose(nds.harmonic_mean(a, axis=1), 3 / (1 / a).sum(axis=1))
    assert allclose(nds.geometric_mean(a, axis=1), np.array([2.0, 3.0]))


def test_parallel_lanes(monkeypatch):
    monkeypatch.setattr(nds.settings, "num_threads", 4)
    monkeypatch.setattr(nds.settings, "min_parallel_lanes", 1)
    a = mk_shuffled_array((500, 9))
    assert allclose(nds.var(a, axis=1), np.var(a, axis=1))


class TestStatsErrors:
    @pytest.mark.parametrize(
        "func",
        (
            nds.mean,
            nds.var,
            nds.std,
            nds.skewness,
            nds.kurtosis,
            nds.harmonic_mean,
            nds.geometric_mean,
        ),
    )
    def test_empty(self, func):
        with pytest.raises(nds.EmptyLaneError):
            func(np.empty((2, 0)), axis=1)

    def test_degrees_of_freedom(self):
        with pytest.raises(nds.StatsError):
            nds.var([1.0], ddof=1)
        with pytest.raises(nds.StatsError):
            nds.std([1.0, 2.0], ddof=2)

    def test_skewness_too_few(self):
        with pytest.raises(nds.StatsError):
            nds.skewness([1.0, 2.0])

    def test_kurtosis_too_few(self):
        with pytest.raises(nds.StatsError):
            nds.kurtosis([1.0, 2.0, 3.0], bias=False)

    def test_zero_variance(self):
        a = np.array([[1.0, 2.0, 4.0, 8.0], [3.0, 3.0, 3.0, 3.0]])
        with pytest.raises(nds.StatsError):
            nds.skewness(a, axis=1)
        with pytest.raises(nds.StatsError):
            nds.kurtosis(a, axis=1)

    def test_negative_order(self):
        with pytest.raises(nds.StatsError):
            nds.central_moment([1.0, 2.0], -1)

    def test_means_domain(self):
        with pytest.raises(nds.StatsError):
            nds.harmonic_mean([1.0, 0.0])
        with pytest.raises(nds.StatsError):
            nds.geometric_mean([1.0, -2.0])

    def test_complex(self):
        with pytest.raises(TypeError):
            nds.var([1j, 2])


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(sys.argv))
