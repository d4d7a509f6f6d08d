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

import ndstats._kernels as m  # module under test


@pytest.mark.parametrize(
    "dtype", (np.int8, np.int64, np.uint8, np.float32, np.float64)
)
def test_select_lanes(dtype):
    rng = np.random.default_rng(0)
    lanes = rng.integers(0, 50, size=(6, 40)).astype(dtype)
    expected = np.sort(lanes, axis=1)
    ranks = np.array([0, 13, 14, 39], dtype=np.int64)
    m.select_lanes(lanes, ranks)
    assert np.array_equal(lanes[:, ranks], expected[:, ranks])
    assert np.array_equal(np.sort(lanes, axis=1), expected)


def test_select_lanes_strided_rows():
    base = np.arange(60, 0, -1, dtype=np.float64).reshape(6, 10)
    lanes = base[::2]
    m.select_lanes(lanes, np.array([4], dtype=np.int64))
    assert base[0, 4] == 55.0
    assert base[1].tolist() == list(range(50, 40, -1))


def test_select_lanes_no_ranks():
    lanes = np.array([[3.0, 1.0, 2.0]])
    m.select_lanes(lanes, np.empty(0, dtype=np.int64))
    assert lanes.tolist() == [[3.0, 1.0, 2.0]]


def test_moments_lanes():
    rng = np.random.default_rng(1)
    lanes = rng.normal(size=(5, 200))
    out = np.empty((5, 4))
    m.moments_lanes(lanes, out)
    centered = lanes - lanes.mean(axis=1, keepdims=True)
    assert np.allclose(out[:, 0], lanes.mean(axis=1))
    for k in (2, 3, 4):
        assert np.allclose(out[:, k - 1], (centered**k).sum(axis=1))


def test_comoment_rows():
    rng = np.random.default_rng(2)
    variables = rng.normal(size=(4, 50))
    out = np.zeros((4, 4))
    m.comoment_rows(variables, out, 0, 2)
    m.comoment_rows(variables, out, 2, 4)
    centered = variables - variables.mean(axis=1, keepdims=True)
    assert np.allclose(out, centered @ centered.T)


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(sys.argv))
