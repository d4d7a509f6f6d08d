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

import pytest

import ndstats.errors as m  # module under test

ERRORS = (
    m.InvalidOrderingError,
    m.EmptyLaneError,
    m.RankOutOfBoundsError,
    m.InvalidQuantileError,
    m.NaNInHistogramError,
    m.BinningError,
    m.StatsError,
)


@pytest.mark.parametrize("err", ERRORS)
def test_hierarchy(err):
    assert issubclass(err, m.NdstatsError)
    assert issubclass(err, ValueError)


def test_all():
    assert set(m.__all__) == {e.__name__ for e in ERRORS} | {"NdstatsError"}


def test_rank_out_of_bounds():
    err = m.RankOutOfBoundsError(7, 5)
    assert err.rank == 7
    assert err.length == 5
    assert "7" in str(err) and "5" in str(err)


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(sys.argv))
