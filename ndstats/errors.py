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
"""
Exceptions raised by ndstats.

Every error derives from :class:`NdstatsError` and from the built-in exception
NumPy itself would raise for the same mistake, so callers can catch either.
"""
from __future__ import annotations

__all__ = (
    "NdstatsError",
    "InvalidOrderingError",
    "EmptyLaneError",
    "RankOutOfBoundsError",
    "InvalidQuantileError",
    "NaNInHistogramError",
    "BinningError",
    "StatsError",
)


class NdstatsError(Exception):
    pass


class InvalidOrderingError(NdstatsError, ValueError):
    """A NaN was found where a total order is required."""


class EmptyLaneError(NdstatsError, ValueError):
    """The reduction axis has zero length."""


class RankOutOfBoundsError(NdstatsError, ValueError):
    def __init__(self, rank: int, length: int) -> None:
        super().__init__(
            f"rank {rank} is out of bounds for a lane of length {length}"
        )
        self.rank = rank
        self.length = length


class InvalidQuantileError(NdstatsError, ValueError):
    """A quantile is non-finite or outside [0, 1]."""


class NaNInHistogramError(NdstatsError, ValueError):
    """A NaN was passed to the histogram binner."""


class BinningError(NdstatsError, ValueError):
    """Bin edges, widths or counts are invalid."""


class StatsError(NdstatsError, ValueError):
    """The sample is too small or too degenerate for the statistic."""
