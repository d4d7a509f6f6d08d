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
ndstats
=======

Order statistics, quantiles, histograms and summary statistics computed
lane by lane along an axis of an n-dimensional NumPy array, without full
sorts.
"""
from __future__ import annotations

from ndstats.errors import (
    BinningError,
    EmptyLaneError,
    InvalidOrderingError,
    InvalidQuantileError,
    NaNInHistogramError,
    NdstatsError,
    RankOutOfBoundsError,
    StatsError,
)
from ndstats.histogram import (
    Auto,
    Bins,
    BinStrategy,
    FixedCount,
    FixedWidth,
    FreedmanDiaconis,
    HistogramResult,
    LaneHistogram,
    LaneStats,
    Rice,
    Scott,
    Sqrt,
    Sturges,
    digitize,
    histogram,
    histogram_bin_edges,
)
from ndstats.ordering import OrderingAdapter
from ndstats.quantiles import (
    interquartile_range,
    median,
    nanmedian,
    nanpercentile,
    nanquantile,
    percentile,
    quantile,
)
from ndstats.selection import (
    amax,
    amin,
    argmax,
    argmin,
    partition,
    select_rank,
    select_ranks,
)
from ndstats.settings import settings
from ndstats.summary import (
    central_moment,
    central_moments,
    corrcoef,
    cov,
    geometric_mean,
    harmonic_mean,
    kurtosis,
    mean,
    skewness,
    std,
    var,
)

__version__ = "0.1.0"
