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
Histograms with automatic bin-edge selection.

Binning is split in two phases. Edge derivation turns a :class:`BinStrategy`
and the statistics of a lane into a :class:`Bins` instance; assignment maps
each value of the lane to a bin index. Every bin is half-open
``[edge_i, edge_i+1)`` except the rightmost, which is closed on both ends.
"""
from __future__ import annotations

import builtins
import math
import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, ClassVar, Iterator, Optional, Union

import numpy as np
import numpy.typing as npt

from .errors import BinningError, EmptyLaneError, NaNInHistogramError
from .ordering import OrderingAdapter
from .quantiles import interquartile_range
from .runtime import runtime
from .summary import std
from .types import BinsLike, DigitizeSide, NdShape
from .utils import add_boilerplate, lanes_view, normalize_axis, tuple_pop

__all__ = (
    "Auto",
    "BinStrategy",
    "Bins",
    "FixedCount",
    "FixedWidth",
    "FreedmanDiaconis",
    "HistogramResult",
    "LaneHistogram",
    "LaneStats",
    "Rice",
    "Scott",
    "Sqrt",
    "Sturges",
    "digitize",
    "histogram",
    "histogram_bin_edges",
)


class Bins:
    """
    Immutable, strictly increasing sequence of bin edges.

    The only non-increasing edge sequence is the single degenerate bin
    ``[v, v]`` produced for a lane whose values are all equal.
    """

    __slots__ = ("_edges",)

    def __init__(self, edges: npt.ArrayLike) -> None:
        arr = np.array(edges, dtype=np.float64)
        if arr.ndim != 1:
            raise BinningError("`bins` must be 1d, when an array")
        if arr.shape[0] < 2:
            raise BinningError("at least two bin edges are required")
        if not np.all(np.isfinite(arr)):
            raise BinningError("bin edges must be finite")
        if not np.all(arr[1:] > arr[:-1]):
            raise BinningError(
                "`bins` must increase strictly monotonically, when an array"
            )
        arr.flags.writeable = False
        self._edges = arr

    @classmethod
    def single(cls, value: float) -> Bins:
        """The degenerate bin ``[value, value]``."""
        bins = cls.__new__(cls)
        arr = np.array([value, value], dtype=np.float64)
        arr.flags.writeable = False
        bins._edges = arr
        return bins

    @property
    def edges(self) -> np.ndarray:
        return self._edges

    @property
    def n_bins(self) -> int:
        return self._edges.shape[0] - 1

    @property
    def is_degenerate(self) -> bool:
        return bool(self._edges[0] == self._edges[-1])

    @property
    def widths(self) -> np.ndarray:
        return np.diff(self._edges)

    def range(self, i: int) -> tuple[float, float]:
        """Edges ``(left, right)`` of the ``i``-th bin."""
        i = operator.index(i)
        if i < 0:
            i += self.n_bins
        if not 0 <= i < self.n_bins:
            raise IndexError(
                f"bin index {i} is out of range for {self.n_bins} bins"
            )
        return (float(self._edges[i]), float(self._edges[i + 1]))

    def index(self, value: float) -> Optional[int]:
        """
        Bin holding ``value``, or None if it lies outside the edges.
        """
        if math.isnan(value):
            raise NaNInHistogramError("NaN cannot be assigned to a bin")
        first, last = self._edges[0], self._edges[-1]
        if value < first or value > last:
            return None
        if value == last:
            return self.n_bins - 1
        return int(np.searchsorted(self._edges, value, side="right")) - 1

    def __len__(self) -> int:
        return self.n_bins

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bins):
            return NotImplemented
        return np.array_equal(self._edges, other._edges)

    def __hash__(self) -> int:
        return hash(self._edges.tobytes())

    def __repr__(self) -> str:
        return f"Bins({self._edges.tolist()!r})"


@dataclass
class LaneStats:
    """
    Statistics of one lane consumed by the bin strategies.

    The standard deviation and the interquartile range are only computed when
    a strategy asks for them.
    """

    values: np.ndarray
    min: float
    max: float

    @classmethod
    def from_lane(
        cls,
        lane: np.ndarray,
        range: Optional[tuple[float, float]] = None,
    ) -> LaneStats:
        if range is not None:
            first, last = range
            keep = (lane >= first) & (lane <= last)
            return cls(lane[keep], float(first), float(last))
        if lane.size == 0:
            raise EmptyLaneError("cannot derive bin edges for an empty lane")
        return cls(lane, float(lane.min()), float(lane.max()))

    @property
    def count(self) -> int:
        return int(self.values.shape[0])

    @property
    def span(self) -> float:
        return self.max - self.min

    @cached_property
    def std(self) -> float:
        return float(std(self.values))

    @cached_property
    def iqr(self) -> float:
        return float(interquartile_range(self.values))


def _check_count(count: Any) -> int:
    if isinstance(count, (bool, np.bool_)):
        raise TypeError("bin count must be an integer")
    try:
        count = operator.index(count)
    except TypeError:
        raise TypeError("bin count must be an integer") from None
    if count < 1:
        raise BinningError(f"bin count must be positive, got {count}")
    return count


def _check_width(width: float) -> float:
    if not math.isfinite(width) or width <= 0:
        raise BinningError(
            f"bin width must be positive and finite, got {width}"
        )
    return width


class BinStrategy(ABC):
    """
    Rule turning the statistics of a lane into a bin count.

    Edges are ``n_bins + 1`` equally spaced values between the lane minimum
    and maximum.
    """

    name: ClassVar[str] = ""

    @abstractmethod
    def n_bins(self, stats: LaneStats) -> int:
        ...

    def edges(self, stats: LaneStats) -> Bins:
        if not (math.isfinite(stats.min) and math.isfinite(stats.max)):
            raise BinningError(
                f"autodetected range of [{stats.min}, {stats.max}] "
                "is not finite"
            )
        if stats.min == stats.max:
            return Bins.single(stats.min)
        # a range that holds no data still gets one bin
        count = _check_count(self.n_bins(stats)) if stats.count else 1
        return Bins(np.linspace(stats.min, stats.max, count + 1))


class _WidthStrategy(BinStrategy):
    @abstractmethod
    def width(self, stats: LaneStats) -> float:
        ...

    def n_bins(self, stats: LaneStats) -> int:
        width = _check_width(self.width(stats))
        return max(1, math.ceil(stats.span / width))


@dataclass(frozen=True)
class FixedCount(BinStrategy):
    count: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "count", _check_count(self.count))

    def n_bins(self, stats: LaneStats) -> int:
        return self.count


@dataclass(frozen=True)
class FixedWidth(_WidthStrategy):
    """
    Bins of a fixed width anchored at the lane minimum.

    The last edge is the first multiple of the width at or beyond the lane
    maximum, so the requested width is kept exactly.
    """

    bin_width: float

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "bin_width", _check_width(float(self.bin_width))
        )

    def width(self, stats: LaneStats) -> float:
        return self.bin_width

    def edges(self, stats: LaneStats) -> Bins:
        if not (math.isfinite(stats.min) and math.isfinite(stats.max)):
            raise BinningError(
                f"autodetected range of [{stats.min}, {stats.max}] "
                "is not finite"
            )
        if stats.min == stats.max:
            return Bins.single(stats.min)
        count = self.n_bins(stats)
        edges = stats.min + np.arange(count + 1) * self.bin_width
        if edges[-1] < stats.max:
            edges = np.append(edges, edges[-1] + self.bin_width)
        return Bins(edges)


@dataclass(frozen=True)
class Sturges(BinStrategy):
    """``ceil(log2(n)) + 1`` bins. Assumes roughly normal data."""

    name: ClassVar[str] = "sturges"

    def n_bins(self, stats: LaneStats) -> int:
        return math.ceil(math.log2(stats.count)) + 1


@dataclass(frozen=True)
class Rice(BinStrategy):
    """``ceil(2 * n^(1/3))`` bins."""

    name: ClassVar[str] = "rice"

    def n_bins(self, stats: LaneStats) -> int:
        return math.ceil(2.0 * float(np.cbrt(stats.count)))


@dataclass(frozen=True)
class Sqrt(BinStrategy):
    """``ceil(sqrt(n))`` bins."""

    name: ClassVar[str] = "sqrt"

    def n_bins(self, stats: LaneStats) -> int:
        return math.ceil(math.sqrt(stats.count))


@dataclass(frozen=True)
class Scott(_WidthStrategy):
    """Bin width ``(24 * sqrt(pi) / n)^(1/3) * std``."""

    name: ClassVar[str] = "scott"

    def width(self, stats: LaneStats) -> float:
        factor = float(np.cbrt(24.0 * math.sqrt(math.pi) / stats.count))
        return factor * stats.std


@dataclass(frozen=True)
class FreedmanDiaconis(_WidthStrategy):
    """
    Bin width ``2 * IQR / n^(1/3)``.

    Robust to outliers. A lane whose interquartile range is zero has no
    usable width and falls back to :class:`Sturges`.
    """

    name: ClassVar[str] = "fd"

    def iqr_width(self, stats: LaneStats) -> Optional[float]:
        if stats.iqr == 0:
            return None
        return 2.0 * stats.iqr / float(np.cbrt(stats.count))

    def width(self, stats: LaneStats) -> float:
        width = self.iqr_width(stats)
        if width is None:
            raise BinningError("interquartile range is zero")
        return width

    def n_bins(self, stats: LaneStats) -> int:
        if self.iqr_width(stats) is None:
            runtime.warn(
                "interquartile range is zero, falling back to the Sturges "
                "rule",
                category=RuntimeWarning,
            )
            return Sturges().n_bins(stats)
        return super().n_bins(stats)


@dataclass(frozen=True)
class Auto(BinStrategy):
    """
    The larger bin count of :class:`Sturges` and :class:`FreedmanDiaconis`.

    Sturges is used alone when the interquartile range is zero.
    """

    name: ClassVar[str] = "auto"
    _fd: FreedmanDiaconis = field(default_factory=FreedmanDiaconis)

    def n_bins(self, stats: LaneStats) -> int:
        sturges = Sturges().n_bins(stats)
        fd_width = self._fd.iqr_width(stats)
        if fd_width is None:
            return sturges
        fd = max(1, math.ceil(stats.span / _check_width(fd_width)))
        return max(sturges, fd)


_STRATEGIES: dict[str, type[BinStrategy]] = {
    strategy.name: strategy
    for strategy in (Auto, FreedmanDiaconis, Rice, Scott, Sqrt, Sturges)
}


def as_strategy(bins: BinsLike) -> Union[BinStrategy, Bins]:
    """
    Interpret a ``bins`` argument: a strategy, a strategy name, an integer
    bin count or an explicit sequence of edges.
    """
    if isinstance(bins, (BinStrategy, Bins)):
        return bins
    if isinstance(bins, str):
        try:
            return _STRATEGIES[bins]()
        except KeyError:
            raise ValueError(
                f"{bins!r} is not a valid estimator for `bins`. Use one of: "
                + ", ".join(sorted(_STRATEGIES))
            ) from None
    if np.ndim(bins) == 0:
        if not isinstance(bins, (int, np.integer)) or isinstance(
            bins, (bool, np.bool_)
        ):
            raise TypeError("`bins` must be array or integer type")
        return FixedCount(int(bins))
    return Bins(bins)  # type: ignore [arg-type]


def _check_range(
    range: Optional[tuple[float, float]],
) -> Optional[tuple[float, float]]:
    if range is None:
        return None
    if len(range) != 2:
        raise BinningError("`range` must be a pair of values")
    first, last = float(range[0]), float(range[1])
    if not (math.isfinite(first) and math.isfinite(last)):
        raise BinningError(
            f"supplied range of [{first}, {last}] is not finite"
        )
    if first >= last:
        raise BinningError("`range` must be a pair of increasing values.")
    return (first, last)


def _check_no_nan(a: np.ndarray) -> None:
    if a.dtype.kind == "c":
        raise TypeError("cannot build a histogram of complex values")
    OrderingAdapter.for_dtype(a.dtype)
    if a.dtype.kind == "f" and a.size and np.isnan(a).any():
        raise NaNInHistogramError(
            "histogram input contains NaN; NaN values are never binned"
        )


def _assign_uniform(
    lane: np.ndarray,
    bins: Bins,
    bounds: Optional[tuple[float, float]] = None,
) -> np.ndarray:
    edges = bins.edges
    first, last = edges[0], edges[-1]
    index = np.full(lane.shape, -1, dtype=np.int64)
    if bins.is_degenerate:
        index[lane == first] = 0
    else:
        _bin_uniform(lane, edges, bins.n_bins, index)
    # edges may run past the requested range, whose ends still bound the lane
    if bounds is not None:
        index[(lane < bounds[0]) | (lane > bounds[1])] = -1
    return index


def _bin_uniform(
    lane: np.ndarray, edges: np.ndarray, k: int, index: np.ndarray
) -> None:
    first, last = edges[0], edges[-1]
    keep = (lane >= first) & (lane <= last)
    values = lane[keep]
    # floor((v - min) / width), then fix rounding against the real edges
    i = ((values - first) * (k / (last - first))).astype(np.int64)
    i[i == k] -= 1
    decrement = values < edges[i]
    i[decrement] -= 1
    increment = (values >= edges[i + 1]) & (i != k - 1)
    i[increment] += 1
    index[keep] = i


def _assign_explicit(lane: np.ndarray, bins: Bins) -> np.ndarray:
    edges = bins.edges
    index = np.searchsorted(edges, lane, side="right").astype(np.int64) - 1
    index[lane == edges[-1]] = bins.n_bins - 1
    index[(lane < edges[0]) | (lane > edges[-1])] = -1
    return index


@dataclass(frozen=True, eq=False)
class LaneHistogram:
    bins: Bins
    counts: np.ndarray
    out_of_range: int

    @property
    def edges(self) -> np.ndarray:
        return self.bins.edges

    @property
    def total(self) -> int:
        return int(self.counts.sum()) + self.out_of_range

    def density(self) -> np.ndarray:
        """
        Counts normalised so the histogram integrates to 1 over its edges.
        """
        binned = self.counts.sum()
        if binned == 0:
            raise BinningError("density of an empty histogram is undefined")
        if self.bins.is_degenerate:
            raise BinningError("density of a zero-width bin is undefined")
        return self.counts / binned / self.bins.widths


@dataclass(frozen=True, eq=False)
class HistogramResult:
    """
    Per-lane histograms of an array.

    ``shape`` is the shape of the lane grid (the input shape without the
    binned axis, ``()`` for a flattened input). ``assignment`` has the shape
    of the input and holds the bin of every element, or ``-1`` for elements
    outside the edges.
    """

    shape: NdShape
    lanes: tuple[LaneHistogram, ...]
    assignment: np.ndarray
    out_of_range: np.ndarray

    def __len__(self) -> int:
        return len(self.lanes)

    def __iter__(self) -> Iterator[LaneHistogram]:
        return iter(self.lanes)

    def __getitem__(self, index: Union[int, tuple[int, ...]]) -> LaneHistogram:
        if not isinstance(index, tuple):
            index = (index,)
        if len(index) != len(self.shape):
            raise IndexError(
                f"lane index {index} does not match lane grid {self.shape}"
            )
        if not self.shape:
            return self.lanes[0]
        try:
            flat = np.ravel_multi_index(
                tuple(operator.index(i) for i in index), self.shape
            )
        except ValueError:
            raise IndexError(
                f"lane index {index} is out of bounds for lane grid "
                f"{self.shape}"
            ) from None
        return self.lanes[int(flat)]


def histogram(
    a: npt.ArrayLike,
    bins: BinsLike = "auto",
    axis: Optional[int] = None,
    range: Optional[tuple[float, float]] = None,
) -> HistogramResult:
    """
    Compute the histogram of every lane of an array.

    Parameters
    ----------
    a : array_like
        Input data.
    bins : BinStrategy, str, int or sequence of scalars, optional
        A strategy object; the name of one (``'auto'``, ``'fd'``,
        ``'rice'``, ``'scott'``, ``'sqrt'``, ``'sturges'``); an integer
        number of equal-width bins; or a strictly increasing sequence of
        edges shared by every lane, including the rightmost edge.
    axis : int or None, optional
        Axis along which lanes are formed. If None (default), the histogram
        is computed over the flattened array.
    range : (float, float), optional
        Lower and upper edges used instead of each lane's minimum and
        maximum. Values outside are counted as out of range. Ignored when
        edges are given explicitly.

    Returns
    -------
    result : HistogramResult
        Bins, counts and out-of-range count of every lane, plus the bin
        assignment of every element.

    Raises
    ------
    NaNInHistogramError
        If `a` contains NaN.
    EmptyLaneError
        If edges have to be derived from zero-length lanes.
    BinningError
        If a strategy yields a non-positive or non-finite width or count, or
        if explicit edges or `range` are invalid.

    See Also
    --------
    numpy.histogram
    """
    arr = np.asarray(a)
    _check_no_nan(arr)
    strategy = as_strategy(bins)
    range = _check_range(range)
    real_axis = normalize_axis(axis, arr.ndim)
    length = arr.size if real_axis is None else arr.shape[real_axis]
    explicit = isinstance(strategy, Bins)
    if not explicit and length == 0 and range is None:
        raise EmptyLaneError("cannot derive bin edges for an empty lane")

    with lanes_view(
        arr, real_axis, dtype=np.dtype(np.float64), write_back=False
    ) as lanes:
        num_lanes = lanes.shape[0]
        results: list[Optional[LaneHistogram]] = [None] * num_lanes
        assignment = np.empty(lanes.shape, dtype=np.int64)

        def body(start: int, stop: int) -> None:
            for i in builtins.range(start, stop):
                lane = lanes[i]
                if isinstance(strategy, Bins):
                    lane_bins = strategy
                    index = _assign_explicit(lane, lane_bins)
                else:
                    stats = LaneStats.from_lane(lane, range)
                    lane_bins = strategy.edges(stats)
                    index = _assign_uniform(lane, lane_bins, range)
                counts = np.bincount(
                    index[index >= 0], minlength=lane_bins.n_bins
                )
                assignment[i] = index
                results[i] = LaneHistogram(
                    lane_bins,
                    counts.astype(np.int64),
                    int(np.count_nonzero(index < 0)),
                )

        runtime.parallel_for(num_lanes, body)

    if real_axis is None:
        grid: NdShape = ()
        assignment = assignment.reshape(arr.shape)
    else:
        grid = tuple_pop(arr.shape, real_axis)
        assignment = np.moveaxis(
            assignment.reshape(grid + (length,)), -1, real_axis
        )
    lane_results = tuple(r for r in results if r is not None)
    out_of_range = np.array(
        [r.out_of_range for r in lane_results], dtype=np.int64
    ).reshape(grid)
    return HistogramResult(grid, lane_results, assignment, out_of_range)


def histogram_bin_edges(
    a: npt.ArrayLike,
    bins: BinsLike = "auto",
    range: Optional[tuple[float, float]] = None,
) -> np.ndarray:
    """
    Function to calculate only the edges of the bins used by `histogram`,
    over the flattened array.

    See Also
    --------
    histogram, numpy.histogram_bin_edges
    """
    arr = np.asarray(a)
    _check_no_nan(arr)
    strategy = as_strategy(bins)
    if isinstance(strategy, Bins):
        return strategy.edges.copy()
    lane = arr.reshape(-1).astype(np.float64)
    stats = LaneStats.from_lane(lane, _check_range(range))
    return strategy.edges(stats).edges.copy()


@add_boilerplate("x", "bins")
def digitize(
    x: np.ndarray,
    bins: np.ndarray,
    right: bool = False,
) -> Union[int, np.ndarray]:
    """
    Return the indices of the bins to which each value in input array belongs.

    =========  =============  ============================
    `right`    order of bins  returned index `i` satisfies
    =========  =============  ============================
    ``False``  increasing     ``bins[i-1] <= x < bins[i]``
    ``True``   increasing     ``bins[i-1] < x <= bins[i]``
    ``False``  decreasing     ``bins[i-1] > x >= bins[i]``
    ``True``   decreasing     ``bins[i-1] >= x > bins[i]``
    =========  =============  ============================

    If values in `x` are beyond the bounds of `bins`, 0 or ``len(bins)`` is
    returned as appropriate.

    Parameters
    ----------
    x : array_like
        Input array to be binned. Doesn't need to be 1-dimensional.
    bins : array_like
        Array of bins. It has to be 1-dimensional and monotonic.
    right : bool, optional
        Indicating whether the intervals include the right or the left bin
        edge.

    Returns
    -------
    indices : ndarray of ints
        Output array of indices, of same shape as `x`.

    Raises
    ------
    ValueError
        If `bins` is not monotonic.
    InvalidOrderingError
        If `x` or `bins` contain NaN.
    TypeError
        If the type of the input is complex.

    See Also
    --------
    numpy.digitize
    """
    if np.issubdtype(x.dtype, np.complexfloating):
        raise TypeError("x may not be complex")

    if bins.ndim != 1:
        raise ValueError("bins must be one-dimensional")

    OrderingAdapter.for_dtype(x.dtype).check(x)
    OrderingAdapter.for_dtype(bins.dtype).check(bins)

    increasing = (bins[1:] >= bins[:-1]).all()
    decreasing = (bins[1:] <= bins[:-1]).all()
    if not increasing and not decreasing:
        raise ValueError("bins must be monotonically increasing or decreasing")

    # this is backwards because the arguments below are swapped
    side: DigitizeSide = "left" if right else "right"
    if decreasing and not increasing:
        # reverse the bins, and invert the results
        return len(bins) - np.searchsorted(bins[::-1], x, side=side)
    return np.searchsorted(bins, x, side=side)
