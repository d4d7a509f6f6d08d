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
from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Optional, Tuple, Union

import numpy as np
import numpy.typing as npt

from .errors import EmptyLaneError, InvalidQuantileError
from .ordering import OrderingAdapter
from .runtime import runtime
from .selection import select_lanes_inplace
from .types import AxisLike, NdShape, QuantileMethod
from .utils import (
    add_boilerplate,
    calculate_volume,
    check_writeable,
    collapse_axes,
    lanes_view,
    normalize_axis,
    remaining_shape,
)

__all__ = (
    "quantile",
    "percentile",
    "median",
    "interquartile_range",
    "nanquantile",
    "nanpercentile",
    "nanmedian",
)

# Every method maps a quantile ``q`` of a lane of length ``n`` to a pair
# ``(gamma, j)``: the result is ``v[j] + gamma * (v[j + 1] - v[j])`` over the
# sorted lane ``v``, where ``j`` is 0-based.
MethodFunc = Callable[[float, int], Tuple[float, int]]


# Interpolation policies over the fractional rank p = q * (n - 1)
#
def linear(q: float, n: int) -> tuple[float, int]:
    pos = q * (n - 1)
    lo = math.floor(pos)
    return (pos - lo, int(lo))


def lower(q: float, n: int) -> tuple[float, int]:
    return (0.0, int(math.floor(q * (n - 1))))


def higher(q: float, n: int) -> tuple[float, int]:
    pos = q * (n - 1)
    lo = math.floor(pos)
    gamma = 0.0 if lo == pos else 1.0
    return (gamma, int(lo))


def midpoint(q: float, n: int) -> tuple[float, int]:
    pos = q * (n - 1)
    lo = math.floor(pos)
    gamma = 0.0 if lo == pos else 0.5
    return (gamma, int(lo))


# ties go to the even rank
def nearest(q: float, n: int) -> tuple[float, int]:
    return (0.0, int(np.round(q * (n - 1))))


# Hyndman & Fan discontinuous methods
#
def inverted_cdf(q: float, n: int) -> tuple[float, int]:
    index = q * n - 1
    prev = math.floor(index)
    j = prev if index == prev else prev + 1
    return (0.0, min(max(int(j), 0), n - 1))


def averaged_inverted_cdf(q: float, n: int) -> tuple[float, int]:
    index = q * n - 1
    prev = math.floor(index)
    if prev < 0:
        return (0.0, 0)
    gamma = 0.5 if index == prev else 1.0
    return (gamma, min(int(prev), n - 1))


def closest_observation(q: float, n: int) -> tuple[float, int]:
    # H&F pick the nearest even 1-based order statistic on ties, which is
    # the nearest odd 0-based one
    index = q * n - 1.5
    prev = math.floor(index)
    j = prev if (index == prev and prev % 2 == 1) else prev + 1
    return (0.0, min(max(int(j), 0), n - 1))


# Hyndman & Fan continuous methods, parametrized by the plotting position
# constants (alpha, beta): the 1-based virtual position is
# q * (n + 1 - alpha - beta) + alpha, clamped to the first and last values.
#
def _continuous(alpha: float, beta: float) -> MethodFunc:
    def method(q: float, n: int) -> tuple[float, int]:
        pos = q * (n + 1 - alpha - beta) + alpha
        k = math.floor(pos)
        gamma = 0.0 if (pos < 1 or pos > n) else pos - k
        j = min(max(int(k) - 1, 0), n - 1)
        return (gamma, j)

    return method


interpolated_inverted_cdf = _continuous(0.0, 1.0)
hazen = _continuous(0.5, 0.5)
weibull = _continuous(0.0, 0.0)
median_unbiased = _continuous(1.0 / 3.0, 1.0 / 3.0)
normal_unbiased = _continuous(3.0 / 8.0, 3.0 / 8.0)


_METHODS: dict[str, MethodFunc] = {
    "inverted_cdf": inverted_cdf,
    "averaged_inverted_cdf": averaged_inverted_cdf,
    "closest_observation": closest_observation,
    "interpolated_inverted_cdf": interpolated_inverted_cdf,
    "hazen": hazen,
    "weibull": weibull,
    "linear": linear,
    "median_unbiased": median_unbiased,
    "normal_unbiased": normal_unbiased,
    "lower": lower,
    "higher": higher,
    "midpoint": midpoint,
    "nearest": nearest,
}

# methods that always return one of the data points, hence keep the dtype
_DISCRETE_METHODS = frozenset(
    ("inverted_cdf", "closest_observation", "lower", "higher", "nearest")
)


def _get_method(method: str) -> MethodFunc:
    try:
        return _METHODS[method]
    except KeyError:
        raise ValueError(
            f"'{method}' is not a valid method. Use one of: "
            + ", ".join(_METHODS)
        ) from None


def _validate_q(q: npt.ArrayLike, scale: float = 1.0) -> np.ndarray:
    q_arr = np.asarray(q, dtype=np.float64)
    if not np.all(np.isfinite(q_arr)):
        raise InvalidQuantileError("quantiles must be finite")
    if np.any(q_arr < 0) or np.any(q_arr > scale):
        bound = "[0, 1]" if scale == 1.0 else f"[0, {scale:g}]"
        raise InvalidQuantileError(f"quantiles must be in the range {bound}")
    return q_arr / scale if scale != 1.0 else q_arr


def _positions(
    q_arr: np.ndarray, n: int, method: MethodFunc
) -> tuple[list[tuple[float, int, int]], np.ndarray]:
    """
    Resolves every quantile to ``(gamma, left, right)`` positions, plus the
    sorted set of ranks a selection pass has to settle.
    """
    positions = []
    ranks = set()
    for q in q_arr.flat:
        gamma, j = method(float(q), n)
        right = min(j + 1, n - 1)
        positions.append((gamma, j, right))
        ranks.add(j)
        if gamma != 0:
            ranks.add(right)
    return positions, np.asarray(sorted(ranks), dtype=np.int64)


def _result_dtype(dtype: np.dtype[Any], method: str) -> np.dtype[Any]:
    if method in _DISCRETE_METHODS:
        return dtype
    return np.dtype(np.float64)


def _interpolate(
    left: np.ndarray,
    right: np.ndarray,
    gamma: float,
    discrete: bool,
) -> np.ndarray:
    if discrete:
        return right if gamma != 0 else left
    left = np.asarray(left, dtype=np.float64)
    if gamma == 0:
        return left
    right = np.asarray(right, dtype=np.float64)
    return left + gamma * (right - left)


def _store(
    result: np.ndarray,
    out: Optional[np.ndarray],
) -> Union[np.ndarray, Any]:
    if out is not None:
        if out.shape != result.shape:
            raise ValueError("wrong shape on output array")
        out[...] = result
        return out
    if result.ndim == 0:
        return result[()]
    return result


def _lane_axes(
    a: np.ndarray, axis: AxisLike
) -> tuple[Optional[np.ndarray], Optional[int], list[int]]:
    """
    Returns the collapsed array when several axes are reduced (None
    otherwise), the lane axis and the original axes being reduced.
    """
    if axis is not None and isinstance(axis, Iterable):
        axes = [normalize_axis(ax, a.ndim) for ax in axis]  # type: ignore
        if len(set(axes)) != len(axes):
            raise ValueError("repeated axis")
        if len(axes) == 1:
            axis = axes[0]
        else:
            collapsed = collapse_axes(a, axes)
            return collapsed, collapsed.ndim - 1, axes

    real_axis = normalize_axis(axis, a.ndim)  # type: ignore [arg-type]
    axes = list(range(a.ndim)) if real_axis is None else [real_axis]
    return None, real_axis, axes


def _prepare(
    a: np.ndarray,
    axis: AxisLike,
    overwrite_input: bool,
) -> tuple[np.ndarray, Optional[int], list[int], bool]:
    """
    Returns the array to partition, the lane axis inside it, the original
    axes being reduced and whether the caller's array is being reordered.
    """
    collapsed, real_axis, axes = _lane_axes(a, axis)
    if collapsed is not None:
        if overwrite_input:
            runtime.warn(
                "overwrite_input is ignored when reducing over several "
                "axes; the input is copied",
                category=RuntimeWarning,
            )
        return np.array(collapsed, copy=True), real_axis, axes, False

    if overwrite_input:
        return check_writeable(a), real_axis, axes, True
    return a.copy(), real_axis, axes, False


def quantile(
    a: npt.ArrayLike,
    q: Union[float, Iterable[float], npt.ArrayLike],
    axis: AxisLike = None,
    out: Optional[np.ndarray] = None,
    overwrite_input: bool = False,
    method: QuantileMethod = "linear",
    keepdims: bool = False,
) -> Any:
    """
    Compute the q-th quantile of the data along the specified axis.

    Parameters
    ----------
    a : array_like
        Input array or object that can be converted to an array.
    q : array_like of float
        Quantile or sequence of quantiles to compute, which must be between
        0 and 1 inclusive.
    axis : {int, tuple of int, None}, optional
        Axis or axes along which the quantiles are computed. The default is
        to compute the quantile(s) along a flattened version of the array.
    out : ndarray, optional
        Alternative output array in which to place the result. It must have
        the same shape as the expected output.
    overwrite_input : bool, optional
        If True, partition `a` in place instead of a private copy. `a` must
        then be a writeable ndarray, and after the call every lane of `a` is
        left partitioned around the ranks used for the requested quantiles.
        Ignored (with a warning) when `axis` names several axes.
    method : str, optional
        This parameter specifies the method to use for estimating the
        quantile. The options sorted by their R type
        as summarized in the H&F paper [1]_ are:
        1. 'inverted_cdf'
        2. 'averaged_inverted_cdf'
        3. 'closest_observation'
        4. 'interpolated_inverted_cdf'
        5. 'hazen'
        6. 'weibull'
        7. 'linear'  (default)
        8. 'median_unbiased'
        9. 'normal_unbiased'
        The first three methods are discontinuous. The following
        variations of the default 'linear' (7.) option are also available:
        * 'lower'
        * 'higher',
        * 'midpoint'
        * 'nearest' (ties resolve to the even rank)
    keepdims : bool, optional
        If this is set to True, the axes which are reduced are left in
        the result as dimensions with size one.

    Returns
    -------
    quantile : scalar or ndarray
        If `q` is a single quantile and `axis=None`, then the result
        is a scalar. If multiple quantiles are given, first axis of
        the result corresponds to the quantiles. The other axes are
        the axes that remain after the reduction of `a`. Discontinuous
        methods keep the dtype of `a`, all others return float64.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length.
    InvalidQuantileError
        If any `q` is non-finite or outside [0, 1].
    InvalidOrderingError
        If `a` contains NaN. See `nanquantile`.
    TypeError
        If the type of the input is complex.

    Notes
    -----
    All ranks needed by all requested quantiles are settled in a single
    selection pass per lane; `a` is never fully sorted.

    See Also
    --------
    numpy.quantile

    References
    ----------
    .. [1] R. J. Hyndman and Y. Fan,
       "Sample quantiles in statistical packages,"
       The American Statistician, 50(4), pp. 361-365, 1996
    """
    method_func = _get_method(method)
    q_arr = _validate_q(q)
    arr = a if isinstance(a, np.ndarray) else np.asarray(a)
    adapter = OrderingAdapter.for_dtype(arr.dtype)

    work, real_axis, axes, _ = _prepare(arr, axis, overwrite_input)
    n = work.size if real_axis is None else work.shape[real_axis]
    if n == 0:
        raise EmptyLaneError("cannot compute a quantile of an empty lane")
    # validate-then-mutate: work may be the caller's array
    adapter.check(work)

    positions, ranks = _positions(q_arr, n, method_func)
    select_lanes_inplace(work, real_axis, ranks, adapter)

    kept = remaining_shape(arr.shape, axes, keepdims)
    discrete = method in _DISCRETE_METHODS
    result = np.empty(
        q_arr.shape + kept, dtype=_result_dtype(arr.dtype, method)
    )
    for index, (gamma, left_pos, right_pos) in zip(
        np.ndindex(q_arr.shape), positions
    ):
        left = np.take(work, left_pos, axis=real_axis)
        right = np.take(work, right_pos, axis=real_axis)
        value = _interpolate(left, right, gamma, discrete)
        result[index] = np.reshape(value, kept)

    return _store(result, out)


def percentile(
    a: npt.ArrayLike,
    q: Union[float, Iterable[float], npt.ArrayLike],
    axis: AxisLike = None,
    out: Optional[np.ndarray] = None,
    overwrite_input: bool = False,
    method: QuantileMethod = "linear",
    keepdims: bool = False,
) -> Any:
    """
    Compute the q-th percentile of the data along the specified axis.

    Identical to `quantile` with `q` scaled to [0, 100].

    See Also
    --------
    quantile, numpy.percentile
    """
    q_arr = _validate_q(q, scale=100.0)
    return quantile(
        a,
        q_arr,
        axis=axis,
        out=out,
        overwrite_input=overwrite_input,
        method=method,
        keepdims=keepdims,
    )


def median(
    a: npt.ArrayLike,
    axis: AxisLike = None,
    out: Optional[np.ndarray] = None,
    overwrite_input: bool = False,
    keepdims: bool = False,
) -> Any:
    """
    Compute the median along the specified axis.

    For lanes of even length this is the mean of the two middle values.

    See Also
    --------
    quantile, numpy.median
    """
    return quantile(
        a,
        0.5,
        axis=axis,
        out=out,
        overwrite_input=overwrite_input,
        method="linear",
        keepdims=keepdims,
    )


def interquartile_range(
    a: npt.ArrayLike,
    axis: AxisLike = None,
    method: QuantileMethod = "linear",
    keepdims: bool = False,
) -> Any:
    """
    Difference between the 0.75 and 0.25 quantiles along an axis.

    Both quartiles are resolved by one combined selection over a private
    copy of `a`.
    """
    quartiles = quantile(
        a, (0.25, 0.75), axis=axis, method=method, keepdims=keepdims
    )
    return quartiles[1] - quartiles[0]


@add_boilerplate("a")
def nanquantile(
    a: np.ndarray,
    q: Union[float, Iterable[float], npt.ArrayLike],
    axis: AxisLike = None,
    out: Optional[np.ndarray] = None,
    method: QuantileMethod = "linear",
    keepdims: bool = False,
) -> Any:
    """
    Compute the q-th quantile of the data along the specified axis, while
    ignoring NaN values.

    Each lane is reduced to its non-NaN values before selection, so lanes may
    end up with different lengths. `a` is never modified. As with
    `quantile`, `axis` may name several axes.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length or any lane holds only NaN.

    See Also
    --------
    quantile, numpy.nanquantile
    """
    method_func = _get_method(method)
    q_arr = _validate_q(q)
    adapter = OrderingAdapter.for_dtype(a.dtype)
    if not adapter.check_nan or not np.isnan(a).any():
        return quantile(
            a, q_arr, axis=axis, out=out, method=method, keepdims=keepdims
        )

    collapsed, real_axis, axes = _lane_axes(a, axis)
    source = a if collapsed is None else collapsed
    n = a.size if real_axis is None else source.shape[real_axis]
    if n == 0:
        raise EmptyLaneError("cannot compute a quantile of an empty lane")
    lane_grid: NdShape = remaining_shape(a.shape, axes, keepdims=False)
    num_lanes = calculate_volume(lane_grid)

    discrete = method in _DISCRETE_METHODS
    values = np.empty(
        (q_arr.size, num_lanes), dtype=_result_dtype(a.dtype, method)
    )

    with lanes_view(source, real_axis, write_back=False) as lanes:
        # fail fast before scheduling any lane
        if num_lanes and np.isnan(lanes).all(axis=1).any():
            raise EmptyLaneError("all-NaN lane has no quantile")

        def body(start: int, stop: int) -> None:
            for i in range(start, stop):
                lane = lanes[i]
                finite = lane[~np.isnan(lane)]
                work = finite.astype(
                    adapter.working_dtype or finite.dtype
                ).reshape(1, -1)
                positions, ranks = _positions(
                    q_arr, work.shape[1], method_func
                )
                select_lanes_inplace(work, 1, ranks, adapter)
                for k, (gamma, left_pos, right_pos) in enumerate(positions):
                    values[k, i] = _interpolate(
                        work[0, left_pos], work[0, right_pos], gamma, discrete
                    )

        runtime.parallel_for(num_lanes, body)

    kept = remaining_shape(a.shape, axes, keepdims)
    result = values.reshape(q_arr.shape + kept)
    return _store(result, out)


def nanpercentile(
    a: npt.ArrayLike,
    q: Union[float, Iterable[float], npt.ArrayLike],
    axis: AxisLike = None,
    out: Optional[np.ndarray] = None,
    method: QuantileMethod = "linear",
    keepdims: bool = False,
) -> Any:
    """
    Compute the q-th percentile of the data along the specified axis, while
    ignoring NaN values.

    See Also
    --------
    nanquantile, numpy.nanpercentile
    """
    q_arr = _validate_q(q, scale=100.0)
    return nanquantile(
        a, q_arr, axis=axis, out=out, method=method, keepdims=keepdims
    )


def nanmedian(
    a: npt.ArrayLike,
    axis: AxisLike = None,
    out: Optional[np.ndarray] = None,
    keepdims: bool = False,
) -> Any:
    """Compute the median along the specified axis, ignoring NaN values."""
    return nanquantile(a, 0.5, axis=axis, out=out, keepdims=keepdims)
