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
Moment-based summary statistics.

These are pure reductions: the input is never reordered and NaN propagates
through the arithmetic like it does in NumPy.
"""
from __future__ import annotations

import operator
from typing import Any, Optional

import numpy as np
import numpy.typing as npt

from ._kernels import comoment_rows, moments_lanes
from .errors import EmptyLaneError, StatsError
from .runtime import runtime
from .utils import lanes_view, normalize_axis, remaining_shape

__all__ = (
    "mean",
    "var",
    "std",
    "skewness",
    "kurtosis",
    "central_moment",
    "central_moments",
    "harmonic_mean",
    "geometric_mean",
    "cov",
    "corrcoef",
)

# Columns of the accumulator array filled by ``moments_lanes``
_MEAN, _M2, _M3, _M4 = 0, 1, 2, 3


def _check_real(a: np.ndarray) -> None:
    if a.dtype.kind == "c":
        raise TypeError("summary statistics of complex values are undefined")
    if a.dtype.kind not in "biuf":
        raise TypeError(f"unsupported dtype {a.dtype} for summary statistics")


def _result_dtype(a: np.ndarray) -> np.dtype[Any]:
    if a.dtype.kind == "f":
        return a.dtype
    return np.dtype(np.float64)


def _axes(arr: np.ndarray, axis: Optional[int]) -> list[int]:
    return list(range(arr.ndim)) if axis is None else [axis]


def _lane_length(a: np.ndarray, axis: Optional[int]) -> int:
    length = a.size if axis is None else a.shape[axis]
    if length == 0:
        raise EmptyLaneError("cannot reduce an empty lane")
    return length


def _finish(
    values: np.ndarray,
    a: np.ndarray,
    axis: Optional[int],
    keepdims: bool,
) -> Any:
    shape = remaining_shape(a.shape, _axes(a, axis), keepdims)
    result = values.reshape(shape).astype(_result_dtype(a), copy=False)
    if result.ndim == 0:
        return result[()]
    return result


def _moments(a: np.ndarray, axis: Optional[int]) -> tuple[np.ndarray, int]:
    """
    Running mean and central moment sums of every lane.

    Returns an array of shape ``(num_lanes, 4)`` holding
    ``(mean, M2, M3, M4)`` per lane, and the lane length.
    """
    n = _lane_length(a, axis)
    with lanes_view(
        a, axis, dtype=np.dtype(np.float64), write_back=False
    ) as lanes:
        out = np.empty((lanes.shape[0], 4), dtype=np.float64)

        def body(start: int, stop: int) -> None:
            moments_lanes(lanes[start:stop], out[start:stop])

        runtime.parallel_for(lanes.shape[0], body)
    return out, n


def _prepare(
    a: npt.ArrayLike, axis: Optional[int]
) -> tuple[np.ndarray, Optional[int]]:
    arr = np.asarray(a)
    _check_real(arr)
    return arr, normalize_axis(axis, arr.ndim)


def _check_variance(m2: np.ndarray, what: str) -> None:
    if np.any(m2 == 0):
        raise StatsError(f"{what} of a zero-variance lane is undefined")


def mean(
    a: npt.ArrayLike, axis: Optional[int] = None, keepdims: bool = False
) -> Any:
    """
    Arithmetic mean along an axis.

    Parameters
    ----------
    a : array_like
        Input data.
    axis : int or None, optional
        Axis along which the mean is computed. The default is to compute the
        mean of the flattened array.
    keepdims : bool, optional
        If True, the reduced axis is left in the result with size one.

    Returns
    -------
    m : scalar or ndarray
        Floating inputs keep their dtype, other inputs produce float64.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length.
    """
    arr, real_axis = _prepare(a, axis)
    _lane_length(arr, real_axis)
    values = np.mean(arr, axis=real_axis, dtype=np.float64)
    return _finish(np.asarray(values), arr, real_axis, keepdims)


def var(
    a: npt.ArrayLike,
    axis: Optional[int] = None,
    ddof: int = 0,
    keepdims: bool = False,
) -> Any:
    """
    Variance along an axis, computed in one numerically stable pass.

    The divisor is ``n - ddof``. A single element with ``ddof=0`` has a
    variance of zero.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length.
    StatsError
        If ``n - ddof <= 0``.

    See Also
    --------
    numpy.var
    """
    arr, real_axis = _prepare(a, axis)
    moments, n = _moments(arr, real_axis)
    if n - ddof <= 0:
        raise StatsError(
            f"degrees of freedom <= 0 for a lane of {n} values and ddof={ddof}"
        )
    return _finish(moments[:, _M2] / (n - ddof), arr, real_axis, keepdims)


def std(
    a: npt.ArrayLike,
    axis: Optional[int] = None,
    ddof: int = 0,
    keepdims: bool = False,
) -> Any:
    """Standard deviation along an axis; the square root of `var`."""
    arr, real_axis = _prepare(a, axis)
    moments, n = _moments(arr, real_axis)
    if n - ddof <= 0:
        raise StatsError(
            f"degrees of freedom <= 0 for a lane of {n} values and ddof={ddof}"
        )
    values = np.sqrt(moments[:, _M2] / (n - ddof))
    return _finish(values, arr, real_axis, keepdims)


def skewness(
    a: npt.ArrayLike,
    axis: Optional[int] = None,
    bias: bool = True,
    keepdims: bool = False,
) -> Any:
    """
    Sample skewness ``g1 = m3 / m2**1.5`` along an axis.

    Parameters
    ----------
    a : array_like
        Input data.
    axis : int or None, optional
        Axis along which skewness is computed. Default is the flattened
        array.
    bias : bool, optional
        If False, the result is corrected for statistical bias
        (the adjusted Fisher-Pearson coefficient ``G1``).
    keepdims : bool, optional
        If True, the reduced axis is left in the result with size one.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length.
    StatsError
        If lanes hold fewer than 3 values, or any lane has zero variance.
    """
    arr, real_axis = _prepare(a, axis)
    moments, n = _moments(arr, real_axis)
    if n < 3:
        raise StatsError(f"skewness needs at least 3 values, got {n}")
    m2 = moments[:, _M2]
    _check_variance(m2, "skewness")
    values = np.sqrt(n) * moments[:, _M3] / m2**1.5
    if not bias:
        values = values * np.sqrt(n * (n - 1.0)) / (n - 2.0)
    return _finish(values, arr, real_axis, keepdims)


def kurtosis(
    a: npt.ArrayLike,
    axis: Optional[int] = None,
    fisher: bool = False,
    bias: bool = True,
    keepdims: bool = False,
) -> Any:
    """
    Sample kurtosis ``m4 / m2**2`` along an axis.

    Parameters
    ----------
    a : array_like
        Input data.
    axis : int or None, optional
        Axis along which kurtosis is computed. Default is the flattened
        array.
    fisher : bool, optional
        If True, 3.0 is subtracted so that a normal distribution gives 0.0
        (excess kurtosis). The default returns Pearson's definition.
    bias : bool, optional
        If False, the result is corrected for statistical bias.
    keepdims : bool, optional
        If True, the reduced axis is left in the result with size one.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length.
    StatsError
        If any lane has zero variance, or if ``bias`` is False and lanes
        hold fewer than 4 values.
    """
    arr, real_axis = _prepare(a, axis)
    moments, n = _moments(arr, real_axis)
    if not bias and n < 4:
        raise StatsError(
            f"bias-corrected kurtosis needs at least 4 values, got {n}"
        )
    m2 = moments[:, _M2]
    _check_variance(m2, "kurtosis")
    excess = n * moments[:, _M4] / (m2 * m2) - 3.0
    if not bias:
        excess = (
            ((n + 1.0) * excess + 6.0) * (n - 1.0) / ((n - 2.0) * (n - 3.0))
        )
    values = excess if fisher else excess + 3.0
    return _finish(values, arr, real_axis, keepdims)


def _check_order(order: Any) -> int:
    order = operator.index(order)
    if order < 0:
        raise StatsError(f"moment order must be non-negative, got {order}")
    return order


def _centered(arr: np.ndarray, axis: Optional[int]) -> np.ndarray:
    # corrected two-pass: the first-pass mean is refined by the mean of the
    # residuals before they are raised to higher powers
    x = arr.astype(np.float64)
    center = np.mean(x, axis=axis, keepdims=True)
    resid = x - center
    center = center + np.mean(resid, axis=axis, keepdims=True)
    return x - center


def central_moment(
    a: npt.ArrayLike,
    order: int,
    axis: Optional[int] = None,
    keepdims: bool = False,
) -> Any:
    """
    Central moment ``mean((x - mean(x)) ** order)`` of arbitrary order.

    The zeroth moment is 1 and the first is 0 by definition.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length.
    StatsError
        If `order` is negative.
    """
    order = _check_order(order)
    arr, real_axis = _prepare(a, axis)
    _lane_length(arr, real_axis)
    shape = remaining_shape(arr.shape, _axes(arr, real_axis), False)
    if order == 0:
        values = np.ones(shape)
    elif order == 1:
        values = np.zeros(shape)
    else:
        values = np.mean(_centered(arr, real_axis) ** order, axis=real_axis)
    return _finish(np.asarray(values), arr, real_axis, keepdims)


def central_moments(
    a: npt.ArrayLike,
    order: int,
    axis: Optional[int] = None,
    keepdims: bool = False,
) -> np.ndarray:
    """
    All central moments from order 0 up to and including `order`.

    The result has the moment order as its first axis, followed by the shape
    `central_moment` would return. Residuals are computed once and shared by
    every order.
    """
    order = _check_order(order)
    arr, real_axis = _prepare(a, axis)
    _lane_length(arr, real_axis)
    shape = remaining_shape(arr.shape, _axes(arr, real_axis), keepdims)
    out = np.empty((order + 1,) + shape, dtype=_result_dtype(arr))
    out[0] = 1
    if order >= 1:
        out[1] = 0
    if order >= 2:
        resid = _centered(arr, real_axis)
        power = resid.copy()
        for k in range(2, order + 1):
            power *= resid
            out[k] = np.mean(power, axis=real_axis).reshape(shape)
    return out


def harmonic_mean(
    a: npt.ArrayLike, axis: Optional[int] = None, keepdims: bool = False
) -> Any:
    """
    Harmonic mean ``n / sum(1 / x)`` along an axis.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length.
    StatsError
        If any value is zero.
    """
    arr, real_axis = _prepare(a, axis)
    n = _lane_length(arr, real_axis)
    if np.any(arr == 0):
        raise StatsError("harmonic mean is undefined for zero values")
    values = n / np.sum(1.0 / arr.astype(np.float64), axis=real_axis)
    return _finish(np.asarray(values), arr, real_axis, keepdims)


def geometric_mean(
    a: npt.ArrayLike, axis: Optional[int] = None, keepdims: bool = False
) -> Any:
    """
    Geometric mean ``exp(mean(log(x)))`` along an axis.

    Raises
    ------
    EmptyLaneError
        If the reduced axis has zero length.
    StatsError
        If any value is zero or negative.
    """
    arr, real_axis = _prepare(a, axis)
    _lane_length(arr, real_axis)
    if np.any(arr <= 0):
        raise StatsError("geometric mean needs strictly positive values")
    values = np.exp(np.mean(np.log(arr.astype(np.float64)), axis=real_axis))
    return _finish(np.asarray(values), arr, real_axis, keepdims)


def _comoments(
    m: npt.ArrayLike, axis: int
) -> tuple[np.ndarray, int, np.ndarray]:
    arr = np.asarray(m)
    _check_real(arr)
    if arr.ndim not in (1, 2):
        raise ValueError("m has more than 2 dimensions")
    variables = np.atleast_2d(arr) if arr.ndim == 1 else arr
    real_axis = normalize_axis(axis, arr.ndim)
    if arr.ndim == 2 and real_axis == 0:
        variables = variables.T
    variables = np.ascontiguousarray(variables, dtype=np.float64)
    num_vars, num_obs = variables.shape
    if num_obs == 0:
        raise EmptyLaneError("cannot compute covariance of zero observations")

    out = np.empty((num_vars, num_vars), dtype=np.float64)

    def body(start: int, stop: int) -> None:
        comoment_rows(variables, out, start, stop)

    runtime.parallel_for(num_vars, body)
    return out, num_obs, arr


def cov(m: npt.ArrayLike, axis: int = -1, ddof: int = 1) -> Any:
    """
    Estimate a covariance matrix.

    Parameters
    ----------
    m : array_like
        A 1-D or 2-D array of variables. Each variable is a lane along
        `axis`: with the default ``axis=-1`` each row is a variable and each
        column an observation.
    axis : int, optional
        Axis holding the observations.
    ddof : int, optional
        The divisor is ``N - ddof`` where ``N`` is the number of
        observations. Default 1 gives the unbiased estimate.

    Returns
    -------
    out : ndarray or scalar
        The ``(num_vars, num_vars)`` covariance matrix, or the variance of
        the single variable of a 1-D input.

    Raises
    ------
    EmptyLaneError
        If there are no observations.
    StatsError
        If ``N - ddof <= 0``.

    See Also
    --------
    numpy.cov
    """
    comoments, n, arr = _comoments(m, axis)
    if n - ddof <= 0:
        raise StatsError(
            f"degrees of freedom <= 0 for {n} observations and ddof={ddof}"
        )
    result = (comoments / (n - ddof)).astype(_result_dtype(arr), copy=False)
    if arr.ndim == 1:
        return result[0, 0]
    return result


def corrcoef(m: npt.ArrayLike, axis: int = -1) -> Any:
    """
    Pearson product-moment correlation coefficients.

    Variables are laid out as in `cov`. Entries are clipped to ``[-1, 1]``
    and the diagonal is exactly 1.

    Raises
    ------
    EmptyLaneError
        If there are no observations.
    StatsError
        If any variable has zero variance.

    See Also
    --------
    numpy.corrcoef
    """
    comoments, _, arr = _comoments(m, axis)
    d = np.diag(comoments)
    if np.any(d == 0):
        raise StatsError(
            "correlation of a zero-variance variable is undefined"
        )
    stddev = np.sqrt(d)
    result = comoments / stddev[:, None] / stddev[None, :]
    np.clip(result, -1, 1, out=result)
    np.fill_diagonal(result, 1.0)
    result = result.astype(_result_dtype(arr), copy=False)
    if arr.ndim == 1:
        return result[0, 0]
    return result
