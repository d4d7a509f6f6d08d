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

import operator
from typing import Any, Callable, Iterable, Optional, Sequence, Union

import numpy as np

from ._kernels import select_lanes
from .errors import EmptyLaneError, RankOutOfBoundsError
from .ordering import OrderingAdapter, check_orderable
from .runtime import runtime
from .utils import add_boilerplate, check_writeable, lanes_view, normalize_axis

__all__ = (
    "select_rank",
    "select_ranks",
    "partition",
    "amin",
    "amax",
    "argmin",
    "argmax",
)


def _lane_length(a: np.ndarray, axis: Optional[int]) -> int:
    return a.size if axis is None else a.shape[axis]


def _normalize_ranks(ranks: Iterable[Any], length: int) -> np.ndarray:
    normalized = []
    for rank in ranks:
        r = operator.index(rank)
        if r < 0 or r >= length:
            raise RankOutOfBoundsError(r, length)
        normalized.append(r)
    return np.unique(np.asarray(normalized, dtype=np.int64))


def select_lanes_inplace(
    a: np.ndarray,
    axis: Optional[int],
    ranks: np.ndarray,
    adapter: OrderingAdapter,
) -> None:
    """
    Runs the selection kernel over every lane of ``a``.

    No validation happens here: ``ranks`` must be sorted, unique and in
    bounds, and ``a`` must already have passed ``adapter.check``.
    """
    if ranks.size == 0:
        return
    with lanes_view(a, axis, dtype=adapter.working_dtype) as lanes:
        kernel_lanes = adapter.kernel_view(lanes)

        def body(start: int, stop: int) -> None:
            select_lanes(kernel_lanes[start:stop], ranks)

        runtime.parallel_for(kernel_lanes.shape[0], body)


def select_ranks(
    a: np.ndarray,
    ranks: Iterable[int],
    axis: Optional[int] = -1,
) -> None:
    """
    Partially reorder every lane of ``a`` so that each requested rank holds
    its sorted-order value.

    After the call, for every lane and every requested rank ``r``, the element
    at position ``r`` is the one that would be there if the lane were sorted,
    elements before it compare less or equal and elements after it compare
    greater or equal. Elements never move between lanes.

    Parameters
    ----------
    a : ndarray
        Array to reorder in place. Must be a writeable ``numpy.ndarray``.
    ranks : Iterable[int]
        Zero-based ranks. Duplicates are ignored; all ranks are resolved in a
        single combined pass per lane.
    axis : int or None, optional
        Axis along which lanes are formed. By default, the last axis is used.
        If None, the flattened array is used.

    Raises
    ------
    EmptyLaneError
        If the lanes along ``axis`` have zero length.
    RankOutOfBoundsError
        If any rank is negative or not less than the lane length.
    InvalidOrderingError
        If ``a`` contains NaN.

    Notes
    -----
    All validation happens before any element is moved, so a failed call
    leaves ``a`` untouched.
    """
    a = check_writeable(a)
    adapter = OrderingAdapter.for_dtype(a.dtype)
    axis = normalize_axis(axis, a.ndim)
    length = _lane_length(a, axis)
    if length == 0:
        raise EmptyLaneError("cannot select a rank from an empty lane")
    rank_array = _normalize_ranks(ranks, length)
    adapter.check(a)
    select_lanes_inplace(a, axis, rank_array, adapter)


def select_rank(a: np.ndarray, rank: int, axis: Optional[int] = -1) -> None:
    """
    Partially reorder every lane of ``a`` around a single rank.

    Equivalent to ``select_ranks(a, [rank], axis)``.

    See Also
    --------
    select_ranks
    """
    select_ranks(a, (operator.index(rank),), axis=axis)


@add_boilerplate("a")
def partition(
    a: np.ndarray,
    kth: Union[int, Sequence[int]],
    axis: Optional[int] = -1,
) -> np.ndarray:
    """

    Returns a partitioned copy of an array.

    Parameters
    ----------
    a : array_like
        Input array.
    kth : int or Sequence[int]
        Element index (or indices) to partition by. Negative values count
        from the end of the lane.
    axis : int or None, optional
        Axis to partition. By default, the index -1 (the last axis) is used. If
        None, the flattened array is used.

    Returns
    -------
    out : ndarray
        Partitioned array with same dtype and shape as `a`. In case `axis` is
        None the result is flattened.

    See Also
    --------
    numpy.partition
    """
    if axis is None:
        result = a.flatten()
        axis = 0
    else:
        result = a.copy()
        axis = normalize_axis(axis, a.ndim)
    length = result.shape[axis]
    kths = (kth,) if np.ndim(kth) == 0 else tuple(kth)  # type: ignore
    ranks = []
    for k in kths:
        k = operator.index(k)
        ranks.append(k + length if k < 0 else k)
    select_ranks(result, ranks, axis=axis)
    return result


def _extremum(
    a: np.ndarray,
    axis: Optional[int],
    keepdims: bool,
    reduction: Callable[..., Any],
) -> Any:
    axis = normalize_axis(axis, a.ndim)
    check_orderable(a)
    if _lane_length(a, axis) == 0:
        raise EmptyLaneError("cannot reduce an empty lane")
    return reduction(a, axis=axis, keepdims=keepdims)


@add_boilerplate("a")
def amin(
    a: np.ndarray, axis: Optional[int] = None, keepdims: bool = False
) -> Any:
    """
    Return the minimum of an array or minimum along an axis.

    Raises InvalidOrderingError instead of propagating NaN, and
    EmptyLaneError for zero-length lanes.
    """
    return _extremum(a, axis, keepdims, np.min)


@add_boilerplate("a")
def amax(
    a: np.ndarray, axis: Optional[int] = None, keepdims: bool = False
) -> Any:
    """
    Return the maximum of an array or maximum along an axis.

    Raises InvalidOrderingError instead of propagating NaN, and
    EmptyLaneError for zero-length lanes.
    """
    return _extremum(a, axis, keepdims, np.max)


@add_boilerplate("a")
def argmin(
    a: np.ndarray, axis: Optional[int] = None, keepdims: bool = False
) -> Any:
    """Index of the first minimum along an axis."""
    return _extremum(a, axis, keepdims, np.argmin)


@add_boilerplate("a")
def argmax(
    a: np.ndarray, axis: Optional[int] = None, keepdims: bool = False
) -> Any:
    """Index of the first maximum along an axis."""
    return _extremum(a, axis, keepdims, np.argmax)
