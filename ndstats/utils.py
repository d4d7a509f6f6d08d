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

import sys
from contextlib import contextmanager
from functools import reduce, wraps
from inspect import signature
from typing import (
    Any,
    Callable,
    Iterable,
    Iterator,
    Optional,
    Tuple,
    TypeVar,
)

import numpy as np
from numpy.lib.array_utils import normalize_axis_index, normalize_axis_tuple
from typing_extensions import ParamSpec

from .types import NdShape

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T")


def add_boilerplate(
    *array_params: str,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Adds required boilerplate to the wrapped module-level function.

    Every time the wrapped function is called, this wrapper will convert all
    specified array-like parameters to NumPy ndarrays. Functions that reorder
    their input in place must not list that input here, since a conversion
    could hand them a temporary copy.
    """
    keys = set(array_params)
    assert len(keys) == len(array_params)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        assert not hasattr(
            func, "__wrapped__"
        ), "this decorator must be the innermost"

        # For each parameter specified by name, also consider the case where
        # it's passed as a positional parameter.
        params = signature(func).parameters
        extra = keys - set(params)
        assert len(extra) == 0, f"unknown parameter(s): {extra}"
        indices = {idx for idx, param in enumerate(params) if param in keys}

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> R:
            args = tuple(
                np.asarray(arg) if idx in indices and arg is not None else arg
                for (idx, arg) in enumerate(args)
            )
            for k, v in kwargs.items():
                if v is not None and k in keys:
                    kwargs[k] = np.asarray(v)
            return func(*args, **kwargs)

        return wrapper

    return decorator


def check_writeable(a: Any) -> np.ndarray:
    if not isinstance(a, np.ndarray):
        raise TypeError(
            "in-place selection requires a numpy.ndarray, "
            f"got {type(a).__name__}"
        )
    if not a.flags.writeable:
        raise ValueError("array is not writeable")
    return a


def find_last_user_stacklevel() -> int:
    stacklevel = 1
    frame = sys._getframe(1)
    while frame is not None:
        if not frame.f_globals.get("__name__", "").startswith("ndstats"):
            break
        stacklevel += 1
        frame = frame.f_back  # type: ignore [assignment]
    return stacklevel


def calculate_volume(shape: NdShape) -> int:
    if len(shape) == 0:
        return 1
    return reduce(lambda x, y: x * y, shape)


def tuple_pop(tup: Tuple[T, ...], index: int) -> Tuple[T, ...]:
    return tup[:index] + tup[index + 1 :]


def normalize_axis(axis: Optional[int], ndim: int) -> Optional[int]:
    if axis is None:
        return None
    return normalize_axis_index(axis, ndim)


def remaining_shape(
    shape: NdShape, axes: Iterable[int], keepdims: bool
) -> NdShape:
    axes = set(axes)
    if keepdims:
        return tuple(1 if k in axes else s for k, s in enumerate(shape))
    return tuple(s for k, s in enumerate(shape) if k not in axes)


def collapse_axes(arr: np.ndarray, axes: Iterable[int]) -> np.ndarray:
    """
    Moves ``axes`` to the end of ``arr`` and merges them into a single axis.

    The result is a view when the memory layout allows it, otherwise a copy.
    """
    sorted_axes = normalize_axis_tuple(tuple(axes), arr.ndim)
    num_axes = len(sorted_axes)
    target = tuple(range(arr.ndim - num_axes, arr.ndim))
    moved = np.moveaxis(arr, sorted_axes, target)
    lead = moved.shape[: arr.ndim - num_axes]
    collapsed = calculate_volume(moved.shape[arr.ndim - num_axes :])
    return moved.reshape(lead + (collapsed,))


@contextmanager
def lanes_view(
    arr: np.ndarray,
    axis: Optional[int],
    dtype: Optional[np.dtype[Any]] = None,
    write_back: bool = True,
) -> Iterator[np.ndarray]:
    """
    Presents the lanes of ``arr`` along ``axis`` as a 2-D array of shape
    ``(num_lanes, lane_length)``.

    Lane ``i`` corresponds to the ``i``-th index of the remaining axes in C
    order. When the 2-D view has to be a copy (non-contiguous layout, or a
    different working ``dtype``), any modification made to it is copied back
    into ``arr`` on exit if ``write_back`` is set.
    """
    if axis is None:
        moved = arr.reshape(-1) if arr.flags.c_contiguous else None
        lane_length = arr.size
        num_lanes = 1
    else:
        moved = np.moveaxis(arr, axis, -1)
        lane_length = arr.shape[axis]
        num_lanes = calculate_volume(moved.shape[:-1])

    if moved is None:
        lanes = arr.reshape(num_lanes, lane_length)
    else:
        lanes = moved.reshape(num_lanes, lane_length)

    if dtype is not None and lanes.dtype != dtype:
        lanes = lanes.astype(dtype)

    yield lanes

    if write_back and not np.may_share_memory(lanes, arr):
        if moved is None or axis is None:
            arr[...] = lanes.reshape(arr.shape)
        else:
            moved[...] = lanes.reshape(moved.shape)
