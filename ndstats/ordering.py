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
Total ordering over numeric element types.

IEEE floats are only partially ordered: every comparison against NaN is
false, which silently corrupts rank-based algorithms. An
:class:`OrderingAdapter` is chosen once per concrete dtype and fixes how
values of that dtype are compared by the kernels. NaN is never placed
anywhere; it is reported as :class:`~ndstats.errors.InvalidOrderingError`.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

import numpy as np
import numpy.typing as npt

from .errors import InvalidOrderingError

__all__ = ("OrderingAdapter", "check_orderable")


@dataclass(frozen=True)
class OrderingAdapter:
    dtype: np.dtype[Any]
    # dtype the kernels compare in; ``None`` means ``dtype`` itself
    working_dtype: Optional[np.dtype[Any]] = None
    # reinterpret (same itemsize) instead of converting
    view_dtype: Optional[np.dtype[Any]] = None
    check_nan: bool = False

    @staticmethod
    def for_dtype(dtype: npt.DTypeLike) -> OrderingAdapter:
        return _adapter_for(np.dtype(dtype))

    @property
    def needs_conversion(self) -> bool:
        return self.working_dtype is not None

    def check(self, values: npt.ArrayLike) -> None:
        """Raise InvalidOrderingError if ``values`` holds any NaN."""
        if not self.check_nan:
            return
        values = np.asarray(values)
        if values.size and np.isnan(values).any():
            raise InvalidOrderingError(
                "cannot order values containing NaN; drop or replace NaN "
                "values first"
            )

    def kernel_view(self, lanes: np.ndarray) -> np.ndarray:
        if self.view_dtype is not None:
            return lanes.view(self.view_dtype)
        return lanes

    def compare(self, x: Any, y: Any) -> int:
        """Three-way comparison of two scalars of this element type."""
        if self.check_nan and (np.isnan(x) or np.isnan(y)):
            raise InvalidOrderingError(
                f"cannot compare {x!r} and {y!r}: NaN has no place in a "
                "total order"
            )
        if x < y:
            return -1
        if x > y:
            return 1
        return 0


@lru_cache(maxsize=None)
def _adapter_for(dtype: np.dtype[Any]) -> OrderingAdapter:
    if dtype == np.dtype(np.float16):
        # numba has no arithmetic on half precision
        return OrderingAdapter(
            dtype, working_dtype=np.dtype(np.float32), check_nan=True
        )
    if dtype.kind == "f":
        return OrderingAdapter(dtype, check_nan=True)
    if dtype.kind in "iu":
        return OrderingAdapter(dtype)
    if dtype.kind == "b":
        return OrderingAdapter(dtype, view_dtype=np.dtype(np.uint8))
    if dtype.kind == "c":
        raise TypeError(
            "complex values have no total order; order by real part or "
            "magnitude explicitly"
        )
    raise TypeError(f"ndstats does not support ordering dtype={dtype}")


def check_orderable(a: np.ndarray) -> OrderingAdapter:
    """Pick the adapter for ``a`` and validate every element of ``a``."""
    adapter = OrderingAdapter.for_dtype(a.dtype)
    adapter.check(a)
    return adapter
