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

from typing import TYPE_CHECKING, Literal, Sequence, Tuple, Union

from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from .histogram import BinStrategy

NdShape: TypeAlias = Tuple[int, ...]

AxisLike: TypeAlias = Union[int, Tuple[int, ...], None]

QuantileMethod: TypeAlias = Literal[
    "inverted_cdf",
    "averaged_inverted_cdf",
    "closest_observation",
    "interpolated_inverted_cdf",
    "hazen",
    "weibull",
    "linear",
    "median_unbiased",
    "normal_unbiased",
    "lower",
    "higher",
    "midpoint",
    "nearest",
]

BinStrategyName: TypeAlias = Literal[
    "auto", "fd", "rice", "scott", "sqrt", "sturges"
]

BinsLike: TypeAlias = Union[int, str, Sequence[float], "BinStrategy"]

DigitizeSide: TypeAlias = Literal["left", "right"]
