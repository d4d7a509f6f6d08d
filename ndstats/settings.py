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

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ("settings",)


def _default_num_threads() -> int:
    return os.cpu_count() or 1


class NdstatsRuntimeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="NDSTATS_",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    warn: bool = Field(
        default=True,
        description="""
        Turn on warnings.
        """,
    )

    num_threads: int = Field(
        default_factory=_default_num_threads,
        ge=1,
        description="""
        Number of worker threads used to process independent lanes of an
        array. Setting this to 1 runs every kernel on the calling thread.
        """,
    )

    min_parallel_lanes: int = Field(
        default=64,
        ge=1,
        description="""
        ndstats will process lanes inline on the calling thread when an
        operation touches fewer lanes than this, as the cost of dispatching
        work to the thread pool would likely not be offset by the parallel
        speedup.
        """,
    )


settings = NdstatsRuntimeSettings()
