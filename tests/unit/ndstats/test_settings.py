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

import pytest
from pydantic import ValidationError

from ndstats.settings import NdstatsRuntimeSettings, settings

_expected_settings = (
    "warn",
    "num_threads",
    "min_parallel_lanes",
)


class TestSettings:
    def test_standard_settings(self) -> None:
        assert set(NdstatsRuntimeSettings.model_fields) == set(
            _expected_settings
        )

    def test_module_instance(self) -> None:
        assert isinstance(settings, NdstatsRuntimeSettings)

    @pytest.mark.parametrize("name", _expected_settings)
    def test_prefix(self, name: str) -> None:
        assert NdstatsRuntimeSettings.model_config["env_prefix"] == "NDSTATS_"
        assert NdstatsRuntimeSettings.model_fields[name].description

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in _expected_settings:
            monkeypatch.delenv(f"NDSTATS_{name.upper()}", raising=False)
        s = NdstatsRuntimeSettings()
        assert s.warn is True
        assert s.num_threads == (os.cpu_count() or 1)
        assert s.min_parallel_lanes == 64

    @pytest.mark.parametrize("value, expected", (("0", False), ("1", True)))
    def test_warn_from_env(
        self, monkeypatch: pytest.MonkeyPatch, value: str, expected: bool
    ) -> None:
        monkeypatch.setenv("NDSTATS_WARN", value)
        assert NdstatsRuntimeSettings().warn is expected

    def test_num_threads_from_env(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("NDSTATS_NUM_THREADS", "3")
        monkeypatch.setenv("NDSTATS_MIN_PARALLEL_LANES", "8")
        s = NdstatsRuntimeSettings()
        assert s.num_threads == 3
        assert s.min_parallel_lanes == 8

    @pytest.mark.parametrize(
        "name", ("NDSTATS_NUM_THREADS", "NDSTATS_MIN_PARALLEL_LANES")
    )
    @pytest.mark.parametrize("value", ("0", "-2", "many"))
    def test_invalid_env(
        self, monkeypatch: pytest.MonkeyPatch, name: str, value: str
    ) -> None:
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError):
            NdstatsRuntimeSettings()

    def test_validate_assignment(self) -> None:
        s = NdstatsRuntimeSettings(num_threads=2)
        with pytest.raises(ValidationError):
            s.num_threads = 0
        assert s.num_threads == 2


if __name__ == "__main__":
    import sys

    sys.exit(pytest.main(sys.argv))
