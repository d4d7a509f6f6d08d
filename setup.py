#!/usr/bin/env python3

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

from setuptools import find_packages, setup

setup(
    name="ndstats",
    version="0.1.0",
    description="Order statistics, quantiles and histograms over the axes "
    "of n-dimensional arrays",
    author="NVIDIA Corporation",
    license="Apache 2.0",
    classifiers=[
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    packages=find_packages(
        where=".",
        include=["ndstats*"],
    ),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=2.0",
        "numba>=0.60",
        "pydantic>=2",
        "pydantic-settings>=2",
        "typing_extensions",
    ],
    extras_require={"test": ["pytest"]},
    zip_safe=False,
)
