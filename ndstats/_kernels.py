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
Lane kernels.

Every kernel takes a 2-D ``(num_lanes, lane_length)`` array and handles each
row independently. They are compiled with ``nogil=True`` so that the runtime
can hand disjoint row ranges to different threads.
"""
from __future__ import annotations

import numpy as np
from numba import njit

# Frame columns of the selection stack
_LO, _HI, _RANK_LO, _RANK_HI = 0, 1, 2, 3


@njit(nogil=True)
def _median_of_three(a, b, c):  # type: ignore [no-untyped-def]
    if a < b:
        if b < c:
            return b
        elif a < c:
            return c
        return a
    if a < c:
        return a
    elif b < c:
        return c
    return b


@njit(nogil=True)
def _select_lane(lane, ranks, stack):  # type: ignore [no-untyped-def]
    # ranks must be sorted, unique and inside [0, lane.shape[0]).
    # Every frame on the stack owns a disjoint, non-empty slice of ``ranks``,
    # so the stack never holds more than ``ranks.shape[0]`` frames.
    n = lane.shape[0]
    num_ranks = ranks.shape[0]
    if n <= 1 or num_ranks == 0:
        return

    stack[0, _LO] = 0
    stack[0, _HI] = n - 1
    stack[0, _RANK_LO] = 0
    stack[0, _RANK_HI] = num_ranks
    top = 1

    while top > 0:
        top -= 1
        lo = stack[top, _LO]
        hi = stack[top, _HI]
        rank_lo = stack[top, _RANK_LO]
        rank_hi = stack[top, _RANK_HI]
        if hi <= lo:
            continue

        mid = lo + (hi - lo) // 2
        pivot = _median_of_three(lane[lo], lane[mid], lane[hi])

        # three-way partition: [lo, lt) < pivot, [lt, gt] == pivot,
        # (gt, hi] > pivot
        lt = lo
        gt = hi
        i = lo
        while i <= gt:
            v = lane[i]
            if v < pivot:
                lane[i] = lane[lt]
                lane[lt] = v
                lt += 1
                i += 1
            elif pivot < v:
                lane[i] = lane[gt]
                lane[gt] = v
                gt -= 1
            else:
                i += 1

        # ranks inside [lt, gt] are final
        r = rank_lo
        while r < rank_hi and ranks[r] < lt:
            r += 1
        left_stop = r
        while r < rank_hi and ranks[r] <= gt:
            r += 1
        right_start = r

        if left_stop > rank_lo:
            stack[top, _LO] = lo
            stack[top, _HI] = lt - 1
            stack[top, _RANK_LO] = rank_lo
            stack[top, _RANK_HI] = left_stop
            top += 1
        if rank_hi > right_start:
            stack[top, _LO] = gt + 1
            stack[top, _HI] = hi
            stack[top, _RANK_LO] = right_start
            stack[top, _RANK_HI] = rank_hi
            top += 1


@njit(nogil=True)
def select_lanes(lanes, ranks):  # type: ignore [no-untyped-def]
    stack = np.empty((max(ranks.shape[0], 1), 4), dtype=np.int64)
    for i in range(lanes.shape[0]):
        _select_lane(lanes[i], ranks, stack)


@njit(nogil=True)
def moments_lanes(lanes, out):  # type: ignore [no-untyped-def]
    # One-pass update of the mean and the 2nd to 4th central moment sums
    # (Welford, extended by Terriberry). out[i] = (mean, M2, M3, M4).
    for i in range(lanes.shape[0]):
        lane = lanes[i]
        mean = 0.0
        m2 = 0.0
        m3 = 0.0
        m4 = 0.0
        for k in range(lane.shape[0]):
            x = float(lane[k])
            n1 = float(k)
            n = n1 + 1.0
            delta = x - mean
            delta_n = delta / n
            delta_n2 = delta_n * delta_n
            term1 = delta * delta_n * n1
            mean += delta_n
            m4 += (
                term1 * delta_n2 * (n * n - 3.0 * n + 3.0)
                + 6.0 * delta_n2 * m2
                - 4.0 * delta_n * m3
            )
            m3 += term1 * delta_n * (n - 2.0) - 3.0 * delta_n * m2
            m2 += term1
        out[i, 0] = mean
        out[i, 1] = m2
        out[i, 2] = m3
        out[i, 3] = m4


@njit(nogil=True)
def comoment_rows(  # type: ignore [no-untyped-def]
    variables, out, start, stop
):
    # Paired running accumulators:
    # out[a, b] = sum((x_a - mean_a) * (x_b - mean_b))
    # for rows a in [start, stop) and every b >= a.
    num_vars = variables.shape[0]
    num_obs = variables.shape[1]
    for a in range(start, stop):
        for b in range(a, num_vars):
            mean_x = 0.0
            mean_y = 0.0
            c = 0.0
            for t in range(num_obs):
                x = variables[a, t]
                y = variables[b, t]
                count = t + 1.0
                dx = x - mean_x
                mean_x += dx / count
                mean_y += (y - mean_y) / count
                c += dx * (y - mean_y)
            out[a, b] = c
            out[b, a] = c
