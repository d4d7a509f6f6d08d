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

import threading
import warnings
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from .settings import NdstatsRuntimeSettings, settings
from .utils import find_last_user_stacklevel

LaneBody = Callable[[int, int], None]
PendingWarning = tuple[str, type]


class Runtime(object):
    """
    Schedules per-lane work.

    Lanes along an axis are independent, so a lane range can be split into
    contiguous chunks and handed to worker threads without any
    synchronization beyond joining at the end. The kernels release the GIL
    while they run.
    """

    def __init__(self, settings: NdstatsRuntimeSettings) -> None:
        self.settings = settings
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_threads = 0
        self._lock = threading.Lock()
        self._local = threading.local()

    @property
    def num_threads(self) -> int:
        return self.settings.num_threads

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            threads = self.num_threads
            if self._executor is None or self._executor_threads != threads:
                if self._executor is not None:
                    self._executor.shutdown(wait=True)
                self._executor = ThreadPoolExecutor(
                    max_workers=threads, thread_name_prefix="ndstats"
                )
                self._executor_threads = threads
            return self._executor

    def chunk_bounds(self, num_lanes: int) -> list[tuple[int, int]]:
        num_chunks = max(1, min(self.num_threads, num_lanes))
        base, extra = divmod(num_lanes, num_chunks)
        bounds = []
        start = 0
        for i in range(num_chunks):
            stop = start + base + (1 if i < extra else 0)
            bounds.append((start, stop))
            start = stop
        return bounds

    @property
    def in_worker(self) -> bool:
        return getattr(self._local, "in_worker", False)

    def _run_chunk(
        self, body: LaneBody, start: int, stop: int
    ) -> list[PendingWarning]:
        # nested parallel_for calls from a worker run inline, so a worker
        # never blocks on the pool it belongs to
        self._local.in_worker = True
        self._local.pending = []
        try:
            body(start, stop)
            return self._local.pending
        finally:
            self._local.in_worker = False
            self._local.pending = []

    def parallel_for(self, num_lanes: int, body: LaneBody) -> None:
        """
        Run ``body(start, stop)`` over ``[0, num_lanes)``.

        The first exception raised by any chunk is re-raised once every
        chunk has finished. Warnings raised by workers are emitted again
        from the calling thread, in lane order.
        """
        if num_lanes == 0:
            return
        if (
            self.num_threads <= 1
            or num_lanes < self.settings.min_parallel_lanes
            or self.in_worker
        ):
            body(0, num_lanes)
            return

        executor = self._get_executor()
        futures: list[Future[list[PendingWarning]]] = [
            executor.submit(self._run_chunk, body, start, stop)
            for start, stop in self.chunk_bounds(num_lanes)
        ]
        error: Optional[BaseException] = None
        for future in futures:
            exc = future.exception()
            if exc is not None:
                if error is None:
                    error = exc
                continue
            for msg, category in future.result():
                self.warn(msg, category)
        if error is not None:
            raise error

    def shutdown(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
                self._executor_threads = 0

    def warn(self, msg: str, category: type = UserWarning) -> None:
        if not self.settings.warn:
            return
        if self.in_worker:
            # a worker thread has no user frames to point at
            self._local.pending.append((msg, category))
            return
        stacklevel = find_last_user_stacklevel()
        warnings.warn(msg, stacklevel=stacklevel, category=category)


runtime = Runtime(settings)
