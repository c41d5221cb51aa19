"""
CPU erosion pipeline.

Every sweep is split into row bands and fanned out over a thread pool; the
pool's map() returns only once all bands are done, which is the barrier
between phases. NumPy releases the GIL inside its array loops, so the bands
genuinely overlap.

Per step:
    rain -> hydraulic scan/gather -> thermal scan/gather -> evaporate/rotate
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable

from erodesim.core.geometry import HYDRAULIC_MARGIN, THERMAL_MARGIN
from erodesim.fields.storage import GridStorage
from erodesim.kernels.cpu.buffers import (
    distribute_rain,
    drain_boundary,
    evaporate_and_rotate,
    initialize_moisture,
    prime_frame,
)
from erodesim.kernels.cpu.hydraulic import hydraulic_gather, hydraulic_scan
from erodesim.kernels.cpu.thermal import thermal_gather, thermal_scan
from erodesim.kernels.protocol import RunFluxes
from erodesim.params.schema import ErosionParams

logger = logging.getLogger(__name__)


class CpuErosionPipeline:
    """NumPy erosion backend over the host buffers of a GridStorage.

    Example:
        pipeline = CpuErosionPipeline(storage)
        pipeline.begin(params)
        for step in range(params.n_steps):
            pipeline.step(step, params)
        fluxes = pipeline.finish()
    """

    def __init__(self, storage: GridStorage, max_workers: int | None = None):
        """Bind the pipeline to host buffers.

        Args:
            storage: Allocated grid storage
            max_workers: Fan-out width (default: CPU count)
        """
        self.storage = storage
        self.max_workers = max_workers or os.cpu_count() or 1
        self._pool: ThreadPoolExecutor | None = None

        geometry = storage.geometry
        self._bands = geometry.row_bands(self.max_workers, HYDRAULIC_MARGIN)
        self._thermal_bands = geometry.row_bands(self.max_workers, THERMAL_MARGIN)
        self._target_bands = geometry.row_bands(self.max_workers, margin=0)

    def _sweep(self, fn: Callable, bands: list[tuple[int, int]]) -> None:
        """Run `fn(rows=band)` for every band and wait for all of them."""
        # list() drains the iterator so worker exceptions surface here
        list(self._pool.map(lambda rows: fn(rows=rows), bands))

    def begin(self, params: ErosionParams) -> None:
        """Seed initial moisture and prime the "out" buffers."""
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="erodesim-cpu"
            )
        state = self.storage.host
        prime_frame(state)
        self._sweep(
            partial(initialize_moisture, state, params.rain, self.storage.max_height),
            self._bands,
        )
        logger.debug(
            "CPU pipeline ready (width=%d, bands=%d)",
            self.storage.width,
            len(self._bands),
        )

    def step(self, step: int, params: ErosionParams) -> None:
        """Execute one erosion step on the host buffers."""
        state = self.storage.host
        scratch = self.storage.host_scratch

        if params.rains_at(step):
            self._sweep(
                partial(distribute_rain, state, params.rain, self.storage.max_height),
                self._bands,
            )

        if params.hydraulic_enabled:
            self._sweep(
                partial(hydraulic_scan, state, scratch, params.k_c, params.k_d, params.k_s),
                self._bands,
            )
            self._sweep(partial(hydraulic_gather, state, scratch), self._target_bands)

        if params.thermal_enabled:
            self._sweep(
                partial(thermal_scan, state, scratch, params.k_t, params.c_t),
                self._thermal_bands,
            )
            self._sweep(partial(thermal_gather, state, scratch), self._target_bands)

        self._sweep(partial(evaporate_and_rotate, state, params.k_e), self._bands)

    def finish(self) -> RunFluxes:
        """Report boundary outflow and shut the worker pool down.

        Height and water are already final on the host after every step.
        """
        fluxes = drain_boundary(self.storage.host)
        self.close()
        return fluxes

    def close(self) -> None:
        """Shut the worker pool down. begin() starts a new one."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None
