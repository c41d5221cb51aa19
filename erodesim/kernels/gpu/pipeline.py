"""
GPU erosion pipeline.

Runs the erosion step as Taichi kernels over the device mirrors of a
GridStorage. Each step is three dispatch stages separated by ti.sync():

    (a) buffer update: finish the previous step's evaporation and rotation,
        then rain for this step
    (b) neighbor deltas: total_delta_hw, total_delta_h
    (c) erosion: hydraulic and thermal transport

Rotation of the last step is deferred to finish(), which then copies height
and water back into the host arrays. Only cells whose device value differs
from the uploaded one are written, so cells the run never touched (the
frame included) keep their original host precision. Sediment stays on the
device.
"""

import logging

import numpy as np
import taichi as ti

from erodesim.core.dtypes import NP_DTYPE
from erodesim.errors import BackendUnavailableError
from erodesim.fields.storage import GridStorage
from erodesim.kernels.gpu.stages import (
    distribute_rain,
    drain_boundary,
    erode,
    evaporate_and_rotate,
    initialize_moisture,
    update_delta_h,
)
from erodesim.kernels.protocol import RunFluxes
from erodesim.params.schema import ErosionParams

logger = logging.getLogger(__name__)


def _copy_changed(array: np.ndarray, field) -> None:
    """Write back the cells of `field` that differ from `array` as uploaded."""
    updated = field.to_numpy()
    changed = updated != array.astype(NP_DTYPE)
    array[changed] = updated[changed]


class GpuErosionPipeline:
    """Taichi erosion backend over the device mirrors of a GridStorage."""

    def __init__(self, storage: GridStorage):
        if not storage.has_device:
            raise BackendUnavailableError(
                "GPU pipeline needs device buffers; bind with use_gpu=True"
            )
        self.storage = storage
        self._k_e = 1.0
        self._rotation_pending = False

    def _rotate(self) -> None:
        dev = self.storage.device
        evaporate_and_rotate(
            dev.height, dev.water, dev.sediment,
            dev.height_out, dev.water_out, dev.sediment_out,
            self._k_e,
        )
        self._rotation_pending = False

    def begin(self, params: ErosionParams) -> None:
        """Upload the host state and seed initial moisture on the device."""
        host = self.storage.host
        dev = self.storage.device

        dev.height.from_numpy(host.height.astype(NP_DTYPE))
        dev.water.from_numpy(host.water.astype(NP_DTYPE))
        dev.sediment.from_numpy(host.sediment.astype(NP_DTYPE))

        initialize_moisture(
            dev.height, dev.water, dev.sediment,
            dev.height_out, dev.water_out, dev.sediment_out,
            params.rain, self.storage.max_height,
        )
        ti.sync()
        self._rotation_pending = False
        logger.debug("GPU pipeline ready (width=%d)", self.storage.width)

    def step(self, step: int, params: ErosionParams) -> None:
        """Dispatch one erosion step."""
        dev = self.storage.device
        scratch = self.storage.device_scratch

        # (a) buffer update
        if self._rotation_pending:
            self._rotate()
        if params.rains_at(step):
            distribute_rain(
                dev.height, dev.water, dev.water_out,
                params.rain, self.storage.max_height,
            )
        ti.sync()

        # (b) neighbor deltas
        update_delta_h(
            dev.height, dev.water,
            scratch.total_delta_hw, scratch.total_delta_h,
            params.k_t,
        )
        ti.sync()

        # (c) erosion
        erode(
            dev.height, dev.water, dev.sediment,
            dev.height_out, dev.water_out, dev.sediment_out,
            scratch.total_delta_hw, scratch.total_delta_h,
            int(params.hydraulic_enabled), int(params.thermal_enabled),
            params.k_c, params.k_d, params.k_s, params.k_t, params.c_t,
        )
        ti.sync()

        self._k_e = params.k_e
        self._rotation_pending = True

    def finish(self) -> RunFluxes:
        """Complete the last rotation and copy height and water to the host."""
        dev = self.storage.device
        host = self.storage.host

        if self._rotation_pending:
            self._rotate()
        water = drain_boundary(dev.water, dev.water_out)
        sediment = drain_boundary(dev.sediment, dev.sediment_out)
        ti.sync()

        _copy_changed(host.height, dev.height)
        _copy_changed(host.water, dev.water)

        return RunFluxes(boundary_water=float(water), boundary_sediment=float(sediment))

    def close(self) -> None:
        """Nothing to release; device buffers belong to the GridStorage."""
