"""
Taichi kernels for the GPU erosion pipeline.

One kernel per dispatch stage:
    (a) evaporate_and_rotate / distribute_rain: buffer update
    (b) update_delta_h: per-cell neighbor delta totals
    (c) erode: hydraulic and thermal transport

Transfers to neighbors use ti.atomic_add into the "out" buffers, so every
concurrent contribution to a cell is summed.
"""

import taichi as ti

from erodesim.core.dtypes import DTYPE
from erodesim.core.geometry import NEIGHBOR_DI, NEIGHBOR_DJ, THERMAL_MARGIN, is_interior

# Water depth below which a cell counts as dry
EPSILON_DRY = 1e-6


@ti.kernel
def initialize_moisture(
    height: ti.template(),
    water: ti.template(),
    sediment: ti.template(),
    height_out: ti.template(),
    water_out: ti.template(),
    sediment_out: ti.template(),
    rain: DTYPE,
    max_height: DTYPE,
):
    """Seed water proportional to elevation, clear sediment, prime "out"."""
    n = height.shape[0]
    for i, j in height:
        if is_interior(i, j, n, 1):
            water[i, j] = rain * (height[i, j] / max_height)
            sediment[i, j] = 0.0
        height_out[i, j] = height[i, j]
        water_out[i, j] = water[i, j]
        sediment_out[i, j] = sediment[i, j]


@ti.kernel
def distribute_rain(
    height: ti.template(),
    water: ti.template(),
    water_out: ti.template(),
    rain: DTYPE,
    max_height: DTYPE,
):
    """Add a rain event to interior cells, mirrored into water_out."""
    n = height.shape[0]
    for i, j in ti.ndrange((1, n - 1), (1, n - 1)):
        water[i, j] += rain * (height[i, j] / max_height)
        water_out[i, j] = water[i, j]


@ti.kernel
def evaporate_and_rotate(
    height: ti.template(),
    water: ti.template(),
    sediment: ti.template(),
    height_out: ti.template(),
    water_out: ti.template(),
    sediment_out: ti.template(),
    k_e: DTYPE,
):
    """Evaporate, settle sediment in dry cells, copy out -> in."""
    n = height.shape[0]
    for i, j in ti.ndrange((1, n - 1), (1, n - 1)):
        w = water_out[i, j] * k_e
        if w < EPSILON_DRY:
            height_out[i, j] += sediment[i, j]
            sediment_out[i, j] = 0.0
            w = 0.0
        water_out[i, j] = w

        height[i, j] = height_out[i, j]
        water[i, j] = w
        sediment[i, j] = sediment_out[i, j]


@ti.kernel
def update_delta_h(
    height: ti.template(),
    water: ti.template(),
    total_delta_hw: ti.template(),
    total_delta_h: ti.template(),
    k_t: DTYPE,
):
    """Sum the downhill surface drops and the above-talus height drops."""
    n = height.shape[0]
    for i, j in ti.ndrange((1, n - 1), (1, n - 1)):
        surface = height[i, j] + water[i, j]
        hw = ti.cast(0.0, DTYPE)
        for k in ti.static(range(8)):
            ni = i + NEIGHBOR_DI[k]
            nj = j + NEIGHBOR_DJ[k]
            dh = surface - (height[ni, nj] + water[ni, nj])
            if dh > 0:
                hw += dh
        total_delta_hw[i, j] = hw

        h = ti.cast(0.0, DTYPE)
        if is_interior(i, j, n, THERMAL_MARGIN):
            for k in ti.static(range(8)):
                ni = i + NEIGHBOR_DI[k]
                nj = j + NEIGHBOR_DJ[k]
                if is_interior(ni, nj, n, THERMAL_MARGIN):
                    dh = height[i, j] - height[ni, nj]
                    if dh > k_t:
                        h += dh
        total_delta_h[i, j] = h


@ti.func
def _hydraulic_cell(
    i, j, height, water, sediment, height_out, water_out, sediment_out,
    total_delta_hw, k_c, k_d, k_s,
):
    h = height[i, j]
    w = water[i, j]
    s = sediment[i, j]
    surface = h + w
    total = total_delta_hw[i, j]

    for k in ti.static(range(8)):
        ni = i + NEIGHBOR_DI[k]
        nj = j + NEIGHBOR_DJ[k]
        dh = surface - (height[ni, nj] + water[ni, nj])

        if dh <= 0:
            # pooling
            if h <= height[ni, nj]:
                pooled = k_d * s
                ti.atomic_add(height_out[i, j], pooled)
                ti.atomic_sub(sediment_out[i, j], pooled)
        else:
            share = dh / total
            delta_w = ti.min(w, dh) * share
            delta_s = s * share
            capacity = delta_w * k_c

            ti.atomic_add(water_out[ni, nj], delta_w)
            ti.atomic_sub(water_out[i, j], delta_w)

            if delta_s >= capacity:
                deposited = k_d * (delta_s - capacity)
                ti.atomic_add(height_out[i, j], deposited)
                ti.atomic_add(sediment_out[ni, nj], capacity)
                ti.atomic_sub(sediment_out[i, j], deposited + capacity)
            else:
                eroded = k_s * (capacity - delta_s)
                ti.atomic_sub(height_out[i, j], eroded)
                ti.atomic_add(sediment_out[ni, nj], delta_s + eroded)
                ti.atomic_sub(sediment_out[i, j], delta_s)


@ti.func
def _thermal_cell(i, j, n, height, height_out, total_delta_h, k_t, c_t):
    total = total_delta_h[i, j]
    if total > 0:
        for k in ti.static(range(8)):
            ni = i + NEIGHBOR_DI[k]
            nj = j + NEIGHBOR_DJ[k]
            if is_interior(ni, nj, n, THERMAL_MARGIN):
                dh = height[i, j] - height[ni, nj]
                if dh > k_t:
                    moved = c_t * (dh - k_t) * (dh / total)
                    ti.atomic_add(height_out[ni, nj], moved)
                    ti.atomic_sub(height_out[i, j], moved)


@ti.kernel
def erode(
    height: ti.template(),
    water: ti.template(),
    sediment: ti.template(),
    height_out: ti.template(),
    water_out: ti.template(),
    sediment_out: ti.template(),
    total_delta_hw: ti.template(),
    total_delta_h: ti.template(),
    hydraulic: ti.i32,
    thermal: ti.i32,
    k_c: DTYPE,
    k_d: DTYPE,
    k_s: DTYPE,
    k_t: DTYPE,
    c_t: DTYPE,
):
    """Hydraulic and thermal transport from "in" into "out" buffers."""
    n = height.shape[0]
    for i, j in ti.ndrange((1, n - 1), (1, n - 1)):
        if hydraulic != 0 and water[i, j] > 0:
            _hydraulic_cell(
                i, j, height, water, sediment, height_out, water_out, sediment_out,
                total_delta_hw, k_c, k_d, k_s,
            )
        if thermal != 0 and is_interior(i, j, n, THERMAL_MARGIN):
            _thermal_cell(i, j, n, height, height_out, total_delta_h, k_t, c_t)


@ti.kernel
def drain_boundary(field: ti.template(), field_out: ti.template()) -> DTYPE:
    """Sum what piled up in the frame "out" cells and reset them to "in"."""
    n = field.shape[0]
    total = ti.cast(0.0, DTYPE)
    for i, j in field:
        if i == 0 or i == n - 1 or j == 0 or j == n - 1:
            total += field_out[i, j] - field[i, j]
            field_out[i, j] = field[i, j]
    return total
