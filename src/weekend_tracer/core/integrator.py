"""Wavefront path tracing kernels and their buffers.

One frame of rendering is split into separate kernel launches so that every
lane of a bounce generation finishes before any lane starts the next:

    init_camera_rays   one lane per (pixel, sample slot)
    trace_generation   called up to max_bounces times, returns live lanes
    accumulate         one lane per pixel, sums that pixel's slots
    normalize_image    one lane per pixel, divides by the sample count

Per-lane transport records live in a structure of arrays. Lane ids are
pixel * samples_per_frame + slot, with pixel = j * width + i and j = 0 the
bottom row. A lane only ever writes its own record; accumulation is the
only pass that reads several lanes, and it owns the pixel it writes.

Randomness is keyed by (frame, lane, bounce): camera rays use bounce key 0
and the scatter at bounce b uses key b + 1, so no two lanes, frames or
generations share a stream.

All buffers are allocated through a single ti.FieldsBuilder tree owned by
RenderResources, so they can be released as a unit.

Kernels are module-level functions that take their fields as templates.
They are compiled per set of fields, so a new activation never reuses a
kernel bound to destroyed buffers.
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from weekend_tracer.camera.thin_lens import generate_camera_ray
from weekend_tracer.config import TracerConfig
from weekend_tracer.core.ray import Ray
from weekend_tracer.core.rng import lane_seed, uniform
from weekend_tracer.core.sampler import lens_offset, spherical_fibonacci
from weekend_tracer.materials.material import MATERIAL_STRIDE, scatter_from_table
from weekend_tracer.scene.intersection import (
    MAX_SPHERES,
    SPHERE_STRIDE,
    intersect_scene,
    to_hit_record,
)
from weekend_tracer.scene.manager import MAX_MATERIALS

logger = logging.getLogger(__name__)

# Type aliases
vec2 = tm.vec2
vec3 = tm.vec3
vec8 = ti.types.vector(8, ti.f32)

# Per-lane transport record
PathState = ti.types.struct(
    origin=vec3,
    direction=vec3,
    color=vec3,
    throughput=vec3,
    bounce=ti.i32,
    active=ti.i32,
    pixel=ti.i32,
    slot=ti.i32,
)

_PATH_STATE_MEMBERS = (
    "origin",
    "direction",
    "color",
    "throughput",
    "bounce",
    "active",
    "pixel",
    "slot",
)


class RenderResources:
    """Every Taichi field a PathTracer needs for one activation.

    Attributes:
        rays: PathState records, one per lane, laid out as a structure of
            arrays.
        accum: (width, height) summed radiance.
        image: (width, height) normalized radiance.
        spheres: (MAX_SPHERES, SPHERE_STRIDE) packed sphere table.
        materials: (MAX_MATERIALS, MATERIAL_STRIDE) packed material table.
        hemisphere: Spherical Fibonacci directions.
        sky: Two colors, horizon (index 0) and zenith (index 1).
        camera_to_world: 0-D 4x4 matrix.
        projection: 0-D 4x4 matrix.
    """

    def __init__(self, config: TracerConfig) -> None:
        self.lane_count = config.lane_count
        fb = ti.FieldsBuilder()

        self.rays = PathState.field()
        for name in _PATH_STATE_MEMBERS:
            fb.dense(ti.i, self.lane_count).place(getattr(self.rays, name))

        self.accum = ti.Vector.field(3, dtype=ti.f32)
        self.image = ti.Vector.field(3, dtype=ti.f32)
        fb.dense(ti.ij, (config.width, config.height)).place(self.accum, self.image)

        self.spheres = ti.field(dtype=ti.f32)
        fb.dense(ti.ij, (MAX_SPHERES, SPHERE_STRIDE)).place(self.spheres)

        self.materials = ti.field(dtype=ti.f32)
        fb.dense(ti.ij, (MAX_MATERIALS, MATERIAL_STRIDE)).place(self.materials)

        self.hemisphere = ti.Vector.field(3, dtype=ti.f32)
        fb.dense(ti.i, config.hemisphere_samples).place(self.hemisphere)

        self.sky = ti.Vector.field(3, dtype=ti.f32)
        fb.dense(ti.i, 2).place(self.sky)

        self.camera_to_world = ti.Matrix.field(4, 4, dtype=ti.f32)
        self.projection = ti.Matrix.field(4, 4, dtype=ti.f32)
        fb.place(self.camera_to_world, self.projection)

        self._tree = fb.finalize()

        try:
            self.hemisphere.from_numpy(spherical_fibonacci(config.hemisphere_samples))
            self.sky[0] = config.sky_horizon
            self.sky[1] = config.sky_zenith
        except Exception:
            self.destroy()
            raise

    def destroy(self) -> None:
        if self._tree is not None:
            self._tree.destroy()
            self._tree = None

    def upload_scene(
        self,
        packed_spheres: npt.NDArray[np.float32],
        packed_materials: npt.NDArray[np.float32],
    ) -> None:
        """Copy packed scene tables into the fixed-capacity fields."""
        spheres = np.zeros((MAX_SPHERES, SPHERE_STRIDE), dtype=np.float32)
        spheres[: len(packed_spheres)] = packed_spheres
        self.spheres.from_numpy(spheres)

        materials = np.zeros((MAX_MATERIALS, MATERIAL_STRIDE), dtype=np.float32)
        materials[: len(packed_materials)] = packed_materials
        self.materials.from_numpy(materials)

    def upload_camera(
        self,
        camera_to_world: npt.NDArray[np.float32],
        projection: npt.NDArray[np.float32],
    ) -> None:
        self.camera_to_world.from_numpy(np.asarray(camera_to_world, dtype=np.float32))
        self.projection.from_numpy(np.asarray(projection, dtype=np.float32))


# =============================================================================
# Per-lane helpers
# =============================================================================


@ti.func
def sky_color(direction: vec3, horizon: vec3, zenith: vec3) -> vec3:
    """Blend from horizon to zenith by the height of the unit direction."""
    unit_direction = tm.normalize(direction)
    a = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - a) * horizon + a * zenith


@ti.func
def sanitize_radiance(color: vec3) -> vec3:
    """Zero NaN, infinite and negative components."""
    result = tm.max(color, vec3(0.0, 0.0, 0.0))
    for c in ti.static(range(3)):
        if tm.isnan(color[c]) or tm.isinf(color[c]):
            result[c] = 0.0
    return result


# =============================================================================
# Kernels
# =============================================================================


@ti.kernel
def clear_paths(rays: ti.template(), lane_count: ti.i32):
    """Reset every transport record to an inactive, black path."""
    for lane in range(lane_count):
        rays.origin[lane] = vec3(0.0, 0.0, 0.0)
        rays.direction[lane] = vec3(0.0, 0.0, 0.0)
        rays.color[lane] = vec3(0.0, 0.0, 0.0)
        rays.throughput[lane] = vec3(0.0, 0.0, 0.0)
        rays.bounce[lane] = 0
        rays.active[lane] = 0
        rays.pixel[lane] = 0
        rays.slot[lane] = 0


@ti.kernel
def init_camera_rays(
    rays: ti.template(),
    hemisphere: ti.template(),
    camera_to_world: ti.template(),
    projection: ti.template(),
    lane_count: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_frame: ti.i32,
    frame_key: ti.i32,
    frame_index: ti.i32,
    aperture: ti.f32,
    focus_distance: ti.f32,
):
    """Start a fresh camera path in every lane.

    The sub-pixel position uses draws 0 and 1 of the lane's bounce-0
    stream; the lens rotation uses draw 2.
    """
    c2w = camera_to_world[None]
    proj = projection[None]
    for lane in range(lane_count):
        pixel = lane // samples_per_frame
        slot = lane % samples_per_frame
        i = pixel % width
        j = pixel // width

        seed = lane_seed(frame_key, lane, 0)
        s = (ti.cast(i, ti.f32) + uniform(seed, 0)) / ti.cast(width, ti.f32)
        t = (ti.cast(j, ti.f32) + uniform(seed, 1)) / ti.cast(height, ti.f32)

        lens = vec2(0.0, 0.0)
        if aperture > 0.0:
            lens = lens_offset(hemisphere, slot, frame_index, samples_per_frame, uniform(seed, 2))

        ray = generate_camera_ray(c2w, proj, s, t, aperture, focus_distance, lens)

        rays.origin[lane] = ray.origin
        rays.direction[lane] = ray.direction
        rays.color[lane] = vec3(0.0, 0.0, 0.0)
        rays.throughput[lane] = vec3(1.0, 1.0, 1.0)
        rays.bounce[lane] = 0
        rays.active[lane] = 1
        rays.pixel[lane] = pixel
        rays.slot[lane] = slot


@ti.kernel
def trace_generation(
    rays: ti.template(),
    spheres: ti.template(),
    materials: ti.template(),
    sky: ti.template(),
    lane_count: ti.i32,
    num_spheres: ti.i32,
    frame_key: ti.i32,
    max_bounces: ti.i32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Advance every active lane by one bounce.

    A miss adds throughput * sky and retires the lane. An absorbed ray
    retires with no contribution. A scattered ray multiplies its throughput
    by the attenuation and continues from the hit point, unless it has
    reached max_bounces, in which case it retires with no contribution.

    Returns:
        The number of lanes still active afterwards.
    """
    horizon = sky[0]
    zenith = sky[1]
    still_active = 0
    for lane in range(lane_count):
        if rays.active[lane] == 1:
            ray = Ray(origin=rays.origin[lane], direction=rays.direction[lane])
            rec = intersect_scene(ray, spheres, num_spheres, t_min, t_max)

            if rec.hit == 0:
                rays.color[lane] += rays.throughput[lane] * sky_color(ray.direction, horizon, zenith)
                rays.active[lane] = 0
            else:
                bounce = rays.bounce[lane]
                seed = lane_seed(frame_key, lane, bounce + 1)
                result = scatter_from_table(materials, rec.material_id, ray, to_hit_record(rec), seed)

                if result.scattered == 0:
                    rays.active[lane] = 0
                else:
                    rays.throughput[lane] *= result.attenuation
                    rays.origin[lane] = result.origin
                    rays.direction[lane] = result.direction
                    rays.bounce[lane] = bounce + 1
                    if bounce + 1 >= max_bounces:
                        rays.active[lane] = 0
                    else:
                        still_active += 1
    return still_active


@ti.kernel
def accumulate(
    rays: ti.template(),
    accum: ti.template(),
    width: ti.i32,
    samples_per_frame: ti.i32,
):
    """Add each pixel's slot colors into the accumulation image."""
    for i, j in accum:
        first_lane = (j * width + i) * samples_per_frame
        total = vec3(0.0, 0.0, 0.0)
        for slot in range(samples_per_frame):
            total += sanitize_radiance(rays.color[first_lane + slot])
        accum[i, j] += total


@ti.kernel
def normalize_image(accum: ti.template(), image: ti.template(), sample_count: ti.i32):
    """image = accum / sample_count, or black before the first sample."""
    for i, j in accum:
        color = vec3(0.0, 0.0, 0.0)
        if sample_count > 0:
            color = accum[i, j] / ti.cast(sample_count, ti.f32)
        image[i, j] = tm.max(color, vec3(0.0, 0.0, 0.0))


@ti.kernel
def probe_primary_hit(
    spheres: ti.template(),
    camera_to_world: ti.template(),
    projection: ti.template(),
    i: ti.i32,
    j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    focus_distance: ti.f32,
    num_spheres: ti.i32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> vec8:
    """Trace the un-jittered pinhole ray through a pixel center.

    Returns:
        [hit, t, normal.x, normal.y, normal.z, point.x, point.y, point.z]
    """
    s = (ti.cast(i, ti.f32) + 0.5) / ti.cast(width, ti.f32)
    t = (ti.cast(j, ti.f32) + 0.5) / ti.cast(height, ti.f32)
    ray = generate_camera_ray(
        camera_to_world[None], projection[None], s, t, 0.0, focus_distance, vec2(0.0, 0.0)
    )
    rec = intersect_scene(ray, spheres, num_spheres, t_min, t_max)
    return vec8(
        ti.cast(rec.hit, ti.f32),
        rec.t,
        rec.normal.x,
        rec.normal.y,
        rec.normal.z,
        rec.point.x,
        rec.point.y,
        rec.point.z,
    )
